"""常量定义：集中维护状态码、令牌类型与文件类型相关的固定值。"""

HTTP_STATUS_OK = 200
HTTP_STATUS_BAD_REQUEST = 400
HTTP_STATUS_UNAUTHORIZED = 401
HTTP_STATUS_NOT_FOUND = 404
HTTP_STATUS_CONFLICT = 409
HTTP_STATUS_PAYLOAD_TOO_LARGE = 413
HTTP_STATUS_INTERNAL_SERVER_ERROR = 500

ACCESS_TOKEN_TYPE = "bearer"

DEFAULT_MIME_TYPE = "application/octet-stream"
MARKDOWN_MIME_TYPE = "text/markdown"
MARKDOWN_EXTENSIONS = (".md", ".markdown")

# 预览时按 UTF-8 文本返回的类型：text/* 以及以下精确类型
TEXT_MIME_PREFIX = "text/"
TEXT_LIKE_MIME_TYPES = frozenset({"application/json"})

STORAGE_BACKEND_LOCAL = "LOCAL"
STORAGE_BACKEND_S3 = "S3"

# 存储名中保留的原始文件名最大 UTF-8 字节数。
# 文件系统单个名称上限 255 字节：前缀 `{纳秒}-{8位}-` 占 29 字节，
# 写入时的临时名 `.{key}.{32位}.part` 再多 39 字节。
MAX_STORED_NAME_BYTES = 180
