"""异常处理模块：定义统一的业务异常与响应格式。

业务层只抛出下列异常，由全局处理器转换为 ``{"msg", "data", "code"}`` 结构：

- ``UnauthenticatedException``：缺少或无效的会话（401）；
- ``NotFoundException``：记录不存在、不属于当前用户或存储中缺失（404）；
- ``ValidationException``：上传字段缺失或非法（400）；
- ``StorageIOException``：磁盘或对象存储不可用（500）。
"""

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse

from app.packages.drive.core.constants import (
    HTTP_STATUS_BAD_REQUEST,
    HTTP_STATUS_CONFLICT,
    HTTP_STATUS_INTERNAL_SERVER_ERROR,
    HTTP_STATUS_NOT_FOUND,
    HTTP_STATUS_PAYLOAD_TOO_LARGE,
    HTTP_STATUS_UNAUTHORIZED,
)
from app.packages.drive.core.logger import logger


class AppException(HTTPException):
    """携带统一响应结构的业务异常，方便在全局处理中转换响应体。"""

    def __init__(self, msg: str, code: int = status.HTTP_400_BAD_REQUEST, data=None) -> None:
        super().__init__(status_code=code, detail=msg)
        self.data = data


class UnauthenticatedException(AppException):
    def __init__(self, msg: str = "缺少认证信息") -> None:
        super().__init__(msg, HTTP_STATUS_UNAUTHORIZED)
        self.headers = {"WWW-Authenticate": "Bearer"}


class NotFoundException(AppException):
    def __init__(self, msg: str = "文件不存在") -> None:
        super().__init__(msg, HTTP_STATUS_NOT_FOUND)


class BlobNotFoundException(NotFoundException):
    """元数据存在但存储中找不到对应内容。"""

    def __init__(self, key: str) -> None:
        super().__init__("文件不存在")
        self.key = key


class ValidationException(AppException):
    def __init__(self, msg: str, data=None) -> None:
        super().__init__(msg, HTTP_STATUS_BAD_REQUEST, data)


class PayloadTooLargeException(AppException):
    def __init__(self, msg: str) -> None:
        super().__init__(msg, HTTP_STATUS_PAYLOAD_TOO_LARGE)


class ConflictException(AppException):
    def __init__(self, msg: str) -> None:
        super().__init__(msg, HTTP_STATUS_CONFLICT)


class StorageIOException(AppException):
    def __init__(self, msg: str = "文件存储读写失败") -> None:
        super().__init__(msg, HTTP_STATUS_INTERNAL_SERVER_ERROR)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:  # pragma: no cover - framework glue
    """将 FastAPI 的 ``HTTPException`` 转换为统一响应格式。"""
    payload = {"msg": exc.detail, "data": getattr(exc, "data", None), "code": exc.status_code}
    return JSONResponse(status_code=exc.status_code, content=payload, headers=getattr(exc, "headers", None))


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:  # pragma: no cover - framework glue
    """兜底处理：将未捕获异常转换为标准的 500 响应结构。"""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    payload = {
        "msg": "服务器内部错误",
        "data": None,
        "code": status.HTTP_500_INTERNAL_SERVER_ERROR,
    }
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=payload)
