"""文件服务：组合存储后端与文件记录，完成上传、列表、下载、预览与删除。

写入顺序固定为“先内容、后元数据”；删除顺序为“先内容、后元数据”。删除过程中若进程
中断，留下的是指向缺失内容的记录，会在下一次下载/预览时以 404 暴露，而不会留下
无人引用、无法回收的内容。
"""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Union

from sqlalchemy.orm import Session

from app.packages.drive.core.config import Settings, get_settings
from app.packages.drive.core.constants import (
    DEFAULT_MIME_TYPE,
    MARKDOWN_EXTENSIONS,
    MARKDOWN_MIME_TYPE,
    TEXT_LIKE_MIME_TYPES,
    TEXT_MIME_PREFIX,
)
from app.packages.drive.core.context import AuthContext
from app.packages.drive.core.exceptions import (
    AppException,
    BlobNotFoundException,
    NotFoundException,
    PayloadTooLargeException,
    StorageIOException,
    ValidationException,
)
from app.packages.drive.core.logger import logger
from app.packages.drive.core.timezone import format_datetime
from app.packages.drive.crud.file_record import CRUDFileRecord, file_record_crud
from app.packages.drive.models.file_record import FileRecord
from app.packages.drive.services.blob_store import (
    BlobStore,
    build_blob_store,
    generate_storage_name,
    sanitize_filename,
)


def normalize_mime_type(filename: str, supplied: Optional[str]) -> str:
    """规范化文件类型：Markdown 扩展名一律视为 ``text/markdown``，忽略客户端声明。"""
    if filename.lower().endswith(MARKDOWN_EXTENSIONS):
        return MARKDOWN_MIME_TYPE
    mime = (supplied or "").split(";", 1)[0].strip().lower()
    if mime:
        return mime
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or DEFAULT_MIME_TYPE


def is_text_like(mime_type: str) -> bool:
    return mime_type.startswith(TEXT_MIME_PREFIX) or mime_type in TEXT_LIKE_MIME_TYPES


@dataclass(frozen=True)
class FilePayload:
    """下载/预览的返回内容。``disposition`` 为 ``None`` 时不附带 Content-Disposition。"""

    content: Union[bytes, str]
    media_type: str
    filename: str
    disposition: Optional[str] = None


def serialize_file_record(record: FileRecord) -> Dict[str, Any]:
    return {
        "id": record.id,
        "original_name": record.original_name,
        "storage_name": record.storage_name,
        "size_bytes": int(record.size_bytes or 0),
        "mime_type": record.mime_type,
        "owner_id": record.owner_id,
        "create_time": format_datetime(record.create_time),
    }


class FileService:
    def __init__(
        self,
        blob_store: BlobStore,
        *,
        records: CRUDFileRecord = file_record_crud,
        max_upload_bytes: int = 0,
    ) -> None:
        self.blob_store = blob_store
        self.records = records
        self.max_upload_bytes = max_upload_bytes

    # ----------------------------
    # 上传
    # ----------------------------
    def ensure_upload_size(self, size: Optional[int]) -> None:
        """超过上传上限时抛出 413；``size`` 未知时不做判断。"""
        if size is None or not self.max_upload_bytes:
            return
        if size > self.max_upload_bytes:
            limit_mb = self.max_upload_bytes / 1024 / 1024
            raise PayloadTooLargeException(f"文件过大，最大允许 {limit_mb:g}MB")

    def upload(
        self,
        db: Session,
        ctx: AuthContext,
        *,
        original_name: Optional[str],
        mime_type: Optional[str],
        content: Optional[bytes],
    ) -> FileRecord:
        name = sanitize_filename(original_name)
        if not name:
            raise ValidationException("未选择文件或文件名为空")
        if content is None:
            raise ValidationException("缺少文件内容")
        self.ensure_upload_size(len(content))

        storage_name = generate_storage_name(name)
        normalized_mime = normalize_mime_type(name, mime_type)

        self.blob_store.put(storage_name, content)
        try:
            record = self.records.create(
                db,
                {
                    "storage_name": storage_name,
                    "original_name": name,
                    "size_bytes": len(content),
                    "mime_type": normalized_mime,
                    "owner_id": ctx.user_id,
                },
            )
        except Exception:
            # 元数据写入失败时回收已写入的内容，避免留下无人引用的文件
            logger.warning("files.upload metadata insert failed, removing blob %s", storage_name)
            try:
                self.blob_store.delete(storage_name)
            except StorageIOException:
                logger.exception("files.upload failed to remove orphaned blob %s", storage_name)
            raise

        logger.info(
            "files.upload user_id=%s file_id=%s size=%s mime=%s",
            ctx.user_id, record.id, record.size_bytes, record.mime_type,
        )
        return record

    # ----------------------------
    # 查询
    # ----------------------------
    def list_files(self, db: Session, ctx: AuthContext) -> List[FileRecord]:
        return self.records.list_by_owner(db, ctx.user_id)

    def get_file(self, db: Session, ctx: AuthContext, file_id: str) -> FileRecord:
        """按归属查找记录；不存在与不属于当前用户返回相同的 404。"""
        record = self.records.find_owned(db, file_id, ctx.user_id)
        if record is None:
            raise NotFoundException("文件不存在")
        return record

    def _read_content(self, record: FileRecord) -> bytes:
        try:
            return self.blob_store.get(record.storage_name)
        except BlobNotFoundException:
            logger.warning(
                "files.read blob missing for record file_id=%s storage_name=%s",
                record.id, record.storage_name,
            )
            raise

    def download(self, db: Session, ctx: AuthContext, file_id: str) -> FilePayload:
        record = self.get_file(db, ctx, file_id)
        content = self._read_content(record)
        return FilePayload(
            content=content,
            media_type=record.mime_type,
            filename=record.original_name,
            disposition="attachment",
        )

    def preview(self, db: Session, ctx: AuthContext, file_id: str) -> FilePayload:
        """文本类内容按 UTF-8 解码后返回，其余内容原样以 inline 方式返回。"""
        record = self.get_file(db, ctx, file_id)
        content = self._read_content(record)
        if is_text_like(record.mime_type):
            return FilePayload(
                content=content.decode("utf-8", errors="replace"),
                media_type=f"{record.mime_type}; charset=utf-8",
                filename=record.original_name,
            )
        return FilePayload(
            content=content,
            media_type=record.mime_type,
            filename=record.original_name,
            disposition="inline",
        )

    # ----------------------------
    # 删除
    # ----------------------------
    def delete(self, db: Session, ctx: AuthContext, file_id: str) -> None:
        record = self.get_file(db, ctx, file_id)
        storage_name = record.storage_name
        self.blob_store.delete(storage_name)
        if not self.records.delete_owned(db, file_id, ctx.user_id):
            # 并发删除：另一请求已先删除该记录
            raise NotFoundException("文件不存在")
        logger.info("files.delete user_id=%s file_id=%s storage_name=%s", ctx.user_id, file_id, storage_name)

    def batch_delete(self, db: Session, ctx: AuthContext, file_ids: Iterable[str]) -> List[dict]:
        """逐个删除，单个失败不影响其它项；返回每个 ID 的处理结果。"""
        results: List[dict] = []
        for file_id in dict.fromkeys(file_ids):
            try:
                self.delete(db, ctx, file_id)
                results.append({"id": file_id, "status": "success", "message": "删除成功"})
            except AppException as exc:
                results.append({"id": file_id, "status": "failure", "message": exc.detail})
            except Exception:
                logger.exception("files.batch_delete unexpected failure file_id=%s", file_id)
                results.append({"id": file_id, "status": "failure", "message": "删除失败：服务器错误"})
        logger.info(
            "files.batch_delete user_id=%s total=%s failed=%s",
            ctx.user_id, len(results), sum(1 for r in results if r["status"] != "success"),
        )
        return results


def build_file_service(settings: Optional[Settings] = None) -> FileService:
    """按配置构建文件服务，应用启动时调用一次。"""
    settings = settings or get_settings()
    blob_store = build_blob_store(settings)
    logger.info("File service ready with %s storage", settings.storage_backend.upper())
    return FileService(blob_store, max_upload_bytes=settings.max_upload_size_bytes)
