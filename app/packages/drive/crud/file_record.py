"""文件记录 CRUD：所有读取、删除都按 ``(id, owner_id)`` 过滤。"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.packages.drive.core.exceptions import ValidationException
from app.packages.drive.crud.base import CRUDBase
from app.packages.drive.models.file_record import FileRecord

REQUIRED_FIELDS = {
    "storage_name": "存储名称",
    "original_name": "文件名",
    "size_bytes": "文件大小",
    "mime_type": "文件类型",
    "owner_id": "所属用户",
}


def validate_file_record(obj_in: Dict[str, Any]) -> None:
    """校验待创建的文件记录，缺失或非法字段时抛出 ``ValidationException``。"""
    missing = [
        field
        for field in REQUIRED_FIELDS
        if obj_in.get(field) is None or (isinstance(obj_in.get(field), str) and not obj_in[field].strip())
    ]
    if missing:
        labels = "、".join(REQUIRED_FIELDS[field] for field in missing)
        raise ValidationException(f"缺少必填字段：{labels}", {"fields": missing})

    size = obj_in["size_bytes"]
    if isinstance(size, bool) or not isinstance(size, int) or size < 0:
        raise ValidationException("文件大小必须为非负整数", {"fields": ["size_bytes"]})


class CRUDFileRecord(CRUDBase[FileRecord]):
    def create(self, db: Session, obj_in: Dict[str, Any], *, auto_commit: bool = True) -> FileRecord:
        validate_file_record(obj_in)
        return super().create(db, obj_in, auto_commit=auto_commit)

    def list_by_owner(self, db: Session, owner_id: int) -> List[FileRecord]:
        """返回用户的全部文件，按创建时间倒序。"""
        return (
            self.query(db)
            .filter(FileRecord.owner_id == owner_id)
            .order_by(FileRecord.create_time.desc(), FileRecord.id.desc())
            .all()
        )

    def find_owned(self, db: Session, file_id: str, owner_id: int) -> Optional[FileRecord]:
        return (
            self.query(db)
            .filter(FileRecord.id == file_id, FileRecord.owner_id == owner_id)
            .first()
        )

    def delete_owned(self, db: Session, file_id: str, owner_id: int) -> bool:
        """删除一条属于该用户的记录，返回是否确实删除了记录。"""
        deleted = (
            self.query(db)
            .filter(FileRecord.id == file_id, FileRecord.owner_id == owner_id)
            .delete(synchronize_session="fetch")
        )
        try:
            db.commit()
        except Exception:
            db.rollback()
            raise
        return deleted > 0


file_record_crud = CRUDFileRecord(FileRecord)
