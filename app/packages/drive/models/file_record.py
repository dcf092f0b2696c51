"""文件记录模型：每条记录对应存储中 ``storage_name`` 下的一份内容。"""

import uuid
from typing import Optional

from sqlalchemy import BigInteger, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.packages.drive.models.base import Base, TimestampMixin


def _new_file_id() -> str:
    return uuid.uuid4().hex


class FileRecord(TimestampMixin, Base):
    __tablename__ = "file_records"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_file_id)
    storage_name: Mapped[str] = mapped_column(String(255), unique=True)
    original_name: Mapped[str] = mapped_column(String(255))
    size_bytes: Mapped[int] = mapped_column(BigInteger, default=0)
    mime_type: Mapped[str] = mapped_column(String(255))
    owner_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True
    )

    owner: Mapped[Optional["User"]] = relationship("User", back_populates="files")
