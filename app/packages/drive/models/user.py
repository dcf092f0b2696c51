"""用户模型：描述系统中的账号及其拥有的文件。"""

from typing import List

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.packages.drive.models.base import Base, TimestampMixin


class User(TimestampMixin, Base):
    """用户实体。``hashed_password`` 仅在认证时读取，从不对外序列化。"""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(100))
    hashed_password: Mapped[str] = mapped_column(String(255))

    files: Mapped[List["FileRecord"]] = relationship(
        "FileRecord",
        back_populates="owner",
        passive_deletes=True,
    )
