"""用户 CRUD：集中管理用户相关的数据操作。"""

from typing import Optional

from sqlalchemy.orm import Session

from app.packages.drive.crud.base import CRUDBase
from app.packages.drive.models.user import User


class CRUDUser(CRUDBase[User]):
    """封装常用的用户查询方法，供业务层复用。"""

    def get_by_email(self, db: Session, email: str) -> Optional[User]:
        """根据唯一邮箱获取用户实例（邮箱统一按小写存储）。"""
        return self.query(db).filter(User.email == email.strip().lower()).first()

    def create_user(self, db: Session, *, email: str, name: str, hashed_password: str) -> User:
        return self.create(
            db,
            {
                "email": email.strip().lower(),
                "name": name,
                "hashed_password": hashed_password,
            },
        )

    def update_owner_name(self, db: Session, owner_id: int, name: str) -> Optional[User]:
        """修改用户显示名称，用户不存在时返回 ``None``。"""
        user = self.get(db, owner_id)
        if user is None:
            return None
        user.name = name
        return self.save(db, user)


user_crud = CRUDUser(User)
