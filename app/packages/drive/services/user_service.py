"""用户服务：个人资料查询与显示名称设置。"""

from sqlalchemy.orm import Session

from app.packages.drive.core.constants import HTTP_STATUS_OK
from app.packages.drive.core.context import AuthContext
from app.packages.drive.core.exceptions import NotFoundException, ValidationException
from app.packages.drive.core.logger import logger
from app.packages.drive.core.responses import create_response
from app.packages.drive.core.timezone import format_datetime
from app.packages.drive.crud.users import user_crud
from app.packages.drive.models.user import User

MAX_NAME_LENGTH = 100


class UserService:
    def build_user_profile(self, user: User) -> dict:
        """对外暴露的用户信息投影，不包含密码哈希。"""
        return {
            "user_id": user.id,
            "email": user.email,
            "name": user.name,
            "create_time": format_datetime(user.create_time),
        }

    def get_profile(self, db: Session, ctx: AuthContext) -> dict:
        user = user_crud.get(db, ctx.user_id)
        if user is None:
            raise NotFoundException("用户不存在")
        return create_response("获取成功", self.build_user_profile(user), HTTP_STATUS_OK)

    def update_display_name(self, db: Session, ctx: AuthContext, name: str) -> dict:
        normalized = (name or "").strip()
        if not normalized:
            raise ValidationException("名称不能为空")
        if len(normalized) > MAX_NAME_LENGTH:
            raise ValidationException(f"名称长度不能超过 {MAX_NAME_LENGTH} 个字符")

        user = user_crud.update_owner_name(db, ctx.user_id, normalized)
        if user is None:
            raise NotFoundException("用户不存在")
        logger.info("users.settings user_id=%s name updated", ctx.user_id)
        return create_response("设置已更新", self.build_user_profile(user), HTTP_STATUS_OK)


user_service = UserService()
