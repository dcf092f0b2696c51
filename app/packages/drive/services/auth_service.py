"""认证服务：封装注册、登录、退出等核心业务流程。"""

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.packages.drive.core.constants import ACCESS_TOKEN_TYPE, HTTP_STATUS_OK
from app.packages.drive.core.context import AuthContext
from app.packages.drive.core.exceptions import ConflictException, UnauthenticatedException
from app.packages.drive.core.logger import logger
from app.packages.drive.core.responses import create_response
from app.packages.drive.core.security import create_access_token, get_password_hash, verify_password
from app.packages.drive.core.session import create_session, delete_session, session_ttl_seconds
from app.packages.drive.crud.users import user_crud
from app.packages.drive.services.user_service import user_service


class AuthService:
    """负责处理用户注册与登录流程，并保持逻辑聚合。"""

    def register_user(self, db: Session, *, email: str, name: str, password: str) -> dict:
        """创建新用户；邮箱已被占用时返回 409。"""
        if user_crud.get_by_email(db, email) is not None:
            raise ConflictException("邮箱已被注册")

        try:
            user = user_crud.create_user(
                db,
                email=email,
                name=name.strip(),
                hashed_password=get_password_hash(password),
            )
        except IntegrityError as exc:
            # 并发注册同一邮箱
            raise ConflictException("邮箱已被注册") from exc

        logger.info("auth.register user_id=%s", user.id)
        return create_response("注册成功", user_service.build_user_profile(user), HTTP_STATUS_OK)

    def login(self, db: Session, *, email: str, password: str) -> dict:
        """校验用户凭证，创建会话并签发访问令牌。"""
        user = user_crud.get_by_email(db, email)
        if user is None or not verify_password(password, user.hashed_password):
            logger.info("auth.login failed email=%s", email.strip().lower())
            raise UnauthenticatedException("邮箱或密码错误")

        session_id = create_session(user.id, session_ttl_seconds())
        access_token = create_access_token({"user_id": user.id, "sid": session_id})

        logger.info("auth.login user_id=%s", user.id)
        return create_response(
            "登录成功",
            {
                "access_token": access_token,
                "token_type": ACCESS_TOKEN_TYPE,
                "user": user_service.build_user_profile(user),
            },
            HTTP_STATUS_OK,
        )

    def logout(self, ctx: AuthContext) -> dict:
        if ctx.session_id:
            delete_session(ctx.session_id)
        logger.info("auth.logout user_id=%s", ctx.user_id)
        return create_response("退出登录成功", None, HTTP_STATUS_OK)


auth_service = AuthService()
