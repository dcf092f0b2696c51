"""依赖注入模块：封装 FastAPI 中复用度高的依赖函数。"""

from collections.abc import Generator
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.packages.drive.core.constants import ACCESS_TOKEN_TYPE
from app.packages.drive.core.context import AuthContext
from app.packages.drive.core.exceptions import UnauthenticatedException
from app.packages.drive.core.security import decode_token
from app.packages.drive.core.session import session_ttl_seconds, touch_session
from app.packages.drive.crud.users import user_crud
from app.packages.drive.db import session as db_session
from app.packages.drive.services.file_service import FileService

security_scheme = HTTPBearer(auto_error=False)


def get_db() -> Generator[Session, None, None]:
    """生成一个数据库会话，并在请求结束后自动关闭。"""
    db = db_session.SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_auth_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
    db: Session = Depends(get_db),
) -> AuthContext:
    """访问守卫：解析 ``Authorization`` 头部并返回认证上下文，失败一律 401。"""
    if not credentials:
        raise UnauthenticatedException("缺少认证信息")

    if credentials.scheme.lower() != ACCESS_TOKEN_TYPE:
        raise UnauthenticatedException("认证类型无效")

    payload = decode_token(credentials.credentials)
    if payload is None:
        raise UnauthenticatedException("Token 无效或已过期")

    user_id = payload.get("user_id")
    session_id = payload.get("sid")
    if user_id is None or session_id is None:
        raise UnauthenticatedException("Token 无效")

    user = user_crud.get(db, user_id)
    if user is None:
        raise UnauthenticatedException("用户不存在")

    if not touch_session(session_id, user.id, session_ttl_seconds()):
        raise UnauthenticatedException("Token 无效或已过期")

    return AuthContext(user_id=user.id, name=user.name, email=user.email, session_id=session_id)


def get_file_service(request: Request) -> FileService:
    """返回应用启动时构建的文件服务实例。"""
    return request.app.state.file_service
