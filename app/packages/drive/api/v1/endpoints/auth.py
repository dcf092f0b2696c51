"""认证相关路由定义。"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.packages.drive.api.v1.schemas.auth import (
    LoginRequest,
    LogoutResponse,
    RegisterRequest,
    RegisterResponse,
    TokenResponse,
)
from app.packages.drive.core.context import AuthContext
from app.packages.drive.core.dependencies import get_auth_context, get_db
from app.packages.drive.services.auth_service import auth_service

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=RegisterResponse)
def register(payload: RegisterRequest, db: Session = Depends(get_db)):
    """调用认证服务完成注册流程并返回统一响应。"""
    return auth_service.register_user(
        db,
        email=payload.email,
        name=payload.name,
        password=payload.password,
    )


@router.post("/login", response_model=TokenResponse)
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    """校验凭证并签发访问令牌。"""
    return auth_service.login(db, email=payload.email, password=payload.password)


@router.post("/logout", response_model=LogoutResponse)
def logout(ctx: AuthContext = Depends(get_auth_context)):
    """退出登录，服务端会话立即失效。"""
    return auth_service.logout(ctx)
