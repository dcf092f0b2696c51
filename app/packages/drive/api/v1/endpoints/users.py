"""当前用户资料与显示设置路由。"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.packages.drive.api.v1.schemas.users import UserProfileResponse, UserSettingsUpdate
from app.packages.drive.core.context import AuthContext
from app.packages.drive.core.dependencies import get_auth_context, get_db
from app.packages.drive.services.user_service import user_service

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserProfileResponse)
def read_current_user(
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    return user_service.get_profile(db, ctx)


@router.put("/me/settings", response_model=UserProfileResponse)
def update_settings(
    payload: UserSettingsUpdate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    """修改显示名称，不涉及文件存储。"""
    return user_service.update_display_name(db, ctx, payload.name)
