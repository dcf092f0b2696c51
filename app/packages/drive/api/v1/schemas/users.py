"""用户资料与设置的请求/响应模型。"""

from typing import Optional

from pydantic import BaseModel, Field

from app.packages.drive.api.v1.schemas.common import ResponseEnvelope


class UserProfile(BaseModel):
    user_id: int
    email: str
    name: str
    create_time: Optional[str] = None


class UserSettingsUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


UserProfileResponse = ResponseEnvelope[UserProfile]
