"""认证相关的请求与响应模型。"""

from typing import Literal

from pydantic import BaseModel, Field

from app.packages.drive.api.v1.schemas.common import ResponseEnvelope
from app.packages.drive.api.v1.schemas.users import UserProfile

EMAIL_PATTERN = r"^\S+@\S+\.\S+$"


class RegisterRequest(BaseModel):
    """用户注册需要的字段。"""

    email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)
    name: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=6, max_length=128)


class LoginRequest(BaseModel):
    """登录请求的字段校验规则。"""

    email: str = Field(..., max_length=255)
    password: str = Field(..., min_length=1, max_length=128)


class TokenResponseData(BaseModel):
    """登录成功后签发的令牌信息。"""

    access_token: str
    token_type: Literal["bearer"]
    user: UserProfile


RegisterResponse = ResponseEnvelope[UserProfile]
TokenResponse = ResponseEnvelope[TokenResponseData]
LogoutResponse = ResponseEnvelope[None]
