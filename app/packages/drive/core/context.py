"""认证上下文：由访问守卫在每个请求中生成一次，显式传给业务服务。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class AuthContext:
    user_id: int
    name: str
    email: str
    session_id: Optional[str] = None
