"""认证接口的集成测试用例。"""

import uuid

from fastapi.testclient import TestClient


def _unique_email(prefix: str = "user") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}@example.com"


def _register(client: TestClient, email: str, password: str = "secret123", name: str = "Tester"):
    return client.post(
        "/api/v1/auth/register",
        json={"email": email, "name": name, "password": password},
    )


def _login(client: TestClient, email: str, password: str = "secret123"):
    return client.post("/api/v1/auth/login", json={"email": email, "password": password})


def test_register_user_success(client: TestClient):
    """注册流程：应成功创建新用户并返回基础信息，不暴露密码哈希。"""
    email = _unique_email()
    response = _register(client, email, name="Alice")

    assert response.status_code == 200
    payload = response.json()
    assert payload["code"] == 200
    assert payload["msg"] == "注册成功"
    assert payload["data"]["email"] == email
    assert payload["data"]["name"] == "Alice"
    assert "hashed_password" not in payload["data"]


def test_register_user_duplicate_email(client: TestClient):
    """注册流程：重复邮箱（忽略大小写）时应返回 409 冲突。"""
    email = _unique_email("dup")
    assert _register(client, email).status_code == 200

    response = _register(client, email.upper())
    assert response.status_code == 409
    payload = response.json()
    assert payload["code"] == 409
    assert payload["msg"] == "邮箱已被注册"


def test_register_rejects_invalid_payload(client: TestClient):
    """邮箱格式错误或密码过短时返回 422。"""
    bad_email = client.post(
        "/api/v1/auth/register",
        json={"email": "not-an-email", "name": "x", "password": "secret123"},
    )
    assert bad_email.status_code == 422
    assert bad_email.json()["msg"] == "请求参数验证失败"

    short_password = _register(client, _unique_email(), password="123")
    assert short_password.status_code == 422


def test_login_success(client: TestClient):
    """登录流程：正确凭证应返回访问令牌。"""
    email = _unique_email()
    _register(client, email)

    response = _login(client, email)
    assert response.status_code == 200
    payload = response.json()
    assert payload["code"] == 200
    assert payload["msg"] == "登录成功"
    assert payload["data"]["token_type"] == "bearer"
    assert payload["data"]["access_token"]
    assert payload["data"]["user"]["email"] == email


def test_login_invalid_credentials(client: TestClient):
    """登录流程：错误密码与未知邮箱给出相同的提示。"""
    email = _unique_email()
    _register(client, email)

    wrong_password = _login(client, email, password="wrongpassword")
    assert wrong_password.status_code == 401
    assert wrong_password.json()["msg"] == "邮箱或密码错误"

    unknown = _login(client, _unique_email("ghost"))
    assert unknown.status_code == 401
    assert unknown.json()["msg"] == "邮箱或密码错误"


def test_logout_invalidates_session(client: TestClient):
    """退出登录后原令牌立即失效。"""
    email = _unique_email()
    _register(client, email)
    token = _login(client, email).json()["data"]["access_token"]
    headers = {"Authorization": f"Bearer {token}"}

    assert client.get("/api/v1/files", headers=headers).status_code == 200

    response = client.post("/api/v1/auth/logout", headers=headers)
    assert response.status_code == 200
    assert response.json()["msg"] == "退出登录成功"

    after = client.get("/api/v1/files", headers=headers)
    assert after.status_code == 401
    assert after.json()["msg"] == "Token 无效或已过期"


def test_protected_route_rejects_missing_or_malformed_token(client: TestClient):
    missing = client.get("/api/v1/files")
    assert missing.status_code == 401
    assert missing.json()["msg"] == "缺少认证信息"
    assert missing.headers.get("www-authenticate") == "Bearer"

    garbage = client.get("/api/v1/files", headers={"Authorization": "Bearer not-a-jwt"})
    assert garbage.status_code == 401
    assert garbage.json()["msg"] == "Token 无效或已过期"
