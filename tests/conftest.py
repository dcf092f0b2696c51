"""测试夹具：为 pytest 提供数据库、存储目录与客户端的共享配置。"""

import os
import shutil
import tempfile
from typing import Generator

TEST_DIR = os.path.dirname(__file__)
TEST_DB_PATH = os.path.join(TEST_DIR, "test.db")
TEST_DATABASE_URL = f"sqlite:///{TEST_DB_PATH}"
TEST_STORAGE_ROOT = tempfile.mkdtemp(prefix="drive_blobs_")
TEST_LOG_DIR = tempfile.mkdtemp(prefix="drive_logs_")

# 配置对象会被缓存，必须在导入应用之前写入环境变量
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["STORAGE_BACKEND"] = "LOCAL"
os.environ["STORAGE_LOCAL_ROOT"] = TEST_STORAGE_ROOT
os.environ["LOG_DIR"] = TEST_LOG_DIR
os.environ["SESSION_BACKEND"] = "memory"
os.environ["MAX_UPLOAD_SIZE_MB"] = "1"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["APP_ACTIVE_PACKAGE"] = "drive"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402

from app.main import app  # noqa: E402
from app.packages.drive.core.dependencies import get_db  # noqa: E402
from app.packages.drive.db import session as db_session  # noqa: E402
from app.packages.drive.db.init_db import init_db  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def setup_test_database() -> Generator[None, None, None]:
    """创建隔离的 SQLite 测试数据库，并在会话结束后清理。"""
    if os.path.exists(TEST_DB_PATH):
        os.remove(TEST_DB_PATH)

    engine = db_session.build_engine(TEST_DATABASE_URL)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    db_session.engine = engine
    db_session.SessionLocal = TestingSessionLocal

    init_db()
    yield

    engine.dispose()
    if os.path.exists(TEST_DB_PATH):
        os.remove(TEST_DB_PATH)
    shutil.rmtree(TEST_STORAGE_ROOT, ignore_errors=True)
    shutil.rmtree(TEST_LOG_DIR, ignore_errors=True)


@pytest.fixture()
def db_session_fixture() -> Generator[Session, None, None]:
    """提供给测试用例使用的数据库会话。"""
    session = db_session.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(db_session_fixture):
    """构建 FastAPI TestClient，并注入测试专用的数据库依赖。"""
    def override_get_db() -> Generator[Session, None, None]:
        session = db_session.SessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
