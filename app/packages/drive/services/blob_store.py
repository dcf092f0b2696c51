"""存储后端抽象与实现：统一封装本地目录与 S3 的文件内容读写。

存储后端只认识扁平的存储名（key），不关心文件归属；归属校验由 ``FileService``
结合元数据完成。元数据与内容可能不一致，因此 ``get`` 必须独立判断内容是否存在。
"""

from __future__ import annotations

import os
import re
import time
import uuid
from pathlib import Path
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from app.packages.drive.core.config import Settings
from app.packages.drive.core.constants import (
    MAX_STORED_NAME_BYTES,
    STORAGE_BACKEND_LOCAL,
    STORAGE_BACKEND_S3,
)
from app.packages.drive.core.exceptions import (
    BlobNotFoundException,
    StorageIOException,
    ValidationException,
)
from app.packages.drive.core.logger import logger

_UNSAFE_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def sanitize_filename(filename: Optional[str]) -> str:
    """取文件名的 basename 并去除控制字符，结果可能为空字符串。"""
    if not filename:
        return ""
    name = os.path.basename(filename.replace("\\", "/"))
    name = _UNSAFE_CHARS.sub("", name).strip()
    if name in {".", ".."}:
        return ""
    return name


def generate_storage_name(original_name: str) -> str:
    """生成存储名：``{纳秒时间戳}-{随机串}-{原始文件名}``。

    时间戳加随机串保证同一用户并发上传同名文件也不会冲突，无需额外协调。
    """
    safe = sanitize_filename(original_name) or "file"
    if len(safe.encode("utf-8")) > MAX_STORED_NAME_BYTES:
        stem, suffix = os.path.splitext(safe)
        suffix = _truncate_utf8(suffix, 16)
        stem = _truncate_utf8(stem, MAX_STORED_NAME_BYTES - len(suffix.encode("utf-8")))
        safe = (stem + suffix) or "file"
    return f"{time.time_ns()}-{uuid.uuid4().hex[:8]}-{safe}"


def _truncate_utf8(value: str, max_bytes: int) -> str:
    """按 UTF-8 字节数截断，不会切断多字节字符。"""
    return value.encode("utf-8")[:max_bytes].decode("utf-8", errors="ignore")


class BlobStore:
    """存储后端接口。"""

    def put(self, key: str, content: bytes) -> None:  # pragma: no cover - interface definition
        raise NotImplementedError

    def get(self, key: str) -> bytes:  # pragma: no cover
        raise NotImplementedError

    def delete(self, key: str) -> None:  # pragma: no cover
        raise NotImplementedError

    def exists(self, key: str) -> bool:  # pragma: no cover
        raise NotImplementedError

    @staticmethod
    def _check_key(key: str) -> str:
        if not key or "/" in key or "\\" in key or key in {".", ".."}:
            raise ValidationException("非法的存储名称")
        return key


# ------------------------------------------
# 本地文件系统实现
# ------------------------------------------


class LocalBlobStore(BlobStore):
    def __init__(self, root: str | Path):
        self.root = Path(root).resolve()

    def _ensure_root(self) -> None:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.error("Failed to create storage root %s: %s", self.root, exc)
            raise StorageIOException("无法创建本地存储目录") from exc

    # 统一的安全路径拼接，防止路径遍历
    def _resolve(self, key: str) -> Path:
        self._check_key(key)
        candidate = (self.root / key).resolve()
        try:
            candidate.relative_to(self.root)
        except ValueError as exc:
            raise ValidationException("非法的存储名称") from exc
        return candidate

    def put(self, key: str, content: bytes) -> None:
        target = self._resolve(key)
        self._ensure_root()
        # 先写临时文件再原子替换，目标 key 下不会出现写了一半的内容
        tmp = target.with_name(f".{target.name}.{uuid.uuid4().hex}.part")
        try:
            with open(tmp, "wb") as f:
                f.write(content)
            os.replace(tmp, target)
        except OSError as exc:
            try:
                tmp.unlink(missing_ok=True)
            except OSError as cleanup_exc:
                logger.warning("Failed to remove temp file %s: %s", tmp, cleanup_exc)
            logger.error("Local blob write failed key=%s: %s", key, exc)
            raise StorageIOException("文件写入失败") from exc

    def get(self, key: str) -> bytes:
        target = self._resolve(key)
        if not target.is_file():
            raise BlobNotFoundException(key)
        try:
            return target.read_bytes()
        except FileNotFoundError as exc:
            # 读取前被并发删除
            raise BlobNotFoundException(key) from exc
        except OSError as exc:
            logger.error("Local blob read failed key=%s: %s", key, exc)
            raise StorageIOException("文件读取失败") from exc

    def delete(self, key: str) -> None:
        target = self._resolve(key)
        try:
            target.unlink(missing_ok=True)
        except OSError as exc:
            logger.error("Local blob delete failed key=%s: %s", key, exc)
            raise StorageIOException("文件删除失败") from exc

    def exists(self, key: str) -> bool:
        return self._resolve(key).is_file()


# ------------------------------------------
# S3 实现（boto3）
# ------------------------------------------


class S3BlobStore(BlobStore):
    def __init__(
        self,
        *,
        bucket: str,
        region: Optional[str] = None,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        prefix: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        client=None,
    ):
        self.bucket = bucket
        self.prefix = (prefix or "").strip("/")
        self._client = client or boto3.client(
            "s3",
            region_name=region,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            endpoint_url=endpoint_url,
        )

    # 拼接基于 prefix 的对象 key
    def _join_key(self, key: str) -> str:
        self._check_key(key)
        if self.prefix:
            return f"{self.prefix}/{key}"
        return key

    @staticmethod
    def _is_missing(exc: ClientError) -> bool:
        code = str(exc.response.get("Error", {}).get("Code", ""))
        return code in {"404", "NoSuchKey", "NotFound"}

    def put(self, key: str, content: bytes) -> None:
        try:
            self._client.put_object(Bucket=self.bucket, Key=self._join_key(key), Body=content)
        except (BotoCoreError, ClientError) as exc:
            logger.error("S3 put failed key=%s: %s", key, exc)
            raise StorageIOException("文件写入失败") from exc

    def get(self, key: str) -> bytes:
        try:
            obj = self._client.get_object(Bucket=self.bucket, Key=self._join_key(key))
            return obj["Body"].read()
        except ClientError as exc:
            if self._is_missing(exc):
                raise BlobNotFoundException(key) from exc
            logger.error("S3 get failed key=%s: %s", key, exc)
            raise StorageIOException("文件读取失败") from exc
        except BotoCoreError as exc:
            logger.error("S3 get failed key=%s: %s", key, exc)
            raise StorageIOException("文件读取失败") from exc

    def delete(self, key: str) -> None:
        # S3 删除不存在的对象同样返回成功
        try:
            self._client.delete_object(Bucket=self.bucket, Key=self._join_key(key))
        except (BotoCoreError, ClientError) as exc:
            logger.error("S3 delete failed key=%s: %s", key, exc)
            raise StorageIOException("文件删除失败") from exc

    def exists(self, key: str) -> bool:
        try:
            self._client.head_object(Bucket=self.bucket, Key=self._join_key(key))
            return True
        except ClientError as exc:
            if self._is_missing(exc):
                return False
            raise StorageIOException("文件读取失败") from exc
        except BotoCoreError as exc:
            raise StorageIOException("文件读取失败") from exc


def build_blob_store(settings: Settings) -> BlobStore:
    """根据配置构建存储后端。"""
    backend = (settings.storage_backend or STORAGE_BACKEND_LOCAL).strip().upper()
    if backend == STORAGE_BACKEND_LOCAL:
        return LocalBlobStore(settings.storage_root)
    if backend == STORAGE_BACKEND_S3:
        if not settings.s3_bucket:
            raise ValueError("S3_BUCKET is required when STORAGE_BACKEND=S3")
        return S3BlobStore(
            bucket=settings.s3_bucket,
            region=settings.s3_region,
            access_key_id=settings.s3_access_key_id,
            secret_access_key=settings.s3_secret_access_key,
            prefix=settings.s3_prefix,
            endpoint_url=settings.s3_endpoint_url,
        )
    raise ValueError(f"Unsupported STORAGE_BACKEND: {settings.storage_backend}")
