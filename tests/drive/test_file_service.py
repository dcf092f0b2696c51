"""文件服务单元测试：直接驱动 ``FileService``，验证写入顺序、归属隔离与批量删除。"""

import uuid

import pytest
from sqlalchemy.exc import OperationalError

from app.packages.drive.core.context import AuthContext
from app.packages.drive.core.exceptions import (
    NotFoundException,
    PayloadTooLargeException,
    ValidationException,
)
from app.packages.drive.crud.file_record import CRUDFileRecord, file_record_crud, validate_file_record
from app.packages.drive.crud.users import user_crud
from app.packages.drive.models.file_record import FileRecord
from app.packages.drive.services.blob_store import LocalBlobStore
from app.packages.drive.services.file_service import FileService, normalize_mime_type


class FailingRecords(CRUDFileRecord):
    """模拟元数据写入失败。"""

    def create(self, db, obj_in, *, auto_commit=True):
        raise OperationalError("INSERT INTO file_records", {}, Exception("database is locked"))


class FailingDeleteRecords(CRUDFileRecord):
    def __init__(self, fail_for):
        super().__init__(FileRecord)
        self.fail_for = fail_for

    def delete_owned(self, db, file_id, owner_id):
        if file_id == self.fail_for:
            raise RuntimeError("boom")
        return super().delete_owned(db, file_id, owner_id)


def _make_ctx(db) -> AuthContext:
    user = user_crud.create_user(
        db,
        email=f"svc-{uuid.uuid4().hex[:8]}@example.com",
        name="svc",
        hashed_password="not-a-real-hash",
    )
    return AuthContext(user_id=user.id, name=user.name, email=user.email)


@pytest.fixture()
def blob_store(tmp_path):
    return LocalBlobStore(tmp_path / "blobs")


@pytest.fixture()
def service(blob_store):
    return FileService(blob_store, max_upload_bytes=1024)


def test_upload_writes_blob_then_record(db_session_fixture, service, blob_store):
    ctx = _make_ctx(db_session_fixture)
    record = service.upload(
        db_session_fixture, ctx, original_name="a.txt", mime_type="text/plain", content=b"abc"
    )

    assert record.owner_id == ctx.user_id
    assert record.size_bytes == 3
    assert blob_store.get(record.storage_name) == b"abc"
    assert file_record_crud.find_owned(db_session_fixture, record.id, ctx.user_id) is not None


def test_failed_metadata_insert_removes_blob(db_session_fixture, blob_store):
    ctx = _make_ctx(db_session_fixture)
    service = FileService(blob_store, records=FailingRecords(FileRecord))

    with pytest.raises(OperationalError):
        service.upload(db_session_fixture, ctx, original_name="a.txt", mime_type="text/plain", content=b"abc")

    assert list(blob_store.root.iterdir()) == []


def test_ensure_upload_size(service):
    service.ensure_upload_size(None)
    service.ensure_upload_size(1024)
    with pytest.raises(PayloadTooLargeException):
        service.ensure_upload_size(1025)

    FileService(service.blob_store).ensure_upload_size(10 ** 12)


def test_upload_validation(db_session_fixture, service):
    ctx = _make_ctx(db_session_fixture)

    with pytest.raises(ValidationException):
        service.upload(db_session_fixture, ctx, original_name="", mime_type=None, content=b"x")
    with pytest.raises(ValidationException):
        service.upload(db_session_fixture, ctx, original_name="../..", mime_type=None, content=b"x")
    with pytest.raises(ValidationException):
        service.upload(db_session_fixture, ctx, original_name="a.txt", mime_type=None, content=None)
    with pytest.raises(PayloadTooLargeException):
        service.upload(db_session_fixture, ctx, original_name="a.bin", mime_type=None, content=b"0" * 1025)


def test_upload_strips_directory_components(db_session_fixture, service):
    ctx = _make_ctx(db_session_fixture)
    record = service.upload(
        db_session_fixture, ctx, original_name="../../etc/passwd", mime_type="text/plain", content=b"x"
    )
    assert record.original_name == "passwd"
    assert "/" not in record.storage_name


def test_records_are_isolated_by_owner(db_session_fixture, service):
    alice = _make_ctx(db_session_fixture)
    bob = _make_ctx(db_session_fixture)
    record = service.upload(db_session_fixture, alice, original_name="a.txt", mime_type="text/plain", content=b"a")

    assert [r.id for r in service.list_files(db_session_fixture, alice)] == [record.id]
    assert service.list_files(db_session_fixture, bob) == []
    with pytest.raises(NotFoundException):
        service.download(db_session_fixture, bob, record.id)
    with pytest.raises(NotFoundException):
        service.delete(db_session_fixture, bob, record.id)

    # bob 的删除尝试没有动到内容
    assert service.download(db_session_fixture, alice, record.id).content == b"a"


def test_download_and_preview_payloads(db_session_fixture, service):
    ctx = _make_ctx(db_session_fixture)
    text = service.upload(db_session_fixture, ctx, original_name="n.md", mime_type="text/plain", content="é".encode())
    binary = service.upload(db_session_fixture, ctx, original_name="b.bin", mime_type=None, content=b"\x00\x01")

    down = service.download(db_session_fixture, ctx, text.id)
    assert down.disposition == "attachment"
    assert down.media_type == "text/markdown"
    assert down.content == "é".encode()

    prev = service.preview(db_session_fixture, ctx, text.id)
    assert prev.disposition is None
    assert prev.media_type == "text/markdown; charset=utf-8"
    assert prev.content == "é"

    raw = service.preview(db_session_fixture, ctx, binary.id)
    assert raw.disposition == "inline"
    assert raw.media_type == "application/octet-stream"
    assert raw.content == b"\x00\x01"


def test_missing_blob_raises_not_found(db_session_fixture, service, blob_store):
    ctx = _make_ctx(db_session_fixture)
    record = service.upload(db_session_fixture, ctx, original_name="a.txt", mime_type="text/plain", content=b"a")
    blob_store.delete(record.storage_name)

    with pytest.raises(NotFoundException):
        service.preview(db_session_fixture, ctx, record.id)

    # 内容缺失时删除仍然成功
    service.delete(db_session_fixture, ctx, record.id)
    assert service.list_files(db_session_fixture, ctx) == []


def test_batch_delete_continues_after_unexpected_error(db_session_fixture, blob_store):
    ctx = _make_ctx(db_session_fixture)
    seed = FileService(blob_store)
    first = seed.upload(db_session_fixture, ctx, original_name="1.txt", mime_type="text/plain", content=b"1")
    second = seed.upload(db_session_fixture, ctx, original_name="2.txt", mime_type="text/plain", content=b"2")

    service = FileService(blob_store, records=FailingDeleteRecords(first.id))
    results = service.batch_delete(db_session_fixture, ctx, [first.id, second.id])

    assert results[0] == {"id": first.id, "status": "failure", "message": "删除失败：服务器错误"}
    assert results[1] == {"id": second.id, "status": "success", "message": "删除成功"}
    assert [r.id for r in service.list_files(db_session_fixture, ctx)] == [first.id]


@pytest.mark.parametrize(
    "filename, supplied, expected",
    [
        ("README.md", "application/octet-stream", "text/markdown"),
        ("notes.MARKDOWN", None, "text/markdown"),
        ("a.txt", "Text/Plain; charset=latin-1", "text/plain"),
        ("a.png", None, "image/png"),
        ("noext", None, "application/octet-stream"),
    ],
)
def test_normalize_mime_type(filename, supplied, expected):
    assert normalize_mime_type(filename, supplied) == expected


def test_validate_file_record_rejects_incomplete_input():
    with pytest.raises(ValidationException) as exc:
        validate_file_record({"storage_name": "k", "original_name": " ", "size_bytes": 1, "mime_type": "text/plain"})
    assert exc.value.data == {"fields": ["original_name", "owner_id"]}

    with pytest.raises(ValidationException):
        validate_file_record(
            {"storage_name": "k", "original_name": "a", "size_bytes": -1, "mime_type": "text/plain", "owner_id": 1}
        )
