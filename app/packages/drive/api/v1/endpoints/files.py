"""文件操作路由：上传、列表、下载、预览、删除与批量删除。

所有路由都依赖访问守卫生成的 ``AuthContext``，由 ``FileService`` 完成归属校验。
"""

from __future__ import annotations

from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import Response
from sqlalchemy.orm import Session

from app.packages.drive.api.v1.schemas.files import (
    BatchDeleteBody,
    BatchDeleteResponse,
    FileRecordResponse,
    FilesListResponse,
    FilesMutationResponse,
)
from app.packages.drive.core.constants import HTTP_STATUS_OK
from app.packages.drive.core.context import AuthContext
from app.packages.drive.core.dependencies import get_auth_context, get_db, get_file_service
from app.packages.drive.core.exceptions import ValidationException
from app.packages.drive.core.responses import create_response
from app.packages.drive.services.file_service import FilePayload, FileService, serialize_file_record

router = APIRouter(tags=["files"])


def _content_disposition(disposition: str, filename: str) -> str:
    """非 ASCII 或含特殊字符的文件名按 RFC 5987 使用 ``filename*``。"""
    quoted = quote(filename)
    if quoted != filename:
        return f"{disposition}; filename*=utf-8''{quoted}"
    return f'{disposition}; filename="{filename}"'


def _to_response(payload: FilePayload) -> Response:
    headers = {"X-Content-Type-Options": "nosniff"}
    if payload.disposition:
        headers["Content-Disposition"] = _content_disposition(payload.disposition, payload.filename)
    return Response(content=payload.content, media_type=payload.media_type, headers=headers)


@router.get("/files", response_model=FilesListResponse)
def list_files(
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
    file_service: FileService = Depends(get_file_service),
):
    records = file_service.list_files(db, ctx)
    return create_response("获取成功", [serialize_file_record(r) for r in records], HTTP_STATUS_OK)


@router.post("/files", response_model=FileRecordResponse)
async def upload_file(
    file: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
    file_service: FileService = Depends(get_file_service),
):
    if file is None:
        raise ValidationException("未选择文件")
    # 先按声明大小拒绝超限文件，避免读入内存
    file_service.ensure_upload_size(file.size)
    content = await file.read()
    record = file_service.upload(
        db,
        ctx,
        original_name=file.filename,
        mime_type=file.content_type,
        content=content,
    )
    return create_response("文件上传成功", serialize_file_record(record), HTTP_STATUS_OK)


@router.get("/files/{file_id}/download")
def download_file(
    file_id: str,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
    file_service: FileService = Depends(get_file_service),
):
    return _to_response(file_service.download(db, ctx, file_id))


@router.get("/files/{file_id}/preview")
def preview_file(
    file_id: str,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
    file_service: FileService = Depends(get_file_service),
):
    return _to_response(file_service.preview(db, ctx, file_id))


@router.delete("/files/{file_id}", response_model=FilesMutationResponse)
def delete_file(
    file_id: str,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
    file_service: FileService = Depends(get_file_service),
):
    file_service.delete(db, ctx, file_id)
    return create_response("文件删除成功", None, HTTP_STATUS_OK)


@router.delete("/files", response_model=BatchDeleteResponse)
def batch_delete_files(
    payload: BatchDeleteBody,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
    file_service: FileService = Depends(get_file_service),
):
    results = file_service.batch_delete(db, ctx, payload.ids)
    failed = sum(1 for item in results if item["status"] != "success")
    msg = "批量删除完成" if not failed else f"批量删除完成，{failed} 个文件删除失败"
    return create_response(msg, results, HTTP_STATUS_OK)
