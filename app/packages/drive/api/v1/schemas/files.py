"""文件管理请求/响应模型。"""

from typing import Literal, Optional

from pydantic import BaseModel, Field

from app.packages.drive.api.v1.schemas.common import ResponseEnvelope


class FileRecordOut(BaseModel):
    id: str
    original_name: str
    storage_name: str
    size_bytes: int
    mime_type: str
    owner_id: int
    create_time: Optional[str] = None


class BatchDeleteBody(BaseModel):
    ids: list[str] = Field(..., min_length=1)


class BatchDeleteItem(BaseModel):
    id: str
    status: Literal["success", "failure"]
    message: str


FileRecordResponse = ResponseEnvelope[FileRecordOut]
FilesListResponse = ResponseEnvelope[list[FileRecordOut]]
FilesMutationResponse = ResponseEnvelope[None]
BatchDeleteResponse = ResponseEnvelope[list[BatchDeleteItem]]
