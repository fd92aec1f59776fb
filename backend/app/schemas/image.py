from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from uuid import UUID

from app.core.status import ProcessingStatus


# ============ Image Schemas ============

class ImageMetadataResponse(BaseModel):
    description: str = ""
    tags: List[str] = []
    colors: List[str] = []
    ai_processing_status: ProcessingStatus
    processed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ImageResponse(BaseModel):
    id: UUID
    user_id: UUID
    filename: str
    original_url: str
    thumbnail_url: str
    content_type: Optional[str] = None
    file_size_bytes: Optional[int] = None
    width: Optional[int] = None
    height: Optional[int] = None
    uploaded_at: Optional[datetime] = None
    image_metadata: Optional[ImageMetadataResponse] = None


class ImageDetailResponse(BaseModel):
    image: ImageResponse


class DeleteResponse(BaseModel):
    message: str


# ============ Upload Schemas ============

class UploadResult(BaseModel):
    filename: str
    status: str  # 'uploaded' or 'failed'
    id: Optional[UUID] = None
    thumbnail: Optional[str] = None
    error: Optional[str] = None


class UploadResponse(BaseModel):
    results: List[UploadResult]


# ============ List/Search Schemas ============

class Pagination(BaseModel):
    page: int = Field(ge=1)
    limit: int = Field(ge=1)
    total: int = Field(ge=0)
    totalPages: int = Field(ge=0)


class ImageListResponse(BaseModel):
    images: List[ImageResponse]
    pagination: Pagination
