from fastapi import APIRouter, BackgroundTasks, Depends, File, Query, UploadFile
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID

from app.db.base import get_db
from app.models.image import Image
from app.core.config import settings
from app.core.dependencies import get_current_user
from app.core.auth_service import CurrentUser
from app.core.gallery_service import Page, gallery_service
from app.core.ingestion_service import UploadedFile, ingestion_service
from app.core.annotation_pool import annotation_pool
from app.schemas.image import (
    ImageResponse,
    ImageDetailResponse,
    ImageListResponse,
    UploadResponse,
    DeleteResponse,
)

router = APIRouter()


def image_to_response(image: Image) -> dict:
    """Convert Image model (with metadata) to response dict."""
    record = image.metadata_record
    return {
        "id": image.id,
        "user_id": image.user_id,
        "filename": image.filename,
        "original_url": image.original_url,
        "thumbnail_url": image.thumbnail_url,
        "content_type": image.content_type,
        "file_size_bytes": image.file_size_bytes,
        "width": image.width,
        "height": image.height,
        "uploaded_at": image.uploaded_at,
        "image_metadata": {
            "description": record.description or "",
            "tags": record.tags or [],
            "colors": record.colors or [],
            "ai_processing_status": record.ai_processing_status,
            "processed_at": record.processed_at,
        } if record else None,
    }


def page_to_response(page: Page) -> dict:
    return {
        "images": [ImageResponse(**image_to_response(image)) for image in page.items],
        "pagination": {
            "page": page.page,
            "limit": page.limit,
            "total": page.total,
            "totalPages": page.total_pages,
        },
    }


@router.post("/upload", response_model=UploadResponse)
async def upload_images(
    background_tasks: BackgroundTasks,
    images: Optional[List[UploadFile]] = File(None),
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Upload up to 10 images (multipart field `images`).

    Each file is stored, thumbnailed and recorded independently; the result
    list has one entry per file with status `uploaded` or `failed`.
    AI annotation runs in the background after this response is sent, so
    new images start out as `pending`.
    """
    files = []
    for upload in images or []:
        # Read one byte past the limit so oversize files are detectable without reading them whole
        data = await upload.read(settings.MAX_UPLOAD_BYTES + 1)
        files.append(UploadedFile(
            filename=upload.filename or "upload",
            content_type=upload.content_type or "",
            data=data,
        ))

    batch = await ingestion_service.ingest(db, current_user.id, files)

    if batch.jobs:
        background_tasks.add_task(annotation_pool.run_batch, batch.jobs)

    return {"results": [result.to_dict() for result in batch.results]}


@router.get("", response_model=ImageListResponse)
def list_images(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_LIMIT, ge=1, le=settings.MAX_PAGE_LIMIT),
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List the caller's images, newest first, with AI metadata."""
    return page_to_response(gallery_service.list_images(db, current_user.id, page, limit))


@router.get("/{image_id}", response_model=ImageDetailResponse)
def get_image(
    image_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get a single image owned by the caller."""
    image = gallery_service.get_image(db, current_user.id, image_id)
    return {"image": image_to_response(image)}


@router.delete("/{image_id}", response_model=DeleteResponse)
async def delete_image(
    image_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete an image owned by the caller, its metadata and its stored files."""
    await gallery_service.delete_image(db, current_user.id, image_id)
    return {"message": "Image deleted successfully"}
