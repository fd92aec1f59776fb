from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from app.db.base import get_db
from app.core.config import settings
from app.core.dependencies import get_current_user
from app.core.auth_service import CurrentUser
from app.core.gallery_service import gallery_service
from app.schemas.image import ImageListResponse
from app.api.v1.endpoints.images import page_to_response

router = APIRouter()


@router.get("/text", response_model=ImageListResponse)
def search_text(
    q: Optional[str] = Query(None, description="Matches description text, a tag, or a hex color"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_LIMIT, ge=1, le=settings.MAX_PAGE_LIMIT),
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Search the caller's images by description, tags or colors."""
    return page_to_response(gallery_service.search_text(db, current_user.id, q, page, limit))


@router.get("/color", response_model=ImageListResponse)
def search_color(
    c: Optional[str] = Query(None, description="Hex color, e.g. #FF0000"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_LIMIT, ge=1, le=settings.MAX_PAGE_LIMIT),
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Find the caller's images whose dominant colors include `c`."""
    return page_to_response(gallery_service.search_color(db, current_user.id, c, page, limit))


@router.get("/similar/{image_id}", response_model=ImageListResponse)
def search_similar(
    image_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_LIMIT, ge=1, le=settings.MAX_PAGE_LIMIT),
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Find images similar to `image_id`.

    Similar means sharing at least one tag or dominant color. The source
    image itself is never returned.
    """
    return page_to_response(gallery_service.search_similar(db, current_user.id, image_id, page, limit))
