import logging
import math
from dataclasses import dataclass, field
from typing import Callable, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from app.core.annotation_parser import normalize_hex_color
from app.core.exceptions import NotFoundError, ValidationError
from app.core.storage_service import StorageService, storage_service
from app.models.image import Image
from app.models.image_metadata import ImageMetadata

logger = logging.getLogger(__name__)


@dataclass
class Page:
    items: List[Image] = field(default_factory=list)
    page: int = 1
    limit: int = 20
    total: int = 0

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


def _tags(image: Image) -> List[str]:
    return list(image.metadata_record.tags or []) if image.metadata_record else []


def _colors(image: Image) -> List[str]:
    return list(image.metadata_record.colors or []) if image.metadata_record else []


def _description(image: Image) -> str:
    return (image.metadata_record.description or "") if image.metadata_record else ""


class GalleryService:
    """Read-only gallery queries. Every query is scoped to one owner."""

    def __init__(self, storage: Optional[StorageService] = None):
        self.storage = storage or storage_service

    def _owner_query(self, db: Session, user_id: UUID):
        return (
            db.query(Image)
            .filter(Image.user_id == user_id)
            .options(joinedload(Image.metadata_record))
            .order_by(Image.uploaded_at.desc(), Image.id.desc())
        )

    def _paginate_list(self, matches: List[Image], page: int, limit: int) -> Page:
        offset = (page - 1) * limit
        return Page(items=matches[offset:offset + limit], page=page, limit=limit, total=len(matches))

    def _filter(self, db: Session, user_id: UUID, predicate: Callable[[Image], bool], page: int, limit: int) -> Page:
        # tags/colors are JSON lists; matching happens here so it behaves the same on every backend
        matches = [image for image in self._owner_query(db, user_id).all() if predicate(image)]
        return self._paginate_list(matches, page, limit)

    def list_images(self, db: Session, user_id: UUID, page: int = 1, limit: int = 20) -> Page:
        """Owner's images, newest first."""
        query = self._owner_query(db, user_id)
        total = db.query(Image).filter(Image.user_id == user_id).count()
        items = query.offset((page - 1) * limit).limit(limit).all()
        return Page(items=items, page=page, limit=limit, total=total)

    def get_image(self, db: Session, user_id: UUID, image_id: UUID) -> Image:
        image = self._owner_query(db, user_id).filter(Image.id == image_id).first()
        if image is None:
            raise NotFoundError("Image not found")
        return image

    def search_text(self, db: Session, user_id: UUID, q: str, page: int = 1, limit: int = 20) -> Page:
        """Substring on description, or exact (case-insensitive) tag, or exact color when q starts with #."""
        term = (q or "").strip()
        if not term:
            raise ValidationError("Search query is required")

        needle = term.lower()
        color = normalize_hex_color(term) if term.startswith("#") else None

        def matches(image: Image) -> bool:
            if needle in _description(image).lower():
                return True
            if any(tag.lower() == needle for tag in _tags(image)):
                return True
            if color is None:
                return False
            return any(c.upper() == color for c in _colors(image))

        return self._filter(db, user_id, matches, page, limit)

    def search_color(self, db: Session, user_id: UUID, color: str, page: int = 1, limit: int = 20) -> Page:
        """Images whose dominant colors contain the given hex code."""
        raw = (color or "").strip()
        if not raw:
            raise ValidationError("Color parameter is required")

        target = (normalize_hex_color(raw) or raw).upper()

        return self._filter(
            db, user_id,
            lambda image: any(c.upper() == target for c in _colors(image)),
            page, limit,
        )

    def search_similar(self, db: Session, user_id: UUID, image_id: UUID, page: int = 1, limit: int = 20) -> Page:
        """Other images sharing at least one tag or color with the source image."""
        source = (
            db.query(ImageMetadata)
            .filter(ImageMetadata.image_id == image_id, ImageMetadata.user_id == user_id)
            .first()
        )
        if source is None:
            raise NotFoundError("Image not found")

        source_tags = {tag.lower() for tag in (source.tags or [])}
        source_colors = {c.upper() for c in (source.colors or [])}

        def overlaps(image: Image) -> bool:
            if image.id == image_id:
                return False
            if source_tags.intersection(tag.lower() for tag in _tags(image)):
                return True
            return bool(source_colors.intersection(c.upper() for c in _colors(image)))

        return self._filter(db, user_id, overlaps, page, limit)

    async def delete_image(self, db: Session, user_id: UUID, image_id: UUID) -> None:
        """Delete an owned image (metadata cascades), then its stored artifacts."""
        image = db.query(Image).filter(Image.id == image_id, Image.user_id == user_id).first()
        if image is None:
            raise NotFoundError("Image not found")

        artifacts = [
            (image.original_path, image.original_backend),
            (image.thumbnail_path, image.thumbnail_backend),
        ]

        db.delete(image)
        db.commit()
        logger.info(f"Deleted image {image_id} for user {user_id}")

        for path, backend in artifacts:
            if path and not await self.storage.delete(path, backend):
                logger.warning(f"[Storage] Could not remove artifact {path} for deleted image {image_id}")


# Singleton instance
gallery_service = GalleryService()
