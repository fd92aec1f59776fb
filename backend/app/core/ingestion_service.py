import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import ValidationError
from app.core.status import ProcessingStatus
from app.core.storage_service import StorageService, StoredArtifact, storage_service
from app.core.thumbnail_service import make_thumbnail
from app.core.annotation_service import AnnotationJob
from app.models.image import Image
from app.models.image_metadata import ImageMetadata

logger = logging.getLogger(__name__)


@dataclass
class UploadedFile:
    """One file from a multipart upload, fully read into memory."""
    filename: str
    content_type: str
    data: bytes


@dataclass
class IngestionResult:
    """Per-file outcome reported back to the uploader."""
    filename: str
    status: str  # 'uploaded' or 'failed'
    id: Optional[UUID] = None
    thumbnail: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        if self.status == "uploaded":
            return {
                "id": self.id,
                "filename": self.filename,
                "thumbnail": self.thumbnail,
                "status": self.status,
            }
        return {
            "filename": self.filename,
            "error": self.error,
            "status": self.status,
        }


@dataclass
class IngestionBatch:
    results: List[IngestionResult] = field(default_factory=list)
    jobs: List[AnnotationJob] = field(default_factory=list)  # Annotation work for uploaded files

    @property
    def uploaded_count(self) -> int:
        return sum(1 for r in self.results if r.status == "uploaded")

    @property
    def failed_count(self) -> int:
        return sum(1 for r in self.results if r.status == "failed")


def validate_upload(files: Sequence[UploadedFile]) -> None:
    """Reject the whole request on missing files, too many files, non-images or oversize files."""
    if not files:
        raise ValidationError("No files uploaded")

    if len(files) > settings.MAX_UPLOAD_FILES:
        raise ValidationError(f"Too many files: at most {settings.MAX_UPLOAD_FILES} per upload")

    for f in files:
        if not (f.content_type or "").startswith("image/"):
            raise ValidationError(f"Only image files are allowed: {f.filename}")
        if len(f.data) > settings.MAX_UPLOAD_BYTES:
            limit_mb = settings.MAX_UPLOAD_BYTES / (1024 * 1024)
            raise ValidationError(f"File too large: {f.filename} (limit {limit_mb:.0f}MB)")
        if not f.data:
            raise ValidationError(f"Empty file: {f.filename}")


class IngestionService:
    """
    Stores uploads and creates their gallery rows.

    Per file: original -> object store, thumbnail -> object store, Image row,
    ImageMetadata row (pending). Annotation jobs are returned to the caller,
    which schedules them after responding.
    """

    def __init__(self, storage: Optional[StorageService] = None):
        self.storage = storage or storage_service

    async def ingest(self, db: Session, user_id: UUID, files: Sequence[UploadedFile]) -> IngestionBatch:
        validate_upload(files)

        batch = IngestionBatch()
        logger.info(f"[Upload] {len(files)} file(s) from user {user_id}")

        for upload in files:
            try:
                image, job = await self._ingest_one(db, user_id, upload)
            except Exception as e:
                logger.error(f"[Upload] {upload.filename} failed: {e}")
                batch.results.append(IngestionResult(filename=upload.filename, status="failed", error=str(e)))
                continue

            batch.results.append(IngestionResult(
                filename=upload.filename,
                status="uploaded",
                id=image.id,
                thumbnail=image.thumbnail_url,
            ))
            batch.jobs.append(job)

        logger.info(f"[Upload] Done: {batch.uploaded_count} uploaded, {batch.failed_count} failed")
        return batch

    async def _ingest_one(self, db: Session, user_id: UUID, upload: UploadedFile):
        stored: List[StoredArtifact] = []
        try:
            original = await self.storage.upload(upload.data, settings.ORIGINALS_FOLDER, upload.content_type)
            stored.append(original)

            thumb = make_thumbnail(upload.data)
            thumbnail = await self.storage.upload(thumb.data, settings.THUMBNAILS_FOLDER, thumb.content_type)
            stored.append(thumbnail)

            image = Image(
                user_id=user_id,
                filename=upload.filename,
                original_url=original.url,
                thumbnail_url=thumbnail.url,
                original_path=original.path,
                thumbnail_path=thumbnail.path,
                original_backend=original.backend,
                thumbnail_backend=thumbnail.backend,
                content_type=upload.content_type,
                file_size_bytes=len(upload.data),
                width=thumb.source_width,
                height=thumb.source_height,
            )
            db.add(image)
            db.flush()

            db.add(ImageMetadata(
                image_id=image.id,
                user_id=user_id,
                ai_processing_status=ProcessingStatus.PENDING.value,
                description="",
                tags=[],
                colors=[],
            ))
            db.commit()
        except Exception:
            db.rollback()
            for artifact in stored:
                await self.storage.delete(artifact.path, artifact.backend)
            raise

        logger.info(f"[Upload] Stored {upload.filename} as image {image.id}")
        return image, AnnotationJob(image_id=image.id, image_url=original.url)


# Singleton instance
ingestion_service = IngestionService()
