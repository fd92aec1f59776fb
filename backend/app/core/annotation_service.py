"""
Vision-model annotation for uploaded images.

For one metadata row:
1. pending -> processing
2. One chat-completions call with the image URL and a fixed instruction
3. Parse TAGS / DESCRIPTION / COLORS
4. processing -> completed (with fields) or processing -> failed (fields untouched)

Runs in the background after the upload response has been sent, so nothing
here raises to the uploader; failures end up in the row's status.
"""

import asyncio
import logging
import time
import httpx
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Callable
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import UpstreamError
from app.core.annotation_parser import Annotation, parse_annotation
from app.core.status import ProcessingStatus, ensure_transition
from app.db.base import SessionLocal
from app.models.image_metadata import ImageMetadata

logger = logging.getLogger(__name__)


ANNOTATION_PROMPT = (
    "Analyze this image and provide: "
    "1. 5-10 relevant tags (comma-separated), "
    "2. One descriptive sentence, "
    "3. Top 3 dominant colors in HEX format (comma-separated). "
    "Format your response as: "
    "TAGS: tag1, tag2, tag3... "
    "DESCRIPTION: A descriptive sentence. "
    "COLORS: #color1, #color2, #color3"
)


@dataclass
class AnnotationJob:
    """One image waiting for annotation."""
    image_id: UUID
    image_url: str


@dataclass
class AnnotationOutcome:
    """Result of one annotation attempt."""
    image_id: UUID
    status: Optional[ProcessingStatus]  # None when the row was skipped
    annotation: Optional[Annotation] = None
    error: Optional[str] = None
    duration_seconds: float = 0.0


class AnnotationService:
    """Calls the vision model and reconciles the result into image_metadata."""

    def __init__(
        self,
        session_factory: Optional[Callable[[], Session]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.session_factory = session_factory or SessionLocal
        self.transport = transport
        self.api_key = settings.OPENAI_API_KEY
        self.api_url = settings.VISION_API_URL
        self.model = settings.VISION_MODEL
        self.max_tokens = settings.VISION_MAX_TOKENS
        self.http_timeout = settings.VISION_HTTP_TIMEOUT_SECONDS
        self.deadline_seconds = settings.ANNOTATION_TIMEOUT_SECONDS
        self.strict_parsing = settings.ANNOTATION_STRICT_PARSING

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    # ============================================================
    # VISION CALL
    # ============================================================

    def build_payload(self, image_url: str) -> dict:
        return {
            "model": self.model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": ANNOTATION_PROMPT},
                        {"type": "image_url", "image_url": {"url": image_url}},
                    ],
                }
            ],
            "max_tokens": self.max_tokens,
        }

    async def request_annotation(self, image_url: str) -> str:
        """Make exactly one vision call and return the raw text answer."""
        if not self.is_configured:
            raise UpstreamError("Vision API key not configured")

        async with httpx.AsyncClient(timeout=self.http_timeout, transport=self.transport) as client:
            response = await client.post(
                self.api_url,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json=self.build_payload(image_url),
            )

        if response.status_code != 200:
            raise UpstreamError(f"Vision API error: {response.status_code} {response.text[:200]}")

        data = response.json()
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            raise UpstreamError("Vision API response has no message content")

        if not isinstance(content, str):
            raise UpstreamError("Vision API response content is not text")

        return content

    # ============================================================
    # STATUS UPDATES
    # ============================================================

    def _load(self, db: Session, image_id: UUID) -> Optional[ImageMetadata]:
        return db.query(ImageMetadata).filter(ImageMetadata.image_id == image_id).first()

    def mark_processing(self, image_id: UUID) -> bool:
        """pending -> processing. Returns False if the row is gone or not pending."""
        db = self.session_factory()
        try:
            record = self._load(db, image_id)
            if record is None:
                logger.warning(f"[Annotation] No metadata for image {image_id}, skipping")
                return False

            if record.status != ProcessingStatus.PENDING:
                logger.warning(
                    f"[Annotation] Image {image_id} is {record.ai_processing_status}, not pending; skipping"
                )
                return False

            record.ai_processing_status = ensure_transition(record.status, ProcessingStatus.PROCESSING).value
            db.commit()
            return True
        finally:
            db.close()

    def mark_completed(self, image_id: UUID, annotation: Annotation) -> bool:
        """processing -> completed, writing the parsed fields."""
        db = self.session_factory()
        try:
            record = self._load(db, image_id)
            if record is None:
                logger.warning(f"[Annotation] Image {image_id} deleted before annotation finished")
                return False

            record.ai_processing_status = ensure_transition(record.status, ProcessingStatus.COMPLETED).value
            record.tags = list(annotation.tags)
            record.description = annotation.description
            record.colors = list(annotation.colors)
            record.error_message = None
            record.processed_at = datetime.now(timezone.utc)
            db.commit()
            return True
        finally:
            db.close()

    def mark_failed(self, image_id: UUID, error: str) -> bool:
        """
        Move a row to failed without touching tags/description/colors.

        A row still pending (the failure happened before the call started) is
        walked through processing so the status sequence stays monotonic.
        Rows already in a terminal state are left alone.
        """
        db = self.session_factory()
        try:
            record = self._load(db, image_id)
            if record is None:
                return False

            status = record.status
            if status.is_terminal:
                logger.warning(f"[Annotation] Image {image_id} already {status.value}; not marking failed")
                return False

            if status == ProcessingStatus.PENDING:
                status = ensure_transition(status, ProcessingStatus.PROCESSING)

            record.ai_processing_status = ensure_transition(status, ProcessingStatus.FAILED).value
            record.error_message = error[:1000]
            record.processed_at = datetime.now(timezone.utc)
            db.commit()
            return True
        finally:
            db.close()

    # ============================================================
    # MAIN FLOW
    # ============================================================

    async def annotate(self, image_id: UUID, image_url: str) -> AnnotationOutcome:
        """Annotate one image. Never raises for call/parse failures."""
        start = time.monotonic()

        if not self.mark_processing(image_id):
            return AnnotationOutcome(image_id=image_id, status=None, error="Metadata not pending")

        logger.info(f"[Annotation] Analyzing image {image_id}")

        try:
            text = await asyncio.wait_for(self.request_annotation(image_url), timeout=self.deadline_seconds)
            annotation = parse_annotation(text, strict=self.strict_parsing)
        except asyncio.TimeoutError:
            error = f"Annotation timed out after {self.deadline_seconds:.0f}s"
            logger.error(f"[Annotation] Failed for image {image_id}: {error}")
            self.mark_failed(image_id, error)
            return AnnotationOutcome(
                image_id=image_id,
                status=ProcessingStatus.FAILED,
                error=error,
                duration_seconds=time.monotonic() - start,
            )
        except Exception as e:
            logger.error(f"[Annotation] Failed for image {image_id}: {e}")
            self.mark_failed(image_id, str(e) or type(e).__name__)
            return AnnotationOutcome(
                image_id=image_id,
                status=ProcessingStatus.FAILED,
                error=str(e) or type(e).__name__,
                duration_seconds=time.monotonic() - start,
            )

        self.mark_completed(image_id, annotation)
        duration = time.monotonic() - start

        logger.info(
            f"[Annotation] Completed image {image_id}: {len(annotation.tags)} tags, "
            f"{len(annotation.colors)} colors in {duration:.1f}s"
        )

        return AnnotationOutcome(
            image_id=image_id,
            status=ProcessingStatus.COMPLETED,
            annotation=annotation,
            duration_seconds=duration,
        )


# Singleton instance
annotation_service = AnnotationService()
