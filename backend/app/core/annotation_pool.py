import asyncio
import logging
from typing import List, Optional, Sequence

from app.core.config import settings
from app.core.status import ProcessingStatus
from app.core.annotation_service import (
    AnnotationJob,
    AnnotationOutcome,
    AnnotationService,
    annotation_service,
)

logger = logging.getLogger(__name__)


class AnnotationPool:
    """
    Bounded runner for background annotation jobs.

    At most `max_concurrency` vision calls are in flight per event loop, no
    matter how many upload batches are running. Anything escaping a job is
    logged and recorded as a failed row.
    """

    def __init__(self, service: Optional[AnnotationService] = None, max_concurrency: int = None):
        self.service = service or annotation_service
        self.max_concurrency = max_concurrency or settings.ANNOTATION_MAX_CONCURRENCY
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def _get_semaphore(self) -> asyncio.Semaphore:
        loop = asyncio.get_running_loop()
        if self._semaphore is None or self._loop is not loop:
            self._semaphore = asyncio.Semaphore(self.max_concurrency)
            self._loop = loop
        return self._semaphore

    async def _run_one(self, job: AnnotationJob) -> AnnotationOutcome:
        async with self._get_semaphore():
            return await self.service.annotate(job.image_id, job.image_url)

    async def run_batch(self, jobs: Sequence[AnnotationJob]) -> List[AnnotationOutcome]:
        """Annotate every job, at most max_concurrency at a time."""
        if not jobs:
            return []

        logger.info(f"[Annotation] Dispatching {len(jobs)} job(s) (max {self.max_concurrency} concurrent)")

        results = await asyncio.gather(*(self._run_one(job) for job in jobs), return_exceptions=True)

        outcomes: List[AnnotationOutcome] = []
        for job, result in zip(jobs, results):
            if isinstance(result, BaseException):
                error = str(result) or type(result).__name__
                logger.error(f"[Annotation] Job for image {job.image_id} crashed: {error}", exc_info=result)
                try:
                    self.service.mark_failed(job.image_id, error)
                except Exception as e:
                    logger.error(f"[Annotation] Could not record failure for image {job.image_id}: {e}")
                outcomes.append(AnnotationOutcome(image_id=job.image_id, status=ProcessingStatus.FAILED, error=error))
            else:
                outcomes.append(result)

        completed = sum(1 for o in outcomes if o.status == ProcessingStatus.COMPLETED)
        failed = sum(1 for o in outcomes if o.status == ProcessingStatus.FAILED)
        logger.info(f"[Annotation] Batch done: {completed} completed, {failed} failed, {len(outcomes) - completed - failed} skipped")

        return outcomes


# Singleton instance
annotation_pool = AnnotationPool()
