import asyncio
import json

import httpx
import pytest

from app.core.annotation_service import AnnotationService, ANNOTATION_PROMPT
from app.core.config import settings
from app.core.status import ProcessingStatus
from app.db.base import SessionLocal
from app.models.image_metadata import ImageMetadata


GOOD_ANSWER = (
    "TAGS: mountain, lake, reflection, forest, morning\n"
    "DESCRIPTION: A calm mountain lake reflecting the forest at dawn.\n"
    "COLORS: #2E8B57, #87CEEB, #F0F8FF"
)


def completion(content, status_code=200):
    return httpx.Response(status_code, json={"choices": [{"message": {"content": content}}]})


def current_status(image_id):
    session = SessionLocal()
    try:
        return session.query(ImageMetadata).filter(ImageMetadata.image_id == image_id).one().ai_processing_status
    finally:
        session.close()


def load_metadata(image_id):
    session = SessionLocal()
    try:
        return session.query(ImageMetadata).filter(ImageMetadata.image_id == image_id).one()
    finally:
        session.close()


def make_service(handler, api_key="test-key"):
    service = AnnotationService(session_factory=SessionLocal, transport=httpx.MockTransport(handler))
    service.api_key = api_key
    service.api_url = "https://vision.test/v1/chat/completions"
    service.strict_parsing = True
    return service


def test_successful_annotation_completes_row(seed):
    image = seed(status="pending")
    requests = []
    seen_status = []

    def handler(request):
        requests.append(request)
        seen_status.append(current_status(image.id))
        return completion(GOOD_ANSWER)

    outcome = asyncio.run(make_service(handler).annotate(image.id, image.original_url))

    assert outcome.status == ProcessingStatus.COMPLETED
    assert len(requests) == 1
    assert seen_status == ["processing"]

    body = json.loads(requests[0].content)
    content = body["messages"][0]["content"]
    assert content[0] == {"type": "text", "text": ANNOTATION_PROMPT}
    assert content[1]["image_url"]["url"] == image.original_url
    assert requests[0].headers["Authorization"] == "Bearer test-key"

    record = load_metadata(image.id)
    assert record.ai_processing_status == "completed"
    assert record.tags == ["mountain", "lake", "reflection", "forest", "morning"]
    assert record.description == "A calm mountain lake reflecting the forest at dawn."
    assert record.colors == ["#2E8B57", "#87CEEB", "#F0F8FF"]
    assert record.processed_at is not None
    assert record.error_message is None


def test_http_error_marks_failed_and_leaves_fields(seed):
    image = seed(status="pending")

    outcome = asyncio.run(
        make_service(lambda request: httpx.Response(500, text="boom")).annotate(image.id, image.original_url)
    )

    assert outcome.status == ProcessingStatus.FAILED
    assert "500" in outcome.error

    record = load_metadata(image.id)
    assert record.ai_processing_status == "failed"
    assert record.tags == []
    assert record.description == ""
    assert record.colors == []
    assert "500" in record.error_message


def test_malformed_answer_marks_failed(seed):
    image = seed(status="pending")

    outcome = asyncio.run(
        make_service(lambda request: completion("Here is a nice picture of a dog.")).annotate(
            image.id, image.original_url
        )
    )

    assert outcome.status == ProcessingStatus.FAILED
    assert current_status(image.id) == "failed"
    assert "missing TAGS section" in load_metadata(image.id).error_message


def test_lenient_parsing_completes_with_empty_fields(seed):
    image = seed(status="pending")
    service = make_service(lambda request: completion("DESCRIPTION: Just a sentence."))
    service.strict_parsing = False

    outcome = asyncio.run(service.annotate(image.id, image.original_url))

    assert outcome.status == ProcessingStatus.COMPLETED
    record = load_metadata(image.id)
    assert record.tags == []
    assert record.colors == []
    assert record.description == "Just a sentence."


def test_parsing_mode_comes_from_settings(monkeypatch):
    assert AnnotationService().strict_parsing is True

    monkeypatch.setattr(settings, "ANNOTATION_STRICT_PARSING", False)

    assert AnnotationService().strict_parsing is False


def test_response_without_content_marks_failed(seed):
    image = seed(status="pending")

    outcome = asyncio.run(
        make_service(lambda request: httpx.Response(200, json={"choices": []})).annotate(
            image.id, image.original_url
        )
    )

    assert outcome.status == ProcessingStatus.FAILED
    assert current_status(image.id) == "failed"


def test_deadline_marks_failed(seed):
    image = seed(status="pending")

    async def slow(request):
        await asyncio.sleep(5)
        return completion(GOOD_ANSWER)

    service = make_service(slow)
    service.deadline_seconds = 0.05

    outcome = asyncio.run(service.annotate(image.id, image.original_url))

    assert outcome.status == ProcessingStatus.FAILED
    assert "timed out" in outcome.error
    assert current_status(image.id) == "failed"


def test_missing_api_key_marks_failed_without_calling(seed):
    image = seed(status="pending")
    calls = []

    def handler(request):
        calls.append(request)
        return completion(GOOD_ANSWER)

    outcome = asyncio.run(make_service(handler, api_key=None).annotate(image.id, image.original_url))

    assert outcome.status == ProcessingStatus.FAILED
    assert calls == []
    assert current_status(image.id) == "failed"


@pytest.mark.parametrize("status", ["processing", "completed", "failed"])
def test_non_pending_rows_are_skipped(seed, status):
    image = seed(status=status, tags=["kept"])
    calls = []

    def handler(request):
        calls.append(request)
        return completion(GOOD_ANSWER)

    outcome = asyncio.run(make_service(handler).annotate(image.id, image.original_url))

    assert outcome.status is None
    assert calls == []
    assert current_status(image.id) == status
    assert load_metadata(image.id).tags == ["kept"]


def test_mark_failed_walks_pending_through_processing(seed):
    image = seed(status="pending")
    service = make_service(lambda request: completion(GOOD_ANSWER))

    assert service.mark_failed(image.id, "worker crashed")
    assert current_status(image.id) == "failed"


def test_mark_failed_never_overwrites_completed(seed):
    image = seed(status="completed", tags=["a"])
    service = make_service(lambda request: completion(GOOD_ANSWER))

    assert not service.mark_failed(image.id, "late error")
    assert current_status(image.id) == "completed"
