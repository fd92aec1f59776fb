import io
import os
import uuid
from datetime import datetime, timedelta, timezone

# Must be set before any app module builds the settings/engine
os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from PIL import Image as PILImage

from app.db.base import Base, engine, SessionLocal
from app.models import Image, ImageMetadata
from app.core.exceptions import AuthenticationError, UpstreamError
from app.core.storage_service import StoredArtifact
from app.core.auth_service import CurrentUser

USER_A = uuid.UUID("11111111-1111-1111-1111-111111111111")
USER_B = uuid.UUID("22222222-2222-2222-2222-222222222222")

TOKENS = {
    "token-a": USER_A,
    "token-b": USER_B,
}

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_image_bytes(width=640, height=480, mode="RGB", fmt="PNG", color=(200, 30, 30)):
    if mode == "RGBA" and len(color) == 3:
        color = color + (128,)
    buffer = io.BytesIO()
    PILImage.new(mode, (width, height), color).save(buffer, format=fmt)
    return buffer.getvalue()


class FakeStorage:
    """In-memory object store; fails uploads whose payload is in fail_on."""

    def __init__(self, fail_on=None):
        self.fail_on = list(fail_on or [])
        self.objects = {}
        self.deleted = []
        self.deleted_backends = []
        self._counter = 0

    async def upload(self, data, folder, content_type):
        if any(data == bad for bad in self.fail_on):
            raise UpstreamError("Failed to store artifact: storage unavailable")
        self._counter += 1
        path = f"{folder}/{self._counter}"
        self.objects[path] = (data, content_type)
        return StoredArtifact(path=path, url=f"https://cdn.test/{path}", backend="fake")

    async def delete(self, path, backend=None):
        self.deleted.append(path)
        self.deleted_backends.append(backend)
        return self.objects.pop(path, None) is not None


class FakeAuth:
    async def get_current_user(self, access_token):
        if access_token not in TOKENS:
            raise AuthenticationError("Invalid authentication")
        return CurrentUser(id=TOKENS[access_token], access_token=access_token)


class RecordingPool:
    def __init__(self):
        self.batches = []

    async def run_batch(self, jobs):
        self.batches.append(list(jobs))
        return []


@pytest.fixture(autouse=True)
def tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def seed(db):
    """Insert an Image + ImageMetadata pair directly."""
    counter = {"n": 0}

    def _seed(user_id=USER_A, tags=(), colors=(), description="", status="completed", uploaded_at=None):
        counter["n"] += 1
        n = counter["n"]
        image = Image(
            user_id=user_id,
            filename=f"photo_{n}.jpg",
            original_url=f"https://cdn.test/originals/{n}.jpg",
            thumbnail_url=f"https://cdn.test/thumbnails/{n}.jpg",
            original_path=f"ai-gallery/originals/{n}.jpg",
            thumbnail_path=f"ai-gallery/thumbnails/{n}.jpg",
            original_backend="fake",
            thumbnail_backend="fake",
            content_type="image/jpeg",
            uploaded_at=uploaded_at or (BASE_TIME + timedelta(minutes=n)),
        )
        db.add(image)
        db.flush()
        db.add(ImageMetadata(
            image_id=image.id,
            user_id=user_id,
            ai_processing_status=status,
            description=description,
            tags=list(tags),
            colors=list(colors),
        ))
        db.commit()
        return image

    return _seed
