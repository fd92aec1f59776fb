import logging
import httpx
import boto3
import uuid
import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from app.core.config import settings
from app.core.exceptions import UpstreamError

logger = logging.getLogger(__name__)


EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/bmp": "bmp",
    "image/tiff": "tiff",
}


@dataclass
class StoredArtifact:
    """A binary written to object storage."""
    path: str  # Object key inside the bucket
    url: str   # Durable public URL
    backend: str  # 'supabase' or 's3'


class StorageService:
    """
    Object storage for original images and thumbnails.

    Tries Supabase Storage first, then S3. Raises UpstreamError when no
    backend is configured or every configured backend fails.
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.transport = transport
        self.supabase_storage_url = settings.SUPABASE_STORAGE_URL
        self.supabase_storage_key = settings.SUPABASE_STORAGE_KEY
        self.bucket = settings.SUPABASE_STORAGE_BUCKET
        self.s3_bucket = settings.AWS_S3_BUCKET

        # Initialize S3 client if configured
        self.s3_client = None
        if self.s3_bucket and settings.AWS_ACCESS_KEY_ID:
            self.s3_client = boto3.client(
                's3',
                aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
                aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
                region_name=settings.AWS_REGION,
            )

    @property
    def is_configured(self) -> bool:
        return bool(
            (self.supabase_storage_url and self.supabase_storage_key)
            or (self.s3_client and self.s3_bucket)
        )

    def build_path(self, folder: str, content_type: str) -> str:
        extension = EXTENSIONS.get(content_type, "bin")
        stamp = datetime.utcnow().strftime('%Y%m%d_%H%M%S')
        return f"{folder.strip('/')}/{stamp}_{uuid.uuid4().hex}.{extension}"

    async def upload(self, data: bytes, folder: str, content_type: str) -> StoredArtifact:
        """
        Store a byte buffer under a logical folder.

        Args:
            data: File contents
            folder: Logical folder, e.g. 'ai-gallery/originals'
            content_type: MIME type sent with the object

        Returns:
            StoredArtifact with the object key and public URL
        """
        if not self.is_configured:
            raise UpstreamError("No object storage configured")

        path = self.build_path(folder, content_type)
        errors = []

        # Try Supabase Storage first
        if self.supabase_storage_url and self.supabase_storage_key:
            try:
                url = f"{self.supabase_storage_url}/object/{self.bucket}/{path}"

                async with httpx.AsyncClient(timeout=settings.STORAGE_HTTP_TIMEOUT_SECONDS, transport=self.transport) as client:
                    response = await client.post(
                        url,
                        content=data,
                        headers={
                            "Authorization": f"Bearer {self.supabase_storage_key}",
                            "Content-Type": content_type,
                        }
                    )

                if response.status_code in [200, 201]:
                    public_url = f"{self.supabase_storage_url}/object/public/{self.bucket}/{path}"
                    logger.info(f"[Storage] Stored {len(data)/1024:.1f} KB at supabase:{path}")
                    return StoredArtifact(path=path, url=public_url, backend="supabase")

                errors.append(f"supabase returned {response.status_code}")
                logger.warning(f"[Storage] Supabase upload failed: {response.status_code} {response.text[:200]}")

            except httpx.HTTPError as e:
                errors.append(f"supabase: {e}")
                logger.warning(f"[Storage] Supabase storage failed: {e}")

        # Try S3
        if self.s3_client and self.s3_bucket:
            try:
                await asyncio.to_thread(
                    self.s3_client.put_object,
                    Bucket=self.s3_bucket,
                    Key=path,
                    Body=data,
                    ContentType=content_type,
                )

                public_url = f"https://{self.s3_bucket}.s3.amazonaws.com/{path}"
                logger.info(f"[Storage] Stored {len(data)/1024:.1f} KB at s3:{path}")
                return StoredArtifact(path=path, url=public_url, backend="s3")

            except Exception as e:
                errors.append(f"s3: {e}")
                logger.warning(f"[Storage] S3 storage failed: {e}")

        raise UpstreamError(f"Failed to store artifact: {'; '.join(errors)}")

    async def delete(self, path: Optional[str], backend: Optional[str] = None) -> bool:
        """
        Best-effort removal of a stored object. Returns True if a backend confirmed it.

        backend is the StoredArtifact.backend the object was written to; when
        unknown every configured backend is tried.
        """
        if not path:
            return False

        if backend in (None, "supabase") and self.supabase_storage_url and self.supabase_storage_key:
            try:
                async with httpx.AsyncClient(timeout=settings.STORAGE_HTTP_TIMEOUT_SECONDS, transport=self.transport) as client:
                    response = await client.delete(
                        f"{self.supabase_storage_url}/object/{self.bucket}/{path}",
                        headers={"Authorization": f"Bearer {self.supabase_storage_key}"},
                    )
                if response.status_code in [200, 204]:
                    return True
                logger.warning(f"[Storage] Supabase delete of {path} returned {response.status_code}")
            except httpx.HTTPError as e:
                logger.warning(f"[Storage] Supabase delete of {path} failed: {e}")

        if backend in (None, "s3") and self.s3_client and self.s3_bucket:
            try:
                await asyncio.to_thread(self.s3_client.delete_object, Bucket=self.s3_bucket, Key=path)
                return True
            except Exception as e:
                logger.warning(f"[Storage] S3 delete of {path} failed: {e}")

        return False


# Singleton instance
storage_service = StorageService()
