import io
import logging
from dataclasses import dataclass
from typing import Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

from app.core.config import settings

logger = logging.getLogger(__name__)


class ThumbnailError(ValueError):
    """Raised when the upload cannot be decoded as an image."""


@dataclass
class Thumbnail:
    data: bytes
    content_type: str
    width: int
    height: int
    source_width: int
    source_height: int


def fit_inside(width: int, height: int, max_size: int) -> Tuple[int, int]:
    """Scale (width, height) so the longest side is <= max_size. Never upscales."""
    longest = max(width, height)
    if longest <= max_size:
        return width, height
    scale = max_size / longest
    return max(1, round(width * scale)), max(1, round(height * scale))


def make_thumbnail(data: bytes, max_size: int = None) -> Thumbnail:
    """
    Build a bounded preview of an uploaded image.

    Longest side <= max_size (default THUMBNAIL_MAX_SIZE), aspect ratio
    preserved, small images are left at their original dimensions. Output is
    PNG when the source has transparency, JPEG otherwise.
    """
    if max_size is None:
        max_size = settings.THUMBNAIL_MAX_SIZE

    try:
        with Image.open(io.BytesIO(data)) as img:
            img = ImageOps.exif_transpose(img)
            source_width, source_height = img.size

            target = fit_inside(source_width, source_height, max_size)
            if target != img.size:
                img = img.resize(target, Image.Resampling.LANCZOS)

            has_alpha = img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info)
            buffer = io.BytesIO()
            if has_alpha:
                img.convert("RGBA").save(buffer, format="PNG")
                content_type = "image/png"
            else:
                img.convert("RGB").save(buffer, format="JPEG", quality=85)
                content_type = "image/jpeg"

            width, height = img.size
    except (UnidentifiedImageError, OSError) as e:
        raise ThumbnailError(f"Thumbnail generation failed: {e}") from e

    logger.debug(f"Thumbnail {source_width}x{source_height} -> {width}x{height}")

    return Thumbnail(
        data=buffer.getvalue(),
        content_type=content_type,
        width=width,
        height=height,
        source_width=source_width,
        source_height=source_height,
    )
