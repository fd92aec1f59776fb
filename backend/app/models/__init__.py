from app.models.image import Image
from app.models.image_metadata import ImageMetadata

__all__ = [
    "Image",
    "ImageMetadata",
]
