from app.schemas.auth import (
    Credentials,
    SignUpResponse,
    SignInResponse,
    MessageResponse,
    UserResponse,
)
from app.schemas.image import (
    ImageMetadataResponse,
    ImageResponse,
    ImageDetailResponse,
    DeleteResponse,
    UploadResult,
    UploadResponse,
    Pagination,
    ImageListResponse,
)

__all__ = [
    # Auth
    "Credentials",
    "SignUpResponse",
    "SignInResponse",
    "MessageResponse",
    "UserResponse",
    # Image
    "ImageMetadataResponse",
    "ImageResponse",
    "ImageDetailResponse",
    "DeleteResponse",
    "UploadResult",
    "UploadResponse",
    "Pagination",
    "ImageListResponse",
]
