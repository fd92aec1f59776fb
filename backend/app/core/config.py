from pydantic_settings import BaseSettings
from typing import Optional, List


class Settings(BaseSettings):
    # Database (PostgreSQL in production, SQLite for local runs/tests)
    DATABASE_URL: str

    # Auth provider (Supabase Auth)
    SUPABASE_URL: Optional[str] = None
    SUPABASE_ANON_KEY: Optional[str] = None
    AUTH_HTTP_TIMEOUT_SECONDS: float = 15.0

    # Object Storage (Supabase Storage first, S3 fallback)
    SUPABASE_STORAGE_URL: Optional[str] = None
    SUPABASE_STORAGE_KEY: Optional[str] = None
    SUPABASE_STORAGE_BUCKET: str = "ai-gallery"
    AWS_S3_BUCKET: Optional[str] = None
    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[str] = None
    AWS_REGION: str = "us-east-1"
    STORAGE_HTTP_TIMEOUT_SECONDS: float = 30.0

    # Vision model (OpenAI-compatible chat completions)
    OPENAI_API_KEY: Optional[str] = None
    VISION_API_URL: str = "https://api.openai.com/v1/chat/completions"
    VISION_MODEL: str = "gpt-4-turbo"
    VISION_MAX_TOKENS: int = 300
    VISION_HTTP_TIMEOUT_SECONDS: float = 60.0

    # Annotation worker pool
    ANNOTATION_MAX_CONCURRENCY: int = 4
    ANNOTATION_TIMEOUT_SECONDS: float = 90.0  # Hard deadline per annotation call
    ANNOTATION_STRICT_PARSING: bool = True  # False: missing sections become empty values, bad colors dropped

    # Upload limits
    MAX_UPLOAD_FILES: int = 10
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024  # 10MB
    THUMBNAIL_MAX_SIZE: int = 300  # Longest side in px
    ORIGINALS_FOLDER: str = "ai-gallery/originals"
    THUMBNAILS_FOLDER: str = "ai-gallery/thumbnails"

    # Gallery pagination
    DEFAULT_PAGE_LIMIT: int = 20
    MAX_PAGE_LIMIT: int = 100

    # App
    ENVIRONMENT: str = "development"
    API_PREFIX: str = "/api"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["*"]

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
