"""Environment-based configuration for the cedula OCR service."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Cedula OCR settings, loaded from environment variables."""

    # Server
    PORT: int = 8092
    LOG_LEVEL: str = "INFO"

    # Google Cloud Vision (empty key = OCR unavailable, local dev default)
    GOOGLE_VISION_API_KEY: str = ""
    VISION_API_URL: str = "https://vision.googleapis.com/v1"
    VISION_FEATURE_TYPE: str = "TEXT_DETECTION"

    # Vision timeouts and retry
    VISION_TIMEOUT_SECONDS: int = 60
    VISION_CONNECT_TIMEOUT: int = 10
    VISION_RETRY_ATTEMPTS: int = 3
    VISION_RETRY_DELAY: float = 1.0
    VISION_RETRY_BACKOFF: float = 2.0

    # Image clean-up before OCR (PDFs are never preprocessed)
    PREPROCESS_IMAGES: bool = True

    # Upload limits (front and back of one card)
    MAX_FILES: int = 2
    MAX_FILE_SIZE_BYTES: int = 15 * 1024 * 1024
    ALLOWED_MIME_TYPES: list[str] = ["image/jpeg", "image/jpg", "image/png", "application/pdf"]

    model_config = {"env_prefix": "", "case_sensitive": True}


settings = Settings()
