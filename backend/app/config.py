from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    # App
    APP_NAME: str = "Crop Verification"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ALLOWED_ORIGINS: str = "http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000"

    # Database
    DATABASE_URL: str = "postgresql+asyncpg://verify:verify_pass@db:5432/verifications"

    # Crop directory
    CROP_API_URL: str = "https://markhet-internal-ngfs.onrender.com"
    CROP_API_TIMEOUT: float = 10.0

    # Media storage (local, cloudinary)
    MEDIA_PROVIDER: str = "local"
    MEDIA_FOLDER: str = "farm-verifications"
    UPLOAD_DIR: str = "uploads"
    MEDIA_BASE_URL: str = "/uploads"
    CLOUDINARY_CLOUD_NAME: Optional[str] = None
    CLOUDINARY_API_KEY: Optional[str] = None
    CLOUDINARY_API_SECRET: Optional[str] = None

    # Submission rules
    MAX_PHOTOS: int = 3
    MAX_PHOTO_BYTES: int = 5 * 1024 * 1024  # 5MB

    # Request identifiers
    REQUEST_ID_PREFIX: str = "OR-REQ"
    REQUEST_ID_MAX_ATTEMPTS: int = 10

    # Admin listing
    ADMIN_PAGE_SIZE_DEFAULT: int = 10
    ADMIN_PAGE_SIZE_MAX: int = 100

    @property
    def allowed_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

    model_config = {"env_file": ".env", "case_sensitive": True}


settings = Settings()
