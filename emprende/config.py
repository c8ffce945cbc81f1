from __future__ import annotations

from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from a .env file if present (local dev only)
load_dotenv()


class ConfigurationError(RuntimeError):
    """Raised when an external service is used without its required settings."""

    def __init__(self, service: str, missing: list[str]):
        super().__init__(
            f"{service} is not configured: missing environment variable(s) {', '.join(missing)}"
        )
        self.service = service
        self.missing = missing


class Settings(BaseSettings):
    """Application configuration loaded from environment variables or .env file."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # General
    project_id: Optional[str] = Field(default=None, description="GCP / Firebase project ID")
    site_url: str = Field("https://emprendedores-cr.vercel.app", description="Public marketplace URL used in shared links.")
    log_level: str = Field("INFO")

    # Firebase
    firebase_credentials_json: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("GOOGLE_APPLICATION_CREDENTIALS", "FIREBASE_CREDENTIALS_JSON"),
        description="Path to service-account JSON file or JSON string itself.",
    )
    firebase_database_url: Optional[str] = Field(default=None, description="Realtime Database URL.")

    # Cloud Storage
    bucket_name: Optional[str] = Field(default=None)
    public_images: bool = Field(True, description="If true, uploaded images are made public instead of using signed URLs.")
    signed_url_expiry_days: int = Field(7, ge=1)
    upload_folder: str = Field("business-logos")

    # Image processing
    max_upload_bytes: int = Field(5 * 1024 * 1024, ge=1, description="Largest accepted source image (bytes).")
    image_quality: float = Field(0.8, gt=0, le=1, description="WebP quality for normalized uploads (0-1).")
    image_max_width: int = Field(1200, gt=0)
    image_max_height: int = Field(1200, gt=0)

    # Pricing
    default_currency: str = Field("CRC")

    @property
    def database_url(self) -> Optional[str]:
        """Explicit database URL, or the default one derived from the project ID."""

        if self.firebase_database_url:
            return self.firebase_database_url
        if self.project_id:
            return f"https://{self.project_id}.firebaseio.com"
        return None


@lru_cache()
def get_settings() -> Settings:  # pragma: no cover
    """Return a cached Settings instance so it is only parsed once."""

    return Settings()
