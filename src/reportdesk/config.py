"""
Configuration settings for the ReportDesk occurrence service
"""

import logging
import sys
from functools import lru_cache
from typing import Literal, Optional

from pydantic import ValidationError as PydanticValidationError, field_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    # Required secrets - no defaults allowed
    jwt_secret_key: str

    # Database
    database_url: str = "sqlite+aiosqlite:///./reportdesk.db"
    database_echo: bool = False

    # Authentication
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30

    # Attachment storage
    attachment_backend: Literal["local", "s3"] = "local"
    attachment_dir: str = "storage/public"
    attachment_s3_bucket: Optional[str] = None
    attachment_s3_region: str = "us-east-1"
    attachment_s3_prefix: str = "attachments"

    # Occurrence submission limits
    max_attachments: int = 4
    max_attachment_kb: int = 2048

    log_level: str = "INFO"

    @field_validator('jwt_secret_key')
    @classmethod
    def validate_secret_strength(cls, v: str, info) -> str:
        """Enforce minimum 32-character secret keys"""
        if len(v) < 32:
            raise ValueError(
                f"{info.field_name} must be at least 32 characters "
                f"(current: {len(v)}). Generate with: openssl rand -hex 32"
            )
        return v

    @field_validator('attachment_s3_bucket')
    @classmethod
    def strip_bucket(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            v = v.strip() or None
        return v

    @property
    def max_attachment_bytes(self) -> int:
        return self.max_attachment_kb * 1024

    class Config:
        # Do NOT use .env file in production
        env_file = None

    @classmethod
    def load_and_validate(cls) -> "Settings":
        """Load settings and fail fast if secrets are missing or invalid"""
        try:
            instance = cls()
        except PydanticValidationError as e:
            for error in e.errors():
                field = ".".join(str(part) for part in error["loc"]) or "settings"
                logger.critical(f"Invalid configuration for {field.upper()}: {error['msg']}")
            sys.exit(1)

        if instance.attachment_backend == "s3" and not instance.attachment_s3_bucket:
            logger.critical("ATTACHMENT_S3_BUCKET must be set when ATTACHMENT_BACKEND=s3")
            sys.exit(1)

        return instance


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings, loading them on first use"""
    return Settings.load_and_validate()
