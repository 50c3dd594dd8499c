"""Environment-based configuration for imagenormalizer."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from imagenormalizer.image import InterpolationQuality


class Settings(BaseSettings):
    """Normalizer settings loaded from IMAGENORMALIZER_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="IMAGENORMALIZER_",
        case_sensitive=False,
    )

    # Logging
    log_level: str = "INFO"

    # Avatar validation
    avatar_jpeg_quality: int = Field(default=95, ge=1, le=100)
    max_avatar_bytes: int = Field(default=10_485_760, ge=1)

    # Decode guard
    max_decode_pixels: int = Field(default=16_777_216, ge=1)

    # Interpolation used by redraws that don't take an explicit quality
    default_quality: InterpolationQuality = InterpolationQuality.HIGH


def get_settings() -> Settings:
    """Create and return normalizer settings."""
    return Settings()
