"""Tests for settings and logging setup."""

from __future__ import annotations

import logging
from unittest.mock import MagicMock, patch

import pytest
from pydantic import ValidationError

from imagenormalizer.config import Settings, get_settings
from imagenormalizer.image import InterpolationQuality
from imagenormalizer.logs import configure_logging


class TestSettings:
    def test_defaults(self) -> None:
        settings = Settings()

        assert settings.avatar_jpeg_quality == 95
        assert settings.max_avatar_bytes == 10_485_760
        assert settings.max_decode_pixels == 16_777_216
        assert settings.default_quality is InterpolationQuality.HIGH
        assert settings.log_level == "INFO"

    def test_reads_prefixed_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("IMAGENORMALIZER_MAX_DECODE_PIXELS", "1000")
        monkeypatch.setenv("imagenormalizer_default_quality", "low")

        settings = get_settings()

        assert settings.max_decode_pixels == 1000
        assert settings.default_quality is InterpolationQuality.LOW

    @pytest.mark.parametrize("quality", [0, 101])
    def test_rejects_out_of_range_jpeg_quality(self, quality: int) -> None:
        with pytest.raises(ValidationError):
            Settings(avatar_jpeg_quality=quality)

    def test_rejects_unknown_interpolation(self) -> None:
        with pytest.raises(ValidationError):
            Settings(default_quality="sharpest")  # type: ignore[arg-type]


class TestConfigureLogging:
    @patch("imagenormalizer.logs.logging.basicConfig")
    def test_uses_configured_level(self, mock_basic_config: MagicMock) -> None:
        configure_logging(Settings(log_level="debug"))

        mock_basic_config.assert_called_once()
        assert mock_basic_config.call_args.kwargs["level"] == logging.DEBUG

    @patch("imagenormalizer.logs.logging.basicConfig")
    def test_unknown_level_falls_back_to_info(self, mock_basic_config: MagicMock) -> None:
        configure_logging(Settings(log_level="chatty"))

        assert mock_basic_config.call_args.kwargs["level"] == logging.INFO
