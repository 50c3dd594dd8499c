"""Logging setup for applications embedding the normalizer."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from imagenormalizer.config import get_settings

if TYPE_CHECKING:
    from imagenormalizer.config import Settings


def configure_logging(settings: Settings | None = None) -> None:
    """Configure the root logger at ``settings.log_level``.

    The library itself only creates module loggers; call this from the host
    application if it has no logging setup of its own.
    """
    settings = settings if settings is not None else get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
