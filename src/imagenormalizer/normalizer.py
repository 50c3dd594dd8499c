"""Orientation fixing, aspect-preserving resizing, and avatar validation.

Every operation takes an ``Image`` (or raw bytes) and returns a new value,
or hands back the same object when there is nothing to do. Expected
failures (degenerate geometry, undecodable bytes) come back as ``None``.
"""

from __future__ import annotations

import dataclasses
import logging
import math
from typing import TYPE_CHECKING

from imagenormalizer.codec import PillowCodec
from imagenormalizer.config import get_settings
from imagenormalizer.image import DrawTransform, Image, InterpolationQuality, Orientation, Size, SizeUnit

if TYPE_CHECKING:
    from imagenormalizer.codec import ImageCodec
    from imagenormalizer.config import Settings

logger = logging.getLogger(__name__)

AVATAR_FORMAT = "JPEG"


def _round(value: float) -> int:
    """Round half away from zero, for non-negative sizes."""
    return math.floor(value + 0.5)


class ImageNormalizer:
    """Normalizes and resizes images through an ``ImageCodec``."""

    def __init__(self, codec: ImageCodec | None = None, settings: Settings | None = None) -> None:
        self._settings = settings if settings is not None else get_settings()
        self._codec: ImageCodec = codec if codec is not None else PillowCodec(self._settings)

    # -- Orientation --------------------------------------------------------

    def normalize(self, image: Image) -> Image:
        """Return ``image`` redrawn upright, or ``image`` itself if it already is."""
        if image.orientation is Orientation.UP:
            return image

        return self._codec.draw(
            image,
            DrawTransform(image.orientation, self._settings.default_quality),
            image.pixel_size,
        )

    # -- Resizing -----------------------------------------------------------

    def resize_quality(self, image: Image, quality: InterpolationQuality, rate: float) -> Image:
        """Scale both dimensions by ``rate`` using the given interpolation.

        Output dimensions are ``round(source * rate)``, never less than one
        pixel. The result is upright.

        Raises:
            ValueError: If ``rate`` is not a positive finite number or the
                image has no pixels.
        """
        if not (math.isfinite(rate) and rate > 0):
            raise ValueError(f"Rate must be positive, got {rate}")
        if image.is_empty:
            raise ValueError(f"Cannot resize an empty {image.width}x{image.height} image")

        source = image.pixel_size
        target = Size(
            max(1, _round(source.width * rate)),
            max(1, _round(source.height * rate)),
        )
        return self._codec.draw(image, DrawTransform(image.orientation, quality), target)

    def resize_to_max_dimension(self, image: Image, max_dimension: float, unit: SizeUnit) -> Image | None:
        """Shrink ``image`` so its largest side is ``max_dimension`` in ``unit``.

        Images already within the bound come back unchanged; nothing is ever
        scaled up. Returns None if the source or the bound is degenerate.
        """
        source = image.size if unit is SizeUnit.POINTS else image.pixel_size
        if source.width < 1 or source.height < 1:
            logger.error("Invalid original size: %sx%s %s", source.width, source.height, unit)
            return None
        if not math.isfinite(max_dimension) or max_dimension <= 0:
            logger.error("Invalid max dimension: %s %s", max_dimension, unit)
            return None

        if source.max_dimension <= max_dimension:
            return image

        bound = max_dimension * image.scale if unit is SizeUnit.POINTS else max_dimension
        return self.resize_to_size(image, Size(bound, bound))

    def resize_to_max_dimension_points(self, image: Image, max_dimension_points: float) -> Image | None:
        return self.resize_to_max_dimension(image, max_dimension_points, SizeUnit.POINTS)

    def resize_to_max_dimension_pixels(self, image: Image, max_dimension_pixels: float) -> Image | None:
        return self.resize_to_max_dimension(image, max_dimension_pixels, SizeUnit.PIXELS)

    def resize_to_size(self, image: Image, target_size: Size) -> Image | None:
        """Scale ``image`` to fit inside ``target_size`` (pixels), keeping its aspect ratio."""
        source = image.pixel_size
        if image.is_empty or target_size.is_empty:
            logger.error(
                "Cannot fit %sx%s image into %sx%s",
                source.width,
                source.height,
                target_size.width,
                target_size.height,
            )
            return None

        factor = min(target_size.width / source.width, target_size.height / source.height)
        width = min(_round(source.width * factor), math.floor(target_size.width))
        height = min(_round(source.height * factor), math.floor(target_size.height))
        if width < 1 or height < 1:
            logger.error("Invalid thumbnail size: %sx%s", width, height)
            return None

        if image.orientation is Orientation.UP and (image.width, image.height) == (width, height):
            return image

        return self._codec.draw(
            image,
            DrawTransform(image.orientation, self._settings.default_quality),
            Size(width, height),
        )

    def resize_to_fill_pixel_size(self, image: Image, bounding_size: Size) -> Image:
        """Scale ``image`` so it covers ``bounding_size`` (pixels), keeping its aspect ratio.

        One axis may overshoot the box; cropping is left to the caller. The
        result is upright at scale 1. A degenerate source or box yields the
        source unchanged.
        """
        source = image.pixel_size
        if image.is_empty or bounding_size.is_empty:
            logger.warning(
                "Cannot fill %sx%s with %sx%s image, returning it unchanged",
                bounding_size.width,
                bounding_size.height,
                source.width,
                source.height,
            )
            return image

        factor = max(bounding_size.width / source.width, bounding_size.height / source.height)
        width = max(math.ceil(bounding_size.width), _round(source.width * factor))
        height = max(math.ceil(bounding_size.height), _round(source.height * factor))

        if (
            image.orientation is Orientation.UP
            and image.scale == 1.0
            and (image.width, image.height) == (width, height)
        ):
            return image

        drawn = self._codec.draw(
            image,
            DrawTransform(image.orientation, self._settings.default_quality),
            Size(width, height),
        )
        return dataclasses.replace(drawn, scale=1.0)

    # -- Avatar -------------------------------------------------------------

    def valid_avatar_jpeg(self, raw_bytes: bytes) -> bytes | None:
        """Decode ``raw_bytes`` and re-encode them as a canonical avatar JPEG.

        The pixels are not rotated; a non-UP orientation tag is carried over
        to the output. Returns None if the data is empty, over the size limit,
        or not an image the codec can decode.
        """
        if not raw_bytes:
            return None
        if len(raw_bytes) > self._settings.max_avatar_bytes:
            logger.warning(
                "Avatar data too large: %d bytes (limit %d)",
                len(raw_bytes),
                self._settings.max_avatar_bytes,
            )
            return None

        image = self._codec.decode(raw_bytes)
        if image is None or image.is_empty:
            logger.info("Avatar data is not a decodable image")
            return None

        return self._codec.encode(image, AVATAR_FORMAT, self._settings.avatar_jpeg_quality)
