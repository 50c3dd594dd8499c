"""Image codec: decode, encode, and redraw raster buffers.

The normalizer only ever talks to an ``ImageCodec``. ``PillowCodec`` is the
implementation used by default; tests and host applications may supply
their own.
"""

from __future__ import annotations

import io
import logging
from typing import TYPE_CHECKING, Protocol

import numpy as np
from PIL import Image as PILImage
from PIL import UnidentifiedImageError

from imagenormalizer.image import DrawTransform, Image, InterpolationQuality, Orientation, Size

if TYPE_CHECKING:
    from imagenormalizer.config import Settings

logger = logging.getLogger(__name__)

_EXIF_ORIENTATION_TAG = 0x0112


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


class ImageCodec(Protocol):
    """Protocol for the decode/encode/draw primitives."""

    def decode(self, data: bytes) -> Image | None:
        """Decode raw bytes into an image.

        Args:
            data: Encoded image bytes (any supported format).

        Returns:
            The decoded image with its orientation tag, or None if the bytes
            are not a usable image.
        """
        ...

    def encode(self, image: Image, format: str, quality: int) -> bytes:  # noqa: A002
        """Encode an image.

        Args:
            image: Image to encode. A non-UP orientation is written as EXIF.
            format: Container format name, e.g. ``"JPEG"``.
            quality: Lossy quality, 1-100.

        Returns:
            Encoded bytes.
        """
        ...

    def draw(self, image: Image, transform: DrawTransform, target_size: Size) -> Image:
        """Redraw an image into a new buffer.

        Args:
            image: Source image.
            transform: Orientation to undo and interpolation to resample with.
            target_size: Output size in pixels, as presented (after the
                orientation has been undone).

        Returns:
            A new image with orientation UP and the source's scale.
        """
        ...


# ---------------------------------------------------------------------------
# Pillow implementation
# ---------------------------------------------------------------------------

_TRANSPOSE: dict[Orientation, PILImage.Transpose] = {
    Orientation.UP_MIRRORED: PILImage.Transpose.FLIP_LEFT_RIGHT,
    Orientation.DOWN: PILImage.Transpose.ROTATE_180,
    Orientation.DOWN_MIRRORED: PILImage.Transpose.FLIP_TOP_BOTTOM,
    Orientation.LEFT_MIRRORED: PILImage.Transpose.TRANSPOSE,
    Orientation.RIGHT: PILImage.Transpose.ROTATE_270,
    Orientation.RIGHT_MIRRORED: PILImage.Transpose.TRANSVERSE,
    Orientation.LEFT: PILImage.Transpose.ROTATE_90,
}

_RESAMPLE: dict[InterpolationQuality, PILImage.Resampling] = {
    InterpolationQuality.NONE: PILImage.Resampling.NEAREST,
    InterpolationQuality.LOW: PILImage.Resampling.BILINEAR,
    InterpolationQuality.MEDIUM: PILImage.Resampling.BICUBIC,
    InterpolationQuality.HIGH: PILImage.Resampling.LANCZOS,
    InterpolationQuality.DEFAULT: PILImage.Resampling.BICUBIC,
}

_DECODE_ERRORS = (
    UnidentifiedImageError,
    PILImage.DecompressionBombError,
    OSError,
    ValueError,
)


class PillowCodec:
    """Codec backed by Pillow, holding pixels as numpy arrays."""

    def __init__(self, settings: Settings) -> None:
        self._max_decode_pixels = settings.max_decode_pixels

    # -- Public API ---------------------------------------------------------

    def decode(self, data: bytes) -> Image | None:
        """Decode ``data``, refusing anything larger than the pixel budget."""
        try:
            with PILImage.open(io.BytesIO(data)) as pil_image:
                width, height = pil_image.size
                if width * height > self._max_decode_pixels:
                    logger.warning(
                        "Refusing to decode %dx%d image (limit %d pixels)",
                        width,
                        height,
                        self._max_decode_pixels,
                    )
                    return None
                pil_image.load()
                orientation = Orientation.from_exif(pil_image.getexif().get(_EXIF_ORIENTATION_TAG))
                pixels = np.array(self._to_supported_mode(pil_image), dtype=np.uint8)
        except _DECODE_ERRORS as exc:
            logger.debug("Could not decode image data (%d bytes): %s", len(data), exc)
            return None

        return Image(pixels=pixels, orientation=orientation)

    def encode(self, image: Image, format: str, quality: int) -> bytes:  # noqa: A002
        """Encode ``image`` with its orientation tag; JPEG output has any alpha flattened onto white."""
        if not 1 <= quality <= 100:
            raise ValueError(f"Quality must be between 1 and 100, got {quality}")

        container = "JPEG" if format.upper() in ("JPEG", "JPG") else format.upper()
        pil_image = PILImage.fromarray(image.pixels)
        if container == "JPEG":
            pil_image = self._flatten(pil_image)

        options: dict[str, object] = {"quality": quality}
        if image.orientation is not Orientation.UP:
            exif = PILImage.Exif()
            exif[_EXIF_ORIENTATION_TAG] = image.orientation.exif_value
            options["exif"] = exif.tobytes()

        output = io.BytesIO()
        pil_image.save(output, format=container, **options)
        return output.getvalue()

    def draw(self, image: Image, transform: DrawTransform, target_size: Size) -> Image:
        """Undo the orientation, then resample to ``target_size``."""
        if target_size.is_empty:
            raise ValueError(f"Cannot draw into an empty size: {target_size}")

        pil_image = PILImage.fromarray(image.pixels)
        method = _TRANSPOSE.get(transform.orientation)
        if method is not None:
            pil_image = pil_image.transpose(method)

        target = (max(1, round(target_size.width)), max(1, round(target_size.height)))
        if pil_image.size != target:
            pil_image = pil_image.resize(target, resample=_RESAMPLE[transform.quality])

        return Image(
            pixels=np.array(pil_image, dtype=np.uint8),
            orientation=Orientation.UP,
            scale=image.scale,
        )

    # -- Internal -----------------------------------------------------------

    @staticmethod
    def _to_supported_mode(pil_image: PILImage.Image) -> PILImage.Image:
        mode = pil_image.mode
        if mode in ("L", "RGB", "RGBA"):
            return pil_image
        if mode in ("LA", "PA", "RGBa", "La") or (mode == "P" and "transparency" in pil_image.info):
            return pil_image.convert("RGBA")
        if mode == "1":
            return pil_image.convert("L")
        if mode.startswith("I;16"):
            # Rescale to 8 bits rather than clipping.
            return pil_image.convert("I").point(lambda value: value * (1 / 256)).convert("L")
        if mode in ("I", "F"):
            return pil_image.convert("L")
        return pil_image.convert("RGB")

    @staticmethod
    def _flatten(pil_image: PILImage.Image) -> PILImage.Image:
        if pil_image.mode != "RGBA":
            return pil_image
        background = PILImage.new("RGB", pil_image.size, (255, 255, 255))
        background.paste(pil_image, mask=pil_image.split()[-1])
        return background
