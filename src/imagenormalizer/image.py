"""In-memory image value and the geometry types the normalizer works in.

An ``Image`` is the raw raster buffer exactly as decoded, plus the EXIF
orientation tag that says how to present it upright and the device scale
that relates pixels to points. Nothing here touches a codec.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import StrEnum

import numpy as np
from numpy.typing import NDArray

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class Orientation(StrEnum):
    """EXIF orientation of a stored buffer, named by where "up" ended up."""

    UP = "up"
    UP_MIRRORED = "up_mirrored"
    DOWN = "down"
    DOWN_MIRRORED = "down_mirrored"
    LEFT_MIRRORED = "left_mirrored"
    RIGHT = "right"
    RIGHT_MIRRORED = "right_mirrored"
    LEFT = "left"

    @classmethod
    def from_exif(cls, value: object) -> Orientation:
        """Map an EXIF orientation value (1-8) to a member.

        Anything outside the EXIF range, including a missing tag, reads as UP.
        """
        if isinstance(value, bool) or not isinstance(value, int):
            return cls.UP
        return _EXIF_TO_ORIENTATION.get(value, cls.UP)

    @property
    def exif_value(self) -> int:
        return _ORIENTATION_TO_EXIF[self]

    @property
    def swaps_dimensions(self) -> bool:
        """True when presenting the buffer upright turns it by 90 degrees."""
        return self in _ROTATED_90


_EXIF_TO_ORIENTATION: dict[int, Orientation] = {
    1: Orientation.UP,
    2: Orientation.UP_MIRRORED,
    3: Orientation.DOWN,
    4: Orientation.DOWN_MIRRORED,
    5: Orientation.LEFT_MIRRORED,
    6: Orientation.RIGHT,
    7: Orientation.RIGHT_MIRRORED,
    8: Orientation.LEFT,
}
_ORIENTATION_TO_EXIF: dict[Orientation, int] = {v: k for k, v in _EXIF_TO_ORIENTATION.items()}
_ROTATED_90 = frozenset(
    {
        Orientation.LEFT,
        Orientation.LEFT_MIRRORED,
        Orientation.RIGHT,
        Orientation.RIGHT_MIRRORED,
    }
)


class InterpolationQuality(StrEnum):
    """Resampling quality for redraws, cheapest first."""

    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    DEFAULT = "default"


class SizeUnit(StrEnum):
    POINTS = "points"
    PIXELS = "pixels"


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Size:
    """A width x height pair. The unit is whatever the caller says it is."""

    width: float
    height: float

    @property
    def is_empty(self) -> bool:
        if not (math.isfinite(self.width) and math.isfinite(self.height)):
            return True
        return self.width <= 0 or self.height <= 0

    @property
    def max_dimension(self) -> float:
        return max(self.width, self.height)

    def scaled(self, factor: float) -> Size:
        return Size(self.width * factor, self.height * factor)

    def transposed(self) -> Size:
        return Size(self.height, self.width)


@dataclass(frozen=True)
class DrawTransform:
    """How a codec should redraw a buffer: undo ``orientation``, then resample."""

    orientation: Orientation = Orientation.UP
    quality: InterpolationQuality = InterpolationQuality.DEFAULT


# ---------------------------------------------------------------------------
# Image value
# ---------------------------------------------------------------------------

_CHANNELS_TO_MODE: dict[int, str] = {3: "RGB", 4: "RGBA"}


@dataclass(frozen=True, eq=False)
class Image:
    """A decoded raster buffer with its orientation tag and device scale.

    ``width`` and ``height`` describe the buffer as stored. ``pixel_size``
    and ``size`` describe the image as presented, i.e. after the orientation
    tag has been applied, in pixels and points respectively.

    Equality is identity: two images are "the same" only when an operation
    handed back the object it was given.
    """

    pixels: NDArray[np.uint8]
    orientation: Orientation = Orientation.UP
    scale: float = field(default=1.0)

    def __post_init__(self) -> None:
        if self.pixels.dtype != np.uint8:
            raise ValueError(f"Expected uint8 pixels, got {self.pixels.dtype}")
        if self.pixels.ndim not in (2, 3):
            raise ValueError(f"Expected an HxW or HxWxC array, got shape {self.pixels.shape}")
        if self.pixels.ndim == 3 and self.pixels.shape[2] not in _CHANNELS_TO_MODE:
            raise ValueError(f"Unsupported channel count: {self.pixels.shape[2]}")
        if not (math.isfinite(self.scale) and self.scale > 0):
            raise ValueError(f"Scale must be positive, got {self.scale}")

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def mode(self) -> str:
        """Pixel format in Pillow mode naming: ``L``, ``RGB`` or ``RGBA``."""
        if self.pixels.ndim == 2:
            return "L"
        return _CHANNELS_TO_MODE[self.pixels.shape[2]]

    @property
    def pixel_size(self) -> Size:
        stored = Size(self.width, self.height)
        return stored.transposed() if self.orientation.swaps_dimensions else stored

    @property
    def size(self) -> Size:
        return self.pixel_size.scaled(1.0 / self.scale)

    @property
    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0
