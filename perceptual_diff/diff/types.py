"""Value types shared by the diff engine, renderer and CLI.

Every type here is immutable. A DiffResult with ``bounding_box is None``
means no pixel inside the overlap differed; there are no sentinel
rectangles.

Pixel buffers are plain numpy arrays: uint8, shape (H, W, 3) or (H, W, 4),
row-major. as_pixel_buffer() is the single gate that validates them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, NamedTuple, Optional, Tuple

import numpy as np
from PIL import Image

from ..utils.color import LabColor, RgbColor
from ..utils.fs import pil_to_array

__all__ = [
    "BoundingBox",
    "Coordinate",
    "DiffResult",
    "HIGHLIGHT_COLOR",
    "InvalidArgumentError",
    "LabColor",
    "RgbColor",
    "as_pixel_buffer",
]


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class InvalidArgumentError(ValueError):
    """Raised for invalid comparison inputs (tolerance, buffers, partitioning)."""

    pass


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

HIGHLIGHT_COLOR = RgbColor(200, 1, 1)
"""Color painted on differing and out-of-overlap pixels of a rendered diff."""


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------


class Coordinate(NamedTuple):
    """Pixel position (x to the right, y down)."""
    x: int
    y: int


@dataclass(frozen=True, slots=True)
class BoundingBox:
    """Inclusive pixel rectangle around a non-empty set of coordinates."""

    xmin: int
    ymin: int
    xmax: int
    ymax: int

    def __post_init__(self) -> None:
        if self.xmin > self.xmax or self.ymin > self.ymax:
            raise ValueError(f"Inverted bounding box: {self}")

    @classmethod
    def from_coordinates(cls, coords: Iterable[Tuple[int, int]]) -> BoundingBox:
        """Tightest box around coords; raises ValueError when coords is empty."""
        xs, ys = [], []
        for x, y in coords:
            xs.append(int(x))
            ys.append(int(y))
        if not xs:
            raise ValueError("Cannot build a bounding box from an empty coordinate set")
        return cls(min(xs), min(ys), max(xs), max(ys))

    def merge(self, other: Optional[BoundingBox]) -> BoundingBox:
        """Elementwise min/max union with another box (None is a no-op)."""
        if other is None:
            return self
        return BoundingBox(
            min(self.xmin, other.xmin),
            min(self.ymin, other.ymin),
            max(self.xmax, other.xmax),
            max(self.ymax, other.ymax),
        )

    @property
    def width(self) -> int:
        return self.xmax - self.xmin + 1

    @property
    def height(self) -> int:
        return self.ymax - self.ymin + 1

    def contains(self, x: int, y: int) -> bool:
        return self.xmin <= x <= self.xmax and self.ymin <= y <= self.ymax

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return (self.xmin, self.ymin, self.xmax, self.ymax)


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DiffResult:
    """Outcome of one comparison.

    Parameters
    ----------
    equal : bool
        True iff no overlap pixel differed and both extents are identical
    bounding_box : BoundingBox or None
        Box around differing overlap pixels; None when there are none
    differing_pixels : int
        Number of differing overlap pixels
    extent_mismatch : bool
        Image sizes differ (forces equal=False on its own)
    size1, size2 : (width, height)
        Sizes of the compared images
    """

    equal: bool
    bounding_box: Optional[BoundingBox]
    differing_pixels: int = 0
    extent_mismatch: bool = False
    size1: Tuple[int, int] = (0, 0)
    size2: Tuple[int, int] = (0, 0)

    def to_dict(self) -> Dict[str, Any]:
        box = self.bounding_box
        return {
            "equal": self.equal,
            "bounding_box": None if box is None else {
                "xmin": box.xmin, "ymin": box.ymin, "xmax": box.xmax, "ymax": box.ymax,
            },
            "differing_pixels": self.differing_pixels,
            "extent_mismatch": self.extent_mismatch,
            "size1": {"width": self.size1[0], "height": self.size1[1]},
            "size2": {"width": self.size2[0], "height": self.size2[1]},
        }


# ---------------------------------------------------------------------------
# Pixel buffers
# ---------------------------------------------------------------------------


def as_pixel_buffer(img: Any, name: str = "image") -> np.ndarray:
    """Validate and normalize an image into an (H, W, 3|4) uint8 array.

    Accepts numpy arrays of shape (H, W), (H, W, 1), (H, W, 3), (H, W, 4)
    and Pillow images. Grayscale is broadcast to RGB. Arrays are not copied
    when already in the target layout.

    Raises
    ------
    InvalidArgumentError
        On non-uint8 dtype or unsupported shape
    """
    if isinstance(img, Image.Image):
        return pil_to_array(img)
    if not isinstance(img, np.ndarray):
        raise InvalidArgumentError(
            f"{name} must be a numpy array or PIL image, got {type(img).__name__}"
        )
    if img.dtype != np.uint8:
        raise InvalidArgumentError(f"{name} must have dtype uint8, got {img.dtype}")
    if img.ndim == 2:
        img = img[:, :, None]
    if img.ndim != 3 or img.shape[2] not in (1, 3, 4):
        raise InvalidArgumentError(
            f"{name} must have shape (H, W), (H, W, 1), (H, W, 3) or (H, W, 4), got {img.shape}"
        )
    if img.shape[2] == 1:
        img = np.repeat(img, 3, axis=2)
    return img
