"""Diff engine: classify every overlap pixel and aggregate the result.

Algorithm
---------
1. Validate both buffers and the partitioning parameters.
2. Restrict the scan to the overlap ``min(W1, W2) x min(H1, H2)``.
3. Split the overlap into row bands; each band returns its differing-pixel
   count and partial bounding box.
4. Merge partial boxes by elementwise min/max.

Size policy
-----------
Pixels outside the overlap are never compared. A size mismatch alone makes
``equal`` False (``extent_mismatch=True``) but does not extend the bounding
box, which only ever describes differing overlap pixels.

Results do not depend on band height or worker count.
"""

from __future__ import annotations

import logging
import numbers
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

import numpy as np

from ..utils import compute
from ..utils.profiler import timer
from .comparators import PixelComparator
from .types import (
    BoundingBox,
    Coordinate,
    DiffResult,
    InvalidArgumentError,
    as_pixel_buffer,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ChunkResult:
    """Per-band partial result."""

    differing: int
    bounding_box: Optional[BoundingBox]


def _check_comparator(comparator: Any) -> None:
    if not isinstance(comparator, PixelComparator):
        raise InvalidArgumentError(
            f"comparator must be a PixelComparator, got {type(comparator).__name__}"
        )


def _check_positive_int(value: Any, name: str) -> None:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral) or value < 1:
        raise InvalidArgumentError(f"{name} must be a positive integer, got {value!r}")


def _check_partitioning(chunk_rows: Optional[int], workers: int) -> None:
    if chunk_rows is not None:
        _check_positive_int(chunk_rows, "chunk_rows")
    _check_positive_int(workers, "workers")


def overlap_bands(
    img1: np.ndarray,
    img2: np.ndarray,
    chunk_rows: Optional[int] = None
) -> Tuple[int, int, List[slice]]:
    """Overlap width, height and the row bands covering it."""
    width = min(img1.shape[1], img2.shape[1])
    height = min(img1.shape[0], img2.shape[0])
    if width == 0 or height == 0:
        return width, height, []
    rows = int(chunk_rows) if chunk_rows is not None else compute.choose_band_rows(width)
    return width, height, compute.row_bands(height, rows)


def _size(img: np.ndarray) -> Tuple[int, int]:
    return int(img.shape[1]), int(img.shape[0])


def compare(
    image1: Any,
    image2: Any,
    comparator: PixelComparator,
    *,
    chunk_rows: Optional[int] = None,
    workers: int = 1
) -> DiffResult:
    """Compare two images pixel by pixel over their overlap.

    Parameters
    ----------
    image1, image2 : np.ndarray or PIL.Image.Image
        Pixel buffers (see types.as_pixel_buffer); sizes may differ
    comparator : PixelComparator
        Strategy deciding per-pixel equality
    chunk_rows : int, optional
        Rows per band; None picks ~64k pixels per band
    workers : int
        Worker threads; 1 runs on the calling thread

    Returns
    -------
    DiffResult
        equal is True iff no overlap pixel differs and the sizes match

    Raises
    ------
    InvalidArgumentError
        On invalid buffers, comparator or partitioning parameters
    """
    img1 = as_pixel_buffer(image1, "image1")
    img2 = as_pixel_buffer(image2, "image2")
    _check_comparator(comparator)
    _check_partitioning(chunk_rows, workers)

    width, _, bands = overlap_bands(img1, img2, chunk_rows)

    def scan(band: slice) -> ChunkResult:
        mask = comparator.match_mask(img1[band, :width], img2[band, :width])
        ys, xs = np.nonzero(~mask)
        if ys.size == 0:
            return ChunkResult(0, None)
        offset = band.start
        box = BoundingBox(
            int(xs.min()), int(ys.min()) + offset, int(xs.max()), int(ys.max()) + offset
        )
        return ChunkResult(int(ys.size), box)

    with timer("compare"):
        chunks = compute.map_bands(scan, bands, workers)

    differing = 0
    bounding_box: Optional[BoundingBox] = None
    for chunk in chunks:
        differing += chunk.differing
        if chunk.bounding_box is not None:
            bounding_box = chunk.bounding_box.merge(bounding_box)

    size1, size2 = _size(img1), _size(img2)
    extent_mismatch = size1 != size2
    result = DiffResult(
        equal=differing == 0 and not extent_mismatch,
        bounding_box=bounding_box,
        differing_pixels=differing,
        extent_mismatch=extent_mismatch,
        size1=size1,
        size2=size2,
    )
    logger.debug(
        f"Compared {size1[0]}x{size1[1]} vs {size2[0]}x{size2[1]} with {comparator.describe()}: "
        f"{differing} differing pixels in {len(bands)} bands, box={bounding_box}"
    )
    return result


def differing_coordinates(
    image1: Any,
    image2: Any,
    comparator: PixelComparator
) -> List[Coordinate]:
    """All differing overlap coordinates, sorted by (y, x).

    Diagnostic helper; use compare() when only the verdict and box are needed.
    """
    img1 = as_pixel_buffer(image1, "image1")
    img2 = as_pixel_buffer(image2, "image2")
    _check_comparator(comparator)

    width = min(img1.shape[1], img2.shape[1])
    height = min(img1.shape[0], img2.shape[0])
    mask = comparator.match_mask(img1[:height, :width], img2[:height, :width])
    ys, xs = np.nonzero(~mask)
    return [Coordinate(int(x), int(y)) for y, x in zip(ys, xs)]
