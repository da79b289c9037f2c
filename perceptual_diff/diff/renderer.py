"""Diff renderer: paint an RGB raster highlighting mismatches.

Output is sized to the union of both inputs, (max H, max W, 3) uint8:
    - outside the overlap (x >= min W or y >= min H): highlight color
    - inside, matching pixels: image1's RGB (alpha dropped)
    - inside, differing pixels: highlight color

The highlight color defaults to ``HIGHLIGHT_COLOR`` = (200, 1, 1). Tools
that post-process diff images key on that exact value.

Pass the comparator that produced the DiffResult being visualized. With the
same comparator the highlighted overlap pixels are exactly the differing set,
so their bounding box equals ``DiffResult.bounding_box``.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence, Tuple

import numpy as np

from ..utils import compute
from ..utils.profiler import timer
from .comparators import PixelComparator
from .engine import _check_comparator, _check_partitioning, compare, overlap_bands
from .types import HIGHLIGHT_COLOR, DiffResult, InvalidArgumentError, as_pixel_buffer

logger = logging.getLogger(__name__)


def _highlight_array(highlight: Sequence[int]) -> np.ndarray:
    if len(highlight) < 3:
        raise InvalidArgumentError(f"highlight must have 3 channels, got {highlight!r}")
    rgb = [int(c) for c in highlight[:3]]
    if any(not 0 <= c <= 255 for c in rgb):
        raise InvalidArgumentError(f"highlight channels must be in [0, 255], got {rgb}")
    return np.asarray(rgb, dtype=np.uint8)


def render_diff(
    image1: Any,
    image2: Any,
    comparator: PixelComparator,
    *,
    highlight: Sequence[int] = HIGHLIGHT_COLOR,
    chunk_rows: Optional[int] = None,
    workers: int = 1
) -> np.ndarray:
    """Render the union-sized diff raster.

    Parameters
    ----------
    image1, image2 : np.ndarray or PIL.Image.Image
        Pixel buffers; image1 supplies the colors of matching pixels
    comparator : PixelComparator
        Same strategy instance that was passed to compare()
    highlight : Sequence[int]
        RGB color for differing and out-of-overlap pixels
    chunk_rows : int, optional
        Rows per band; None picks ~64k pixels per band
    workers : int
        Worker threads; each band writes only its own rows

    Returns
    -------
    np.ndarray
        (max H, max W, 3) uint8
    """
    img1 = as_pixel_buffer(image1, "image1")
    img2 = as_pixel_buffer(image2, "image2")
    _check_comparator(comparator)
    _check_partitioning(chunk_rows, workers)
    color = _highlight_array(highlight)

    height = max(img1.shape[0], img2.shape[0])
    width = max(img1.shape[1], img2.shape[1])
    out = np.empty((height, width, 3), dtype=np.uint8)
    out[...] = color

    overlap_w, _, bands = overlap_bands(img1, img2, chunk_rows)

    def paint(band: slice) -> None:
        block1 = img1[band, :overlap_w]
        mask = comparator.match_mask(block1, img2[band, :overlap_w])
        region = out[band, :overlap_w]
        region[mask] = block1[..., :3][mask]

    with timer("render"):
        compute.map_bands(paint, bands, workers)

    logger.debug(f"Rendered {width}x{height} diff with {comparator.describe()}")
    return out


def diff_images(
    image1: Any,
    image2: Any,
    comparator: PixelComparator,
    *,
    render: bool = False,
    highlight: Sequence[int] = HIGHLIGHT_COLOR,
    chunk_rows: Optional[int] = None,
    workers: int = 1
) -> Tuple[DiffResult, Optional[np.ndarray]]:
    """Compare and optionally render with one shared comparator.

    Returns
    -------
    (DiffResult, np.ndarray or None)
        The rendered raster is None unless render=True
    """
    img1 = as_pixel_buffer(image1, "image1")
    img2 = as_pixel_buffer(image2, "image2")
    result = compare(img1, img2, comparator, chunk_rows=chunk_rows, workers=workers)
    rendered = None
    if render:
        rendered = render_diff(
            img1, img2, comparator,
            highlight=highlight, chunk_rows=chunk_rows, workers=workers,
        )
    return result, rendered
