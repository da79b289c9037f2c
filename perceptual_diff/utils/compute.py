"""Numerics and work partitioning for pixel scans.

Core utilities:
    - Range conversion: to_0_1() converts uint8 [0,255] → float64 [0,1]
    - Pixel packing: pixels_to_tensor() turns (N, 3) uint8 rows into (3, N, 1)
    - Band partitioning: choose_band_rows(), row_bands()
    - Band execution: map_bands() runs a per-band function serially or on a
      thread pool, preserving band order in the returned list

Invariants:
    - Bands are disjoint, contiguous and cover [0, height) exactly
    - map_bands() output order never depends on scheduling
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, TypeVar

import numpy as np
import torch

T = TypeVar("T")

# Pixels per band when the caller does not choose a band height
DEFAULT_BAND_PIXELS = 1 << 16


def to_0_1(x: torch.Tensor) -> torch.Tensor:
    """Convert a uint8-range image tensor [0, 255] to float64 in [0, 1]."""
    return x.to(torch.float64) / 255.0


def pixels_to_tensor(pixels: np.ndarray) -> torch.Tensor:
    """Pack (N, 3) pixel rows into a channel-first (3, N, 1) tensor.

    Parameters
    ----------
    pixels : np.ndarray
        Pixel rows, shape (N, 3)

    Returns
    -------
    torch.Tensor
        Tensor of shape (3, N, 1), same dtype as input
    """
    if pixels.ndim != 2 or pixels.shape[1] != 3:
        raise ValueError(f"Expected pixel rows of shape (N, 3), got {pixels.shape}")
    channels_first = np.ascontiguousarray(pixels.T)
    return torch.from_numpy(channels_first).view(3, pixels.shape[0], 1)


def choose_band_rows(width: int, target_pixels: int = DEFAULT_BAND_PIXELS) -> int:
    """Heuristic band height so each band holds about target_pixels pixels.

    Parameters
    ----------
    width : int
        Row width in pixels
    target_pixels : int
        Desired pixels per band

    Returns
    -------
    int
        Band height, at least 1
    """
    return max(1, target_pixels // max(1, width))


def row_bands(height: int, band_rows: int) -> List[slice]:
    """Split [0, height) into consecutive row slices of band_rows rows.

    Parameters
    ----------
    height : int
        Number of rows to cover
    band_rows : int
        Rows per band (last band may be shorter)

    Returns
    -------
    list[slice]
        Row slices in ascending order; empty when height == 0
    """
    if band_rows < 1:
        raise ValueError(f"band_rows must be >= 1, got {band_rows}")
    return [slice(start, min(start + band_rows, height)) for start in range(0, height, band_rows)]


def map_bands(
    fn: Callable[[slice], T],
    bands: List[slice],
    workers: int = 1
) -> List[T]:
    """Apply fn to each band, serially or on a thread pool.

    Parameters
    ----------
    fn : Callable[[slice], T]
        Per-band work; must only touch state owned by its band
    bands : list[slice]
        Bands from row_bands()
    workers : int
        Thread count; 1 runs on the calling thread

    Returns
    -------
    list[T]
        Results in band order

    Notes
    -----
    Exceptions raised by fn propagate to the caller.
    """
    if workers <= 1 or len(bands) <= 1:
        return [fn(band) for band in bands]
    with ThreadPoolExecutor(max_workers=min(workers, len(bands))) as pool:
        return list(pool.map(fn, bands))
