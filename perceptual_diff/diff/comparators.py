"""Pixel comparison strategies.

A comparator decides whether two pixels are "the same". The engine and the
renderer must be handed the same instance for one run so that the rendered
highlight agrees with the reported bounding box.

Strategies
----------
``ExactComparator``
    Channel-identical RGB only.
``PerceptualComparator``
    Channel-identical RGB, or floored CIEDE2000 distance strictly below
    ``tolerance``. Only non-identical pixels are converted to Lab.

Alpha is carried in RGBA buffers but never compared. Comparators are frozen
dataclasses with no mutable state, so one instance may be shared by all
worker threads.
"""

from __future__ import annotations

import math
import numbers
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from ..utils import color, compute
from ..utils.validators import DiffConfig
from .types import InvalidArgumentError


def _rgb(block: np.ndarray) -> np.ndarray:
    return block[..., :3]


def _identical(block1: np.ndarray, block2: np.ndarray) -> np.ndarray:
    return np.all(_rgb(block1) == _rgb(block2), axis=-1)


def _pixel_block(pixel: Sequence[int], name: str) -> np.ndarray:
    if len(pixel) not in (3, 4):
        raise InvalidArgumentError(f"{name} must have 3 or 4 channels, got {len(pixel)}")
    for value in pixel:
        if not 0 <= int(value) <= 255:
            raise InvalidArgumentError(f"{name} channel {value} out of range [0, 255]")
    return np.asarray(pixel, dtype=np.uint8).reshape(1, 1, len(pixel))


class PixelComparator(ABC):
    """Strategy interface: scalar and block-wise pixel matching."""

    __slots__ = ()

    @abstractmethod
    def match_mask(self, block1: np.ndarray, block2: np.ndarray) -> np.ndarray:
        """Boolean (h, w) mask, True where the pixels are considered equal.

        Parameters
        ----------
        block1, block2 : np.ndarray
            uint8 blocks of identical (h, w) with 3 or 4 channels each
        """

    def pixels_match(self, p1: Sequence[int], p2: Sequence[int]) -> bool:
        """Compare one RGB/RGBA pixel pair (alpha ignored)."""
        block1 = _pixel_block(p1, "p1")[..., :3]
        block2 = _pixel_block(p2, "p2")[..., :3]
        return bool(self.match_mask(block1, block2)[0, 0])

    def describe(self) -> str:
        return type(self).__name__


@dataclass(frozen=True, slots=True)
class ExactComparator(PixelComparator):
    """Pixels match only when their RGB channels are identical."""

    def match_mask(self, block1: np.ndarray, block2: np.ndarray) -> np.ndarray:
        return _identical(block1, block2)

    def describe(self) -> str:
        return "exact"


@dataclass(frozen=True, slots=True)
class PerceptualComparator(PixelComparator):
    """Pixels match when identical or when floor(ΔE2000) < tolerance.

    Parameters
    ----------
    tolerance : float
        Non-negative, finite threshold. 0 behaves like exact matching.
    """

    tolerance: float

    def __post_init__(self) -> None:
        tol = self.tolerance
        if isinstance(tol, bool) or not isinstance(tol, numbers.Real):
            raise InvalidArgumentError(f"tolerance must be a number, got {tol!r}")
        tol = float(tol)
        if not math.isfinite(tol) or tol < 0:
            raise InvalidArgumentError(f"tolerance must be finite and >= 0, got {tol}")
        object.__setattr__(self, "tolerance", tol)

    def match_mask(self, block1: np.ndarray, block2: np.ndarray) -> np.ndarray:
        mask = _identical(block1, block2)
        pending = ~mask
        if not pending.any():
            return mask

        lab1 = color.srgb8_to_lab(compute.pixels_to_tensor(_rgb(block1)[pending]))
        lab2 = color.srgb8_to_lab(compute.pixels_to_tensor(_rgb(block2)[pending]))
        distance = color.perceptual_distance(lab1, lab2).view(-1).numpy()
        mask[pending] = distance < self.tolerance
        return mask

    def describe(self) -> str:
        return f"perceptual(tolerance={self.tolerance:g})"


def exact_comparator() -> ExactComparator:
    """Comparator that accepts only channel-identical pixels."""
    return ExactComparator()


def perceptual_comparator(tolerance: float = 0.0) -> PerceptualComparator:
    """Comparator using CIEDE2000 with the given tolerance.

    Raises
    ------
    InvalidArgumentError
        If tolerance is negative, NaN or infinite
    """
    return PerceptualComparator(tolerance)


def comparator_from_config(cfg: DiffConfig) -> PixelComparator:
    """Pick the strategy named by cfg.mode."""
    if cfg.mode == "exact":
        return exact_comparator()
    return perceptual_comparator(cfg.tolerance)
