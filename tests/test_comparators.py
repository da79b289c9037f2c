"""Test pixel comparison strategies.

Tests for perceptual_diff.diff.comparators:
    - Exact-match fast path (tolerance 0, alpha ignored)
    - Strict threshold: floor(ΔE2000) < tolerance
    - Block mask agrees with scalar pixels_match
    - Tolerance validation (negative, NaN, inf, non-numeric)
    - Strategy selection from DiffConfig

Run:
    pytest tests/test_comparators.py -v
"""

import dataclasses
import math

import numpy as np
import pytest
import torch

from perceptual_diff.diff import (
    ExactComparator,
    InvalidArgumentError,
    PerceptualComparator,
    PixelComparator,
    comparator_from_config,
    exact_comparator,
    perceptual_comparator,
)
from perceptual_diff.utils import color
from perceptual_diff.utils.color import RgbColor
from perceptual_diff.utils.validators import DiffConfig


def floored_distance(p1, p2):
    return color.ciede2000(
        color.srgb8_to_lab_color(RgbColor(*p1[:3])),
        color.srgb8_to_lab_color(RgbColor(*p2[:3])),
    )


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture(params=["exact", "perceptual0", "perceptual5"])
def any_comparator(request):
    """Every strategy, including a perceptual one at tolerance 0."""
    return {
        "exact": exact_comparator(),
        "perceptual0": perceptual_comparator(0),
        "perceptual5": perceptual_comparator(5.0),
    }[request.param]


@pytest.fixture
def rng():
    return np.random.default_rng(2024)


# ============================================================================
# FAST PATH
# ============================================================================

@pytest.mark.parametrize("pixel", [(0, 0, 0), (255, 255, 255), (12, 200, 77), (1, 2, 3)])
def test_identical_pixels_always_match(any_comparator, pixel):
    """Channel-identical pixels match regardless of strategy or tolerance."""
    assert any_comparator.pixels_match(pixel, pixel)


def test_alpha_is_ignored(any_comparator):
    assert any_comparator.pixels_match((10, 20, 30, 255), (10, 20, 30, 0))
    assert any_comparator.pixels_match((10, 20, 30), (10, 20, 30, 17))


def test_alpha_ignored_in_block_mask(any_comparator, rng):
    rgb = rng.integers(0, 256, size=(4, 5, 3), dtype=np.uint8)
    alpha1 = np.full((4, 5, 1), 255, dtype=np.uint8)
    alpha2 = rng.integers(0, 256, size=(4, 5, 1), dtype=np.uint8)
    block1 = np.concatenate([rgb, alpha1], axis=2)
    block2 = np.concatenate([rgb, alpha2], axis=2)
    assert any_comparator.match_mask(block1, block2).all()


def test_tolerance_zero_behaves_like_exact():
    """At tolerance 0 even imperceptible changes differ (nothing is < 0)."""
    comp = perceptual_comparator(0.0)
    assert not comp.pixels_match((0, 0, 0), (0, 0, 1))
    assert not comp.pixels_match((100, 100, 100), (100, 100, 101))


def test_exact_comparator_rejects_any_change():
    comp = exact_comparator()
    assert not comp.pixels_match((0, 0, 0), (0, 0, 1))
    assert not comp.pixels_match((255, 255, 255), (255, 254, 255))


# ============================================================================
# THRESHOLD
# ============================================================================

def test_black_white_differ_at_tolerance_2():
    assert not perceptual_comparator(2).pixels_match((0, 0, 0), (255, 255, 255))


def test_threshold_is_strict():
    """Match requires floor(ΔE) strictly below tolerance."""
    p1, p2 = (100, 100, 100), (112, 108, 100)
    d = floored_distance(p1, p2)
    assert d >= 1.0
    assert not perceptual_comparator(d).pixels_match(p1, p2)
    assert perceptual_comparator(d + 0.5).pixels_match(p1, p2)


def test_flooring_lets_fractional_distance_pass():
    """A pair with 0 < ΔE < 1 floors to 0 and matches at tolerance 1."""
    p1, p2 = (128, 128, 128), (128, 128, 129)
    raw = color.delta_e2000(
        color.srgb8_to_lab(torch.tensor(p1, dtype=torch.uint8).view(3, 1, 1)),
        color.srgb8_to_lab(torch.tensor(p2, dtype=torch.uint8).view(3, 1, 1)),
    ).item()
    assert 0.0 < raw < 1.0
    assert perceptual_comparator(1).pixels_match(p1, p2)
    assert not perceptual_comparator(0).pixels_match(p1, p2)


def test_large_tolerance_matches_everything(rng):
    block1 = rng.integers(0, 256, size=(6, 6, 3), dtype=np.uint8)
    block2 = rng.integers(0, 256, size=(6, 6, 3), dtype=np.uint8)
    assert perceptual_comparator(1000).match_mask(block1, block2).all()


# ============================================================================
# BLOCK / SCALAR AGREEMENT
# ============================================================================

@pytest.mark.parametrize("tolerance", [0.0, 1.0, 3.0, 10.0])
def test_match_mask_agrees_with_pixels_match(rng, tolerance):
    comp = perceptual_comparator(tolerance)
    block1 = rng.integers(0, 256, size=(8, 8, 3), dtype=np.uint8)
    noise = rng.integers(-6, 7, size=(8, 8, 3))
    block2 = np.clip(block1.astype(int) + noise, 0, 255).astype(np.uint8)
    block2[0, 0] = block1[0, 0]

    mask = comp.match_mask(block1, block2)
    assert mask.shape == (8, 8)
    assert mask.dtype == bool
    for y in range(8):
        for x in range(8):
            assert mask[y, x] == comp.pixels_match(tuple(block1[y, x]), tuple(block2[y, x]))


def test_match_mask_does_not_modify_inputs(rng):
    block1 = rng.integers(0, 256, size=(3, 3, 3), dtype=np.uint8)
    block2 = rng.integers(0, 256, size=(3, 3, 3), dtype=np.uint8)
    copy1, copy2 = block1.copy(), block2.copy()
    perceptual_comparator(4).match_mask(block1, block2)
    np.testing.assert_array_equal(block1, copy1)
    np.testing.assert_array_equal(block2, copy2)


def test_match_mask_empty_block(any_comparator):
    empty = np.zeros((0, 4, 3), dtype=np.uint8)
    assert any_comparator.match_mask(empty, empty).shape == (0, 4)


# ============================================================================
# VALIDATION
# ============================================================================

@pytest.mark.parametrize("bad", [-1, -0.001, math.nan, math.inf, -math.inf])
def test_invalid_tolerance_rejected(bad):
    with pytest.raises(InvalidArgumentError):
        perceptual_comparator(bad)


@pytest.mark.parametrize("bad", ["2", None, True])
def test_non_numeric_tolerance_rejected(bad):
    with pytest.raises(InvalidArgumentError):
        PerceptualComparator(bad)


def test_invalid_argument_error_is_value_error():
    with pytest.raises(ValueError):
        perceptual_comparator(-5)


def test_integer_tolerance_stored_as_float():
    comp = perceptual_comparator(3)
    assert comp.tolerance == 3.0
    assert isinstance(comp.tolerance, float)


def test_numpy_tolerance_accepted():
    assert perceptual_comparator(np.float32(2.5)).tolerance == 2.5


@pytest.mark.parametrize("pixel", [(0, 0), (0, 0, 0, 0, 0), (256, 0, 0), (-1, 0, 0)])
def test_invalid_pixel_rejected(pixel):
    with pytest.raises(InvalidArgumentError):
        exact_comparator().pixels_match(pixel, (0, 0, 0))


def test_comparators_are_immutable():
    comp = perceptual_comparator(2)
    with pytest.raises(dataclasses.FrozenInstanceError):
        comp.tolerance = 10


def test_comparators_are_value_objects():
    assert perceptual_comparator(2) == perceptual_comparator(2.0)
    assert exact_comparator() == ExactComparator()
    assert isinstance(exact_comparator(), PixelComparator)


def test_pixel_comparator_is_abstract():
    with pytest.raises(TypeError):
        PixelComparator()


# ============================================================================
# CONFIG
# ============================================================================

def test_comparator_from_config_perceptual():
    comp = comparator_from_config(DiffConfig(tolerance=2.5))
    assert isinstance(comp, PerceptualComparator)
    assert comp.tolerance == 2.5


def test_comparator_from_config_exact():
    comp = comparator_from_config(DiffConfig(mode="exact", tolerance=50))
    assert isinstance(comp, ExactComparator)


def test_describe():
    assert exact_comparator().describe() == "exact"
    assert perceptual_comparator(2).describe() == "perceptual(tolerance=2)"
