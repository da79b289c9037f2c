"""Perceptual Diff: CIEDE2000-based image comparison.

Compares two decoded raster images under a perceptual tolerance, reports the
bounding box of differing pixels and renders a highlight diff image.

Architecture layers (strict one-way dependency):
    cli.py → diff/{engine,renderer,comparators,types} → utils/

Key invariants:
    - Pixel buffers are uint8 (H, W, 3|4) numpy arrays, alpha never compared
    - Channel-identical pixels always match, whatever the tolerance
    - Distances are floored CIEDE2000 values; match means distance < tolerance
    - Only the overlap is compared; differing sizes alone make images unequal
    - YAML-only configs (configs/diff.v1.yaml)
"""

__version__ = "1.0.0"

from .diff import (
    HIGHLIGHT_COLOR,
    BoundingBox,
    DiffResult,
    InvalidArgumentError,
    compare,
    diff_images,
    exact_comparator,
    perceptual_comparator,
    render_diff,
)

__all__ = [
    '__version__',
    'BoundingBox',
    'DiffResult',
    'HIGHLIGHT_COLOR',
    'InvalidArgumentError',
    'compare',
    'diff_images',
    'exact_comparator',
    'perceptual_comparator',
    'render_diff',
]
