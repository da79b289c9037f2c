"""Image comparison core: comparators, engine, renderer.

Layering: cli → diff → utils. Nothing in diff/ performs file I/O.

Convenience imports:
    from perceptual_diff.diff import compare, render_diff, perceptual_comparator
"""

from .comparators import (
    ExactComparator,
    PerceptualComparator,
    PixelComparator,
    comparator_from_config,
    exact_comparator,
    perceptual_comparator,
)
from .engine import compare, differing_coordinates
from .renderer import diff_images, render_diff
from .types import (
    HIGHLIGHT_COLOR,
    BoundingBox,
    Coordinate,
    DiffResult,
    InvalidArgumentError,
    LabColor,
    RgbColor,
    as_pixel_buffer,
)

__all__ = [
    'BoundingBox',
    'Coordinate',
    'DiffResult',
    'ExactComparator',
    'HIGHLIGHT_COLOR',
    'InvalidArgumentError',
    'LabColor',
    'PerceptualComparator',
    'PixelComparator',
    'RgbColor',
    'as_pixel_buffer',
    'comparator_from_config',
    'compare',
    'diff_images',
    'differing_coordinates',
    'exact_comparator',
    'perceptual_comparator',
    'render_diff',
]
