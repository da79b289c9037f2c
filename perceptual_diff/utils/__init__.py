"""Cross-cutting utilities (lowest dependency layer).

This package provides shared primitives for:
    - Color science: sRGB → Lab, CIEDE2000 (color)
    - Band partitioning and range conversions (compute)
    - Image and YAML I/O (fs)
    - Config validation (validators)
    - Unified logging (logging_config)
    - Timing (profiler)

No module in utils/ may import from upper layers (diff, cli).

Convenience imports:
    from perceptual_diff.utils import color, compute, fs, validators
    from perceptual_diff.utils.logging_config import setup_logging, get_logger
"""

from . import color
from . import compute
from . import fs
from . import logging_config
from . import profiler
from . import validators

from .logging_config import get_logger, push_context, setup_logging

__all__ = [
    # Modules
    'color',
    'compute',
    'fs',
    'logging_config',
    'profiler',
    'validators',
    # Direct exports
    'setup_logging',
    'get_logger',
    'push_context',
]
