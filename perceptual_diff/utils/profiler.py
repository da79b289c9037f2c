"""Lightweight wall-clock timing for scan passes.

Provides:
    - timer(): Context manager that reports elapsed seconds to a sink

Used to measure:
    - DiffEngine comparison pass
    - DiffRenderer render pass

By default timings go to the module logger at DEBUG level, so they cost
nothing visible unless the CLI runs with --log-level DEBUG.
"""

import logging
import time
from contextlib import contextmanager
from typing import Callable, Optional

logger = logging.getLogger(__name__)


@contextmanager
def timer(name: str, sink: Optional[Callable[[str, float], None]] = None):
    """Context manager for wall-clock timing.

    Parameters
    ----------
    name : str
        Timer name (for logging/display)
    sink : Optional[Callable[[str, float], None]]
        Optional callback(name, elapsed_seconds); if None, logs at DEBUG

    Examples
    --------
    >>> with timer("compare"):
    ...     result = compare(ref, img, comparator)

    >>> timings = {}
    >>> with timer("render", sink=timings.__setitem__):
    ...     out = render_diff(ref, img, comparator)
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        if sink is not None:
            sink(name, elapsed)
        else:
            logger.debug(f"{name}: {elapsed:.3f} s")
