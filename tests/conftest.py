"""Shared fixtures for the perceptual_diff test suite."""

import logging
from pathlib import Path

import numpy as np
import pytest

from perceptual_diff.utils import logging_config


@pytest.fixture(scope="session")
def project_root():
    """Project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo setup_logging() and context pushes made by a test."""
    yield
    root = logging.getLogger()
    for handler in logging_config._installed_handlers:
        root.removeHandler(handler)
        handler.close()
    logging_config._installed_handlers.clear()
    logging_config.pop_context()
    logging.captureWarnings(False)
    root.setLevel(logging.WARNING)
