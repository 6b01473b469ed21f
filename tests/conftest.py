"""Shared fixtures."""
from __future__ import annotations

import logging

import pytest
import structlog


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers bound to a previous test's captured streams."""
    yield
    structlog.reset_defaults()
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
