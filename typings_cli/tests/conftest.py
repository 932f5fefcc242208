"""Shared fixtures for CLI tests."""

from __future__ import annotations

from collections.abc import Iterator
from unittest.mock import patch

import pytest


@pytest.fixture(autouse=True)
def _no_logging_setup() -> Iterator[None]:
    """Keep commands from replacing the root logger's handlers during tests."""
    with patch("typings_engine.logging_config.configure_logging"):
        yield
