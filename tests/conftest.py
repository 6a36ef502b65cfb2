"""
Pytest configuration and fixtures for the test suite.

This module contains shared fixtures used across all tests.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from fakes import FIXED_NOW

from core.config import get_settings

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> None:
    """Reset cached settings between tests."""
    get_settings.cache_clear()


@pytest.fixture()
def fixed_clock() -> Callable[[], datetime]:
    """Return a clock frozen at FIXED_NOW."""
    return lambda: FIXED_NOW

