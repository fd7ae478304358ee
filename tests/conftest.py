"""
Pytest configuration for forcelayout tests.

This file ensures src/ is in sys.path for all tests and that every test
starts with a clean Logger.
"""

import sys
import os

import pytest

# Add src/ to sys.path for imports
_src_root = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "src")
if _src_root not in sys.path:
    sys.path.insert(0, _src_root)

from forcelayout.logger import Logger, MemoryStrategy  # noqa: E402


@pytest.fixture(autouse=True)
def reset_logger():
    """No log storage by default; restore the global Logger after each test."""
    Logger.set_log_storage_strategy(None)
    Logger.is_logging_enabled = True
    yield
    Logger.set_log_storage_strategy(None)
    Logger.is_logging_enabled = True


@pytest.fixture
def memory_log():
    """Route Logger records into a MemoryStrategy for assertions."""
    strategy = MemoryStrategy()
    Logger.set_log_storage_strategy(strategy)
    return strategy
