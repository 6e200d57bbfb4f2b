"""Pytest configuration and fixtures."""

import pytest
import pytest_asyncio

from stockservice.config import Settings
from stockservice.prices.registry import SymbolStreamRegistry


@pytest_asyncio.fixture
async def registry():
    """A registry ticking every 0.1s, stopped after the test."""
    reg = SymbolStreamRegistry(interval=0.1)
    yield reg
    await reg.stop()


@pytest.fixture
def fast_settings():
    """Settings with a short tick interval for endpoint tests."""
    return Settings(tick_interval=0.05)
