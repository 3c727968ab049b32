"""Pytest configuration"""

import sys
from datetime import datetime
from pathlib import Path

import pytest

# src path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from messenger_sales_bot.core.config import ENV_OVERRIDES  # noqa: E402

# Monday, mid-day, well before the end-of-year rules kick in
REFERENCE_NOW = datetime(2026, 10, 19, 12, 0)


@pytest.fixture(autouse=True)
def _clean_signal_env(monkeypatch):
    """Keep developer environment variables out of config tests."""
    for name in ENV_OVERRIDES:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def reference_now() -> datetime:
    return REFERENCE_NOW
