"""Shared fixtures: settings are cached per process, so reset them around each test."""
import pytest

from alnkit.config import get_settings
from alnkit.schemas import Alignment, Sequence


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings_env(monkeypatch):
    """Set ALNKIT_* variables and drop the cached settings."""

    def _set(**values):
        for key, value in values.items():
            monkeypatch.setenv("ALNKIT_" + key.upper(), str(value))
        get_settings.cache_clear()

    return _set


def make_alignment(*rows) -> Alignment:
    """Helper: build an Alignment from (name, data) pairs."""
    return Alignment.from_sequences(Sequence(name=name, data=data) for name, data in rows)
