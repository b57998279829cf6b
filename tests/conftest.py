"""Shared pytest fixtures for scriptseal tests."""

from __future__ import annotations

from collections.abc import Generator

import pytest

from scriptseal.config import Settings, get_settings
from tests.helpers.fakes import RecordingFinisher, RecordingTransformer


@pytest.fixture
def transformer() -> RecordingTransformer:
    return RecordingTransformer()


@pytest.fixture
def finisher() -> RecordingFinisher:
    return RecordingFinisher()


@pytest.fixture
def settings() -> Settings:
    """Isolated settings: no .env file, defaults only."""
    return Settings(_env_file=None)  # type: ignore[call-arg]


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> Generator[None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
