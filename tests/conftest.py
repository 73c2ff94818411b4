"""Pytest configuration and shared fixtures.

Usage Guide:
- For pipeline/client tests: script responses with the ``mock_api`` fixture
  and build clients with ``settings`` (fast retries, no .env)
- For schema and diff tests: use the payload dicts in tests.fixtures
"""

import pytest

from prc_client.config import Settings, get_settings
from tests.fixtures.mock_api import MockAPI, make_settings


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    """Settings are lru-cached; keep env changes from leaking between tests."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    """Test settings: fake key, mock base URL, millisecond backoff."""
    return make_settings()


@pytest.fixture
def mock_api() -> MockAPI:
    """An empty scripted PRC API; unscripted routes answer 404."""
    return MockAPI()
