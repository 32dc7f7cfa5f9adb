"""Shared fixtures."""

import pytest

from autoroute.config import ENV_API_KEY, ENV_BASE_URL, ENV_PORT


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's AUTOROUTE_* settings out of the tests."""
    for name in (ENV_BASE_URL, ENV_API_KEY, ENV_PORT):
        monkeypatch.delenv(name, raising=False)
