"""Shared test configuration and fixtures."""

import os
from collections.abc import Iterator
from unittest.mock import patch

import pytest

import price_relay.core.config as config_module

_REQUIRED_ENV_VARS = {
    "DATABASE_URL": "sqlite+aiosqlite:///:memory:",
}


@pytest.fixture(autouse=True)
def _set_required_env_vars() -> Iterator[None]:  # pyright: ignore[reportUnusedFunction]
    """Provide a throwaway database URL for code that reads settings.yaml.

    ``database.url`` resolves from ``DATABASE_URL``; commands that fall back
    to the configured URL would otherwise exit in CI where it is unset. The
    config singleton is reset around each test so the patched environment
    is what gets loaded.
    """
    config_module._config = None
    missing = {k: v for k, v in _REQUIRED_ENV_VARS.items() if k not in os.environ}
    try:
        if not missing:
            yield
            return
        with patch.dict(os.environ, missing):
            yield
    finally:
        config_module._config = None
