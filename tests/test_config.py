"""Tests for configuration management."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

import price_relay.core.config as config_module
from price_relay.apps.config import ServiceConfig
from price_relay.core.config import ConfigError, ConfigLoader, get_config

_EXPECTED_TIMEOUT = 30
_EXPECTED_MAX_ATTEMPTS = 5
_EXPECTED_BACKOFF = 2
_EXPECTED_PORT = 8080
_EXPECTED_NORMAL = 20.0
_EXPECTED_BACKOFF_INTERVAL = 45.0
_EXPECTED_CAPACITY = 10_000
_EXPECTED_SNAPSHOT = 25
_MEMORY_DB = "sqlite+aiosqlite:///:memory:"


class TestConfigLoader:
    """Test suite for ConfigLoader."""

    def test_load_default_config(self) -> None:
        """Load the packaged settings.yaml."""
        loader = ConfigLoader()
        assert loader.get("environment") is not None
        assert loader.get("upstream.base_url") is not None

    def test_default_config_reads_database_url(self) -> None:
        """Resolve database.url from DATABASE_URL."""
        with patch.dict(os.environ, {"DATABASE_URL": _MEMORY_DB}):
            loader = ConfigLoader()
        assert loader.get_database_url() == _MEMORY_DB

    def test_get_with_dot_notation(self, tmp_path: Path) -> None:
        """Get config values with dot notation."""
        config_file = tmp_path / "settings.yaml"
        config_file.write_text("""
upstream:
  token_mint: mint_123
  base_url: https://test.dexscreener.com
environment: test
""")

        loader = ConfigLoader(config_dir=tmp_path)
        assert loader.get("upstream.token_mint") == "mint_123"
        assert loader.get("upstream.base_url") == "https://test.dexscreener.com"
        assert loader.get("environment") == "test"

    def test_get_with_default(self, tmp_path: Path) -> None:
        """Return the default for a non-existent key."""
        config_file = tmp_path / "settings.yaml"
        config_file.write_text("environment: test")

        loader = ConfigLoader(config_dir=tmp_path)
        assert loader.get("nonexistent.key", "default_value") == "default_value"

    def test_env_var_substitution(self, tmp_path: Path) -> None:
        """Substitute environment variables, using defaults when unset."""
        config_file = tmp_path / "settings.yaml"
        config_file.write_text("""
upstream:
  token_mint: ${TEST_TOKEN_MINT}
  base_url: ${TEST_BASE_URL:https://default.com}
""")

        with patch.dict(os.environ, {"TEST_TOKEN_MINT": "env_mint_123"}):
            loader = ConfigLoader(config_dir=tmp_path)
            assert loader.get("upstream.token_mint") == "env_mint_123"
            assert loader.get("upstream.base_url") == "https://default.com"

    def test_local_settings_override(self, tmp_path: Path) -> None:
        """Local settings override base settings."""
        (tmp_path / "settings.yaml").write_text("""
upstream:
  token_mint: base_mint
  base_url: https://base.com
environment: production
""")
        (tmp_path / "settings.local.yaml").write_text("""
upstream:
  token_mint: local_mint
environment: development
""")

        loader = ConfigLoader(config_dir=tmp_path)
        assert loader.get("upstream.token_mint") == "local_mint"
        assert loader.get("upstream.base_url") == "https://base.com"
        assert loader.get("environment") == "development"

    def test_deep_merge(self, tmp_path: Path) -> None:
        """Deep merge nested configurations."""
        (tmp_path / "settings.yaml").write_text("""
upstream:
  token_mint: base_mint
  timeout: 30
  retry:
    max_attempts: 3
    backoff: 2
""")
        (tmp_path / "settings.local.yaml").write_text("""
upstream:
  retry:
    max_attempts: 5
""")

        loader = ConfigLoader(config_dir=tmp_path)
        assert loader.get("upstream.token_mint") == "base_mint"
        assert loader.get("upstream.timeout") == _EXPECTED_TIMEOUT
        assert loader.get("upstream.retry.max_attempts") == _EXPECTED_MAX_ATTEMPTS
        assert loader.get("upstream.retry.backoff") == _EXPECTED_BACKOFF

    def test_full_string_unresolved_env_var_raises_config_error(self, tmp_path: Path) -> None:
        """Raise ConfigError when env var is unset and has no default."""
        (tmp_path / "settings.yaml").write_text("""
upstream:
  token_mint: ${NONEXISTENT_PRICE_RELAY_VAR}
""")

        with pytest.raises(ConfigError, match="Required environment variable"):
            ConfigLoader(config_dir=tmp_path)

    def test_embedded_env_var_reference_raises_config_error(self, tmp_path: Path) -> None:
        """Raise ConfigError when an env var reference is embedded in a larger string."""
        (tmp_path / "settings.yaml").write_text("""
upstream:
  base_url: https://api.example.com/${NONEXISTENT_PATH_VAR}/v1
""")

        with pytest.raises(ConfigError, match="Unresolved environment variable reference"):
            ConfigLoader(config_dir=tmp_path)

    def test_get_int_converts_strings(self, tmp_path: Path) -> None:
        """Convert environment-substituted strings to int."""
        (tmp_path / "settings.yaml").write_text("server:\n  port: ${TEST_PORT:8080}\n")

        loader = ConfigLoader(config_dir=tmp_path)
        assert loader.get_int("server.port", 3000) == _EXPECTED_PORT

    def test_get_int_rejects_garbage(self, tmp_path: Path) -> None:
        """Raise ConfigError for a non-numeric integer setting."""
        (tmp_path / "settings.yaml").write_text("server:\n  port: eighty\n")

        loader = ConfigLoader(config_dir=tmp_path)
        with pytest.raises(ConfigError, match="must be an integer"):
            loader.get_int("server.port", 3000)

    def test_get_database_url_missing(self, tmp_path: Path) -> None:
        """Raise ConfigError when no database URL is configured."""
        (tmp_path / "settings.yaml").write_text("database:\n  url: ''\n")

        loader = ConfigLoader(config_dir=tmp_path)
        with pytest.raises(ConfigError, match=r"database\.url is not configured"):
            loader.get_database_url()


class TestServiceConfig:
    """Tests for building ServiceConfig from settings."""

    def test_defaults_when_sections_missing(self, tmp_path: Path) -> None:
        """Fill every missing setting with its default."""
        (tmp_path / "settings.yaml").write_text(f"database:\n  url: '{_MEMORY_DB}'\n")

        config = ServiceConfig.from_loader(ConfigLoader(config_dir=tmp_path))

        assert config.db_url == _MEMORY_DB
        assert config.normal_interval == _EXPECTED_NORMAL
        assert config.cache_capacity == _EXPECTED_CAPACITY
        assert config.snapshot_size == _EXPECTED_SNAPSHOT

    def test_reads_overrides(self, tmp_path: Path) -> None:
        """Read poller and server sections."""
        (tmp_path / "settings.yaml").write_text(f"""
database:
  url: '{_MEMORY_DB}'
poller:
  backoff_interval: 45
server:
  port: "8080"
""")

        config = ServiceConfig.from_loader(ConfigLoader(config_dir=tmp_path))

        assert config.backoff_interval == _EXPECTED_BACKOFF_INTERVAL
        assert config.port == _EXPECTED_PORT

    def test_db_url_argument_wins(self, tmp_path: Path) -> None:
        """An explicit db_url replaces a missing database section."""
        (tmp_path / "settings.yaml").write_text("environment: test\n")

        config = ServiceConfig.from_loader(ConfigLoader(config_dir=tmp_path), db_url=_MEMORY_DB)

        assert config.db_url == _MEMORY_DB

    def test_missing_db_url_raises(self, tmp_path: Path) -> None:
        """Raise ConfigError without any database URL."""
        (tmp_path / "settings.yaml").write_text("environment: test\n")

        with pytest.raises(ConfigError):
            ServiceConfig.from_loader(ConfigLoader(config_dir=tmp_path))


class TestGetConfig:
    """Test suite for the lazy singleton get_config() function."""

    def test_returns_config_loader_instance(self) -> None:
        """Return a ConfigLoader instance on first call."""
        config_module._config = None
        try:
            result = get_config()
            assert isinstance(result, ConfigLoader)
        finally:
            config_module._config = None

    def test_returns_same_instance(self) -> None:
        """Return the same ConfigLoader on subsequent calls."""
        config_module._config = None
        try:
            first = get_config()
            second = get_config()
            assert first is second
        finally:
            config_module._config = None
