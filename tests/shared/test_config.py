"""
Unit tests for configuration loading.
"""

import pytest
from pydantic import ValidationError

from shared.config import ConnectConfig, generate_env_docs, get_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in ("NODE_ENV", "CENTERPOINT_ENVIRONMENT", "CENTERPOINT_API_TOKEN", "CENTERPOINT_CACHE_TTL_MS"):
        monkeypatch.delenv(name, raising=False)


class TestConnectConfig:
    """Test cases for ConnectConfig."""

    def test_defaults(self):
        config = ConnectConfig(_env_file=None)

        assert config.rate_limit_max_attempts == 5
        assert config.rate_limit_window_seconds == 900
        assert config.cache_ttl_seconds == 300
        assert config.cache_max_size == 1000
        assert config.batching_enabled is False
        assert config.batch_window_seconds == 0.1
        assert config.retry_attempts == 3
        assert config.log_level == "info"
        assert config.is_production()

    def test_environment_variables(self, monkeypatch):
        monkeypatch.setenv("CENTERPOINT_CACHE_TTL_MS", "60000")
        monkeypatch.setenv("CENTERPOINT_BATCHING_ENABLED", "true")
        monkeypatch.setenv("CENTERPOINT_API_TOKEN", "secret-token")

        config = get_config(_env_file=None)

        assert config.cache_ttl_seconds == 60
        assert config.batching_enabled is True
        assert config.api_token == "secret-token"

    def test_node_env_sets_environment(self, monkeypatch):
        monkeypatch.setenv("NODE_ENV", "development")
        assert ConnectConfig(_env_file=None).is_development()

    def test_dotenv_file(self, tmp_path):
        (tmp_path / ".env").write_text("CENTERPOINT_MAX_BATCH_SIZE=25\n")
        assert ConnectConfig().max_batch_size == 25

    def test_keyword_overrides(self):
        config = get_config(_env_file=None, environment="staging", port=9000)
        assert config.environment == "staging"
        assert config.port == 9000

    @pytest.mark.parametrize("field, value", [
        ("rate_limit_max_attempts", 0),
        ("rate_limit_window_ms", 999),
        ("cache_max_size", 0),
        ("batch_window_ms", 5),
        ("request_timeout_ms", 500),
        ("retry_attempts", -1),
        ("retry_delay_ms", 50),
        ("log_level", "verbose"),
        ("log_format", "xml"),
    ])
    def test_out_of_range_values_rejected(self, field, value):
        with pytest.raises(ValidationError):
            ConnectConfig(_env_file=None, **{field: value})


class TestEnvDocs:
    """Test cases for generate_env_docs."""

    def test_sections_and_variables(self):
        docs = generate_env_docs()

        for section in ("Authentication", "Performance", "Logging", "Server", "General"):
            assert f"## {section}" in docs
        assert "- `CENTERPOINT_RATE_LIMIT_WINDOW_MS`: Rate limit window in milliseconds" in docs
        assert "`NODE_ENV`" in docs
