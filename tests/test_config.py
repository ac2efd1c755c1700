"""Unit tests for configuration and credential loading."""

import pytest

from order_downloader.core.config import Config, get_config, load_credentials, reset_config
from order_downloader.core.exceptions import ConfigError


@pytest.fixture
def no_dotenv(tmp_path, monkeypatch):
    """Run from an empty directory so no stray .env is picked up."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("order_downloader.core.config.find_dotenv", lambda usecwd=True: "")
    return tmp_path


class TestConfig:
    def test_defaults_without_file(self, tmp_path):
        config = Config(base_dir=tmp_path)

        assert config.db_path == tmp_path / "orders.sqlite"
        assert config.log_path is None
        assert config.log_level == "INFO"
        assert config.get_int('products', 'store_id') == 1560
        assert config.get('api', 'timeout') is None

    def test_file_overrides_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "general:\n  database: data/mine.sqlite\n  log_file: logs/run.log\n"
            "products:\n  store_id: 1234\n"
        )
        config = Config(str(path))

        assert config.db_path == tmp_path / "data" / "mine.sqlite"
        assert config.log_path == tmp_path / "logs" / "run.log"
        assert config.get_int('products', 'store_id') == 1234
        assert config.get_str('products', 'banner') == "superstore"

    def test_missing_explicit_file_is_an_error(self, tmp_path):
        with pytest.raises(ConfigError):
            Config(str(tmp_path / "nope.yaml"))

    def test_non_mapping_root_is_an_error(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ConfigError):
            Config(str(path))

    def test_invalid_integer_is_an_error(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("products:\n  store_id: downtown\n")
        with pytest.raises(ConfigError):
            Config(str(path)).get_int('products', 'store_id')

    def test_get_config_is_cached_until_reset(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("general:\n  log_level: DEBUG\n")

        first = get_config(str(path))
        assert get_config() is first
        reset_config()
        assert get_config(str(path)) is not first


class TestLoadCredentials:
    def test_reads_both_secrets(self, no_dotenv, monkeypatch):
        monkeypatch.setenv("AUTH_TOKEN", "tok")
        monkeypatch.setenv("API_KEY", "key")

        credentials = load_credentials()

        assert credentials.bearer_token == "tok"
        assert credentials.api_key == "key"
        assert "tok" not in repr(credentials)

    def test_missing_secrets_are_reported_together(self, no_dotenv, monkeypatch):
        monkeypatch.delenv("AUTH_TOKEN", raising=False)
        monkeypatch.setenv("API_KEY", "   ")

        with pytest.raises(ConfigError, match="AUTH_TOKEN, API_KEY"):
            load_credentials()

    def test_loads_dotenv_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("AUTH_TOKEN", raising=False)
        monkeypatch.delenv("API_KEY", raising=False)
        (tmp_path / ".env").write_text("AUTH_TOKEN=from-file\nAPI_KEY=key-file\n")
        monkeypatch.chdir(tmp_path)

        try:
            credentials = load_credentials()
        finally:
            monkeypatch.delenv("AUTH_TOKEN", raising=False)
            monkeypatch.delenv("API_KEY", raising=False)

        assert credentials.bearer_token == "from-file"
        assert credentials.api_key == "key-file"
