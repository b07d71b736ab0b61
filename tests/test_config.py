"""Tests for settings loading and the server entry point."""

import pytest
from pydantic import ValidationError

from companies_house_mcp import main as server_main
from companies_house_mcp.config.loader import BridgeSettings, Settings, get_settings


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Run from an empty directory with no server variables set."""
    for name in [
        "COMPANIES_HOUSE_API_KEY",
        "COMPANIES_HOUSE_BASE_URL",
        "MCP_MODE",
        "PORT",
        "MCP_BRIDGE_MODE",
        "MCP_SERVER_URL",
        "MCP_MAX_RETRY_ATTEMPTS",
        "MCP_RECONNECT_DELAY",
    ]:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield tmp_path
    get_settings.cache_clear()


class TestSettings:
    """Tests for Settings."""

    def test_api_key_required(self, clean_env):
        """Settings refuse to load without an API key."""
        with pytest.raises(ValidationError):
            Settings()

    def test_empty_api_key_rejected(self, clean_env, monkeypatch):
        """An empty API key counts as missing."""
        monkeypatch.setenv("COMPANIES_HOUSE_API_KEY", "")
        with pytest.raises(ValidationError):
            Settings()

    def test_defaults(self, clean_env, monkeypatch):
        """Defaults apply when only the key is set."""
        monkeypatch.setenv("COMPANIES_HOUSE_API_KEY", "key")
        settings = Settings()

        assert settings.companies_house_base_url == "https://api.company-information.service.gov.uk"
        assert settings.mcp_mode == "stdio"
        assert settings.port == 3000

    def test_invalid_mode_rejected(self, clean_env, monkeypatch):
        """MCP_MODE must name a known transport."""
        monkeypatch.setenv("COMPANIES_HOUSE_API_KEY", "key")
        monkeypatch.setenv("MCP_MODE", "carrier-pigeon")
        with pytest.raises(ValidationError):
            Settings()

    def test_yaml_file_below_environment(self, clean_env, monkeypatch):
        """Values from config/server.yaml apply unless the environment overrides them."""
        config_dir = clean_env / "config"
        config_dir.mkdir()
        (config_dir / "server.yaml").write_text(
            "companies_house_api_key: from-yaml\nport: 4000\nmcp_mode: http\n"
        )
        monkeypatch.setenv("PORT", "5000")

        settings = Settings()

        assert settings.companies_house_api_key == "from-yaml"
        assert settings.mcp_mode == "http"
        assert settings.port == 5000


class TestBridgeSettings:
    """Tests for BridgeSettings."""

    def test_defaults(self, clean_env):
        """Bridge defaults need no API key."""
        settings = BridgeSettings()

        assert settings.mcp_bridge_mode == "streamable"
        assert settings.mcp_server_url == "http://localhost:3001"
        assert settings.mcp_max_retry_attempts == 3
        assert settings.mcp_reconnect_delay == 2000

    def test_environment_overrides(self, clean_env, monkeypatch):
        """Bridge settings are read from MCP_* variables."""
        monkeypatch.setenv("MCP_BRIDGE_MODE", "rest")
        monkeypatch.setenv("MCP_MAX_RETRY_ATTEMPTS", "5")
        monkeypatch.setenv("MCP_RECONNECT_DELAY", "100")

        settings = BridgeSettings()

        assert settings.mcp_bridge_mode == "rest"
        assert settings.mcp_max_retry_attempts == 5
        assert settings.mcp_reconnect_delay == 100

    def test_negative_retries_rejected(self, clean_env, monkeypatch):
        """Retry attempts cannot be negative."""
        monkeypatch.setenv("MCP_MAX_RETRY_ATTEMPTS", "-1")
        with pytest.raises(ValidationError):
            BridgeSettings()


class TestMain:
    """Tests for the server entry point."""

    def test_exits_without_api_key(self, clean_env, capsys):
        """The server exits with status 1 and a clear message when the key is missing."""
        with pytest.raises(SystemExit) as exc_info:
            server_main.main()

        assert exc_info.value.code == 1
        assert "COMPANIES_HOUSE_API_KEY environment variable is required" in capsys.readouterr().err

    def test_server_name_per_mode(self, clean_env, monkeypatch):
        """Each transport reports its own server name."""
        monkeypatch.setenv("COMPANIES_HOUSE_API_KEY", "key")
        monkeypatch.setenv("MCP_MODE", "streamable")

        client, dispatcher = server_main.build_components(Settings())

        assert dispatcher.handlers.server_info.name == "companies-house-mcp-streamable"
        assert dispatcher.registry.tool_count == 4
