"""
ImgForge Configuration and Formatting Tests
"""

import json

import pytest

from imgforge.core.config import Config, derive_ws_url
from imgforge.utils.formatting import format_date, format_size


class TestConfig:
    """Test configuration management"""

    def test_config_creation(self, config, isolated_home):
        """Test config can be created with defaults"""
        assert config is not None
        assert config.get("app_name") == "ImgForge"
        assert config.server_url == "http://localhost:3001"
        assert config.ws_url == "ws://localhost:3001"
        assert (isolated_home / ".imgforge" / "logs").is_dir()

    def test_default_file_written(self, config, isolated_home):
        data = json.loads((isolated_home / "config.json").read_text())
        assert data["server_url"] == "http://localhost:3001"

    def test_config_get_set(self, config):
        """Test getting and setting config values"""
        config.set("test_key", "test_value")
        assert config.get("test_key") == "test_value"
        assert config.get("missing", "fallback") == "fallback"

    def test_save_and_reload(self, config, isolated_home):
        config.set("request_timeout", 20.0)
        config.set("last_board", "radxa")
        assert config.save()

        reloaded = Config(str(isolated_home / "config.json"))
        assert reloaded.get("request_timeout") == 20.0
        assert reloaded.get("last_board") == "radxa"

    def test_set_server_url_rederives_ws(self, config):
        config.set("server_url", "https://imgforge.example.com/")

        assert config.server_url == "https://imgforge.example.com"
        assert config.ws_url == "wss://imgforge.example.com"

    def test_environment_overrides(self, isolated_home, monkeypatch):
        monkeypatch.setenv("IMGFORGE_SERVER_URL", "http://10.0.0.5:3001")
        monkeypatch.setenv("IMGFORGE_LOG_LEVEL", "debug")

        config = Config(str(isolated_home / "config.json"))

        assert config.server_url == "http://10.0.0.5:3001"
        assert config.ws_url == "ws://10.0.0.5:3001"
        assert config.get("log_level") == "DEBUG"

    def test_unreadable_file_keeps_defaults(self, isolated_home):
        path = isolated_home / "config.json"
        path.write_text("{not json")

        config = Config(str(path))
        assert config.server_url == "http://localhost:3001"

    @pytest.mark.parametrize("server_url, ws_url", [
        ("http://localhost:3001", "ws://localhost:3001"),
        ("https://host", "wss://host"),
        ("ws://already", "ws://already"),
    ])
    def test_derive_ws_url(self, server_url, ws_url):
        assert derive_ws_url(server_url) == ws_url


class TestFormatting:
    """Display helpers"""

    @pytest.mark.parametrize("size_mb, expected", [
        (512, "512 MB"),
        (1023, "1023 MB"),
        (1024, "1.00 GB"),
        (1536, "1.50 GB"),
    ])
    def test_format_size(self, size_mb, expected):
        assert format_size(size_mb) == expected

    def test_format_date_empty(self):
        assert format_date(None) == ""
        assert format_date(0) == ""

    def test_format_date(self):
        formatted = format_date(1700000000)
        assert "2023" in formatted
        assert formatted.endswith(("AM", "PM"))
