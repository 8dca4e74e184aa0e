"""
ImgForge Configuration Management
Handles application settings and the location of the provisioning service
"""

import json
import os
import logging
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass, asdict, fields


ENV_SERVER_URL = "IMGFORGE_SERVER_URL"
ENV_LOG_LEVEL = "IMGFORGE_LOG_LEVEL"


@dataclass
class AppConfig:
    """Application configuration settings"""
    app_name: str = "ImgForge"
    version: str = "1.0.0"
    log_level: str = "INFO"
    server_url: str = "http://localhost:3001"
    ws_url: str = ""
    request_timeout: float = 10.0
    upload_timeout: float = 300.0
    channel_open_timeout: float = 10.0

    def __post_init__(self):
        self.server_url = self.server_url.rstrip("/")
        if not self.ws_url:
            self.ws_url = derive_ws_url(self.server_url)
        self.ws_url = self.ws_url.rstrip("/")


def derive_ws_url(server_url: str) -> str:
    """Map an http(s) service URL onto the matching ws(s) URL"""
    if server_url.startswith("https://"):
        return "wss://" + server_url[len("https://"):]
    if server_url.startswith("http://"):
        return "ws://" + server_url[len("http://"):]
    return server_url


class Config:
    """Central configuration manager for ImgForge"""

    def __init__(self, config_file: Optional[str] = None):
        self.logger = logging.getLogger(__name__)

        # Default configuration paths
        self.app_dir = Path.home() / ".imgforge"
        self.config_file = config_file or str(self.app_dir / "config.json")

        self._config = AppConfig()
        self._custom_settings: Dict[str, Any] = {}
        self._known_fields = {f.name for f in fields(AppConfig)}
        self._ensure_directories()
        self.load()
        self._apply_environment()

    def _ensure_directories(self):
        """Create necessary application directories"""
        directories = [
            self.app_dir,
            self.app_dir / "logs",
            self.app_dir / "cache",
        ]

        for directory in directories:
            directory.mkdir(parents=True, exist_ok=True)
            self.logger.debug(f"Ensured directory exists: {directory}")

    def _apply_environment(self):
        """Environment variables win over the config file"""
        server_url = os.environ.get(ENV_SERVER_URL)
        if server_url:
            self.set_server_url(server_url)
        log_level = os.environ.get(ENV_LOG_LEVEL)
        if log_level:
            self._config.log_level = log_level.upper()

    def load(self) -> bool:
        """Load configuration from file"""
        try:
            if os.path.exists(self.config_file):
                with open(self.config_file, 'r') as f:
                    data = json.load(f)
                    app_values = {k: v for k, v in data.items() if k in self._known_fields}
                    self._custom_settings = {k: v for k, v in data.items() if k not in self._known_fields}
                    self._config = AppConfig(**app_values)
                    self.logger.info(f"Configuration loaded from {self.config_file}")
                    return True
            else:
                self.logger.info("No configuration file found, using defaults")
                self.save()  # Create default config file
                return False
        except Exception as e:
            self.logger.error(f"Error loading configuration: {e}")
            return False

    def save(self) -> bool:
        """Save configuration to file"""
        try:
            Path(self.config_file).parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file, 'w') as f:
                json.dump(self.to_dict(), f, indent=2)
            self.logger.info(f"Configuration saved to {self.config_file}")
            return True
        except Exception as e:
            self.logger.error(f"Error saving configuration: {e}")
            return False

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value"""
        if hasattr(self._config, key):
            return getattr(self._config, key)
        return self._custom_settings.get(key, default)

    def set(self, key: str, value: Any) -> bool:
        """Set configuration value"""
        if key == "server_url":
            self.set_server_url(value)
            return True
        if key in self._known_fields:
            setattr(self._config, key, value)
            self.logger.debug(f"Configuration updated: {key} = {value}")
            return True
        self._custom_settings[key] = value
        self.logger.debug(f"Custom configuration updated: {key} = {value}")
        return True

    def set_server_url(self, server_url: str) -> None:
        """Point the client at another service, re-deriving the channel URL"""
        self._config.server_url = server_url.rstrip("/")
        self._config.ws_url = derive_ws_url(self._config.server_url)
        self.logger.debug(f"Service URL set to {self._config.server_url}")

    @property
    def server_url(self) -> str:
        return self._config.server_url

    @property
    def ws_url(self) -> str:
        return self._config.ws_url

    def get_app_dir(self) -> Path:
        """Get application directory path"""
        return self.app_dir

    def get_log_dir(self) -> Path:
        """Get log directory path"""
        return self.app_dir / "logs"

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary"""
        data = asdict(self._config)
        data.update(self._custom_settings)
        return data
