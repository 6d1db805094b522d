"""
------------------------------------------------------------------------------
Project:        ChartDeck
File:           core/config.py
Version:        1.0.0
Description:    Manages application configuration using QSettings. Standardizes
                paths for configuration and data across different platforms
                (XDG standards on Linux).
------------------------------------------------------------------------------
"""

import json
import os
from pathlib import Path
from typing import Any, Optional

from PyQt6.QtCore import QSettings, QStandardPaths


class AppConfig:
    """
    Manages application configuration using QSettings.
    Singleton-like usage via class methods or single instance.
    """

    KEY_API_URL: str = "api_url"
    KEY_API_TOKEN: str = "api_token"
    KEY_REQUEST_TIMEOUT: str = "request_timeout"
    KEY_AUTO_REFRESH_INTERVAL: str = "auto_refresh_interval"
    KEY_EXPORT_DIR: str = "export_dir"
    KEY_LOG_LEVEL: str = "log_level"
    KEY_LOG_COMPONENTS: str = "log_components"

    DEFAULT_API_URL: str = "http://localhost:5000"
    DEFAULT_REQUEST_TIMEOUT: int = 30
    DEFAULT_AUTO_REFRESH_INTERVAL: int = 300000

    APP_ID: str = "chartdeck"
    _active_profile: Optional[str] = None

    def __init__(self, profile: Optional[str] = None) -> None:
        """
        Initializes the configuration manager.

        Args:
            profile: Optional profile name (e.g. 'dev', 'test').
                    If provided, all paths and settings will be isolated (e.g. chartdeck-dev).
        """
        if profile is None:
            profile = AppConfig._active_profile
        else:
            AppConfig._active_profile = profile

        self.profile = profile
        self.active_id = self.APP_ID
        if profile:
            self.active_id = f"{self.APP_ID}-{profile}"

        self.settings = QSettings(self.active_id, self.active_id)

    def get_config_dir(self) -> Path:
        """
        Returns the path to the application configuration directory.
        Forces a flat structure: ~/.config/chartdeck[-profile]/
        """
        base_path = QStandardPaths.writableLocation(QStandardPaths.StandardLocation.ConfigLocation)
        config_dir = Path(base_path) / self.active_id
        config_dir.mkdir(parents=True, exist_ok=True)
        return config_dir

    def get_data_dir(self) -> Path:
        """
        Returns the path to the application data directory.
        Forces a flat structure: ~/.local/share/chartdeck[-profile]/
        """
        base_path = QStandardPaths.writableLocation(QStandardPaths.StandardLocation.GenericDataLocation)
        data_dir = Path(base_path) / self.active_id
        data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir

    def _get_setting(self, group: str, key: str, default: Any = None) -> Any:
        """
        Helper to retrieve a setting value from a specific group.

        Args:
            group: The configuration group name.
            key: The setting key.
            default: The default value if not found.

        Returns:
            The retrieved value or default.
        """
        if group:
            self.settings.beginGroup(group)
        val = self.settings.value(key, default)
        if group:
            self.settings.endGroup()
        return val

    def _set_setting(self, group: str, key: str, value: Any) -> None:
        """
        Helper to save a setting value into a specific group.

        Args:
            group: The configuration group name.
            key: The setting key.
            value: The value to save.
        """
        if isinstance(value, str):
            value = value.strip()

        if group:
            self.settings.beginGroup(group)
        self.settings.setValue(key, value)
        if group:
            self.settings.endGroup()

    def get_api_url(self) -> str:
        """
        Retrieves the base URL of the reporting service.

        Returns:
            The URL string without a trailing slash.
        """
        val = str(self._get_setting("Server", self.KEY_API_URL, self.DEFAULT_API_URL))
        return (val or self.DEFAULT_API_URL).rstrip("/")

    def set_api_url(self, url: str) -> None:
        """Saves the base URL of the reporting service."""
        self._set_setting("Server", self.KEY_API_URL, url)

    def get_api_token(self) -> str:
        """
        Retrieves the bearer token, falling back to the environment.

        Returns:
            The token string (may be empty).
        """
        env_token = os.environ.get("CHARTDECK_API_TOKEN", "")
        val = self._get_setting("Server", self.KEY_API_TOKEN)
        if val is None or str(val).strip() == "":
            return env_token
        return str(val)

    def set_api_token(self, token: str) -> None:
        """Saves the bearer token."""
        self._set_setting("Server", self.KEY_API_TOKEN, token)

    def get_request_timeout(self) -> int:
        """Retrieves the HTTP timeout in seconds."""
        return int(self._get_setting("Server", self.KEY_REQUEST_TIMEOUT, self.DEFAULT_REQUEST_TIMEOUT))

    def set_request_timeout(self, seconds: int) -> None:
        """Saves the HTTP timeout in seconds."""
        self._set_setting("Server", self.KEY_REQUEST_TIMEOUT, int(seconds))

    def get_auto_refresh_interval(self) -> int:
        """Retrieves the fallback auto-refresh interval in milliseconds."""
        return int(self._get_setting("Reports", self.KEY_AUTO_REFRESH_INTERVAL,
                                     self.DEFAULT_AUTO_REFRESH_INTERVAL))

    def set_auto_refresh_interval(self, interval_ms: int) -> None:
        """Saves the fallback auto-refresh interval in milliseconds."""
        self._set_setting("Reports", self.KEY_AUTO_REFRESH_INTERVAL, int(interval_ms))

    def get_export_dir(self) -> str:
        """
        Retrieves the default directory for CSV/PDF/PNG exports.

        Returns:
            The directory path, defaulting to the user's documents folder.
        """
        default = QStandardPaths.writableLocation(QStandardPaths.StandardLocation.DocumentsLocation)
        return str(self._get_setting("Reports", self.KEY_EXPORT_DIR, default) or default)

    def set_export_dir(self, path: str) -> None:
        """Saves the default export directory."""
        self._set_setting("Reports", self.KEY_EXPORT_DIR, path)

    def get_log_level(self) -> str:
        """Retrieves the global log level."""
        return str(self._get_setting("Logging", self.KEY_LOG_LEVEL, "WARNING"))

    def set_log_level(self, level: str) -> None:
        """Saves the global log level."""
        self._set_setting("Logging", self.KEY_LOG_LEVEL, level.upper())

    def get_log_components(self) -> dict:
        """Retrieves a dictionary of component-specific log levels."""
        raw = str(self._get_setting("Logging", self.KEY_LOG_COMPONENTS, "{}"))
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            return {}
        return data if isinstance(data, dict) else {}

    def set_log_components(self, components: dict) -> None:
        """Saves a dictionary of component-specific log levels."""
        self._set_setting("Logging", self.KEY_LOG_COMPONENTS, json.dumps(components))

    def get_log_file_path(self) -> Path:
        """Returns the absolute path to the log file."""
        return self.get_data_dir() / "app.log"
