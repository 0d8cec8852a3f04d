"""
================================================================================
Configuration Loader
================================================================================

YAML-based configuration management with environment variable override support.

Features:
    - YAML configuration file (config/config.yaml, or UI_CONFIG_PATH)
    - Environment variable override (APP_URL overrides app.url)
    - Dot notation path access
    - Resolved, immutable RunSettings consumed by the framework

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from loguru import logger

from .errors import ConfigurationError


# Default configuration file path (repo-root/config/config.yaml)
DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent.parent / "config" / "config.yaml"

SUPPORTED_BROWSERS = ("chromium", "firefox", "webkit")


class ConfigLoader:
    """
    Configuration loader with YAML and environment variable support.

    Configuration hierarchy (highest to lowest priority):
        1. Environment variables (APP_URL)
        2. YAML configuration file
        3. Default values

    Usage:
        >>> config = ConfigLoader()
        >>> config.get("app.url", "https://login.salesforce.com")
        'https://test.salesforce.com'  # From YAML or env var

        >>> config.get("timeouts.explicit_wait", 15)
        15

    Environment Variable Mapping:
        - app.url -> APP_URL
        - browser.headless -> BROWSER_HEADLESS
        - timeouts.explicit_wait -> TIMEOUTS_EXPLICIT_WAIT
    """

    _instance: Optional["ConfigLoader"] = None
    _config: Dict[str, Any] = {}

    def __new__(cls, config_path: Optional[Path] = None) -> "ConfigLoader":
        """Singleton: configuration is read once per process."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, config_path: Optional[Path] = None) -> None:
        """
        Initialize configuration loader.

        Args:
            config_path: Path to YAML configuration file. Falls back to
                UI_CONFIG_PATH, then DEFAULT_CONFIG_PATH.
        """
        if getattr(self, "_initialized", False):
            return

        env_path = os.environ.get("UI_CONFIG_PATH")
        self._config_path = Path(config_path or env_path or DEFAULT_CONFIG_PATH)
        self._load_config()
        self._initialized = True

    def _load_config(self) -> None:
        """Load configuration from YAML file."""
        if not self._config_path.exists():
            logger.warning(
                f"Configuration file not found: {self._config_path}. "
                f"Using defaults and environment variables only."
            )
            self._config = {}
            return

        try:
            with open(self._config_path, "r", encoding="utf-8") as f:
                self._config = yaml.safe_load(f) or {}
            logger.debug(f"Loaded configuration from: {self._config_path}")
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in configuration file: {e}"
            ) from e

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by dot-notation path.

        First checks environment variables, then YAML config, then default.

        Args:
            key: Dot-notation path (e.g., "app.url")
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        env_key = key.upper().replace(".", "_")
        env_value = os.environ.get(env_key)
        if env_value is not None:
            return self._convert_type(env_value, default)

        value = self._config
        for part in key.split("."):
            if isinstance(value, dict):
                value = value.get(part)
            else:
                value = None

            if value is None:
                return default

        return value

    def get_section(self, section: str) -> Dict[str, Any]:
        """Get entire configuration section (empty dict if missing)."""
        return self._config.get(section, {})

    def reload(self) -> None:
        """Reload configuration from file."""
        self._load_config()
        logger.info(f"Configuration reloaded from: {self._config_path}")

    def _convert_type(self, value: str, reference: Any) -> Any:
        """
        Convert string value to match reference type.

        Used for environment variables which are always strings.
        """
        if reference is None:
            return value

        if isinstance(reference, bool):
            return value.lower() in ("true", "1", "yes", "on")
        if isinstance(reference, int):
            try:
                return int(value)
            except ValueError:
                return value
        if isinstance(reference, float):
            try:
                return float(value)
            except ValueError:
                return value

        return value

    @classmethod
    def reset(cls) -> None:
        """Reset singleton instance (tests)."""
        cls._instance = None
        cls._config = {}


@dataclass(frozen=True)
class RunSettings:
    """
    Scalar run settings, resolved once at process start.

    Times in the YAML are seconds except where the name says `_ms`.
    """

    app_url: str = "https://login.salesforce.com"
    username: str = ""
    password: str = ""
    browser: str = "chromium"
    headless: bool = True
    implicit_wait_s: int = 10
    explicit_wait_s: int = 15
    page_load_timeout_s: int = 30
    poll_interval_ms: int = 500
    native_click_timeout_ms: int = 2000
    artifacts_dir: str = "test-output"
    live: bool = False
    interactive: bool = False
    manual_pause_s: int = 40

    @property
    def explicit_wait_ms(self) -> int:
        return self.explicit_wait_s * 1000

    @classmethod
    def from_loader(cls, loader: Optional[ConfigLoader] = None) -> "RunSettings":
        """Resolve settings from the (singleton) ConfigLoader."""
        config = loader or ConfigLoader()
        defaults = cls()
        settings = cls(
            app_url=config.get("app.url", defaults.app_url),
            username=config.get("app.username", defaults.username),
            password=config.get("app.password", defaults.password),
            browser=config.get("browser.name", defaults.browser),
            headless=config.get("browser.headless", defaults.headless),
            implicit_wait_s=config.get("timeouts.implicit_wait", defaults.implicit_wait_s),
            explicit_wait_s=config.get("timeouts.explicit_wait", defaults.explicit_wait_s),
            page_load_timeout_s=config.get("timeouts.page_load", defaults.page_load_timeout_s),
            poll_interval_ms=config.get("timeouts.poll_interval_ms", defaults.poll_interval_ms),
            native_click_timeout_ms=config.get("timeouts.native_click_ms", defaults.native_click_timeout_ms),
            artifacts_dir=config.get("artifacts.dir", defaults.artifacts_dir),
            live=config.get("run.live", defaults.live),
            interactive=config.get("run.interactive", defaults.interactive),
            manual_pause_s=config.get("run.manual_pause", defaults.manual_pause_s),
        )
        if settings.browser not in SUPPORTED_BROWSERS:
            raise ConfigurationError(
                f"Unsupported browser '{settings.browser}'. "
                f"Expected one of: {', '.join(SUPPORTED_BROWSERS)}"
            )
        return settings


__all__ = [
    "ConfigLoader",
    "ConfigurationError",
    "RunSettings",
    "DEFAULT_CONFIG_PATH",
    "SUPPORTED_BROWSERS",
]
