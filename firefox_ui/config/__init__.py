"""
Configuration module for firefox-ui.

Example usage:
    from firefox_ui.config import FirefoxConfig, load_config

    # Environment variables only
    config = load_config()

    # File with environment overrides
    config = load_config("firefox-ui.toml")

    # Programmatic
    config = FirefoxConfig(profile_dir="/var/lib/kiosk/profile")

Environment variables:
    FIREFOX_UI_BIN=/opt/firefox/firefox
    FIREFOX_UI_PROFILE_DIR=/var/lib/kiosk/profile
    FIREFOX_UI_PROFILE_LOCATION=https://example.com/user.js
    FIREFOX_UI_LAUNCH_TIMEOUT=30
"""

from firefox_ui.errors import ConfigurationError

from .defaults import (
    DEFAULT_DOWNLOAD_ATTEMPTS,
    DEFAULT_DOWNLOAD_TIMEOUT,
    DEFAULT_HEADERS,
    DEFAULT_PAGE,
    DEFAULT_PROFILE_LOCATION,
    DEFAULT_USER_AGENT,
    DEVTOOLS_PREFERENCES,
    ENV_PREFIX,
    KIOSK_ARGS,
    USER_JS_FILENAME,
)
from .env import ENV_MAPPINGS, get_env_key, load_env_config, parse_bool, parse_value
from .loader import find_config_file, load_config, load_file
from .options import FirefoxConfig

__all__ = [
    # Main configuration class
    "FirefoxConfig",
    # Loader functions
    "load_config",
    "load_file",
    "find_config_file",
    "ConfigurationError",
    # Environment functions
    "get_env_key",
    "load_env_config",
    "parse_bool",
    "parse_value",
    "ENV_MAPPINGS",
    "ENV_PREFIX",
    # Default values
    "DEFAULT_DOWNLOAD_ATTEMPTS",
    "DEFAULT_DOWNLOAD_TIMEOUT",
    "DEFAULT_HEADERS",
    "DEFAULT_PAGE",
    "DEFAULT_PROFILE_LOCATION",
    "DEFAULT_USER_AGENT",
    "DEVTOOLS_PREFERENCES",
    "KIOSK_ARGS",
    "USER_JS_FILENAME",
]
