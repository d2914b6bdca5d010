"""
Environment variable support for firefox-ui configuration.

This module provides functions to load configuration values from environment
variables with support for type conversion.
"""

import os
from typing import Any, Union, get_args, get_origin

from .defaults import ENV_PREFIX


def get_env_key(key: str, prefix: str = ENV_PREFIX) -> str:
    """Convert a configuration key to environment variable name.

    Args:
        key: Configuration key (e.g., "profile_dir")
        prefix: Environment variable prefix

    Returns:
        Environment variable name (e.g., "FIREFOX_UI_PROFILE_DIR")
    """
    return f"{prefix}{key.upper().replace('.', '_').replace('-', '_')}"


def parse_bool(value: str) -> bool:
    """Parse string to boolean."""
    return value.lower() in ("true", "1", "yes", "on", "enabled")


def parse_value(value: str, target_type: type) -> Any:
    """Parse string value to target type.

    Args:
        value: String value
        target_type: Target type

    Returns:
        Parsed value
    """
    if get_origin(target_type) is Union:
        # Handle Optional types
        non_none_types = [t for t in get_args(target_type) if t is not type(None)]
        if non_none_types:
            return parse_value(value, non_none_types[0])
        return value

    if target_type == bool:
        return parse_bool(value)

    if target_type == int:
        return int(value)

    if target_type == float:
        return float(value)

    return value


# Predefined environment variable mappings
ENV_MAPPINGS = {
    "firefox_bin": (get_env_key("bin"), str),
    "profile_dir": (get_env_key("profile_dir"), str),
    "profile_location_url": (get_env_key("profile_location"), str),
    "launch_timeout": (get_env_key("launch_timeout"), float),
    "download_timeout": (get_env_key("download_timeout"), float),
    "download_attempts": (get_env_key("download_attempts"), int),
}


def load_env_config() -> dict[str, Any]:
    """Load configuration from predefined environment variables.

    Returns:
        Dictionary of configuration values that are set in the environment
    """
    result: dict[str, Any] = {}

    for key, (env_var, target_type) in ENV_MAPPINGS.items():
        value = os.environ.get(env_var)
        if value is not None:
            result[key] = parse_value(value, target_type)

    return result
