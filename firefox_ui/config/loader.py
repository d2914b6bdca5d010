"""
Configuration file loader for firefox-ui.

Configuration is read from a JSON or TOML file, then overridden by
environment variables, then by programmatic overrides.
"""

import json
import sys
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import ValidationError

from firefox_ui.errors import ConfigurationError

from .defaults import (
    DEFAULT_CONFIG_EXTENSIONS,
    DEFAULT_CONFIG_FILENAME,
    DEFAULT_CONFIG_SEARCH_PATHS,
)
from .env import load_env_config
from .options import FirefoxConfig

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib


def _load_json(path: Path) -> dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _load_toml(path: Path) -> dict[str, Any]:
    with open(path, "rb") as f:
        return tomllib.load(f)


def load_file(path: Union[str, Path]) -> dict[str, Any]:
    """Load configuration from file based on extension.

    Args:
        path: Path to configuration file

    Returns:
        Configuration dictionary

    Raises:
        ConfigurationError: If the file is missing, unparsable or of an
            unsupported format
    """
    path = Path(path)

    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")

    suffix = path.suffix.lower()
    try:
        if suffix == ".json":
            data = _load_json(path)
        elif suffix == ".toml":
            data = _load_toml(path)
        else:
            raise ConfigurationError(f"Unsupported configuration format: {suffix}")
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Failed to read {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration in {path} must be a mapping")
    return data


def find_config_file(
    filename: str = DEFAULT_CONFIG_FILENAME,
    search_paths: Optional[list[str]] = None,
) -> Optional[Path]:
    """Find configuration file in search paths.

    Returns:
        Path to config file or None if not found
    """
    for search_path in search_paths or DEFAULT_CONFIG_SEARCH_PATHS:
        search_dir = Path(search_path).expanduser()
        for ext in DEFAULT_CONFIG_EXTENSIONS:
            config_path = search_dir / f"{filename}{ext}"
            if config_path.exists():
                return config_path
    return None


def load_config(
    config_file: Optional[Union[str, Path]] = None,
    overrides: Optional[dict[str, Any]] = None,
    load_env: bool = True,
    auto_find: bool = False,
) -> FirefoxConfig:
    """Load configuration from all sources.

    Priority (highest to lowest):
    1. Programmatic overrides
    2. Environment variables
    3. Configuration file
    4. Default values

    Raises:
        ConfigurationError: If a source is invalid
    """
    merged: dict[str, Any] = {}

    path = Path(config_file) if config_file else None
    if path is None and auto_find:
        path = find_config_file()
    if path is not None:
        merged.update(load_file(path))

    if load_env:
        try:
            merged.update(load_env_config())
        except ValueError as e:
            raise ConfigurationError(f"Invalid environment configuration: {e}") from e

    if overrides:
        merged.update(overrides)

    try:
        return FirefoxConfig.from_dict(merged)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
