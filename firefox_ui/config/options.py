"""
Configuration options for firefox-ui.

A single strongly-typed options class validated with Pydantic.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from .defaults import (
    DEFAULT_DOWNLOAD_ATTEMPTS,
    DEFAULT_DOWNLOAD_TIMEOUT,
    DEFAULT_LAUNCH_TIMEOUT,
    DEFAULT_PROFILE_LOCATION,
    MAX_DOWNLOAD_ATTEMPTS,
)


class FirefoxConfig(BaseModel):
    """Options for locating, provisioning and launching Firefox.

    Example:
        config = FirefoxConfig(profile_dir="/var/lib/kiosk/profile")
        config = FirefoxConfig(profile_location_url="")  # keep existing user.js
    """

    firefox_bin: Optional[str] = Field(
        None, description="Override location of the firefox binary"
    )
    profile_dir: Optional[str] = Field(
        None, description="Semi-persistent profile directory; temporary if unset"
    )
    profile_location_url: Optional[str] = Field(
        DEFAULT_PROFILE_LOCATION,
        description="URL of the user.js seed; empty or None skips the download",
    )
    launch_timeout: Optional[float] = Field(
        DEFAULT_LAUNCH_TIMEOUT, gt=0, description="Seconds to wait for the DevTools endpoint"
    )
    download_timeout: float = Field(
        DEFAULT_DOWNLOAD_TIMEOUT, gt=0, description="HTTP timeout for the user.js download"
    )
    download_attempts: int = Field(
        DEFAULT_DOWNLOAD_ATTEMPTS,
        ge=1,
        le=MAX_DOWNLOAD_ATTEMPTS,
        description="Maximum user.js download attempts",
    )

    @field_validator("firefox_bin", "profile_dir", mode="before")
    @classmethod
    def empty_to_none(cls, v: Any) -> Any:
        """Treat empty strings from the environment as unset."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FirefoxConfig":
        """Create configuration from dictionary."""
        return cls.model_validate(data)
