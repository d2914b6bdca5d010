"""
Browser management for firefox-ui.

Provides the Firefox engine and profile provisioning.
"""

from firefox_ui.browser.browser import BrowserState, Firefox
from firefox_ui.browser.profiles import (
    ProfileDirectory,
    bootstrap_profile,
    configure_devtools,
    download_file,
    fetch_with_retry,
    preference_overrides,
)

__all__ = [
    "BrowserState",
    "Firefox",
    "ProfileDirectory",
    "bootstrap_profile",
    "configure_devtools",
    "download_file",
    "fetch_with_retry",
    "preference_overrides",
]
