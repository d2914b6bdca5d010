"""
Default configuration values for firefox-ui.

This module contains all default values used throughout the configuration system.
"""

ENV_PREFIX = "FIREFOX_UI_"

# Profile defaults
DEFAULT_PROFILE_LOCATION = "https://raw.githubusercontent.com/unikiosk/user.js/master/user.js"
DEFAULT_PROFILE_PREFIX = "firefox-ui-"
USER_JS_FILENAME = "user.js"

# Preferences forced into user.js so the remote debugging endpoint is usable
DEVTOOLS_PREFERENCES = {
    "devtools.chrome.enabled": 'user_pref("devtools.chrome.enabled", true);',
    "devtools.debugger.prompt-connection": 'user_pref("devtools.debugger.prompt-connection", false);',
    "devtools.debugger.remote-enabled": 'user_pref("devtools.debugger.remote-enabled", true);',
}

# Download defaults
DEFAULT_DOWNLOAD_TIMEOUT = 30.0
DEFAULT_DOWNLOAD_ATTEMPTS = 5
MAX_DOWNLOAD_ATTEMPTS = 5
DEFAULT_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; rv:91.0) Gecko/20100101 Firefox/91.0"
DEFAULT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "DNT": "1",
}

# Launch defaults
DEFAULT_LAUNCH_TIMEOUT = None
DEFAULT_PAGE = "data:text/html,<html>Hello from firefox-ui!</html>"
KIOSK_ARGS = ["--kiosk"]

# Config file lookup
DEFAULT_CONFIG_FILENAME = "firefox-ui"
DEFAULT_CONFIG_EXTENSIONS = [".json", ".toml"]
DEFAULT_CONFIG_SEARCH_PATHS = [".", "~/.config/firefox-ui"]
