"""
DevTools protocol engine for firefox-ui.

- CDPConnection: WebSocket transport to Firefox's debugging endpoint
- BrowserProcess: Launches Firefox and reads the announced endpoint
- handshake: Page target discovery and session attach
- RequestTable: Correlates command ids with replies
- BindingRegistry: Host functions callable from page JavaScript
- TargetSession: Read loop and command path for the page session

Example usage:
    ```python
    from firefox_ui.cdp import BrowserProcess, CDPConnection, TargetSession

    process = BrowserProcess("/usr/bin/firefox", ["--kiosk"], "/tmp/profile")
    ws_url = await process.launch()
    async with CDPConnection(ws_url) as connection:
        session = await TargetSession.create(connection)
        await session.enable_domains()
        await session.navigate("https://example.com")
        print(await session.evaluate("document.title"))
        await session.close()
    await process.kill()
    ```
"""

from firefox_ui.cdp.bindings import (
    BindingRegistry,
    BindingResult,
    binding_install_js,
    binding_result_js,
)
from firefox_ui.cdp.connection import CDPConnection
from firefox_ui.cdp.handshake import (
    ATTACH_ID,
    DISCOVER_ID,
    attach_to_target,
    discover_page_target,
    handshake,
)
from firefox_ui.cdp.launcher import (
    DEVTOOLS_PATTERN,
    BrowserProcess,
    find_firefox_executable,
    launch_browser,
)
from firefox_ui.cdp.requests import FIRST_REQUEST_ID, RequestTable
from firefox_ui.cdp.session import (
    DEFAULT_DOMAINS,
    SessionState,
    TargetSession,
)

__all__ = [
    # Connection
    "CDPConnection",
    # Launcher
    "BrowserProcess",
    "DEVTOOLS_PATTERN",
    "find_firefox_executable",
    "launch_browser",
    # Handshake
    "ATTACH_ID",
    "DISCOVER_ID",
    "attach_to_target",
    "discover_page_target",
    "handshake",
    # Correlation
    "FIRST_REQUEST_ID",
    "RequestTable",
    # Bindings
    "BindingRegistry",
    "BindingResult",
    "binding_install_js",
    "binding_result_js",
    # Session
    "DEFAULT_DOMAINS",
    "SessionState",
    "TargetSession",
]
