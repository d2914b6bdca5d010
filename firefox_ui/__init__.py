"""
firefox-ui: Firefox as an HTML5 UI runtime for Python.

Launches Firefox in kiosk mode with remote debugging enabled, attaches to the
page over the DevTools protocol, and lets host code navigate, evaluate
JavaScript and expose Python functions to the page.

Basic usage:
    import asyncio
    from firefox_ui import UI

    async def main():
        ui = UI.create("data:text/html,<h1>Hello, world!</h1>")
        await ui.bind("greet", lambda name: f"hello {name}")
        await ui.run()

    asyncio.run(main())
"""

__version__ = "0.1.0"
__license__ = "MIT"

from firefox_ui.errors import (
    AttachError,
    BindingHandlerError,
    BrowserNotFoundError,
    CDPConnectionError,
    CommandError,
    ConfigurationError,
    ConnectionClosedError,
    FirefoxUIError,
    HandshakeTimeoutError,
    NoPageTargetError,
    ProtocolError,
    ProvisioningCancelled,
    ProvisioningError,
    StartupError,
)

from firefox_ui.models import (
    ConsoleMessage,
    Envelope,
    SessionIdentity,
    WindowBounds,
)

from firefox_ui.interfaces import BaseUI

from firefox_ui.cdp import (
    BindingRegistry,
    BrowserProcess,
    CDPConnection,
    SessionState,
    TargetSession,
    find_firefox_executable,
)

from firefox_ui.browser import (
    BrowserState,
    Firefox,
)

from firefox_ui.config import (
    FirefoxConfig,
    load_config,
)

from firefox_ui.ui import UI

__all__ = [
    # Version
    "__version__",
    # Facade
    "UI",
    "BaseUI",
    # Engine
    "Firefox",
    "BrowserState",
    # Protocol
    "CDPConnection",
    "BrowserProcess",
    "TargetSession",
    "SessionState",
    "BindingRegistry",
    "find_firefox_executable",
    # Models
    "ConsoleMessage",
    "Envelope",
    "SessionIdentity",
    "WindowBounds",
    # Config
    "FirefoxConfig",
    "load_config",
    # Errors
    "FirefoxUIError",
    "StartupError",
    "HandshakeTimeoutError",
    "CDPConnectionError",
    "ConnectionClosedError",
    "ProtocolError",
    "NoPageTargetError",
    "AttachError",
    "CommandError",
    "BindingHandlerError",
    "ProvisioningError",
    "ProvisioningCancelled",
    "BrowserNotFoundError",
    "ConfigurationError",
]
