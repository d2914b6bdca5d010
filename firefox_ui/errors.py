"""
Exception hierarchy for firefox-ui.

Start-up failures (spawn, endpoint announcement, connect, handshake) are
fatal to the engine. Command-level failures are raised only to the caller
that issued the command.
"""

from __future__ import annotations

from typing import Any, Optional


class FirefoxUIError(Exception):
    """Base class for all firefox-ui errors."""


class StartupError(FirefoxUIError):
    """The browser process could not be spawned."""


class HandshakeTimeoutError(FirefoxUIError):
    """The browser never announced its DevTools endpoint."""


class CDPConnectionError(FirefoxUIError):
    """The websocket to the DevTools endpoint could not be opened."""


class ConnectionClosedError(FirefoxUIError):
    """The connection closed before the operation could complete."""


class ProtocolError(FirefoxUIError):
    """A frame could not be decoded."""


class NoPageTargetError(FirefoxUIError):
    """The connection closed before a page target was discovered."""


class AttachError(FirefoxUIError):
    """Attaching a session to the page target failed."""


class CommandError(FirefoxUIError):
    """A command's reply carried an error or a JavaScript exception."""

    def __init__(self, message: str, data: Optional[Any] = None) -> None:
        self.message = message
        self.data = data
        super().__init__(message)


class BindingHandlerError(FirefoxUIError):
    """A binding handler failed; the page receives a rejection."""


class ProvisioningError(FirefoxUIError):
    """The profile could not be prepared."""


class ProvisioningCancelled(ProvisioningError):
    """Profile provisioning was cancelled between attempts."""


class BrowserNotFoundError(FirefoxUIError):
    """No Firefox executable could be located."""


class ConfigurationError(FirefoxUIError):
    """Configuration loading or parsing error."""
