"""
Firefox engine for firefox-ui.

Orchestrates profile provisioning, the browser process, the DevTools
connection and the page session. The process and the connection are torn
down together: closing the socket alone never leaves Firefox running.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Optional, Sequence

from firefox_ui.browser.profiles import ProfileDirectory, bootstrap_profile
from firefox_ui.cdp.bindings import BindingHandler, BindingRegistry
from firefox_ui.cdp.connection import CDPConnection
from firefox_ui.cdp.launcher import BrowserProcess, find_firefox_executable
from firefox_ui.cdp.session import ConsoleHandler, SessionState, TargetSession
from firefox_ui.config.options import FirefoxConfig
from firefox_ui.errors import BrowserNotFoundError, ConnectionClosedError
from firefox_ui.models import WindowBounds

logger = logging.getLogger(__name__)


class BrowserState(str, Enum):
    """Engine lifecycle states."""

    CREATED = "created"
    PROVISIONING = "provisioning"
    LAUNCHING = "launching"
    CONNECTING = "connecting"
    HANDSHAKING = "handshaking"
    READY = "ready"
    CLOSED = "closed"


class Firefox:
    """Firefox driven over its remote debugging endpoint.

    Example:
        firefox = Firefox(["--kiosk", "--new-window=https://example.com"])
        await firefox.start()
        await firefox.load("https://example.org")
        returncode = await firefox.wait()
    """

    def __init__(
        self,
        args: Optional[Sequence[str]] = None,
        user_prefs: Optional[Sequence[str]] = None,
        config: Optional[FirefoxConfig] = None,
        *,
        on_console: Optional[ConsoleHandler] = None,
    ) -> None:
        """Initialize the engine.

        Args:
            args: Extra arguments for the firefox executable.
            user_prefs: ``user_pref(...)`` lines injected into ``user.js``.
            config: Configuration, defaults to ``FirefoxConfig()``.
            on_console: Called with page console messages and exceptions.
        """
        self._args = list(args or [])
        self._user_prefs = list(user_prefs or [])
        self._config = config or FirefoxConfig()
        self._on_console = on_console

        self._bindings = BindingRegistry()
        self._profile: Optional[ProfileDirectory] = None
        self._process: Optional[BrowserProcess] = None
        self._connection: Optional[CDPConnection] = None
        self._session: Optional[TargetSession] = None
        self._state = BrowserState.CREATED
        self._stopped = asyncio.Event()
        self._cancel_provisioning = asyncio.Event()

    @property
    def state(self) -> BrowserState:
        """Current engine state."""
        return self._state

    @property
    def config(self) -> FirefoxConfig:
        return self._config

    @property
    def process(self) -> Optional[BrowserProcess]:
        return self._process

    @property
    def session(self) -> Optional[TargetSession]:
        return self._session

    @property
    def profile_dir(self) -> Optional[str]:
        return self._profile.path if self._profile else None

    @property
    def is_ready(self) -> bool:
        return (
            self._state == BrowserState.READY
            and self._session is not None
            and self._session.state is SessionState.READY
        )

    def resolve_executable(self) -> str:
        """Locate the firefox executable honouring the configured override.

        Raises:
            BrowserNotFoundError: If no executable can be found.
        """
        executable = find_firefox_executable(self._config.firefox_bin)
        if not executable:
            raise BrowserNotFoundError(
                "Firefox executable not found. Install Firefox or set FIREFOX_UI_BIN."
            )
        return executable

    async def start(self) -> None:
        """Provision the profile, launch Firefox and attach to the page.

        Any failure releases everything acquired so far before re-raising.
        """
        if self._state != BrowserState.CREATED:
            raise RuntimeError(f"Firefox cannot start from state {self._state.value}")

        try:
            executable = self.resolve_executable()

            self._state = BrowserState.PROVISIONING
            self._profile = ProfileDirectory(self._config.profile_dir)
            await bootstrap_profile(
                self._profile,
                self._config,
                self._user_prefs,
                cancel_event=self._cancel_provisioning,
            )

            self._state = BrowserState.LAUNCHING
            self._process = BrowserProcess(
                executable,
                self._args,
                self._profile.path,
                timeout=self._config.launch_timeout,
            )
            ws_url = await self._process.launch()

            self._state = BrowserState.CONNECTING
            self._connection = CDPConnection(ws_url)
            await self._connection.connect()

            self._state = BrowserState.HANDSHAKING
            self._session = TargetSession(
                self._connection,
                bindings=self._bindings,
                on_console=self._on_console,
                on_terminate=self._on_session_terminated,
            )
            await self._session.open()

            await self._session.enable_domains()
            await self._session.install_bindings()
            if self._state == BrowserState.CLOSED:
                raise ConnectionClosedError("Firefox stopped during start-up")
            self._state = BrowserState.READY
        except BaseException:
            await self.stop()
            raise

        logger.info(f"Firefox ready (pid={self._process.pid})")

    async def _on_session_terminated(self) -> None:
        session = self._session
        if session is not None and session.target_destroyed:
            logger.info("Page target destroyed, shutting down Firefox")
        else:
            logger.info("DevTools connection lost, shutting down Firefox")
        await self.stop()

    async def wait(self) -> Optional[int]:
        """Block until the process exits or :meth:`stop` is called.

        Returns:
            The process exit status, or None if it was never started.
        """
        if self._process is None:
            await self._stopped.wait()
            return None

        exit_task = asyncio.ensure_future(self._process.wait())
        stop_task = asyncio.ensure_future(self._stopped.wait())
        try:
            await asyncio.wait({exit_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stop_task.cancel()
            if not exit_task.done():
                exit_task.cancel()

        if exit_task.done() and not exit_task.cancelled():
            returncode = exit_task.result()
            if not self._process.killed:
                logger.info(f"Firefox exited with status {returncode}")
            await self.stop()
            return returncode
        return self._process.returncode

    async def stop(self) -> None:
        """Close the session and connection, kill the process, drop a temp profile.

        Safe to call more than once and from any state.
        """
        if self._state == BrowserState.CLOSED:
            return
        self._state = BrowserState.CLOSED
        self._cancel_provisioning.set()

        if self._session is not None:
            await self._session.close()
        if self._connection is not None:
            await self._connection.close()
        if self._process is not None:
            await self._process.kill()
        if self._profile is not None:
            self._profile.cleanup()

        self._stopped.set()
        logger.debug("Firefox stopped")

    def _require_session(self) -> TargetSession:
        if self._session is None or not self.is_ready:
            raise ConnectionClosedError(f"Firefox is {self._state.value}")
        return self._session

    async def send(self, method: str, params: Optional[dict[str, Any]] = None, **kwargs: Any) -> Any:
        """Send a raw command to the page target."""
        return await self._require_session().send(method, params, **kwargs)

    async def load(self, url: str) -> None:
        """Navigate the page to ``url``."""
        await self._require_session().navigate(url)

    async def evaluate(self, expression: str) -> Any:
        """Evaluate JavaScript in the page and return its value."""
        return await self._require_session().evaluate(expression)

    async def bind(self, name: str, handler: BindingHandler) -> None:
        """Expose ``handler`` to the page as ``window[name]``.

        Bindings registered before :meth:`start` are installed on start.
        """
        if self.is_ready and self._session is not None:
            await self._session.bind(name, handler)
        else:
            self._bindings.register(name, handler)

    async def window_bounds(self) -> WindowBounds:
        return await self._require_session().get_window_bounds()

    async def __aenter__(self) -> "Firefox":
        await self.start()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.stop()
