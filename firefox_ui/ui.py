"""
HTML5 UI facade for firefox-ui.

There are three ways to pick what the window shows:

1. a URL, used as-is (``data:`` URLs included);
2. nothing, which shows a small greeting page;
3. a local ``.html``/``.htm``/``.php`` path, served as ``file://``.
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Any, Optional, Sequence

from firefox_ui.browser.browser import Firefox
from firefox_ui.cdp.bindings import BindingHandler
from firefox_ui.cdp.session import ConsoleHandler
from firefox_ui.config.defaults import DEFAULT_PAGE, KIOSK_ARGS
from firefox_ui.config.loader import load_config
from firefox_ui.config.options import FirefoxConfig
from firefox_ui.interfaces import BaseUI

logger = logging.getLogger(__name__)

LOCAL_PAGE_SUFFIXES = (".html", ".htm", ".php")


def resolve_url(url: str) -> str:
    """Turn the caller's page argument into the URL Firefox opens.

    Raises:
        FileNotFoundError: If a local page path does not exist.
    """
    if not url:
        return DEFAULT_PAGE
    if "://" in url or url.startswith("data:"):
        return url

    postfix = url.split("/")[-1]
    if any(suffix in postfix for suffix in LOCAL_PAGE_SUFFIXES):
        if not os.path.exists(url):
            raise FileNotFoundError(f"Page not found: {url}")
        return Path(url).resolve().as_uri()
    return url


class UI(BaseUI):
    """Firefox window running in kiosk mode, controlled from Python.

    Example:
        ui = UI.create("data:text/html,<h1>Hello</h1>")
        await ui.bind("add", lambda a, b: a + b)
        await ui.run()
    """

    def __init__(self, firefox: Firefox) -> None:
        self._firefox = firefox
        self._done = asyncio.Event()
        self._running = False

    @classmethod
    def create(
        cls,
        url: str = "",
        args: Optional[Sequence[str]] = None,
        user_prefs: Optional[Sequence[str]] = None,
        config: Optional[FirefoxConfig] = None,
        *,
        on_console: Optional[ConsoleHandler] = None,
    ) -> "UI":
        """Build a UI for ``url``.

        Args:
            url: Page to open, see the module docstring.
            args: Extra firefox arguments.
            user_prefs: ``user_pref(...)`` lines for the profile.
            config: Configuration; read from the environment when omitted.
            on_console: Called with page console messages and exceptions.
        """
        page = resolve_url(url)
        browser_args = [*(args or []), f"--new-window={page}", *KIOSK_ARGS]
        return cls(
            Firefox(
                browser_args,
                user_prefs,
                config if config is not None else load_config(),
                on_console=on_console,
            )
        )

    @property
    def firefox(self) -> Firefox:
        return self._firefox

    async def run(self) -> Optional[int]:
        """Start Firefox and block until it exits, is stopped, or this task is cancelled.

        Returns:
            The browser's exit status.
        """
        self._running = True
        try:
            await self._firefox.start()
            return await self._firefox.wait()
        finally:
            await self._firefox.stop()
            self._done.set()

    async def stop(self) -> None:
        """Terminate the browser and wait for :meth:`run` to return."""
        await self._firefox.stop()
        if self._running:
            await self._done.wait()
        else:
            self._done.set()

    def done(self) -> asyncio.Event:
        return self._done

    async def load(self, url: str) -> None:
        await self._firefox.load(url)

    async def eval(self, js: str) -> Any:
        return await self._firefox.evaluate(js)

    async def bind(self, name: str, handler: BindingHandler) -> None:
        await self._firefox.bind(name, handler)

    async def __aenter__(self) -> "UI":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.stop()
