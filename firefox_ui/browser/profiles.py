"""
Profile provisioning for firefox-ui.

Firefox keeps most of its configuration in the profile directory. Before
launch the profile gets a ``user.js`` seed (downloaded from a template
location) with the preferences that enable the remote debugging endpoint
forced on top of it.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, Awaitable, Callable, Iterable, Optional, Union

import httpx

from firefox_ui.config.defaults import (
    DEFAULT_HEADERS,
    DEFAULT_PROFILE_PREFIX,
    DEFAULT_USER_AGENT,
    DEVTOOLS_PREFERENCES,
    USER_JS_FILENAME,
)
from firefox_ui.config.options import FirefoxConfig
from firefox_ui.errors import ProvisioningCancelled, ProvisioningError

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


async def _backoff(delay: float, cancel_event: Optional[asyncio.Event], sleep: Sleep) -> None:
    """Sleep for ``delay`` seconds, returning early once ``cancel_event`` is set."""
    if cancel_event is None:
        await sleep(delay)
        return

    sleep_task = asyncio.ensure_future(sleep(delay))
    cancel_task = asyncio.ensure_future(cancel_event.wait())
    try:
        await asyncio.wait({sleep_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in (sleep_task, cancel_task):
            if not task.done():
                task.cancel()
    if sleep_task.done() and not sleep_task.cancelled():
        sleep_task.result()


async def fetch_with_retry(
    client: httpx.AsyncClient,
    url: str,
    *,
    attempts: int = 5,
    cancel_event: Optional[asyncio.Event] = None,
    sleep: Sleep = asyncio.sleep,
) -> httpx.Response:
    """GET ``url``, retrying transport failures with quadratic backoff.

    Attempt ``n`` (counting from zero) is preceded by a ``n * n`` second
    pause, so the waits are 1, 4, 9 and 16 seconds. Setting the cancel
    event interrupts a pause and stops any further attempt.

    Raises:
        ProvisioningCancelled: If ``cancel_event`` is set before an attempt
            or during a pause.
        ProvisioningError: If every attempt fails.
    """
    headers = {"User-Agent": DEFAULT_USER_AGENT, **DEFAULT_HEADERS}
    last_error: Optional[Exception] = None

    for attempt in range(attempts):
        if cancel_event is not None and cancel_event.is_set():
            raise ProvisioningCancelled(f"Download of {url} cancelled")
        if attempt > 0:
            delay = attempt * attempt
            logger.warning(f"HTTP request failed: {last_error} - retrying in {delay}s")
            await _backoff(delay, cancel_event, sleep)
            if cancel_event is not None and cancel_event.is_set():
                raise ProvisioningCancelled(f"Download of {url} cancelled")
        try:
            return await client.get(url, headers=headers)
        except httpx.HTTPError as e:
            last_error = e

    raise ProvisioningError(f"HTTP request for {url} failed after {attempts} attempts: {last_error}")


async def download_file(
    client: httpx.AsyncClient,
    url: str,
    path: Union[str, Path],
    *,
    attempts: int = 5,
    cancel_event: Optional[asyncio.Event] = None,
    sleep: Sleep = asyncio.sleep,
) -> Path:
    """Download ``url`` into ``path``.

    Raises:
        ProvisioningError: On repeated transport failure, a status outside
            200-399, or a write error.
    """
    response = await fetch_with_retry(
        client, url, attempts=attempts, cancel_event=cancel_event, sleep=sleep
    )
    if response.status_code < 200 or response.status_code > 399:
        raise ProvisioningError(f"Failed to download {url}: status_code={response.status_code}")

    path = Path(path)
    try:
        path.write_bytes(response.content)
    except OSError as e:
        raise ProvisioningError(f"Failed to write to file {path} - error: {e}") from e
    return path


def preference_overrides(user_prefs: Iterable[str]) -> dict[str, str]:
    """Map each ``user_pref("id", value);`` line to its identifier."""
    mods: dict[str, str] = {}
    for pref in user_prefs:
        body = pref.replace("user_pref(", "", 1).replace(");", "", 1)
        identifier = body.split(",", 1)[0].strip()
        mods[identifier] = pref
    return mods


def configure_devtools(pref_file: Union[str, Path], user_prefs: Iterable[str] = ()) -> None:
    """Force the DevTools preferences and caller overrides into ``pref_file``.

    A line mentioning a preference's identifier is replaced; preferences not
    present are appended. Caller preferences win over the defaults.

    Raises:
        ProvisioningError: If the file cannot be read or written.
    """
    pref_file = Path(pref_file)
    try:
        lines = pref_file.read_text(encoding="utf-8").splitlines() if pref_file.exists() else []
    except OSError as e:
        raise ProvisioningError(f"Failed to read {pref_file}: {e}") from e

    mods = dict(DEVTOOLS_PREFERENCES)
    mods.update(preference_overrides(user_prefs))

    for matcher, replacement in mods.items():
        exists = False
        for idx, line in enumerate(lines):
            if matcher in line:
                lines[idx] = replacement
                exists = True
        if not exists:
            lines.append(replacement)

    try:
        pref_file.write_text("\n".join(lines), encoding="utf-8")
    except OSError as e:
        raise ProvisioningError(f"Failed to configure {pref_file}: {e}") from e


class ProfileDirectory:
    """A configured profile directory, or a temporary one removed on cleanup."""

    def __init__(self, path: Optional[str] = None) -> None:
        if path:
            os.makedirs(path, exist_ok=True)
            self._path = path
            self._temporary = False
        else:
            self._path = tempfile.mkdtemp(prefix=DEFAULT_PROFILE_PREFIX)
            self._temporary = True

    @property
    def path(self) -> str:
        return self._path

    @property
    def temporary(self) -> bool:
        return self._temporary

    @property
    def user_js(self) -> Path:
        return Path(self._path) / USER_JS_FILENAME

    def cleanup(self) -> None:
        """Remove the directory if it is temporary."""
        if not self._temporary or not os.path.exists(self._path):
            return
        try:
            shutil.rmtree(self._path)
        except OSError as e:
            logger.warning(f"Failed to clean up temp profile dir: {e}")


async def bootstrap_profile(
    profile: ProfileDirectory,
    config: FirefoxConfig,
    user_prefs: Iterable[str] = (),
    *,
    cancel_event: Optional[asyncio.Event] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> None:
    """Seed ``user.js`` and force the DevTools preferences.

    Raises:
        ProvisioningError: If the download or the preference edit fails.
    """
    user_js = profile.user_js
    if config.profile_location_url:
        logger.info(f"Downloading user.js {config.profile_location_url} --> {user_js}")
        async with httpx.AsyncClient(
            timeout=config.download_timeout,
            follow_redirects=True,
            transport=transport,
        ) as client:
            await download_file(
                client,
                config.profile_location_url,
                user_js,
                attempts=config.download_attempts,
                cancel_event=cancel_event,
            )

    configure_devtools(user_js, user_prefs)
