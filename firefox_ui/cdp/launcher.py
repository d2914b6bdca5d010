"""
Browser launcher for DevTools connections.

Spawns Firefox with remote debugging on an OS-assigned port and reads the
announced endpoint from its stderr.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
import shutil
import subprocess
import sys
from typing import Any, Optional, Sequence

from firefox_ui.errors import HandshakeTimeoutError, StartupError

logger = logging.getLogger(__name__)


DEVTOOLS_PATTERN = re.compile(r"^DevTools listening on (ws://.*?)\r?\n$")

# Longest stderr line scanned for the endpoint
STDERR_LIMIT = 1024 * 1024
DRAIN_CHUNK_SIZE = 65536

# Flags appended after caller arguments
DEBUG_ARGS = [
    "--remote-debugging-port=0",
    "--no-remote",
]


def find_firefox_executable(override: Optional[str] = None) -> Optional[str]:
    """Find the Firefox executable path.

    Args:
        override: Explicit path, used when it exists.

    Returns:
        Path to the executable or None if not found.
    """
    if override and os.path.exists(override):
        return override

    for exe in ("firefox", "firefox-esr"):
        path = shutil.which(exe)
        if path:
            return path

    if sys.platform == "darwin":
        paths = [
            "/Applications/Firefox.app/Contents/MacOS/firefox",
            "/Applications/Firefox.app",
            "/Applications/Thunderbird.app",
            "/Applications/Mozilla.app",
            "/usr/bin/firefox",
        ]
    elif os.name == "nt":
        program_files = os.environ.get("PROGRAMFILES", "C:\\Program Files")
        program_files_x86 = os.environ.get("PROGRAMFILES(X86)", "C:\\Program Files (x86)")
        paths = [
            os.path.join(program_files, "Mozilla Firefox", "firefox.exe"),
            os.path.join(program_files_x86, "Mozilla Firefox", "firefox.exe"),
            os.path.join(program_files, "Mozilla Thunderbird", "thunderbird.exe"),
            os.path.join(program_files, "mozilla.org", "Mozilla", "firefox.exe"),
            os.path.join(program_files, "mozilla.org", "SeaMonkey", "firefox.exe"),
            os.path.join(program_files, "SeaMonkey", "firefox.exe"),
        ]
    else:
        paths = [
            "/usr/bin/firefox",
            "/usr/lib/firefox/firefox",
            "/snap/bin/firefox",
        ]

    for path in paths:
        if os.path.exists(path):
            return path

    return None


class BrowserProcess:
    """Manages a Firefox subprocess with remote debugging enabled.

    Lifecycle: created, running after :meth:`launch`, then exited on its own
    (e.g. the user closed the window) or killed by :meth:`kill`.
    """

    def __init__(
        self,
        executable: str,
        args: Optional[Sequence[str]] = None,
        profile_dir: Optional[str] = None,
        *,
        env: Optional[dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> None:
        """Initialize the process manager.

        Args:
            executable: Path to the browser binary.
            args: Extra command line arguments.
            profile_dir: Profile directory passed with ``--profile``.
            env: Environment for the child. Defaults to the current one.
            timeout: Optional bound on waiting for the endpoint, in seconds.
        """
        self._executable = executable
        self._args = list(args or [])
        self._profile_dir = profile_dir
        self._env = env
        self._timeout = timeout
        self._process: Optional[asyncio.subprocess.Process] = None
        self._drain_task: Optional[asyncio.Task[None]] = None
        self._ws_endpoint: Optional[str] = None
        self._killed = False

    @property
    def ws_endpoint(self) -> Optional[str]:
        """Get the announced WebSocket debugger URL."""
        return self._ws_endpoint

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid if self._process else None

    @property
    def returncode(self) -> Optional[int]:
        """Exit status, or None while running or before launch."""
        return self._process.returncode if self._process else None

    @property
    def is_running(self) -> bool:
        return self._process is not None and self._process.returncode is None

    @property
    def killed(self) -> bool:
        """Whether the process was terminated by :meth:`kill`."""
        return self._killed

    def build_args(self) -> list[str]:
        """Build the full command line."""
        args = [self._executable, *self._args]
        if self._profile_dir:
            args.extend(["--profile", self._profile_dir])
        args.extend(DEBUG_ARGS)
        return args

    async def launch(self) -> str:
        """Start the browser and return the WebSocket endpoint URL.

        Raises:
            StartupError: If the process cannot be spawned.
            HandshakeTimeoutError: If stderr ends, or the timeout expires,
                before the endpoint is announced.
        """
        if self._process is not None:
            raise StartupError("Browser process already launched")

        args = self.build_args()
        logger.debug(f"Launching browser: {args}")

        try:
            self._process = await asyncio.create_subprocess_exec(
                *args,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                limit=STDERR_LIMIT,
                env=self._env if self._env is not None else os.environ.copy(),
            )
        except (OSError, ValueError) as e:
            raise StartupError(f"Failed to start {self._executable}: {e}") from e

        try:
            self._ws_endpoint = await asyncio.wait_for(
                self._read_endpoint(), timeout=self._timeout
            )
        except asyncio.TimeoutError:
            await self.kill()
            raise HandshakeTimeoutError(
                f"Timed out after {self._timeout}s waiting for DevTools endpoint"
            ) from None
        except HandshakeTimeoutError:
            await self.kill()
            raise

        logger.debug(f"Browser launched (pid={self.pid}), endpoint: {self._ws_endpoint}")
        return self._ws_endpoint

    async def _read_endpoint(self) -> str:
        if self._process is None or self._process.stderr is None:
            raise StartupError("Browser process has no stderr pipe")
        stderr = self._process.stderr

        while True:
            try:
                line = await stderr.readline()
            except ValueError:
                # readline has already discarded the oversized chunk
                logger.debug(f"browser: stderr line longer than {STDERR_LIMIT} bytes skipped")
                continue
            if not line:
                raise HandshakeTimeoutError(
                    "Unexpected EOF on browser stderr, DevTools endpoint not found"
                )
            text = line.decode("utf-8", errors="replace")
            match = DEVTOOLS_PATTERN.match(text)
            if match:
                self._drain_task = asyncio.create_task(self._drain(stderr))
                return match.group(1)
            logger.debug(f"browser: {text.rstrip()}")

    async def _drain(self, stream: asyncio.StreamReader) -> None:
        """Keep reading stderr so the child never blocks on a full pipe."""
        while True:
            chunk = await stream.read(DRAIN_CHUNK_SIZE)
            if not chunk:
                return
            logger.debug(f"browser: {chunk.decode('utf-8', errors='replace').rstrip()}")

    async def wait(self) -> Optional[int]:
        """Wait for the process to exit and return its exit status."""
        if self._process is None:
            return None
        return await self._process.wait()

    async def kill(self) -> None:
        """Forcibly terminate the process. No-op once it has exited."""
        process = self._process
        if process is None or process.returncode is not None:
            return

        self._killed = True
        try:
            process.kill()
        except ProcessLookupError:
            pass
        await process.wait()
        logger.debug(f"Browser process {process.pid} killed")

    async def __aenter__(self) -> "BrowserProcess":
        """Async context manager entry."""
        await self.launch()
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Async context manager exit."""
        await self.kill()


async def launch_browser(
    executable: str,
    args: Optional[Sequence[str]] = None,
    profile_dir: Optional[str] = None,
    *,
    timeout: Optional[float] = None,
) -> tuple[BrowserProcess, str]:
    """Launch a browser and return the process with its endpoint URL.

    Example:
        process, ws_url = await launch_browser("/usr/bin/firefox", ["--kiosk"], "/tmp/p")
        ...
        await process.kill()
    """
    process = BrowserProcess(executable, args, profile_dir, timeout=timeout)
    ws_url = await process.launch()
    return process, ws_url
