"""
DevTools WebSocket transport.

A single duplex channel to Firefox's remote debugging endpoint. Reading is
single-reader (the handshake, then the session dispatcher); writes may come
from any number of tasks and are serialized here.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Optional

import websockets
from websockets.exceptions import ConnectionClosed, ConnectionClosedOK, InvalidHandshake, InvalidURI

from firefox_ui.errors import CDPConnectionError, ConnectionClosedError
from firefox_ui.models import Envelope

logger = logging.getLogger(__name__)


class CDPConnection:
    """Manages the WebSocket connection to Firefox's DevTools endpoint.

    Example:
        connection = CDPConnection("ws://127.0.0.1:39123/devtools/browser/xxx")
        await connection.connect()
        await connection.send_message({"id": 0, "method": "Target.setDiscoverTargets",
                                       "params": {"discover": True}})
        envelope = await connection.receive()
        await connection.close()
    """

    def __init__(
        self,
        ws_url: str,
        *,
        max_size: int = 100 * 1024 * 1024,
        open_timeout: float = 10.0,
    ) -> None:
        """Initialize the connection.

        Args:
            ws_url: WebSocket URL announced by the browser.
            max_size: Maximum incoming frame size in bytes.
            open_timeout: Timeout for the opening handshake in seconds.
        """
        self._ws_url = ws_url
        self._max_size = max_size
        self._open_timeout = open_timeout
        self._ws: Any = None
        self._write_lock = asyncio.Lock()
        self._closed = False

    @property
    def ws_url(self) -> str:
        """Get the WebSocket URL."""
        return self._ws_url

    @property
    def is_connected(self) -> bool:
        """Check if the socket is open."""
        return self._ws is not None and not self._closed

    async def connect(self) -> None:
        """Open the WebSocket.

        Raises:
            CDPConnectionError: If the endpoint cannot be reached.
        """
        if self._ws is not None:
            return
        if self._closed:
            raise CDPConnectionError("Connection was closed and cannot be reused")

        logger.debug(f"Connecting to DevTools: {self._ws_url}")
        try:
            self._ws = await websockets.connect(
                self._ws_url,
                max_size=self._max_size,
                open_timeout=self._open_timeout,
                ping_interval=None,
                origin="http://127.0.0.1",
            )
        except (OSError, InvalidHandshake, InvalidURI, asyncio.TimeoutError) as e:
            raise CDPConnectionError(f"Failed to connect to {self._ws_url}: {e}") from e
        logger.debug("DevTools connection established")

    async def send_message(self, message: dict[str, Any]) -> None:
        """Serialize and write one frame.

        Raises:
            ConnectionClosedError: If the socket is closed.
        """
        if self._ws is None or self._closed:
            raise ConnectionClosedError("Not connected to DevTools")

        data = json.dumps(message)
        async with self._write_lock:
            try:
                await self._ws.send(data)
            except ConnectionClosed as e:
                raise ConnectionClosedError(f"DevTools connection closed: {e}") from e
        logger.debug(f"DevTools send: {message.get('method')} (id={message.get('id')})")

    async def receive(self) -> Envelope:
        """Read and decode the next frame.

        Only one task may call this at a time.

        Raises:
            ConnectionClosedError: If the socket closed.
            ProtocolError: If the frame cannot be decoded.
        """
        if self._ws is None or self._closed:
            raise ConnectionClosedError("Not connected to DevTools")

        try:
            raw = await self._ws.recv()
        except ConnectionClosedOK as e:
            logger.debug("DevTools connection closed")
            raise ConnectionClosedError("DevTools connection closed") from e
        except ConnectionClosed as e:
            logger.warning(f"DevTools connection lost: {e}")
            raise ConnectionClosedError(f"DevTools connection lost: {e}") from e

        return Envelope.parse(raw)

    async def close(self) -> None:
        """Close the WebSocket. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True

        ws, self._ws = self._ws, None
        if ws is None:
            return
        try:
            await ws.close()
        except (ConnectionClosed, OSError) as e:
            logger.debug(f"Error while closing DevTools connection: {e}")
        logger.debug("DevTools connection closed")

    async def __aenter__(self) -> "CDPConnection":
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Async context manager exit."""
        await self.close()
