"""
Request/response correlation.

Each outbound command owns exactly one future, keyed by a message id that
is never reused for the life of the connection.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import threading
from typing import Any, Optional

from firefox_ui.errors import ConnectionClosedError

logger = logging.getLogger(__name__)

# Ids 0 and 1 belong to the handshake.
FIRST_REQUEST_ID = 2


class RequestTable:
    """Pending commands keyed by message id."""

    def __init__(self, first_id: int = FIRST_REQUEST_ID) -> None:
        self._ids = itertools.count(first_id)
        self._pending: dict[int, asyncio.Future[Any]] = {}
        self._lock = threading.Lock()
        self._closed: Optional[BaseException] = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)

    def __contains__(self, message_id: int) -> bool:
        with self._lock:
            return message_id in self._pending

    @property
    def closed(self) -> bool:
        return self._closed is not None

    def allocate(self) -> tuple[int, asyncio.Future[Any]]:
        """Take the next id and register a future for it.

        Raises:
            ConnectionClosedError: If the table was already failed.
        """
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        with self._lock:
            if self._closed is not None:
                raise ConnectionClosedError(str(self._closed) or "Connection closed")
            message_id = next(self._ids)
            self._pending[message_id] = future
        return message_id, future

    def _pop(self, message_id: int) -> Optional[asyncio.Future[Any]]:
        with self._lock:
            return self._pending.pop(message_id, None)

    def resolve(self, message_id: int, value: Any) -> bool:
        """Complete a pending command with a value.

        Returns:
            False if no command with that id is pending.
        """
        future = self._pop(message_id)
        if future is None:
            return False
        if not future.done():
            future.set_result(value)
        return True

    def reject(self, message_id: int, error: BaseException) -> bool:
        """Complete a pending command with an exception."""
        future = self._pop(message_id)
        if future is None:
            return False
        if not future.done():
            future.set_exception(error)
        return True

    def discard(self, message_id: int) -> None:
        """Forget a command whose caller gave up waiting."""
        self._pop(message_id)

    def fail_all(self, error: BaseException) -> int:
        """Fail every pending command and refuse new ones.

        Returns:
            Number of commands that were failed.
        """
        with self._lock:
            if self._closed is None:
                self._closed = error
            pending = list(self._pending.values())
            self._pending.clear()

        failed = 0
        for future in pending:
            if not future.done():
                future.set_exception(error)
                failed += 1
        if failed:
            logger.debug(f"Failed {failed} pending command(s): {error}")
        return failed
