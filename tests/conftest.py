"""
Shared fixtures for firefox-ui tests.
"""

import asyncio
import json
import os
import shlex
import stat
import sys
from pathlib import Path
from typing import Any, Callable, Optional, Union

import pytest

from firefox_ui.errors import ConnectionClosedError
from firefox_ui.models import Envelope, SessionIdentity

TESTS_DIR = Path(__file__).parent

_CLOSE = object()


class FakeConnection:
    """In-memory stand-in for CDPConnection.

    Frames fed with :meth:`feed` are returned by :meth:`receive` in order;
    everything written with :meth:`send_message` is kept in :attr:`sent`.
    """

    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []
        self.closed = False
        self.on_send: Optional[Callable[[dict[str, Any]], None]] = None
        self._inbox: asyncio.Queue = asyncio.Queue()

    @property
    def is_connected(self) -> bool:
        return not self.closed

    async def connect(self) -> None:
        pass

    async def send_message(self, message: dict[str, Any]) -> None:
        if self.closed:
            raise ConnectionClosedError("Not connected to DevTools")
        self.sent.append(message)
        if self.on_send is not None:
            self.on_send(message)

    async def receive(self) -> Envelope:
        item = await self._inbox.get()
        if item is _CLOSE:
            self.closed = True
            raise ConnectionClosedError("DevTools connection closed")
        if isinstance(item, (str, bytes)):
            return Envelope.parse(item)
        return Envelope.parse(json.dumps(item))

    def feed(self, frame: Union[dict[str, Any], str]) -> None:
        self._inbox.put_nowait(frame)

    def feed_close(self) -> None:
        self._inbox.put_nowait(_CLOSE)

    async def close(self) -> None:
        if not self.closed:
            self.closed = True
            self.feed_close()

    def inner_messages(self) -> list[dict[str, Any]]:
        """Decoded messages wrapped in Target.sendMessageToTarget."""
        return [
            json.loads(m["params"]["message"])
            for m in self.sent
            if m.get("method") == "Target.sendMessageToTarget"
        ]


def forwarded(session_id: str, message: Union[dict[str, Any], str]) -> dict[str, Any]:
    """Wrap a message the way Firefox forwards session traffic."""
    text = message if isinstance(message, str) else json.dumps(message)
    return {
        "method": "Target.receivedMessageFromTarget",
        "params": {"sessionId": session_id, "targetId": "page-1", "message": text},
    }


async def wait_until(condition: Callable[[], Any], timeout: float = 2.0) -> None:
    """Poll ``condition`` until it is truthy."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not condition():
        if loop.time() > deadline:
            raise AssertionError("Condition not met in time")
        await asyncio.sleep(0.01)


class Frames:
    """Frame builders and helpers, exposed through the ``frames`` fixture."""

    forwarded = staticmethod(forwarded)
    wait_until = staticmethod(wait_until)

    @staticmethod
    def reply(session_id: str, message_id: int, result: Any) -> dict[str, Any]:
        return forwarded(session_id, {"id": message_id, "result": result})

    @staticmethod
    def value_reply(session_id: str, message_id: int, value: Any) -> dict[str, Any]:
        kind = "string" if isinstance(value, str) else "number"
        return forwarded(
            session_id, {"id": message_id, "result": {"result": {"type": kind, "value": value}}}
        )

    @staticmethod
    def binding_called(session_id: str, name: str, seq: int, args: list[Any],
                       context_id: int = 3) -> dict[str, Any]:
        return forwarded(
            session_id,
            {
                "method": "Runtime.bindingCalled",
                "params": {
                    "name": name,
                    "payload": json.dumps({"name": name, "seq": seq, "args": args}),
                    "executionContextId": context_id,
                },
            },
        )


@pytest.fixture
def frames() -> type[Frames]:
    return Frames


@pytest.fixture
def fake_connection() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def identity() -> SessionIdentity:
    return SessionIdentity(target_id="page-1", session_id="session-1")


@pytest.fixture
def make_firefox(tmp_path: Path) -> Callable[..., str]:
    """Create an executable wrapper that runs a Python script as 'firefox'."""
    if os.name == "nt":
        pytest.skip("Shell wrappers require a POSIX system")

    def factory(script: Optional[str] = None, code: Optional[str] = None) -> str:
        wrapper = tmp_path / "firefox"
        if code is not None:
            target = f"-c {shlex.quote(code)}"
        else:
            target = shlex.quote(str(script or TESTS_DIR / "fake_firefox.py"))
        wrapper.write_text(f'#!/bin/sh\nexec {shlex.quote(sys.executable)} {target} "$@"\n')
        wrapper.chmod(wrapper.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return str(wrapper)

    return factory
