"""
Session attached to the page target.

Owns the read loop that demultiplexes inbound frames into command replies,
console/exception logs, binding calls and target termination, and the
``send`` path that correlates commands with their replies.
"""

from __future__ import annotations

import asyncio
import json
import logging
from enum import Enum
from typing import Any, Callable, Optional

from pydantic import ValidationError

from firefox_ui.cdp.bindings import BindingHandler, BindingRegistry, binding_install_js, binding_result_js
from firefox_ui.cdp.connection import CDPConnection
from firefox_ui.cdp.handshake import handshake
from firefox_ui.cdp.requests import RequestTable
from firefox_ui.errors import CommandError, ConnectionClosedError, ProtocolError
from firefox_ui.models import (
    BindingCalled,
    CommandReply,
    ConsoleAPICalled,
    ConsoleMessage,
    Envelope,
    ExceptionThrown,
    ForwardedMessage,
    SessionIdentity,
    WindowBounds,
    parse_target_message,
)

logger = logging.getLogger(__name__)
console_logger = logging.getLogger("firefox_ui.console")

ConsoleHandler = Callable[[ConsoleMessage], Any]
TerminateHandler = Callable[[], Any]

# Domains enabled once the session is ready
DEFAULT_DOMAINS: list[tuple[str, dict[str, Any]]] = [
    ("Page.enable", {}),
    ("Target.setAutoAttach", {"autoAttach": True, "waitForDebuggerOnStart": False}),
    ("Network.enable", {}),
    ("Runtime.enable", {}),
    ("Security.enable", {}),
    ("Performance.enable", {}),
    ("Log.enable", {}),
]

_WARNING_CONSOLE_TYPES = {"error", "exception", "warning", "warn", "assert"}


class SessionState(str, Enum):
    """Protocol session lifecycle states."""

    CONNECTING = "connecting"
    HANDSHAKING = "handshaking"
    READY = "ready"
    CLOSED = "closed"


class TargetSession:
    """DevTools session for the page target.

    Commands may only be sent in the ``READY`` state. Every pending command
    fails with :class:`ConnectionClosedError` once the read loop stops.

    Example:
        async with CDPConnection(ws_url) as connection:
            session = await TargetSession.create(connection)
            await session.navigate("https://example.com")
            title = await session.evaluate("document.title")
            await session.close()
    """

    def __init__(
        self,
        connection: CDPConnection,
        identity: Optional[SessionIdentity] = None,
        *,
        bindings: Optional[BindingRegistry] = None,
        on_console: Optional[ConsoleHandler] = None,
        on_terminate: Optional[TerminateHandler] = None,
    ) -> None:
        """Initialize the session.

        Args:
            connection: Transport to the browser endpoint.
            identity: Target and session ids, if the handshake already ran.
            bindings: Registry consulted for ``Runtime.bindingCalled``.
            on_console: Called with every console message and page exception.
            on_terminate: Called once when the read loop stops on its own.
        """
        self._connection = connection
        self._identity = identity
        self._bindings = bindings if bindings is not None else BindingRegistry()
        self._on_console = on_console
        self._on_terminate = on_terminate
        self._requests = RequestTable()
        self._state = SessionState.CONNECTING
        self._reader: Optional[asyncio.Task[None]] = None
        self._tasks: set[asyncio.Task[Any]] = set()
        self._closed = asyncio.Event()
        self._close_reason: Optional[str] = None
        self._target_destroyed = False
        self._terminate_task: Optional[asyncio.Task[Any]] = None

    @classmethod
    async def create(
        cls,
        connection: CDPConnection,
        **kwargs: Any,
    ) -> "TargetSession":
        """Connect, run the handshake and start the read loop."""
        session = cls(connection, **kwargs)
        await session.open()
        return session

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def identity(self) -> Optional[SessionIdentity]:
        return self._identity

    @property
    def target_id(self) -> str:
        if self._identity is None:
            raise RuntimeError("Session has no target yet")
        return self._identity.target_id

    @property
    def session_id(self) -> str:
        if self._identity is None:
            raise RuntimeError("Session is not attached yet")
        return self._identity.session_id

    @property
    def bindings(self) -> BindingRegistry:
        return self._bindings

    @property
    def is_ready(self) -> bool:
        return self._state is SessionState.READY

    @property
    def target_destroyed(self) -> bool:
        """Whether the session ended because the page target was destroyed."""
        return self._target_destroyed

    @property
    def close_reason(self) -> Optional[str]:
        return self._close_reason

    @property
    def pending_count(self) -> int:
        return len(self._requests)

    async def open(self) -> None:
        """Connect and handshake as needed, then start the read loop."""
        if self._identity is None:
            if not self._connection.is_connected:
                self._state = SessionState.CONNECTING
                await self._connection.connect()
            self._state = SessionState.HANDSHAKING
            self._identity = await handshake(self._connection)
        self.start()

    def start(self) -> None:
        """Start the read loop. Requires an established identity."""
        if self._identity is None:
            raise RuntimeError("Cannot start a session before the handshake")
        if self._reader is not None:
            return
        self._state = SessionState.READY
        self._reader = asyncio.create_task(self._read_loop())
        logger.debug(
            f"Session {self._identity.session_id} ready on target {self._identity.target_id}"
        )

    async def wait_closed(self) -> None:
        """Wait until the read loop has stopped."""
        await self._closed.wait()

    async def send(
        self,
        method: str,
        params: Optional[dict[str, Any]] = None,
        *,
        timeout: Optional[float] = None,
    ) -> Any:
        """Send a command to the page target and wait for its reply.

        Args:
            method: Protocol method name (e.g., "Page.navigate").
            params: Method parameters.
            timeout: Optional timeout in seconds.

        Returns:
            The decoded reply value.

        Raises:
            CommandError: If the reply carries an error or exception.
            ConnectionClosedError: If the session stops before the reply.
            asyncio.TimeoutError: If the timeout expires.
        """
        if self._state is not SessionState.READY:
            raise ConnectionClosedError(f"Session is {self._state.value}")

        message_id, future = self._requests.allocate()
        inner = {"id": message_id, "method": method, "params": params or {}}
        try:
            await self._connection.send_message(
                {
                    "id": message_id,
                    "method": "Target.sendMessageToTarget",
                    "params": {"message": json.dumps(inner), "sessionId": self.session_id},
                }
            )
            if timeout is None:
                return await future
            return await asyncio.wait_for(future, timeout=timeout)
        except BaseException:
            self._requests.discard(message_id)
            if future.done() and not future.cancelled():
                future.exception()
            raise

    async def _read_loop(self) -> None:
        reason = "DevTools connection closed"
        try:
            while True:
                try:
                    envelope = await self._connection.receive()
                except ConnectionClosedError as e:
                    reason = str(e)
                    break
                except ProtocolError as e:
                    logger.warning(f"Stopping read loop on undecodable frame: {e}")
                    reason = f"Undecodable frame: {e}"
                    break

                if self._dispatch(envelope):
                    reason = f"Target {self.target_id} destroyed"
                    break
        except asyncio.CancelledError:
            reason = "Session closed"
            raise
        finally:
            self._shutdown(reason, notify=True)

    def _dispatch(self, envelope: Envelope) -> bool:
        """Route one frame. Returns True when the session must stop."""
        if not envelope.is_event:
            if envelope.id and envelope.error is not None:
                # The outer Target.sendMessageToTarget itself failed.
                message = envelope.error.get("message") or json.dumps(envelope.error)
                self._requests.reject(envelope.id, CommandError(message, envelope.error.get("data")))
            return False

        if envelope.method == "Target.receivedMessageFromTarget":
            self._dispatch_forwarded(envelope.params)
        elif envelope.method == "Target.targetDestroyed":
            if envelope.params.get("targetId") == self.target_id:
                logger.info(f"Page target {self.target_id} destroyed")
                self._target_destroyed = True
                return True
        return False

    def _dispatch_forwarded(self, params: dict[str, Any]) -> None:
        try:
            forwarded = ForwardedMessage.model_validate(params)
        except ValidationError as e:
            logger.warning(f"Malformed receivedMessageFromTarget params: {e}")
            return
        if forwarded.session_id != self.session_id:
            logger.debug(f"Dropping message for foreign session {forwarded.session_id}")
            return

        try:
            message = parse_target_message(forwarded.message)
        except ProtocolError as e:
            logger.warning(f"Ignoring malformed message from target: {e}")
            return

        if isinstance(message, (ConsoleAPICalled, ExceptionThrown)):
            self._emit_console(message.to_console_message())
        elif isinstance(message, BindingCalled):
            self._dispatch_binding(message)
        elif isinstance(message, CommandReply):
            self._resolve(message)

    def _resolve(self, reply: CommandReply) -> None:
        try:
            value = reply.outcome()
        except CommandError as e:
            found = self._requests.reject(reply.id, e)
        else:
            found = self._requests.resolve(reply.id, value)
        if not found:
            logger.debug(f"Dropping reply for unknown id {reply.id}")

    def _emit_console(self, message: ConsoleMessage) -> None:
        level = logging.WARNING if message.type in _WARNING_CONSOLE_TYPES else logging.INFO
        console_logger.log(level, f"[{message.type}] {message.text}")

        if self._on_console is None:
            return
        try:
            result = self._on_console(message)
            if asyncio.iscoroutine(result):
                self._track(asyncio.create_task(result))
        except Exception as e:
            logger.exception(f"Error in console handler: {e}")

    def _dispatch_binding(self, event: BindingCalled) -> None:
        if event.name not in self._bindings:
            logger.debug(f"Ignoring call to unregistered binding {event.name!r}")
            return
        try:
            payload = event.decode_payload()
        except ProtocolError as e:
            logger.warning(f"Ignoring binding call: {e}")
            return

        self._track(
            asyncio.create_task(
                self._answer_binding(event.name, payload.name, payload.seq, payload.args,
                                     event.execution_context_id)
            )
        )

    async def _answer_binding(
        self,
        name: str,
        callback_name: str,
        seq: int,
        args: list[Any],
        context_id: Optional[int],
    ) -> None:
        try:
            outcome = await self._bindings.invoke(name, args)
        except KeyError:
            return

        params: dict[str, Any] = {
            "expression": binding_result_js(callback_name, seq, outcome.result, outcome.error)
        }
        if context_id is not None:
            params["contextId"] = context_id
        try:
            await self.send("Runtime.evaluate", params)
        except ConnectionClosedError:
            logger.debug(f"Session closed before result of {name!r} call {seq} was delivered")
        except CommandError as e:
            logger.warning(f"Failed to deliver result of {name!r} call {seq}: {e}")

    def _track(self, task: asyncio.Task[Any]) -> None:
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _shutdown(self, reason: str, *, notify: bool) -> None:
        if self._state is SessionState.CLOSED:
            return
        self._state = SessionState.CLOSED
        self._close_reason = reason
        logger.debug(f"Session closing: {reason}")

        self._requests.fail_all(ConnectionClosedError(reason))
        for task in list(self._tasks):
            task.cancel()
        self._closed.set()

        if notify and self._on_terminate is not None:
            try:
                result = self._on_terminate()
                if asyncio.iscoroutine(result):
                    self._terminate_task = asyncio.get_running_loop().create_task(result)
            except Exception as e:
                logger.exception(f"Error in terminate handler: {e}")

    async def close(self) -> None:
        """Stop the read loop without notifying the terminate handler."""
        self._shutdown("Session closed", notify=False)
        reader, self._reader = self._reader, None
        if reader is not None and not reader.done():
            reader.cancel()
            try:
                await reader
            except asyncio.CancelledError:
                pass

    # Convenience commands

    async def enable_domains(self) -> None:
        """Enable the protocol domains the UI runtime relies on."""
        for method, params in DEFAULT_DOMAINS:
            await self.send(method, params)

    async def navigate(self, url: str) -> Any:
        """Navigate the page."""
        return await self.send("Page.navigate", {"url": url})

    async def evaluate(self, expression: str, *, timeout: Optional[float] = None) -> Any:
        """Evaluate a JavaScript expression and return its value."""
        return await self.send(
            "Runtime.evaluate",
            {"expression": expression, "awaitPromise": True, "returnByValue": True},
            timeout=timeout,
        )

    async def bind(self, name: str, handler: BindingHandler) -> None:
        """Register a binding and install it in the page if the session is ready."""
        self._bindings.register(name, handler)
        if self.is_ready:
            await self.install_binding(name)

    async def install_binding(self, name: str) -> None:
        """Expose ``name`` to the current and future documents."""
        script = binding_install_js(name)
        await self.send("Runtime.addBinding", {"name": name})
        await self.send("Page.addScriptToEvaluateOnNewDocument", {"source": script})
        await self.send("Runtime.evaluate", {"expression": script})

    async def install_bindings(self) -> None:
        for name in self._bindings.names():
            await self.install_binding(name)

    async def get_window_bounds(self) -> WindowBounds:
        """Look up the browser window hosting the page target."""
        result = await self.send("Browser.getWindowForTarget", {"targetId": self.target_id})
        return WindowBounds.from_result(result or {})
