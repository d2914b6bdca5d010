"""
Protocol data models for firefox-ui.

Frames coming off the DevTools websocket are decoded once into these models
and the dispatcher branches on the resulting type. Replies to commands sent
through ``Target.sendMessageToTarget`` arrive one JSON layer deeper, inside
``Target.receivedMessageFromTarget`` events; :func:`parse_target_message`
decodes that inner layer.
"""

from __future__ import annotations

import json
import time
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from firefox_ui.errors import CommandError, ProtocolError


def _loads_object(text: Union[str, bytes], what: str) -> dict[str, Any]:
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise ProtocolError(f"Invalid JSON in {what}: {e}") from e
    if not isinstance(data, dict):
        raise ProtocolError(f"Expected a JSON object in {what}, got {type(data).__name__}")
    return data


class _ProtocolModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Envelope(_ProtocolModel):
    """Top-level DevTools frame, used for commands, replies and events."""

    id: Optional[int] = None
    method: Optional[str] = None
    params: dict[str, Any] = Field(default_factory=dict)
    result: Any = None
    error: Optional[dict[str, Any]] = None
    session_id: Optional[str] = Field(None, alias="sessionId")

    @property
    def is_event(self) -> bool:
        """An envelope with a method and no meaningful id is an event."""
        return bool(self.method) and not self.id

    @classmethod
    def parse(cls, text: Union[str, bytes]) -> "Envelope":
        """Decode a raw websocket frame.

        Raises:
            ProtocolError: If the frame is not a JSON object of the expected shape.
        """
        data = _loads_object(text, "frame")
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ProtocolError(f"Malformed frame: {e}") from e


class TargetInfo(_ProtocolModel):
    """Target description carried by ``Target.targetCreated``."""

    target_id: str = Field(..., alias="targetId")
    type: str
    title: str = ""
    url: str = ""


class ForwardedMessage(_ProtocolModel):
    """Params of ``Target.receivedMessageFromTarget``."""

    session_id: str = Field("", alias="sessionId")
    target_id: str = Field("", alias="targetId")
    message: str = ""


class SessionIdentity(_ProtocolModel):
    """Target and session ids fixed by the handshake."""

    model_config = ConfigDict(frozen=True)

    target_id: str
    session_id: str


class ConsoleMessage(BaseModel):
    """Browser console message."""

    type: str
    text: str
    url: Optional[str] = None
    line_number: Optional[int] = None
    column_number: Optional[int] = None
    timestamp: float = 0.0


class RemoteObject(_ProtocolModel):
    """Mirror of a JavaScript value as returned by ``Runtime``."""

    type: str = ""
    subtype: str = ""
    description: str = ""
    value: Any = None
    object_id: Optional[str] = Field(None, alias="objectId")

    @property
    def has_value(self) -> bool:
        return "value" in self.model_fields_set

    def render(self) -> str:
        """Human readable form, used for console output."""
        if self.has_value:
            if isinstance(self.value, str):
                return self.value
            return json.dumps(self.value)
        if self.description:
            return self.description
        return self.type or "undefined"


class ExceptionDetails(_ProtocolModel):
    text: str = ""
    exception: Optional[RemoteObject] = None
    url: Optional[str] = None
    line_number: Optional[int] = Field(None, alias="lineNumber")
    column_number: Optional[int] = Field(None, alias="columnNumber")

    @property
    def message(self) -> str:
        if self.exception is not None:
            if self.exception.has_value or self.exception.description:
                return self.exception.render()
        return self.text or "Uncaught exception"


class ReplyError(_ProtocolModel):
    code: Optional[int] = None
    message: str = ""
    data: Any = None


class EvaluationResult(_ProtocolModel):
    result: Optional[RemoteObject] = None
    exception_details: Optional[ExceptionDetails] = Field(None, alias="exceptionDetails")


class CommandReply(_ProtocolModel):
    """Reply to a command sent through ``Target.sendMessageToTarget``."""

    kind: Literal["reply"] = "reply"
    id: int = 0
    error: Optional[ReplyError] = None
    result: Any = None

    def _evaluation(self) -> Optional[EvaluationResult]:
        if not isinstance(self.result, dict):
            return None
        try:
            return EvaluationResult.model_validate(self.result)
        except ValidationError:
            return None

    def outcome(self) -> Any:
        """Return the reply's value or raise its error.

        Precedence: explicit error message, then a thrown exception, then an
        ``Error`` object result, then a typed result value, then the raw
        result payload.

        Raises:
            CommandError: If the reply represents a failure.
        """
        if self.error is not None:
            raise CommandError(
                self.error.message or json.dumps(self.error.model_dump()),
                self.error.data,
            )

        evaluation = self._evaluation()
        if evaluation is not None:
            if evaluation.exception_details is not None:
                details = evaluation.exception_details
                raise CommandError(details.message, details.model_dump(by_alias=True))
            remote = evaluation.result
            if remote is not None and remote.type:
                if remote.type == "object" and remote.subtype == "error":
                    raise CommandError(remote.description)
                return remote.value

        return self.result


class ConsoleAPICalled(_ProtocolModel):
    kind: Literal["console"] = "console"
    type: str = "log"
    args: list[RemoteObject] = Field(default_factory=list)
    execution_context_id: Optional[int] = Field(None, alias="executionContextId")
    timestamp: float = Field(default_factory=time.time)

    def to_console_message(self) -> ConsoleMessage:
        return ConsoleMessage(
            type=self.type,
            text=" ".join(arg.render() for arg in self.args),
            timestamp=self.timestamp,
        )


class ExceptionThrown(_ProtocolModel):
    kind: Literal["exception"] = "exception"
    timestamp: float = Field(default_factory=time.time)
    exception_details: ExceptionDetails = Field(
        default_factory=ExceptionDetails, alias="exceptionDetails"
    )

    def to_console_message(self) -> ConsoleMessage:
        details = self.exception_details
        return ConsoleMessage(
            type="exception",
            text=details.message,
            url=details.url,
            line_number=details.line_number,
            column_number=details.column_number,
            timestamp=self.timestamp,
        )


class BindingPayload(_ProtocolModel):
    """Payload the page-side binding stub sends: ``{name, seq, args}``."""

    name: str
    seq: int
    args: list[Any] = Field(default_factory=list)


class BindingCalled(_ProtocolModel):
    kind: Literal["binding"] = "binding"
    name: str
    payload: str = ""
    execution_context_id: Optional[int] = Field(None, alias="executionContextId")

    def decode_payload(self) -> BindingPayload:
        data = _loads_object(self.payload, f"binding payload for {self.name!r}")
        try:
            return BindingPayload.model_validate(data)
        except ValidationError as e:
            raise ProtocolError(f"Malformed binding payload: {e}") from e


class UnknownEvent(_ProtocolModel):
    kind: Literal["unknown"] = "unknown"
    method: str
    params: dict[str, Any] = Field(default_factory=dict)


TargetMessage = Union[ConsoleAPICalled, ExceptionThrown, BindingCalled, CommandReply, UnknownEvent]

_EVENT_MODELS: dict[str, type[_ProtocolModel]] = {
    "Runtime.consoleAPICalled": ConsoleAPICalled,
    "Runtime.exceptionThrown": ExceptionThrown,
    "Runtime.bindingCalled": BindingCalled,
}


def parse_target_message(text: Union[str, bytes]) -> TargetMessage:
    """Decode the nested message of ``Target.receivedMessageFromTarget``.

    Raises:
        ProtocolError: If the message is not valid JSON or has the wrong shape.
    """
    data = _loads_object(text, "forwarded message")
    method = data.get("method")
    try:
        if method:
            params = data.get("params") or {}
            model = _EVENT_MODELS.get(method)
            if model is None:
                return UnknownEvent(method=method, params=params)
            return model.model_validate(params)  # type: ignore[return-value]
        return CommandReply.model_validate(data)
    except ValidationError as e:
        raise ProtocolError(f"Malformed {method or 'reply'} message: {e}") from e


class WindowBounds(_ProtocolModel):
    """Result of ``Browser.getWindowForTarget``."""

    window_id: int = Field(..., alias="windowId")
    left: Optional[int] = None
    top: Optional[int] = None
    width: Optional[int] = None
    height: Optional[int] = None
    window_state: Optional[str] = Field(None, alias="windowState")

    @classmethod
    def from_result(cls, result: dict[str, Any]) -> "WindowBounds":
        bounds = result.get("bounds") or {}
        return cls.model_validate({"windowId": result.get("windowId"), **bounds})
