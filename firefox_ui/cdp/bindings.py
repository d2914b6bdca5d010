"""
Host functions exposed to page JavaScript.

A page calls ``window[name](...args)``; the stub installed by
:func:`binding_install_js` forwards ``{name, seq, args}`` through
``Runtime.addBinding``, and the session answers by evaluating
:func:`binding_result_js` which settles the promise stored under ``seq``.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
import threading
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union

from firefox_ui.errors import BindingHandlerError

logger = logging.getLogger(__name__)

BindingHandler = Callable[..., Union[Any, Awaitable[Any]]]


@dataclass
class BindingResult:
    """Outcome of a handler call, both fields JSON text."""

    result: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _js_literal(value: Any) -> str:
    # JSON is valid JavaScript except for raw U+2028/U+2029 in older engines.
    return json.dumps(value).replace("\u2028", "\\u2028").replace("\u2029", "\\u2029")


def binding_result_js(
    name: str,
    seq: int,
    result: Optional[str] = None,
    error: Optional[str] = None,
) -> str:
    """Build the expression that settles the page-side call ``seq``.

    Args:
        name: Binding name.
        seq: Sequence number the page stub assigned to the call.
        result: JSON text of the successful result.
        error: JSON text of the error, selects the rejection path.
    """
    target = f"window[{_js_literal(name)}]"
    seq_literal = _js_literal(int(seq))
    if error is not None:
        settle = f"{target}['errors'].get({seq_literal})({error});"
    else:
        settle = f"{target}['callbacks'].get({seq_literal})({result if result is not None else 'undefined'});"
    return (
        f"{settle}\n"
        f"{target}['callbacks'].delete({seq_literal});\n"
        f"{target}['errors'].delete({seq_literal});"
    )


def binding_install_js(name: str) -> str:
    """Page-side stub turning the raw binding into a promise-returning function."""
    return """
(() => {
  const bindingName = %(name)s;
  const binding = window[bindingName];
  window[bindingName] = async (...args) => {
    const me = window[bindingName];
    let errors = me['errors'];
    let callbacks = me['callbacks'];
    if (!callbacks) {
      callbacks = new Map();
      me['callbacks'] = callbacks;
    }
    if (!errors) {
      errors = new Map();
      me['errors'] = errors;
    }
    const seq = (me['lastSeq'] || 0) + 1;
    me['lastSeq'] = seq;
    const promise = new Promise((resolve, reject) => {
      callbacks.set(seq, resolve);
      errors.set(seq, reject);
    });
    binding(JSON.stringify({name: bindingName, seq, args}));
    return promise;
  };
})();
""" % {"name": _js_literal(name)}


class BindingRegistry:
    """Thread-safe mapping from binding name to host handler."""

    def __init__(self) -> None:
        self._handlers: dict[str, BindingHandler] = {}
        self._lock = threading.Lock()

    def register(self, name: str, handler: BindingHandler) -> None:
        """Store or replace the handler for ``name``."""
        if not callable(handler):
            raise TypeError(f"Binding handler for {name!r} is not callable")
        with self._lock:
            self._handlers[name] = handler
        logger.debug(f"Registered binding {name!r}")

    def unregister(self, name: str) -> None:
        with self._lock:
            self._handlers.pop(name, None)

    def get(self, name: str) -> Optional[BindingHandler]:
        with self._lock:
            return self._handlers.get(name)

    def names(self) -> list[str]:
        with self._lock:
            return list(self._handlers)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._handlers

    def __len__(self) -> int:
        with self._lock:
            return len(self._handlers)

    async def invoke(self, name: str, args: list[Any]) -> BindingResult:
        """Run the handler for ``name`` and capture its outcome as JSON.

        Coroutine handlers are awaited; plain callables run in a worker
        thread. Handler exceptions and unserializable results become errors.

        Raises:
            KeyError: If no handler is registered for ``name``.
        """
        handler = self.get(name)
        if handler is None:
            raise KeyError(name)

        try:
            if inspect.iscoroutinefunction(handler):
                value = await handler(*args)
            else:
                value = await asyncio.to_thread(handler, *args)
                if inspect.isawaitable(value):
                    value = await value
        except Exception as e:
            logger.debug(f"Binding {name!r} raised: {e!r}")
            return BindingResult(error=_js_literal(_error_text(e)))

        try:
            return BindingResult(result=_js_literal(value))
        except (TypeError, ValueError) as e:
            error = BindingHandlerError(f"Result of binding {name!r} is not JSON serializable: {e}")
            return BindingResult(error=_js_literal(str(error)))


def _error_text(error: BaseException) -> str:
    return str(error) or type(error).__name__
