"""
Abstract base interfaces for firefox-ui.

This module defines the abstract surface a UI runtime exposes to host code.
"""

from abc import ABC, abstractmethod
import asyncio
from typing import Any, Callable, Optional


class BaseUI(ABC):
    """Abstract base class for an HTML5 UI hosted in a browser window."""

    @abstractmethod
    async def load(self, url: str) -> None:
        """Navigate the window to a URL."""
        ...

    @abstractmethod
    async def run(self) -> Optional[int]:
        """Start the browser and block until it exits or is stopped."""
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Terminate the browser and release its resources."""
        ...

    @abstractmethod
    def done(self) -> asyncio.Event:
        """Event set once the UI has terminated."""
        ...

    @abstractmethod
    async def eval(self, js: str) -> Any:
        """Evaluate JavaScript in the page and return the value."""
        ...

    @abstractmethod
    async def bind(self, name: str, handler: Callable[..., Any]) -> None:
        """Expose a host function to page JavaScript."""
        ...
