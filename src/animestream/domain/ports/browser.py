"""Browser Port - isolated browsing sessions used by the extraction engine."""

from __future__ import annotations

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class PageSessionPort(Protocol):
    """One isolated browsing context holding a single page.

    A session never shares cookies, storage or listeners with another
    session. ``close()`` is idempotent.
    """

    async def add_init_script(self, script: str) -> None:
        """Register a script that runs in every frame before page scripts."""
        ...

    def on_request(self, callback: Callable[[str], None]) -> None:
        """Register a callback receiving every outbound request URL.

        Called for issued and for completed requests.
        """
        ...

    async def navigate(self, url: str, *, timeout_ms: int) -> int | None:
        """Load *url* and return the main document status (None if unknown)."""
        ...

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        """Evaluate a JS expression in the page and return its JSON value."""
        ...

    async def close(self) -> None:
        """Detach listeners and close the context."""
        ...


class BrowserSessionFactoryPort(Protocol):
    """Creates isolated sessions and releases them on scope exit."""

    def session(self) -> AbstractAsyncContextManager[PageSessionPort]:
        """Async context manager owning one session for one extraction."""
        ...

    async def cleanup(self) -> None:
        """Release the shared browser process."""
        ...
