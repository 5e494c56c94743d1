"""Playwright-backed isolated browsing sessions.

A single Chromium process is launched lazily and shared; every extraction
gets its own ``BrowserContext`` (never pooled), so cookies, storage and
routes cannot leak from one extraction into another. The header policy
route is installed on the context before the first navigation.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import structlog
from playwright.async_api import (
    Browser,
    BrowserContext,
    Page,
    Playwright,
    Request,
    async_playwright,
)
from playwright_stealth import Stealth

from animestream.infrastructure.providers.headers import (
    DEFAULT_USER_AGENT,
    apply_header_policy,
)

log = structlog.get_logger(__name__)

_REQUEST_EVENTS: tuple[str, ...] = ("request", "requestfinished")


class PlaywrightPageSession:
    """One isolated context + page, adapted to ``PageSessionPort``."""

    def __init__(self, context: BrowserContext, page: Page) -> None:
        self._context = context
        self._page = page
        self._listeners: list[tuple[str, Callable[[Request], None]]] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def add_init_script(self, script: str) -> None:
        await self._context.add_init_script(script=script)

    def on_request(self, callback: Callable[[str], None]) -> None:
        """Forward URLs of issued and finished requests to *callback*."""

        def _forward(request: Request) -> None:
            try:
                callback(request.url)
            except Exception:  # noqa: BLE001
                log.debug("request_listener_error", exc_info=True)

        for event in _REQUEST_EVENTS:
            self._context.on(event, _forward)
            self._listeners.append((event, _forward))

    async def navigate(self, url: str, *, timeout_ms: int) -> int | None:
        resp = await self._page.goto(
            url,
            wait_until="domcontentloaded",
            timeout=timeout_ms,
        )
        return resp.status if resp is not None else None

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        if arg is None:
            return await self._page.evaluate(script)
        return await self._page.evaluate(script, arg)

    async def close(self) -> None:
        """Detach listeners and close the context (idempotent)."""
        if self._closed:
            return
        self._closed = True
        for event, handler in self._listeners:
            try:
                self._context.remove_listener(event, handler)
            except Exception:  # noqa: BLE001
                log.debug("request_listener_remove_error", event=event, exc_info=True)
        self._listeners.clear()
        try:
            await self._context.close()
        except Exception:  # noqa: BLE001
            log.debug("session_context_close_error", exc_info=True)


class PlaywrightSessionFactory:
    """Lazily launched Chromium handing out one fresh context per session.

    Usage::

        factory = PlaywrightSessionFactory(headless=True, stealth=True)
        async with factory.session() as session:
            await session.navigate(url, timeout_ms=15_000)
        await factory.cleanup()
    """

    def __init__(
        self,
        *,
        headless: bool = True,
        stealth: bool = True,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self._headless = headless
        self._stealth = stealth
        self._user_agent = user_agent
        self._pw: Playwright | None = None
        self._browser: Browser | None = None
        self._lock = asyncio.Lock()
        self._open_sessions = 0

    @property
    def is_running(self) -> bool:
        return self._browser is not None and self._browser.is_connected()

    @property
    def open_sessions(self) -> int:
        return self._open_sessions

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def warmup(self) -> Browser:
        """Ensure Chromium is running; relaunch it if it disconnected."""
        if self._browser is not None and self._browser.is_connected():
            return self._browser

        async with self._lock:
            if self._browser is not None and self._browser.is_connected():
                return self._browser

            if self._pw is not None:
                try:
                    await self._pw.stop()
                except Exception:  # noqa: BLE001
                    log.debug("browser_stale_pw_stop_error", exc_info=True)
                self._pw = None
                self._browser = None

            self._pw = await async_playwright().start()
            self._browser = await self._pw.chromium.launch(headless=self._headless)
            log.info(
                "browser_launched", headless=self._headless, stealth=self._stealth
            )
            return self._browser

    async def cleanup(self) -> None:
        """Close the browser and Playwright (idempotent)."""
        if self._browser is not None:
            try:
                await self._browser.close()
            except Exception:  # noqa: BLE001
                log.warning("browser_close_error", exc_info=True)
            self._browser = None
        if self._pw is not None:
            try:
                await self._pw.stop()
            except Exception:  # noqa: BLE001
                log.warning("browser_pw_stop_error", exc_info=True)
            self._pw = None
        log.info("browser_cleaned_up")

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def _new_context(self) -> BrowserContext:
        browser = await self.warmup()
        context = await browser.new_context(user_agent=self._user_agent)
        try:
            if self._stealth:
                await Stealth().apply_stealth_async(context)
            await context.route("**/*", apply_header_policy)
        except BaseException:
            await context.close()
            raise
        return context

    @asynccontextmanager
    async def session(self) -> AsyncIterator[PlaywrightPageSession]:
        """Yield a fresh isolated session, closed on every exit path."""
        context = await self._new_context()
        self._open_sessions += 1
        try:
            page = await context.new_page()
            session = PlaywrightPageSession(context, page)
        except BaseException:
            self._open_sessions -= 1
            await context.close()
            raise
        try:
            yield session
        finally:
            self._open_sessions -= 1
            await session.close()
