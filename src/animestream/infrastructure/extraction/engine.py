"""Extraction race engine.

One call of :meth:`VideoExtractor.extract_video_url` walks through::

    IDLE -> SESSION_CREATED -> PAGE_LOADING -> RACING
         -> {RESOLVED | TIMED_OUT | LOAD_FAILED} -> CLOSED

Every attempt owns a fresh browsing session; the session scope guarantees
the context and its listeners are released on every exit path. Three
strategies race after a short settle delay (network interception, DOM
inspection, script-API hooks) and the first filter-passing candidate wins.
Losing strategies are cancelled; the :class:`RaceSlot` still guards the
winner so a late resolution cannot replace it.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import replace
from typing import Any, Protocol

import structlog

from animestream.domain.entities.extraction import (
    ExtractionFailure,
    ExtractionResult,
    ExtractionSuccess,
    ExtractionToken,
    Provider,
)
from animestream.domain.ports.browser import (
    BrowserSessionFactoryPort,
    PageSessionPort,
)
from animestream.infrastructure.providers.detector import (
    correct_embed_url,
    detect_provider,
)
from animestream.infrastructure.providers.headers import headers_for

from .candidate_filter import is_video_candidate
from .errors import (
    classify_exception,
    classify_navigation_error,
    classify_status,
    is_aborted_navigation,
    no_video_found,
)
from .instrumentation import (
    DEFAULT_INSTRUMENTATION,
    DOM_SCAN_SCRIPT,
    FINAL_VIDEO_SCRIPT,
    InstrumentationScript,
)
from .race import Candidate, RaceSlot

log = structlog.get_logger(__name__)

BLOB_NOTE = "Blob-backed stream; the URL may not be directly downloadable."
UNVERIFIED_NOTE = "Read from the player element; the URL may not be directly downloadable."


class _ExtractionConfig(Protocol):
    settle_delay_seconds: float
    network_timeout_seconds: float
    dom_timeout_seconds: float
    hook_timeout_seconds: float
    navigation_timeout_seconds: float
    batch_delay_seconds: float


class _MetricsRecorder(Protocol):
    def record_extraction(
        self,
        provider: str,
        duration_ns: int,
        *,
        strategy: str | None = None,
        error_code: str | None = None,
    ) -> None: ...

    def record_batch(self, total: int, resolved: int) -> None: ...


class _NetworkWatch:
    """Collects request URLs from the session and resolves on the first candidate."""

    def __init__(self) -> None:
        self._found: asyncio.Future[str] = asyncio.get_running_loop().create_future()
        self.seen = 0

    def observe(self, url: str) -> None:
        self.seen += 1
        if self._found.done():
            return
        if is_video_candidate(url):
            self._found.set_result(url)

    async def wait(self, timeout: float) -> str | None:
        done, _ = await asyncio.wait({self._found}, timeout=timeout)
        return self._found.result() if done else None

    def discard(self) -> None:
        if not self._found.done():
            self._found.cancel()


class VideoExtractor:
    """Resolves embed pages to direct media URLs.

    Usage::

        extractor = VideoExtractor(sessions, config.extraction, metrics=metrics)
        result = await extractor.extract_video_url("https://vidmoly.to/embed-x.html")
        match result:
            case ExtractionSuccess(video_url=url):
                ...
            case ExtractionFailure(error_code=code):
                ...
    """

    def __init__(
        self,
        sessions: BrowserSessionFactoryPort,
        config: _ExtractionConfig,
        *,
        metrics: _MetricsRecorder | None = None,
        instrumentation: InstrumentationScript = DEFAULT_INSTRUMENTATION,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._sessions = sessions
        self._config = config
        self._metrics = metrics
        self._instrumentation = instrumentation
        self._sleep = sleep

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def extract_video_url(
        self, embed_url: str, *, token: ExtractionToken | None = None
    ) -> ExtractionResult:
        """Run one extraction attempt. Failures are returned, never raised."""
        started = time.perf_counter_ns()
        target = correct_embed_url(embed_url)
        provider = detect_provider(target)

        bound: dict[str, str] = {"embed_url": target[:160]}
        if token is not None:
            bound["extraction_id"] = token.token_id
            bound["extraction_kind"] = token.kind

        with structlog.contextvars.bound_contextvars(**bound):
            if target != embed_url:
                log.debug("embed_url_corrected", original=embed_url[:160])
            log.info("extraction_started", provider=provider.value)
            try:
                async with self._sessions.session() as session:
                    result = await self._run(session, target, provider)
            except Exception as exc:  # noqa: BLE001
                result = classify_exception(exc)
                log.warning(
                    "extraction_error",
                    error_code=result.error_code.value,
                    error=result.raw_error[:200],
                )

            elapsed_ns = time.perf_counter_ns() - started
            result = self._finish(result, provider, elapsed_ns)
        return result

    async def extract_multiple_video_urls(
        self, embed_urls: Sequence[str]
    ) -> dict[str, str | None]:
        """Extract one embed at a time with a fixed pause between items.

        Keys are the input URLs; failed items map to ``None``.
        """
        results: dict[str, str | None] = {}
        for position, embed_url in enumerate(embed_urls):
            if position > 0:
                await self._sleep(self._config.batch_delay_seconds)
            try:
                result = await self.extract_video_url(embed_url)
            except Exception:  # noqa: BLE001
                log.warning("batch_item_failed", embed_url=embed_url[:160], exc_info=True)
                results[embed_url] = None
                continue
            match result:
                case ExtractionSuccess(video_url=video_url):
                    results[embed_url] = video_url
                case _:
                    results[embed_url] = None

        resolved = sum(1 for url in results.values() if url is not None)
        log.info("batch_extraction_done", total=len(embed_urls), resolved=resolved)
        if self._metrics is not None:
            self._metrics.record_batch(len(embed_urls), resolved)
        return results

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    async def _run(
        self, session: PageSessionPort, target: str, provider: Provider
    ) -> ExtractionResult:
        # Observation starts with the session so early requests are not lost.
        network = _NetworkWatch()
        session.on_request(network.observe)
        await session.add_init_script(self._instrumentation.installer)

        try:
            failure = await self._load(session, target)
            if failure is not None:
                return failure

            await self._sleep(self._config.settle_delay_seconds)

            winner = await self._race(session, network)
            if winner is not None:
                log.info(
                    "extraction_succeeded",
                    strategy=winner.strategy,
                    video_url=winner.url[:160],
                )
                return ExtractionSuccess(
                    video_url=winner.url,
                    strategy=winner.strategy,
                    headers=headers_for(winner.url) or headers_for(target),
                )

            fallback = await self._read_final_video(session)
            if fallback is not None:
                return ExtractionSuccess(
                    video_url=fallback[0],
                    note=fallback[1],
                    strategy="fallback",
                    headers=headers_for(target),
                )

            log.info("extraction_no_video", provider=provider.value, requests=network.seen)
            return no_video_found(target)
        finally:
            network.discard()

    async def _load(
        self, session: PageSessionPort, target: str
    ) -> ExtractionFailure | None:
        timeout_ms = int(self._config.navigation_timeout_seconds * 1000)
        try:
            status = await session.navigate(target, timeout_ms=timeout_ms)
        except Exception as exc:
            failure = classify_navigation_error(exc)
            if failure is not None:
                log.info("navigation_failed", error_code=failure.error_code.value)
                return failure
            if is_aborted_navigation(exc):
                log.debug("navigation_aborted_tolerated")
                return None
            raise

        failure = classify_status(status)
        if failure is not None:
            log.info("navigation_failed", status=status, error_code=failure.error_code.value)
        return failure

    async def _race(
        self, session: PageSessionPort, network: _NetworkWatch
    ) -> Candidate | None:
        slot = RaceSlot()
        tasks = [
            asyncio.create_task(self._network_strategy(network), name="network"),
            asyncio.create_task(self._dom_strategy(session), name="dom"),
            asyncio.create_task(self._hook_strategy(session), name="hooks"),
        ]
        try:
            pending: set[asyncio.Task[Candidate | None]] = set(tasks)
            while pending and not slot.settled:
                done, pending = await asyncio.wait(
                    pending, return_when=asyncio.FIRST_COMPLETED
                )
                for task in done:
                    slot.commit(task.result())
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
        return slot.winner

    # ------------------------------------------------------------------
    # Strategies (each yields None instead of raising)
    # ------------------------------------------------------------------

    async def _network_strategy(self, network: _NetworkWatch) -> Candidate | None:
        try:
            url = await network.wait(self._config.network_timeout_seconds)
        except Exception:  # noqa: BLE001
            log.debug("network_strategy_error", exc_info=True)
            return None
        return Candidate(url=url, strategy="network") if url else None

    async def _dom_strategy(self, session: PageSessionPort) -> Candidate | None:
        try:
            url = await asyncio.wait_for(
                session.evaluate(DOM_SCAN_SCRIPT),
                timeout=self._config.dom_timeout_seconds,
            )
        except Exception:  # noqa: BLE001
            log.debug("dom_strategy_error", exc_info=True)
            return None
        if isinstance(url, str) and url:
            return Candidate(url=url, strategy="dom")
        return None

    async def _hook_strategy(self, session: PageSessionPort) -> Candidate | None:
        timeout = self._config.hook_timeout_seconds
        try:
            hit = await asyncio.wait_for(
                session.evaluate(
                    self._instrumentation.await_expression, int(timeout * 1000)
                ),
                # page-side wait resolves itself; this bounds a hung evaluate
                timeout=timeout + 1.0,
            )
        except Exception:  # noqa: BLE001
            log.debug("hook_strategy_error", exc_info=True)
            return None
        if isinstance(hit, dict) and isinstance(hit.get("url"), str) and hit["url"]:
            log.debug("hook_strategy_hit", via=hit.get("type"))
            return Candidate(url=hit["url"], strategy="hooks")
        return None

    async def _read_final_video(
        self, session: PageSessionPort
    ) -> tuple[str, str] | None:
        """Last resort: read the player element even if blob-backed."""
        try:
            info = await asyncio.wait_for(
                session.evaluate(FINAL_VIDEO_SCRIPT),
                timeout=self._config.dom_timeout_seconds,
            )
        except Exception:  # noqa: BLE001
            log.debug("final_video_read_error", exc_info=True)
            return None
        if not isinstance(info, dict):
            return None
        url = info.get("src") or info.get("currentSrc")
        if not isinstance(url, str) or not url:
            return None
        blob = url.startswith("blob:") or bool(info.get("blobBacked"))
        log.info("extraction_fallback_video_element", blob=blob, video_url=url[:160])
        return url, BLOB_NOTE if blob else UNVERIFIED_NOTE

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    def _finish(
        self, result: ExtractionResult, provider: Provider, elapsed_ns: int
    ) -> ExtractionResult:
        elapsed_ms = elapsed_ns // 1_000_000
        match result:
            case ExtractionSuccess():
                result = replace(result, elapsed_ms=elapsed_ms)
                if self._metrics is not None:
                    self._metrics.record_extraction(
                        provider.value, elapsed_ns, strategy=result.strategy
                    )
            case ExtractionFailure(error_code=code):
                log.info(
                    "extraction_failed",
                    error_code=code.value,
                    elapsed_ms=elapsed_ms,
                )
                if self._metrics is not None:
                    self._metrics.record_extraction(
                        provider.value, elapsed_ns, error_code=code.value
                    )
        return result
