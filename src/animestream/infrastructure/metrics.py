"""Zero-impact in-memory extraction metrics.

All counters are plain integers updated from the single-threaded event
loop. ``time.perf_counter_ns()`` is used for timing.
"""

from __future__ import annotations

import time
from collections import Counter
from dataclasses import dataclass, field


@dataclass
class ProviderStats:
    """Accumulated statistics for one provider."""

    attempts: int = 0
    successes: int = 0
    failures: int = 0
    total_duration_ns: int = 0

    def snapshot(self) -> dict[str, object]:
        """Return a JSON-serializable summary."""
        avg_ms = (
            round(self.total_duration_ns / self.attempts / 1_000_000, 1)
            if self.attempts
            else 0.0
        )
        return {
            "attempts": self.attempts,
            "successes": self.successes,
            "failures": self.failures,
            "avg_duration_ms": avg_ms,
        }


@dataclass
class BatchStats:
    runs: int = 0
    total_urls: int = 0
    resolved: int = 0

    def snapshot(self) -> dict[str, object]:
        return {
            "runs": self.runs,
            "total_urls": self.total_urls,
            "resolved": self.resolved,
        }


@dataclass
class MetricsCollector:
    """Central in-memory metrics collector."""

    _providers: dict[str, ProviderStats] = field(default_factory=dict)
    _strategy_wins: Counter[str] = field(default_factory=Counter)
    _errors: Counter[str] = field(default_factory=Counter)
    _batch: BatchStats = field(default_factory=BatchStats)
    _warmed: int = 0
    _start_ns: int = field(default_factory=time.perf_counter_ns)

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record_extraction(
        self,
        provider: str,
        duration_ns: int,
        *,
        strategy: str | None = None,
        error_code: str | None = None,
    ) -> None:
        """Record one extraction attempt (success when *error_code* is None)."""
        stats = self._providers.get(provider)
        if stats is None:
            stats = ProviderStats()
            self._providers[provider] = stats

        stats.attempts += 1
        stats.total_duration_ns += duration_ns

        if error_code is None:
            stats.successes += 1
            if strategy:
                self._strategy_wins[strategy] += 1
        else:
            stats.failures += 1
            self._errors[error_code] += 1

    def record_batch(self, total: int, resolved: int) -> None:
        self._batch.runs += 1
        self._batch.total_urls += total
        self._batch.resolved += resolved

    def record_warm(self, count: int) -> None:
        self._warmed += count

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def snapshot(self) -> dict[str, object]:
        """Return a JSON-serializable snapshot of all metrics."""
        uptime_ns = time.perf_counter_ns() - self._start_ns
        return {
            "uptime_seconds": round(uptime_ns / 1_000_000_000, 1),
            "providers": {
                name: stats.snapshot()
                for name, stats in sorted(self._providers.items())
            },
            "strategy_wins": dict(sorted(self._strategy_wins.items())),
            "errors": dict(sorted(self._errors.items())),
            "batch": self._batch.snapshot(),
            "warmed_episodes": self._warmed,
        }
