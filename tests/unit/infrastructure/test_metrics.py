"""Tests for MetricsCollector."""

from __future__ import annotations

from animestream.infrastructure.metrics import MetricsCollector, ProviderStats


class TestProviderStats:
    def test_empty_average(self) -> None:
        assert ProviderStats().snapshot()["avg_duration_ms"] == 0.0

    def test_average(self) -> None:
        stats = ProviderStats(attempts=2, total_duration_ns=3_000_000)
        assert stats.snapshot()["avg_duration_ms"] == 1.5


class TestMetricsCollector:
    def test_success_and_failure(self) -> None:
        m = MetricsCollector()
        m.record_extraction("vidmoly", 2_000_000, strategy="network")
        m.record_extraction("vidmoly", 4_000_000, error_code="TIMEOUT")
        m.record_extraction("sibnet", 1_000_000, strategy="dom")

        snap = m.snapshot()

        assert snap["providers"]["vidmoly"] == {
            "attempts": 2,
            "successes": 1,
            "failures": 1,
            "avg_duration_ms": 3.0,
        }
        assert list(snap["providers"]) == ["sibnet", "vidmoly"]
        assert snap["strategy_wins"] == {"dom": 1, "network": 1}
        assert snap["errors"] == {"TIMEOUT": 1}

    def test_batch_and_warm(self) -> None:
        m = MetricsCollector()
        m.record_batch(3, 2)
        m.record_batch(2, 0)
        m.record_warm(2)

        snap = m.snapshot()

        assert snap["batch"] == {"runs": 2, "total_urls": 5, "resolved": 2}
        assert snap["warmed_episodes"] == 2

    def test_empty_snapshot(self) -> None:
        snap = MetricsCollector().snapshot()
        assert snap["providers"] == {}
        assert snap["strategy_wins"] == {}
        assert snap["uptime_seconds"] >= 0
