"""
In-memory metrics collector for image job orchestration.
Thread-safe singleton; only counters and latencies, never prompts or URLs.
"""
import threading
import time
from dataclasses import dataclass, field
from typing import Dict, Literal


Stage = Literal["submit", "status", "result"]


@dataclass
class LatencyStats:
    """Aggregated latency statistics (sum/count for average calculation)."""
    sum_ms: int = 0
    count: int = 0

    def record(self, ms: int) -> None:
        self.sum_ms += ms
        self.count += 1

    @property
    def avg_ms(self) -> float:
        return self.sum_ms / self.count if self.count > 0 else 0.0


@dataclass
class StageStats:
    success_count: int = 0
    error_count: int = 0
    latency: LatencyStats = field(default_factory=LatencyStats)


@dataclass
class MetricsData:
    """Container for all aggregated metrics."""
    stages: Dict[str, StageStats] = field(
        default_factory=lambda: {s: StageStats() for s in ("submit", "status", "result")}
    )
    error_codes: Dict[str, int] = field(default_factory=dict)
    wait_outcomes: Dict[str, int] = field(default_factory=dict)
    started_at: float = field(default_factory=time.time)


class MetricsCollector:
    """
    Thread-safe singleton for provider-call and wait-outcome counters.

    Usage:
        metrics = get_metrics_collector()
        metrics.record_call("submit", latency_ms=150, success=True)
    """
    _instance: "MetricsCollector | None" = None
    _lock = threading.Lock()

    def __new__(cls) -> "MetricsCollector":
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    instance = super().__new__(cls)
                    instance._data = MetricsData()
                    instance._data_lock = threading.Lock()
                    cls._instance = instance
        return cls._instance

    def record_call(
        self,
        stage: Stage,
        latency_ms: int,
        success: bool,
        error_code: str | None = None,
    ) -> None:
        """
        Record one provider call.

        Args:
            stage: submit, status or result
            latency_ms: Call latency including transport
            success: Whether the call succeeded
            error_code: Error code if not success
        """
        with self._data_lock:
            stats = self._data.stages.setdefault(stage, StageStats())
            stats.latency.record(latency_ms)
            if success:
                stats.success_count += 1
            else:
                stats.error_count += 1
                if error_code:
                    self._data.error_codes[error_code] = (
                        self._data.error_codes.get(error_code, 0) + 1
                    )

    def record_wait_outcome(self, status: str) -> None:
        """Record how a bounded wait ended (completed, failed, cancelled, timed_out)."""
        with self._data_lock:
            self._data.wait_outcomes[status] = self._data.wait_outcomes.get(status, 0) + 1

    def get_snapshot(self) -> dict:
        """
        Get a snapshot of current metrics.
        Returns a plain dict suitable for JSON serialization.
        """
        with self._data_lock:
            return {
                "uptime_seconds": int(time.time() - self._data.started_at),
                "stages": {
                    name: {
                        "success_count": stats.success_count,
                        "error_count": stats.error_count,
                        "avg_ms": round(stats.latency.avg_ms, 2),
                    }
                    for name, stats in self._data.stages.items()
                },
                "error_codes": dict(self._data.error_codes),
                "wait_outcomes": dict(self._data.wait_outcomes),
            }

    def reset(self) -> None:
        """Reset all metrics (useful for testing)."""
        with self._data_lock:
            self._data = MetricsData()


def get_metrics_collector() -> MetricsCollector:
    """Get the singleton metrics collector instance."""
    return MetricsCollector()
