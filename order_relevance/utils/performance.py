"""
Query metrics for the relevance engine.

A relevance query runs in stages: the balance snapshot and the order fetch
run side by side, then the match. This module keeps bounded latency
samples per stage, counts query outcomes, and reports process resources
for the statistics endpoint and the benchmark script.
"""

import time
import psutil
import threading
from collections import deque
from contextlib import contextmanager
from typing import Any, Callable, Deque, Dict, Iterable
import logging

logger = logging.getLogger(__name__)

STAGES = ("snapshot", "fetch_orders", "match", "query")

COUNTERS = (
    "queries",
    "aborted_queries",
    "repository_failures",
    "contract_failures",
    "malformed_orders",
)

PERCENTILES = (50, 90, 99)


def latency_stats(samples: Iterable[float]) -> Dict[str, float]:
    """
    Summarize latency samples in milliseconds.

    Returns:
        Dictionary with count, avg, max and p50/p90/p99 (all zero when empty)
    """
    ordered = sorted(samples)
    if not ordered:
        stats = {"count": 0, "avg": 0.0, "max": 0.0}
        stats.update({f"p{p}": 0.0 for p in PERCENTILES})
        return stats

    n = len(ordered)
    stats = {"count": n, "avg": sum(ordered) / n, "max": ordered[-1]}
    for p in PERCENTILES:
        stats[f"p{p}"] = ordered[min(n - 1, p * n // 100)]
    return stats


class QueryMetrics:
    """
    Stage latencies and outcome counters shared by concurrent queries.

    Only the names in STAGES and COUNTERS are accepted, so every field the
    statistics endpoint reports is present from the first request on.
    """

    def __init__(self, max_samples: int = 10000):
        """
        Initialize query metrics.

        Args:
            max_samples: Latency samples kept per stage; older ones are dropped
        """
        if max_samples <= 0:
            raise ValueError(f"max_samples must be positive, got: {max_samples}")

        self.max_samples = max_samples
        self.lock = threading.Lock()
        self.process = psutil.Process()
        self._reset_locked()

    def _reset_locked(self) -> None:
        self.samples: Dict[str, Deque[float]] = {
            stage: deque(maxlen=self.max_samples) for stage in STAGES
        }
        self.counters: Dict[str, int] = dict.fromkeys(COUNTERS, 0)
        self.start_time = time.time()

    def record_stage(self, stage: str, latency_ms: float) -> None:
        if stage not in self.samples:
            raise ValueError(f"Unknown query stage: {stage}. Must be one of: {list(STAGES)}")
        with self.lock:
            self.samples[stage].append(latency_ms)

    @contextmanager
    def time_stage(self, stage: str):
        """Record the wall time of the enclosed block under a stage, even if it raises."""
        started = time.perf_counter()
        try:
            yield
        finally:
            self.record_stage(stage, (time.perf_counter() - started) * 1000)

    def count(self, name: str, value: int = 1) -> None:
        if name not in self.counters:
            raise ValueError(f"Unknown counter: {name}. Must be one of: {list(COUNTERS)}")
        with self.lock:
            self.counters[name] += value

    def stage_stats(self, stage: str) -> Dict[str, float]:
        with self.lock:
            samples = list(self.samples[stage])
        return latency_stats(samples)

    def process_stats(self) -> Dict[str, Any]:
        """Resource usage of this process."""
        try:
            with self.process.oneshot():
                memory_info = self.process.memory_info()
                return {
                    "memory_rss_mb": memory_info.rss / 1024 / 1024,
                    "cpu_percent": self.process.cpu_percent(),
                    "thread_count": self.process.num_threads(),
                }
        except psutil.Error as e:
            logger.error(f"Error reading process stats: {str(e)}")
            return {}

    def summary(self) -> Dict[str, Any]:
        """Counters and per-stage latency stats."""
        with self.lock:
            counters = dict(self.counters)
            samples = {stage: list(values) for stage, values in self.samples.items()}
            uptime = time.time() - self.start_time

        return {
            "uptime_seconds": uptime,
            "counters": counters,
            "stages_ms": {stage: latency_stats(values) for stage, values in samples.items()},
        }

    def reset(self) -> None:
        with self.lock:
            self._reset_locked()


def time_calls(func: Callable, *args, iterations: int = 100, **kwargs) -> Dict[str, float]:
    """
    Time repeated calls of a function after a short warm-up.

    Returns:
        latency_stats of the timed calls, in milliseconds
    """
    if iterations <= 0:
        raise ValueError(f"iterations must be positive, got: {iterations}")

    for _ in range(min(10, iterations)):
        func(*args, **kwargs)

    samples = []
    for _ in range(iterations):
        started = time.perf_counter()
        func(*args, **kwargs)
        samples.append((time.perf_counter() - started) * 1000)

    return latency_stats(samples)


# Process-wide metrics shared by services built from settings
query_metrics = QueryMetrics()


def get_query_metrics() -> QueryMetrics:
    return query_metrics
