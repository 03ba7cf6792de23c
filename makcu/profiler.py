"""Optional timing of device operations."""

from __future__ import annotations

import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager


class PerformanceProfiler:
    """Accumulates call counts and elapsed microseconds per operation name.

    A disabled profiler records nothing and reports no statistics.
    """

    def __init__(self, enabled: bool = False) -> None:
        self.enabled = enabled
        self._lock = threading.Lock()
        self._entries: dict[str, tuple[int, float]] = {}

    def _add(self, name: str, micros: float) -> None:
        with self._lock:
            count, total = self._entries.get(name, (0, 0.0))
            self._entries[name] = (count + 1, total + micros)

    @contextmanager
    def measure(self, name: str) -> Iterator[None]:
        """Time the enclosed block under ``name``."""
        started = time.perf_counter()
        yield
        if self.enabled:
            self._add(name, (time.perf_counter() - started) * 1e6)

    def record(self, tag: str, started: float) -> None:
        """Record the time since ``started`` (a ``time.perf_counter`` value)."""
        if self.enabled:
            self._add(tag, (time.perf_counter() - started) * 1e6)

    def stats(self) -> dict[str, dict[str, float]]:
        """Return ``count``, ``total_us`` and ``avg_us`` for each name."""
        if not self.enabled:
            return {}
        with self._lock:
            items = list(self._entries.items())
        return {
            name: {
                "count": float(count),
                "total_us": total,
                "avg_us": total / count if count else 0.0,
            }
            for name, (count, total) in items
        }

    def reset(self) -> None:
        """Forget everything recorded so far."""
        with self._lock:
            self._entries.clear()