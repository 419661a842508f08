"""Metrics sinks.

Components report counters and timings through a :class:`MetricsSink`
handed to them at construction time. Nothing here holds process-wide state.
"""

import threading
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Dict, List, Optional, Tuple


Tags = Optional[Dict[str, str]]


def _series(name: str, tags: Tags) -> Tuple[str, Tuple[Tuple[str, str], ...]]:
    return name, tuple(sorted((tags or {}).items()))


class MetricsSink(ABC):
    """Destination for counters and timings."""

    @abstractmethod
    def increment(self, name: str, value: int = 1, tags: Tags = None) -> None:
        """Add ``value`` to a counter."""

    @abstractmethod
    def timing(self, name: str, seconds: float, tags: Tags = None) -> None:
        """Record one duration sample."""


class NullMetricsSink(MetricsSink):
    """Discards everything."""

    def increment(self, name, value=1, tags=None) -> None:
        pass

    def timing(self, name, seconds, tags=None) -> None:
        pass


class InMemoryMetricsSink(MetricsSink):
    """Keeps metrics in memory for tests and CLI summaries."""

    def __init__(self):
        self._lock = threading.Lock()
        self._counters: Dict[Tuple, int] = defaultdict(int)
        self._timings: Dict[Tuple, List[float]] = defaultdict(list)

    def increment(self, name, value=1, tags=None) -> None:
        with self._lock:
            self._counters[_series(name, tags)] += value

    def timing(self, name, seconds, tags=None) -> None:
        with self._lock:
            self._timings[_series(name, tags)].append(seconds)

    def count(self, name: str, tags: Tags = None) -> int:
        """Counter value for one series, or the sum over all tag sets when ``tags`` is None."""
        with self._lock:
            if tags is not None:
                return self._counters.get(_series(name, tags), 0)
            return sum(v for (n, _), v in self._counters.items() if n == name)

    def timings(self, name: str) -> List[float]:
        with self._lock:
            return [s for (n, _), samples in self._timings.items() if n == name for s in samples]
