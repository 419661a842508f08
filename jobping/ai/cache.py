"""Thread-safe LRU cache for AI rankings with per-entry expiry."""

import threading
import time
from collections import OrderedDict
from typing import Callable, Generic, List, Optional, Sequence, Tuple, TypeVar

from jobping.domain.models import Job, UserPreferences
from jobping.utils.hashing import fingerprint

V = TypeVar("V")


class MatchCache(Generic[V]):
    """
    Bounded LRU mapping with a time-to-live.

    Expired entries are dropped lazily on read. Inserting beyond
    ``max_entries`` evicts the least recently used entry.
    """

    def __init__(
        self,
        max_entries: int = 10000,
        ttl_seconds: float = 1800,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[float, V]]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[V]:
        with self._lock:
            item = self._entries.get(key)
            if item is None:
                self.misses += 1
                return None
            expires_at, value = item
            if expires_at <= self._clock():
                del self._entries[key]
                self.misses += 1
                return None
            self._entries.move_to_end(key)
            self.hits += 1
            return value

    def set(self, key: str, value: V) -> None:
        with self._lock:
            self._entries[key] = (self._clock() + self.ttl_seconds, value)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def build_cache_key(tier, prefs: UserPreferences, jobs: Sequence[Job]) -> str:
    """Key derived from user identity, tier and the sorted title-company list."""
    user_part: List[str] = [
        getattr(tier, "value", str(tier)),
        prefs.email.lower(),
        ",".join(prefs.target_cities).lower(),
        ",".join(prefs.career_path).lower(),
        prefs.entry_level_preference or "",
        prefs.career_keywords or "",
    ]
    job_part = sorted(job.label for job in jobs)
    return fingerprint(user_part, job_part)
