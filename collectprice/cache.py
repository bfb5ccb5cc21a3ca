from __future__ import annotations

import time
from threading import Lock
from typing import Callable, Optional, Protocol

from collectprice import get_logger
from collectprice.models import ScoreCacheEntry, clamp_score

LOGGER = get_logger("cache")

DEFAULT_TTL_SECONDS = 24 * 60 * 60


def score_key(kind: str, image_ref: str) -> str:
    return f"{kind}:{image_ref}"


class ScoreCacheProtocol(Protocol):
    def get(self, key: str) -> Optional[ScoreCacheEntry]:
        ...

    def set(self, key: str, score: float) -> None:
        ...


class ScoreCache:
    """In-process heuristic score cache with read-time TTL eviction.

    Entries are never swept in the background: an entry older than the TTL is
    dropped the next time it is read. Writers overwrite, so two threads that
    race to recompute the same deterministic score leave the same value behind.
    """

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.ttl_ms = int(ttl_seconds * 1000)
        self._clock = clock
        self._entries: dict[str, ScoreCacheEntry] = {}
        self._lock = Lock()

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def get(self, key: str) -> Optional[ScoreCacheEntry]:
        now_ms = self._now_ms()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if now_ms - entry.computed_at_ms >= self.ttl_ms:
                del self._entries[key]
                LOGGER.debug("Score cache entry expired for %s", key)
                return None
            return entry

    def set(self, key: str, score: float) -> None:
        entry = ScoreCacheEntry(score=clamp_score(score), computed_at_ms=self._now_ms())
        with self._lock:
            self._entries[key] = entry

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
