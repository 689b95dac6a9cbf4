"""
Purpose: Set-if-absent key store for duplicate submission detection.
What it does:
Remembers "idempotency key + target" -> job id for a TTL (24h by default),
and builds the keys the job service uses.
"""

from __future__ import annotations

import hashlib
import threading
import time
from datetime import date
from typing import Callable, Dict, Iterable, Optional, Protocol, Tuple

DEFAULT_TTL_SECONDS = 24 * 60 * 60


class IdempotencyStore(Protocol):
    def set_if_absent(self, key: str, value: str, ttl_seconds: int) -> bool: ...

    def get(self, key: str) -> Optional[str]: ...

    def delete(self, key: str) -> None: ...


class InMemoryIdempotencyStore:
    """
    Thread-safe TTL map. `clock` returns seconds (monotonic by default) and can be
    swapped in tests to move time forward.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._entries: Dict[str, Tuple[str, float]] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def set_if_absent(self, key: str, value: str, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> bool:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry[1] > now:
                return False
            self._entries[key] = (value, now + ttl_seconds)
            return True

    def get(self, key: str) -> Optional[str]:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry[1] <= now:
                del self._entries[key]
                return None
            return entry[0]

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)


def hash_ride_ids(ride_ids: Iterable[str]) -> str:
    joined = ",".join(sorted(ride_ids))
    return hashlib.sha256(joined.encode("utf-8")).hexdigest()


def build_idempotency_key(
    idempotency_key: str,
    target_date: Optional[date] = None,
    ride_ids: Optional[Iterable[str]] = None,
) -> str:
    """
    optimize:<key>:date:<iso date>  or  optimize:<key>:rides:<sha256 of sorted ride ids>
    """
    if target_date is not None:
        return f"optimize:{idempotency_key}:date:{target_date.isoformat()}"
    if ride_ids is not None:
        return f"optimize:{idempotency_key}:rides:{hash_ride_ids(ride_ids)}"
    raise ValueError("Either target_date or ride_ids is required")
