"""Bounded TTL cache keyed by content fingerprint"""

import hashlib
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Union


def fingerprint(payload: Union[str, bytes]) -> str:
    """Deterministic SHA-256 hex digest of a payload"""
    data = payload.encode("utf-8") if isinstance(payload, str) else payload
    return hashlib.sha256(data).hexdigest()


@dataclass
class CacheEntry:
    payload: Any
    expires_at: float


class FingerprintCache:
    """
    Process-local cache mapping a fingerprint to a computed payload.

    - Expiry is lazy: an expired entry is purged by the read that finds it.
    - At capacity the oldest-inserted entry is evicted (insertion order,
      not access order). Re-setting a key counts as a fresh insertion.
    """

    def __init__(
        self,
        capacity: int = 500,
        default_ttl: float = 600.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() > entry.expires_at:
            del self._entries[key]
            return None
        return entry.payload

    def set(self, key: str, payload: Any, ttl: Optional[float] = None) -> None:
        if key in self._entries:
            del self._entries[key]
        elif len(self._entries) >= self.capacity:
            oldest = next(iter(self._entries))
            del self._entries[oldest]

        expires_at = self._clock() + (self.default_ttl if ttl is None else ttl)
        self._entries[key] = CacheEntry(payload=payload, expires_at=expires_at)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries
