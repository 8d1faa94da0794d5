"""
Time-bounded in-memory cache.

Entries expire ``ttl`` seconds after they are set. The clock is injected so
expiry can be driven deterministically in tests.
"""

import time
from collections import OrderedDict
from typing import Any, Callable, Hashable, Optional


class TTLCache:
    """A key/value cache with per-entry expiry.

    Example:
        ```python
        cache = TTLCache(ttl=300)
        cache.set("query", [0.1, 0.2])
        cache.get("query")  # [0.1, 0.2] until 300 seconds have passed
        ```
    """

    def __init__(
        self,
        ttl: float,
        clock: Callable[[], float] = time.monotonic,
        max_entries: Optional[int] = None,
    ):
        """Initialize the cache.

        Args:
            ttl: Default lifetime of an entry in seconds
            clock: Function returning the current time in seconds
            max_entries: Optional bound; the oldest entry is evicted first
        """
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        if max_entries is not None and max_entries <= 0:
            raise ValueError("max_entries must be positive")

        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[Hashable, tuple[Any, float]] = OrderedDict()

    def get(self, key: Hashable, default: Any = None) -> Any:
        """Return the cached value, or ``default`` if missing or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return default

        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return default

        return value

    def set(self, key: Hashable, value: Any, ttl: Optional[float] = None) -> None:
        """Store a value, replacing any existing entry for ``key``."""
        lifetime = self.ttl if ttl is None else ttl
        if lifetime <= 0:
            raise ValueError("ttl must be positive")

        self._entries.pop(key, None)
        self._entries[key] = (value, self._clock() + lifetime)

        if self.max_entries is not None:
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def evict(self, key: Hashable) -> bool:
        """Remove an entry. Returns True if it was present."""
        return self._entries.pop(key, None) is not None

    def evict_expired(self) -> int:
        """Remove every expired entry and return how many were removed."""
        now = self._clock()
        expired = [key for key, (_, expires_at) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        """Remove all entries."""
        self._entries.clear()

    def __contains__(self, key: Hashable) -> bool:
        entry = self._entries.get(key)
        return entry is not None and self._clock() < entry[1]

    def __len__(self) -> int:
        return len(self._entries)
