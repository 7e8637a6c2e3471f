"""Key-value store abstraction + in-memory implementation."""

import time
from abc import ABC, abstractmethod


class KeyValueStore(ABC):
    """Abstract base for string key-value stores with expiring entries."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the stored value, or None if absent or expired."""
        ...

    @abstractmethod
    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store a value that expires ttl_seconds after this write."""
        ...

    async def close(self) -> None:
        """Cleanup resources. Override if the backend holds connections."""
        pass


class MemoryKeyValueStore(KeyValueStore):
    """Process-local store.

    Expired entries are dropped on read, and a full sweep runs from put at
    most once per sweep_interval seconds so keys that are never read again
    (one-off client IPs) do not accumulate.

    Only suitable for a single worker process; counters are not shared
    across replicas.
    """

    def __init__(self, sweep_interval: float = 60.0):
        self._entries: dict[str, tuple[str, float]] = {}
        self._sweep_interval = sweep_interval
        self._next_sweep = 0.0

    async def get(self, key: str) -> str | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if time.monotonic() >= expires_at:
            del self._entries[key]
            return None
        return value

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        now = time.monotonic()
        if now >= self._next_sweep:
            self._sweep(now)
        self._entries[key] = (value, now + ttl_seconds)

    def _sweep(self, now: float) -> None:
        expired = [key for key, (_, expires_at) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
        self._next_sweep = now + self._sweep_interval

    def clear(self) -> None:
        """Drop every entry. Useful for testing."""
        self._entries.clear()
