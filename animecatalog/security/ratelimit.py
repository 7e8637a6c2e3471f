"""Per-client fixed-window rate limiting backed by a key-value store.

Each client IP owns one counter. An accepted request rewrites the
counter with a fresh TTL, so the window always ends a full
``window_seconds`` after the most recent accepted request. Rejected
requests never write, so they do not extend the window.

The read and the write are separate store calls. Concurrent requests
from one client can read the same count and all be accepted, letting a
burst slightly overshoot the limit. Counters stay best-effort.
"""

from collections.abc import Mapping

from animecatalog.kvstore.store import KeyValueStore

UNKNOWN_CLIENT = "unknown"


def client_identity(headers: Mapping[str, str], header_name: str) -> str:
    """Rate-limit key for a request, taken from the trusted proxy header.

    Requests without the header share the ``unknown`` counter.
    """
    value = (headers.get(header_name) or "").strip()
    return value or UNKNOWN_CLIENT


class RateLimiter:

    def __init__(
        self,
        store: KeyValueStore,
        max_requests: int = 40,
        window_seconds: int = 60,
        key_prefix: str = "rl:",
    ):
        self.store = store
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.key_prefix = key_prefix

    def key_for(self, client_id: str) -> str:
        return f"{self.key_prefix}{client_id}"

    async def allow(self, client_id: str) -> bool:
        """Count one request for client_id. Returns False once the limit is hit."""
        key = self.key_for(client_id)
        count = _parse_count(await self.store.get(key))

        if count >= self.max_requests:
            return False

        await self.store.put(key, str(count + 1), self.window_seconds)
        return True


def _parse_count(raw: str | None) -> int:
    if raw is None:
        return 0
    try:
        return int(raw)
    except ValueError:
        return 0
