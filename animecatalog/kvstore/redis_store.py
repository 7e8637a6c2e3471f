"""Redis-backed key-value store."""

from animecatalog.kvstore.store import KeyValueStore


class RedisKeyValueStore(KeyValueStore):
    """Stores values with SET ... EX so Redis expires them server-side."""

    def __init__(self, url: str):
        self._url = url
        self._client = None

    def _get_client(self):
        """Lazy-init the asyncio Redis client."""
        if self._client is None:
            import redis.asyncio as redis

            self._client = redis.from_url(self._url, decode_responses=True)
        return self._client

    async def get(self, key: str) -> str | None:
        return await self._get_client().get(key)

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        await self._get_client().set(key, value, ex=ttl_seconds)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
