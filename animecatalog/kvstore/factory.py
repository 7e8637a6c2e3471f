"""Factory for key-value store backends."""

from animecatalog.config.settings import get_settings
from animecatalog.kvstore.store import KeyValueStore, MemoryKeyValueStore

_store: KeyValueStore | None = None


def get_kv_store() -> KeyValueStore:
    """Get the key-value store singleton for the configured backend."""
    global _store
    if _store is not None:
        return _store

    settings = get_settings()
    backend = settings.kv_store_backend

    if backend == "memory":
        _store = MemoryKeyValueStore()
    elif backend == "redis":
        # Lazy import to avoid the redis dependency when not needed
        from animecatalog.kvstore.redis_store import RedisKeyValueStore
        _store = RedisKeyValueStore(settings.redis_url)
    elif backend == "dynamodb":
        from animecatalog.kvstore.dynamodb_store import DynamoDBKeyValueStore
        _store = DynamoDBKeyValueStore(
            table_name=settings.dynamodb_table_name,
            region=settings.aws_region,
        )
    else:
        raise ValueError(f"Unknown key-value store backend: {backend}")

    return _store


async def close_kv_store() -> None:
    """Release the store's connections on shutdown."""
    global _store
    if _store is not None:
        await _store.close()
        _store = None
