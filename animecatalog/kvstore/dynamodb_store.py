"""DynamoDB-backed key-value store.

Table layout: hash key ``key`` (S), attributes ``value`` (S) and
``expires_at`` (N, epoch seconds). Enable DynamoDB TTL on ``expires_at``
to have the table purge old counters.
"""

import asyncio
import time

from animecatalog.kvstore.store import KeyValueStore


class DynamoDBKeyValueStore(KeyValueStore):

    def __init__(self, table_name: str, region: str = "us-east-1"):
        self._table_name = table_name
        self._region = region
        self._table = None

    def _get_table(self):
        """Lazy-init boto3 Table resource."""
        if self._table is None:
            import boto3

            dynamodb = boto3.resource("dynamodb", region_name=self._region)
            self._table = dynamodb.Table(self._table_name)
        return self._table

    async def get(self, key: str) -> str | None:
        return await asyncio.to_thread(self._get_item, key)

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        await asyncio.to_thread(self._put_item, key, value, ttl_seconds)

    def _get_item(self, key: str) -> str | None:
        resp = self._get_table().get_item(Key={"key": key}, ConsistentRead=True)
        item = resp.get("Item")
        if item is None:
            return None
        # TTL deletion runs in the background, so expired items can still be read
        if int(item.get("expires_at", 0)) <= int(time.time()):
            return None
        return item.get("value")

    def _put_item(self, key: str, value: str, ttl_seconds: int) -> None:
        self._get_table().put_item(
            Item={
                "key": key,
                "value": value,
                "expires_at": int(time.time()) + ttl_seconds,
            }
        )
