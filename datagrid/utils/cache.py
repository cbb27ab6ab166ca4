# datagrid/utils/cache.py
# Flat key/value backend: records stored as JSON text under "<namespace>-<key>"

import json
from typing import Any, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from datagrid import config
from datagrid.exceptions import StorageError
from datagrid.utils.logger import log_warning

# Module-level client (lazy init), shared by every FlatKeyValueStore without
# an injected client
_client: Any = None


def _get_client() -> Any:
    """Get or create the async Redis client."""
    global _client
    if _client is None:
        _client = aioredis.from_url(config.REDIS_URL, decode_responses=True)
    return _client


class FlatKeyValueStore:
    def __init__(self, namespace: Optional[str] = None, client: Any = None):
        self.namespace = namespace or config.STORAGE_NAMESPACE
        self._client = client

    @property
    def client(self) -> Any:
        return self._client if self._client is not None else _get_client()

    def build_key(self, key: str) -> str:
        return f"{self.namespace}-{key}"

    async def get_json(self, key: str) -> Optional[dict]:
        """Return the decoded record, or None when missing or malformed."""
        full_key = self.build_key(key)
        try:
            data = await self.client.get(full_key)
        except RedisError as e:
            raise StorageError("Flat store read failed", details={"key": full_key}) from e
        if not data:
            return None
        try:
            value = json.loads(data)
        except (TypeError, ValueError) as e:
            log_warning(f"FlatKeyValueStore: malformed record at {full_key}: {e}")
            return None
        if not isinstance(value, dict):
            log_warning(f"FlatKeyValueStore: record at {full_key} is not an object")
            return None
        return value

    async def set_json(self, key: str, value: dict) -> None:
        full_key = self.build_key(key)
        try:
            payload = json.dumps(value, default=str)
        except (TypeError, ValueError) as e:
            raise StorageError("Record is not serialisable", details={"key": full_key}) from e
        try:
            await self.client.set(full_key, payload)
        except RedisError as e:
            raise StorageError("Flat store write failed", details={"key": full_key}) from e

    async def delete(self, key: str) -> None:
        full_key = self.build_key(key)
        try:
            await self.client.delete(full_key)
        except RedisError as e:
            raise StorageError("Flat store delete failed", details={"key": full_key}) from e
