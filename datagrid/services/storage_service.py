# datagrid/services/storage_service.py
# Storage Backend: document store first, flat key/value store as fallback

from __future__ import annotations

import time
from typing import Any, Optional

from datagrid.constants import StorageKind
from datagrid.exceptions import StorageError
from datagrid.repositories.grid_state_repository import GridStateRepository
from datagrid.utils.cache import FlatKeyValueStore
from datagrid.utils.logger import log_info, log_exception


def _now_ms() -> int:
    return int(time.time() * 1000)


def _stamp(record: dict[str, Any]) -> int:
    stamp = record.get("updatedAt")
    return stamp if isinstance(stamp, int) else 0


class StorageService:
    """
    save / load / clear of persisted grid states.

    Every document-store failure (including a failed first-time initialisation)
    is logged and the same operation is retried once on the flat store. The
    fallback is decided per call; a failure never sticks. Errors are never
    raised to the caller: a failed read is "no data", a failed write is skipped.
    A document-store load also reads the flat copy; the newer `updatedAt` wins.
    """

    def __init__(
        self,
        repository: Optional[GridStateRepository] = None,
        flat_store: Optional[FlatKeyValueStore] = None,
    ):
        self._repo = repository or GridStateRepository()
        self._flat = flat_store or FlatKeyValueStore()

    async def save_state(
        self,
        key: str,
        state: dict[str, Any],
        storage: StorageKind = StorageKind.DOCUMENT_STORE,
    ) -> None:
        if StorageKind.parse(storage) is StorageKind.DOCUMENT_STORE:
            try:
                await self._repo.upsert(key, state, state.get("updatedAt") or _now_ms())
                return
            except Exception as e:
                log_exception(e, f"StorageService: document save failed for {key}, falling back to flat store")
        await self._save_flat(key, state)

    async def load_state(
        self,
        key: str,
        storage: StorageKind = StorageKind.DOCUMENT_STORE,
    ) -> Optional[dict[str, Any]]:
        if StorageKind.parse(storage) is StorageKind.DOCUMENT_STORE:
            try:
                doc = await self._repo.find_one(key)
            except Exception as e:
                log_exception(e, f"StorageService: document load failed for {key}, falling back to flat store")
            else:
                flat = await self._load_flat(key)
                if doc is None:
                    # A previous save may have landed on the fallback only
                    return flat
                state = doc.get("state")
                if not isinstance(state, dict):
                    return flat
                # A save made during a document-store outage is newer than
                # the document left behind
                if flat is not None and _stamp(flat) > (doc.get("updatedAt") or _stamp(state)):
                    return flat
                return state
        return await self._load_flat(key)

    async def clear_state(
        self,
        key: str,
        storage: StorageKind = StorageKind.DOCUMENT_STORE,
    ) -> None:
        if StorageKind.parse(storage) is StorageKind.DOCUMENT_STORE:
            try:
                await self._repo.remove(key)
            except Exception as e:
                log_exception(e, f"StorageService: document clear failed for {key}")
        # The flat copy is removed either way so a fallback record cannot resurface
        await self._clear_flat(key)
        log_info(f"StorageService: cleared state for {key}")

    async def _save_flat(self, key: str, state: dict[str, Any]) -> None:
        try:
            await self._flat.set_json(key, state)
        except StorageError as e:
            log_exception(e, f"StorageService: flat save failed for {key}")

    async def _load_flat(self, key: str) -> Optional[dict[str, Any]]:
        try:
            return await self._flat.get_json(key)
        except StorageError as e:
            log_exception(e, f"StorageService: flat load failed for {key}")
            return None

    async def _clear_flat(self, key: str) -> None:
        try:
            await self._flat.delete(key)
        except StorageError as e:
            log_exception(e, f"StorageService: flat clear failed for {key}")
