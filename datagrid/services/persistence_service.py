# datagrid/services/persistence_service.py
# Load-on-start and debounced save-on-change of a grid's view state

from __future__ import annotations

import asyncio
import time
from enum import Enum
from typing import Any, Optional

from pydantic import ValidationError

from datagrid import config
from datagrid.constants import StorageKind
from datagrid.schemas.persisted_state import (
    PaginationState,
    PersistConfig,
    PersistedState,
    PersistStateFlags,
)
from datagrid.services.storage_service import StorageService
from datagrid.store.grid_store import GridStateStore
from datagrid.utils.logger import log_info, log_warning, log_exception
from datagrid.utils.timers import Debouncer, TimerHandle, schedule

# Store fields whose changes trigger an autosave
OBSERVED_FIELDS = frozenset({
    "view",
    "page_index",
    "page_size",
    "search_query",
    "sorting",
    "column_filters",
    "column_sizing",
    "column_order",
    "column_visibility",
})


class PersistenceState(Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"


class PersistenceManager:
    """
    Persists one grid's view preferences.

    Autosave stays off until `load()` has finished and the settle delay has
    passed, so the defaults present at mount never overwrite a stored record.
    Writes and clears go through one lock: a save and a reset never interleave.
    """

    def __init__(
        self,
        store: GridStateStore,
        storage: Optional[StorageService] = None,
        debounce_seconds: Optional[float] = None,
        settle_seconds: Optional[float] = None,
    ):
        self.store = store
        self.storage = storage or StorageService()
        self.debounce_seconds = config.SAVE_DEBOUNCE_SECONDS if debounce_seconds is None else debounce_seconds
        self.settle_seconds = config.SETTLE_DELAY_SECONDS if settle_seconds is None else settle_seconds

        self.state = PersistenceState.UNINITIALIZED
        self._generation = 0
        self._debouncer = Debouncer(self.debounce_seconds, self._scheduled_save)
        self._settle_timer: Optional[TimerHandle] = None
        self._io_lock: Optional[asyncio.Lock] = None
        self._unsubscribe = store.subscribe(self._on_store_change)

    # -------- Policy --------
    @property
    def persist_config(self) -> PersistConfig:
        return self.store.options.persist

    @property
    def flags(self) -> PersistStateFlags:
        return self.persist_config.state

    @property
    def storage_kind(self) -> StorageKind:
        return self.persist_config.storage

    def should_persist(self) -> bool:
        options = self.store.options
        if options.persist.enabled is False:
            return False
        # Need an ID or custom key
        if not options.id and not options.persist.key:
            return False
        return True

    def get_persistence_key(self) -> str:
        options = self.store.options
        return options.persist.key or options.id or ""

    @property
    def is_ready(self) -> bool:
        return self.state is PersistenceState.READY

    @property
    def has_pending_save(self) -> bool:
        return self._debouncer.pending

    def _lock(self) -> asyncio.Lock:
        if self._io_lock is None:
            self._io_lock = asyncio.Lock()
        return self._io_lock

    # -------- Load --------
    async def load(self) -> None:
        """Read the stored record and apply the policy-included fields."""
        if not self.should_persist():
            self.state = PersistenceState.READY
            return

        self.state = PersistenceState.LOADING
        key = self.get_persistence_key()
        try:
            raw = await self.storage.load_state(key, self.storage_kind)
            if raw:
                try:
                    record = PersistedState.model_validate(raw)
                except ValidationError as e:
                    log_warning(f"PersistenceManager: ignoring malformed record for {key}: {e}")
                else:
                    # Applying restored state must not schedule a save
                    with self.store.untracked():
                        self.apply_persisted_state(record)
                    log_info(f"PersistenceManager: restored state for {key}")
        except Exception as e:
            log_exception(e, f"PersistenceManager: failed to load state for {key}")
        finally:
            # Let dependent updates settle before autosave starts observing
            self._settle_timer = schedule(self.settle_seconds, self._mark_ready)

        await self._settle_timer.wait()

    def _mark_ready(self) -> None:
        self.state = PersistenceState.READY

    def apply_persisted_state(self, record: PersistedState) -> None:
        """Copy the policy-included fields of record into the store."""
        flags = self.flags
        store = self.store

        if flags.view and record.view:
            store.set_view(record.view)
        if flags.pagination and record.pagination:
            store.set_pagination(record.pagination.page_index, record.pagination.page_size)
        if flags.search and record.search is not None:
            store.set_search_query(record.search)
        if flags.sorting and record.sorting is not None:
            store.set_sorting(record.sorting)
        if flags.filters and record.column_filters is not None:
            store.set_column_filters(record.column_filters)
        if flags.column_sizing and record.column_sizing is not None:
            store.set_column_sizing(record.column_sizing)
        if flags.column_order and record.column_order is not None:
            store.set_column_order(record.column_order)
        if flags.column_visibility and record.column_visibility is not None:
            store.set_column_visibility(record.column_visibility)

    # -------- Save --------
    def _on_store_change(self, changed: frozenset) -> None:
        if not self.is_ready or not self.should_persist():
            return
        if changed & OBSERVED_FIELDS:
            self._debouncer.call()

    def build_record(self) -> dict[str, Any]:
        """Snapshot of the policy-included fields plus a fresh timestamp."""
        flags = self.flags
        store = self.store
        fields: dict[str, Any] = {"updated_at": int(time.time() * 1000)}

        if flags.view:
            fields["view"] = store.view
        if flags.pagination:
            fields["pagination"] = PaginationState(page_index=store.page_index, page_size=store.page_size)
        if flags.search:
            fields["search"] = store.search_query
        if flags.sorting:
            fields["sorting"] = store.sorting
        if flags.filters:
            fields["column_filters"] = store.column_filters
        if flags.column_sizing:
            fields["column_sizing"] = store.column_sizing
        if flags.column_order:
            fields["column_order"] = store.column_order
        if flags.column_visibility:
            fields["column_visibility"] = store.column_visibility

        return PersistedState(**fields).to_record()

    def _scheduled_save(self):
        return self.save_current_state(generation=self._generation)

    async def save_current_state(self, generation: Optional[int] = None) -> None:
        if not self.should_persist():
            return
        key = self.get_persistence_key()
        async with self._lock():
            if generation is not None and generation != self._generation:
                # Scheduled before a reset; the cleared record wins
                return
            try:
                await self.storage.save_state(key, self.build_record(), self.storage_kind)
            except Exception as e:
                log_exception(e, f"PersistenceManager: failed to save state for {key}")

    async def flush(self) -> None:
        """Wait for the scheduled save, if any, to be written."""
        await self._debouncer.flush()

    # -------- Reset / teardown --------
    async def reset(self) -> None:
        """Clear the stored record and restore the default view state."""
        if not self.should_persist():
            return
        key = self.get_persistence_key()
        # A save scheduled before the reset must not land after it
        self._generation += 1
        self._debouncer.cancel()
        async with self._lock():
            try:
                await self.storage.clear_state(key, self.storage_kind)
            except Exception as e:
                log_exception(e, f"PersistenceManager: failed to clear state for {key}")
            with self.store.untracked():
                self.store.reset_to_defaults()
        log_info(f"PersistenceManager: reset state for {key}")

    def close(self) -> None:
        """Host teardown: drop the pending save and stop observing the store."""
        self._debouncer.cancel()
        if self._settle_timer is not None:
            self._settle_timer.cancel()
        self._unsubscribe()
