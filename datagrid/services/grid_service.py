# datagrid/services/grid_service.py
# Host-facing grid: wires the store, the column parser and persistence together

from __future__ import annotations

from typing import Any, Callable, Iterable, Mapping, Optional, Union

from datagrid.schemas.columns import ColumnDef, column_from_dict
from datagrid.schemas.persisted_state import GridOptions
from datagrid.services.persistence_service import PersistenceManager
from datagrid.services.storage_service import StorageService
from datagrid.store.grid_store import GridStateStore
from datagrid.utils.logger import log_info


def _columns(columns: Iterable[Union[ColumnDef, Mapping[str, Any]]]) -> list[ColumnDef]:
    return [c if not isinstance(c, Mapping) else column_from_dict(c) for c in columns]


def _options(options: Union[GridOptions, Mapping[str, Any], None]) -> GridOptions:
    if options is None:
        return GridOptions()
    if isinstance(options, GridOptions):
        return options
    return GridOptions.model_validate(options)


class DataGridService:
    """
    One mounted grid.

    Lifecycle: construct with rows/columns/options, `await mount()` to
    restore persisted preferences, mutate through `store`, `close()` on
    teardown. Edits and detail clicks reach the host through the callbacks.
    """

    def __init__(
        self,
        columns: Iterable[Union[ColumnDef, Mapping[str, Any]]],
        rows: Optional[Iterable[Mapping[str, Any]]] = None,
        options: Union[GridOptions, Mapping[str, Any], None] = None,
        on_cell_edit: Optional[Callable[[dict], None]] = None,
        on_detail_click: Optional[Callable[[dict], None]] = None,
        storage: Optional[StorageService] = None,
        debounce_seconds: Optional[float] = None,
        settle_seconds: Optional[float] = None,
    ):
        self.store = GridStateStore(
            rows=rows,
            columns=_columns(columns),
            options=_options(options),
        )
        self.store.on_cell_edit = on_cell_edit
        self.store.on_detail_click = on_detail_click
        self.persistence = PersistenceManager(
            self.store,
            storage=storage,
            debounce_seconds=debounce_seconds,
            settle_seconds=settle_seconds,
        )

    async def mount(self) -> None:
        await self.persistence.load()
        log_info(f"DataGridService: mounted grid {self.store.options.id or '<anonymous>'}")

    def set_rows(self, rows: Iterable[Mapping[str, Any]]) -> None:
        self.store.set_rows(rows)

    def set_columns(self, columns: Iterable[Union[ColumnDef, Mapping[str, Any]]]) -> None:
        self.store.set_columns(_columns(columns))

    def set_options(self, options: Union[GridOptions, Mapping[str, Any], None]) -> None:
        self.store.set_options(_options(options))

    async def reset_state(self) -> None:
        await self.persistence.reset()

    async def close(self, flush: bool = False) -> None:
        """Tear down; with flush=True a pending save is written first."""
        if flush:
            await self.persistence.flush()
        self.persistence.close()
