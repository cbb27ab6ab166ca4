# datagrid/store/grid_store.py
# Grid State Store: live view state plus the values derived from it

from __future__ import annotations

import math
from functools import cmp_to_key
from typing import Any, Callable, Iterable, Mapping, Optional

from markupsafe import Markup

from datagrid import config
from datagrid.columns.parser import DispatchDescriptor, parse_columns
from datagrid.constants import DEFAULT_COLUMN_SIZE, ViewMode
from datagrid.schemas.columns import ColumnDef
from datagrid.schemas.persisted_state import ColumnFilter, GridOptions, SortEntry
from datagrid.store.filters import (
    FILTER_FUNCTIONS,
    default_filter_function,
    filter_functions_for,
    is_empty_filter_value,
    matches_search,
)
from datagrid.store.observable import Observable
from datagrid.utils.formatting import highlight

IndexedRow = tuple[int, dict]


def merge_filters(
    previous: Iterable[ColumnFilter],
    new: Iterable[ColumnFilter],
) -> list[ColumnFilter]:
    """
    Combine a filter set reported by the table model with the previous one.

    Every id in `new` keeps its new value. An id that was present before but
    is missing now comes back with an empty value: recalculation may drop
    filters whose value was cleared, and the filter widget must not vanish
    with it. Only `remove_filter` deletes an entry. Ids are unique in the
    result.
    """
    merged: list[ColumnFilter] = []
    seen: set[str] = set()
    for f in new:
        if f.id in seen:
            continue
        seen.add(f.id)
        merged.append(ColumnFilter(id=f.id, value=f.value))
    for f in previous:
        if f.id not in seen:
            seen.add(f.id)
            merged.append(ColumnFilter(id=f.id, value=""))
    return merged


def _compare_values(a: Any, b: Any) -> int:
    if isinstance(a, str) and isinstance(b, str):
        a, b = a.casefold(), b.casefold()
    elif isinstance(a, (list, tuple)) or isinstance(b, (list, tuple)):
        a, b = str(a), str(b)
    try:
        return (a > b) - (a < b)
    except TypeError:
        a, b = str(a), str(b)
        return (a > b) - (a < b)


def _as_filters(filters: Iterable[Any]) -> list[ColumnFilter]:
    return [f if isinstance(f, ColumnFilter) else ColumnFilter.model_validate(f) for f in filters]


def _as_sorting(entries: Iterable[Any]) -> list[SortEntry]:
    result: list[SortEntry] = []
    seen: set[str] = set()
    for e in entries:
        entry = e if isinstance(e, SortEntry) else SortEntry.model_validate(e)
        if entry.id in seen:
            continue
        seen.add(entry.id)
        result.append(entry)
    return result


class GridStateStore(Observable):
    """
    Holds the grid's view state and derives rows, pages and sizing from it.

    Derived values are recomputed lazily and cached against the version
    counters of the fields they read, so reading them never writes state.
    """

    def __init__(
        self,
        rows: Optional[Iterable[Mapping[str, Any]]] = None,
        columns: Optional[list[ColumnDef]] = None,
        options: Optional[GridOptions] = None,
        default_page_size: Optional[int] = None,
    ):
        super().__init__()
        self.default_page_size = default_page_size or config.DEFAULT_PAGE_SIZE

        self._view: str = ViewMode.TABLE.value
        self._page_index = 0
        self._page_size = self.default_page_size
        self._search_query = ""
        self._sorting: list[SortEntry] = []
        self._column_filters: list[ColumnFilter] = []
        self._column_sizing: dict[str, float] = {}
        self._column_order: list[str] = []
        self._column_visibility: dict[str, bool] = {}
        self._filter_functions: dict[str, str] = {}
        self._last_added_filter_id: Optional[str] = None

        self._rows: list[dict] = [dict(r) for r in rows or []]
        self._columns: list[ColumnDef] = list(columns or [])
        self._options: GridOptions = options or GridOptions()

        self.on_cell_edit: Optional[Callable[[dict], None]] = None
        self.on_detail_click: Optional[Callable[[dict], None]] = None

        self._cache: dict[str, tuple[tuple, Any]] = {}

    # -------- Memoisation --------
    def _memo(self, name: str, deps: tuple[str, ...], compute: Callable[[], Any]) -> Any:
        key = self.version(*deps)
        cached = self._cache.get(name)
        if cached is not None and cached[0] == key:
            return cached[1]
        value = compute()
        self._cache[name] = (key, value)
        return value

    # -------- Host inputs --------
    @property
    def rows(self) -> list[dict]:
        return list(self._rows)

    def set_rows(self, rows: Iterable[Mapping[str, Any]]) -> None:
        self._rows = [dict(r) for r in rows or []]
        self._changed({"rows"})

    @property
    def columns(self) -> list[ColumnDef]:
        return list(self._columns)

    def set_columns(self, columns: list[ColumnDef]) -> None:
        self._columns = list(columns or [])
        self._changed({"columns"})

    @property
    def options(self) -> GridOptions:
        return self._options

    def set_options(self, options: GridOptions) -> None:
        self._options = options or GridOptions()
        self._changed({"options"})

    def _handle_cell_edit(self, edited_row: dict) -> None:
        if self.on_cell_edit is not None:
            self.on_cell_edit(edited_row)

    def emit_detail_click(self, row: Mapping[str, Any]) -> None:
        if self.on_detail_click is not None:
            self.on_detail_click(dict(row))

    # -------- Column derivations --------
    @property
    def descriptors(self) -> list[DispatchDescriptor]:
        """Dispatch descriptors, parsed once per column schema change."""
        return self._memo(
            "descriptors",
            ("columns",),
            lambda: parse_columns(self._columns, self._handle_cell_edit),
        )

    def descriptor(self, column_id: str) -> Optional[DispatchDescriptor]:
        return next((d for d in self.descriptors if d.id == column_id), None)

    @property
    def filterable_columns(self) -> list[DispatchDescriptor]:
        return [d for d in self.descriptors if d.enable_filtering]

    @property
    def visible_columns(self) -> list[DispatchDescriptor]:
        """Descriptors in column order, hidden ones removed."""
        def compute() -> list[DispatchDescriptor]:
            position = {cid: i for i, cid in enumerate(self._column_order)}
            ordered = sorted(
                enumerate(self.descriptors),
                key=lambda item: (position.get(item[1].id, len(position)), item[0]),
            )
            return [d for _, d in ordered if self._column_visibility.get(d.id, True)]

        return self._memo("visible_columns", ("columns", "column_order", "column_visibility"), compute)

    # -------- View --------
    @property
    def view(self) -> str:
        return self._view

    def set_view(self, view: str) -> None:
        value = ViewMode(view).value
        if value != self._view:
            self._view = value
            self._changed({"view"})

    @property
    def gallery_disabled(self) -> bool:
        return self._options.title_field is None or self._options.description_field is None

    @property
    def calendar_disabled(self) -> bool:
        return (
            self._options.start_date_field is None
            or self._options.end_date_field is None
            or self._options.title_field is None
        )

    # -------- Search --------
    @property
    def search_query(self) -> str:
        return self._search_query

    def set_search_query(self, query: Optional[str]) -> None:
        value = query or ""
        if value != self._search_query:
            self._search_query = value
            self._changed({"search_query"})

    # -------- Sorting --------
    @property
    def sorting(self) -> list[SortEntry]:
        return list(self._sorting)

    def set_sorting(self, entries: Iterable[Any]) -> None:
        """Replace the sort order (upstream update); duplicate ids keep their first entry."""
        self._sorting = _as_sorting(entries)
        self._changed({"sorting"})

    def clear_sorting(self) -> None:
        if self._sorting:
            self._sorting = []
            self._changed({"sorting"})

    def sort_direction(self, column_id: str) -> Optional[str]:
        entry = next((s for s in self._sorting if s.id == column_id), None)
        if entry is None:
            return None
        return "desc" if entry.desc else "asc"

    def toggle_sorting(self, column_id: str, descending: Optional[bool] = None, multi: bool = False) -> None:
        """
        Sort by a column.

        With an explicit direction the column's entry is removed and
        re-inserted at the front. Without one the column cycles
        asc -> desc -> none. `multi` keeps the other columns' entries as lower
        precedence; otherwise the column becomes the only sort key.
        """
        d = self.descriptor(column_id)
        if d is None or not d.enable_sorting:
            return

        current = next((s for s in self._sorting if s.id == column_id), None)
        if descending is None:
            if current is None:
                descending = False
            elif not current.desc:
                descending = True
            else:
                descending = None  # third step: unsorted

        others = [s for s in self._sorting if s.id != column_id] if multi else []
        if descending is None:
            self._sorting = others
        else:
            self._sorting = [SortEntry(id=column_id, desc=descending), *others]
        self._changed({"sorting"})

    # -------- Filters --------
    @property
    def column_filters(self) -> list[ColumnFilter]:
        return list(self._column_filters)

    @property
    def last_added_filter_id(self) -> Optional[str]:
        return self._last_added_filter_id

    def consume_last_added_filter_id(self) -> Optional[str]:
        """Return the id of the newest filter once, for autofocus."""
        column_id = self._last_added_filter_id
        self._last_added_filter_id = None
        return column_id

    def set_column_filters(self, filters: Iterable[Any]) -> None:
        """Replace the filter set as-is (used when restoring persisted state)."""
        self._column_filters = merge_filters([], _as_filters(filters))
        self._changed({"column_filters"})

    def on_column_filters_change(self, filters: Iterable[Any]) -> None:
        """Filter set reported by the table model; merged, never shrunk."""
        self._column_filters = merge_filters(self._column_filters, _as_filters(filters))
        self._changed({"column_filters"})

    def add_filter(self, column_id: str, value: Any = "") -> None:
        if any(f.id == column_id for f in self._column_filters):
            return
        self._column_filters = [*self._column_filters, ColumnFilter(id=column_id, value=value)]
        self._last_added_filter_id = column_id
        self._changed({"column_filters", "last_added_filter_id"})

    def set_filter_value(self, column_id: str, value: Any) -> None:
        if any(f.id == column_id for f in self._column_filters):
            self._column_filters = [
                ColumnFilter(id=f.id, value=value) if f.id == column_id else f
                for f in self._column_filters
            ]
        else:
            self._column_filters = [*self._column_filters, ColumnFilter(id=column_id, value=value)]
        self._changed({"column_filters"})

    def remove_filter(self, column_id: str) -> None:
        self._column_filters = [f for f in self._column_filters if f.id != column_id]
        self._changed({"column_filters"})

    def filter_function(self, column_id: str) -> Optional[str]:
        d = self.descriptor(column_id)
        if d is None:
            return None
        return self._filter_functions.get(column_id) or default_filter_function(d.meta.type)

    def set_filter_function(self, column_id: str, name: str) -> None:
        d = self.descriptor(column_id)
        if d is None:
            raise ValueError(f"Unknown column: {column_id}")
        allowed = filter_functions_for(d.meta.type)
        if name not in allowed:
            raise ValueError(f"Filter function {name!r} not valid for {d.meta.type} columns: {allowed}")
        self._filter_functions[column_id] = name
        self._changed({"filter_functions"})

    # -------- Row model --------
    @property
    def filtered_rows(self) -> list[IndexedRow]:
        """(source index, row) pairs passing the column filters and global search."""
        def compute() -> list[IndexedRow]:
            active = []
            for f in self._column_filters:
                if is_empty_filter_value(f.value):
                    continue
                d = self.descriptor(f.id)
                if d is None or not d.enable_filtering or d.accessor_key is None:
                    continue
                fn_name = self.filter_function(f.id)
                if fn_name is None:
                    continue
                active.append((d.accessor_key, FILTER_FUNCTIONS[fn_name], f.value))

            search_keys = [d.accessor_key for d in self.descriptors if d.accessor_key]
            result = []
            for index, row in enumerate(self._rows):
                if not all(fn(row.get(key), value) for key, fn, value in active):
                    continue
                if not matches_search(row, search_keys, self._search_query):
                    continue
                result.append((index, row))
            return result

        return self._memo(
            "filtered_rows",
            ("rows", "columns", "column_filters", "filter_functions", "search_query"),
            compute,
        )

    @property
    def sorted_rows(self) -> list[IndexedRow]:
        """Filtered rows in sort order; stable, first sort entry has highest precedence."""
        def compute() -> list[IndexedRow]:
            keys = []
            for entry in self._sorting:
                d = self.descriptor(entry.id)
                if d is not None and d.enable_sorting and d.accessor_key:
                    keys.append((d.accessor_key, entry.desc))
            rows = self.filtered_rows
            if not keys:
                return list(rows)

            def compare(a: IndexedRow, b: IndexedRow) -> int:
                for key, desc in keys:
                    va, vb = a[1].get(key), b[1].get(key)
                    # Missing values sort last in both directions
                    if va is None and vb is None:
                        continue
                    if va is None:
                        return 1
                    if vb is None:
                        return -1
                    result = _compare_values(va, vb)
                    if result:
                        return -result if desc else result
                return 0

            return sorted(rows, key=cmp_to_key(compare))

        return self._memo(
            "sorted_rows",
            ("rows", "columns", "column_filters", "filter_functions", "search_query", "sorting"),
            compute,
        )

    @property
    def row_count(self) -> int:
        return len(self.filtered_rows)

    # -------- Pagination --------
    @property
    def page_size(self) -> int:
        return self._page_size

    @property
    def page_count(self) -> int:
        return max(1, math.ceil(self.row_count / self._page_size))

    @property
    def page_index(self) -> int:
        """Current page, always within [0, page_count)."""
        return min(max(self._page_index, 0), self.page_count - 1)

    def set_page_index(self, page_index: int) -> None:
        value = min(max(int(page_index), 0), self.page_count - 1)
        if value != self._page_index:
            self._page_index = value
            self._changed({"page_index"})

    def set_page_size(self, page_size: int) -> None:
        """Change the page size, keeping the current top row on screen."""
        size = int(page_size)
        if size <= 0:
            raise ValueError("page_size must be positive")
        if size == self._page_size:
            return
        top_row = self.page_index * self._page_size
        self._page_size = size
        self._page_index = top_row // size
        self._changed({"page_size", "page_index"})

    def set_pagination(self, page_index: int, page_size: int) -> None:
        """Set both values unclamped; reads clamp once rows are known."""
        self._page_index = max(int(page_index), 0)
        self._page_size = max(int(page_size), 1)
        self._changed({"page_index", "page_size"})

    def next_page(self) -> None:
        if self.page_index + 1 < self.page_count:
            self.set_page_index(self.page_index + 1)

    def previous_page(self) -> None:
        if self.page_index > 0:
            self.set_page_index(self.page_index - 1)

    def first_page(self) -> None:
        self.set_page_index(0)

    def last_page(self) -> None:
        self.set_page_index(self.page_count - 1)

    @property
    def page_rows(self) -> list[IndexedRow]:
        start = self.page_index * self._page_size
        return self.sorted_rows[start:start + self._page_size]

    def page_cells(self, highlight_search: bool = False) -> list[dict[str, Any]]:
        """Rendered cells of the current page, keyed by column id.

        With `highlight_search`, plain text and number cells come back as
        markup with the search query wrapped in <mark>.
        """
        def cell(d: DispatchDescriptor, row: dict, index: int) -> Any:
            value = d.render_cell(row, index)
            if not highlight_search or not self._search_query or d.accessor_key is None:
                return value
            if isinstance(value, Markup) or isinstance(value, bool):
                return value
            if isinstance(value, (str, int, float)):
                return highlight(value, self._search_query)
            return value

        return [
            {d.id: cell(d, row, index) for d in self.visible_columns}
            for index, row in self.page_rows
        ]

    # -------- Column order / visibility --------
    @property
    def column_order(self) -> list[str]:
        return list(self._column_order)

    def set_column_order(self, order: Iterable[str]) -> None:
        self._column_order = list(dict.fromkeys(order))
        self._changed({"column_order"})

    @property
    def column_visibility(self) -> dict[str, bool]:
        return dict(self._column_visibility)

    def set_column_visibility(self, visibility: Mapping[str, bool]) -> None:
        self._column_visibility = {k: bool(v) for k, v in visibility.items()}
        self._changed({"column_visibility"})

    def toggle_column_visibility(self, column_id: str) -> None:
        visible = self._column_visibility.get(column_id, True)
        self._column_visibility = {**self._column_visibility, column_id: not visible}
        self._changed({"column_visibility"})

    # -------- Column sizing --------
    @property
    def column_sizing(self) -> dict[str, float]:
        return dict(self._column_sizing)

    def set_column_sizing(self, sizing: Mapping[str, float]) -> None:
        self._column_sizing = dict(sizing)
        self._changed({"column_sizing"})

    def set_column_size(self, column_id: str, size: float) -> None:
        if size <= 0:
            raise ValueError("column size must be positive")
        self._column_sizing = {**self._column_sizing, column_id: size}
        self._changed({"column_sizing"})

    def column_size(self, column_id: str) -> float:
        return self._column_sizing.get(column_id, DEFAULT_COLUMN_SIZE)

    @property
    def column_size_pixel_map(self) -> dict[str, str]:
        """CSS width variables for every header and column.

        Recomputed only after sizing (or the column set) changed; read it
        after a change has been applied rather than from inside a listener
        reacting to that same change.
        """
        def compute() -> dict[str, str]:
            sizes: dict[str, str] = {}
            for d in self.descriptors:
                width = f"{self.column_size(d.id):g}px"
                sizes[f"--header-{d.id}-size"] = width
                sizes[f"--col-{d.id}-size"] = width
            return sizes

        return self._memo("column_size_pixel_map", ("columns", "column_sizing"), compute)

    # -------- Reset --------
    def reset_to_defaults(self) -> None:
        self._view = ViewMode.TABLE.value
        self._page_index = 0
        self._page_size = self.default_page_size
        self._search_query = ""
        self._sorting = []
        self._column_filters = []
        self._column_sizing = {}
        self._changed({
            "view", "page_index", "page_size", "search_query",
            "sorting", "column_filters", "column_sizing",
        })
