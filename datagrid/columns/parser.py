# datagrid/columns/parser.py
# Column schema -> dispatch descriptor. Pure: no state, no I/O.

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from datagrid.columns.editors import ChoiceEditor, DateEditor, TextEditor
from datagrid.columns.renderers import (
    BadgeListRenderer,
    CellContext,
    DateRenderer,
    EditableRenderer,
    FormatterRenderer,
    RowNumberRenderer,
    ValueRenderer,
)
from datagrid.constants import HEADER_ICONS, ROW_NUMBER_HEADER, ColumnType
from datagrid.schemas.columns import ColumnDef, ColumnDefBase


@dataclass(frozen=True)
class ColumnMeta:
    icon: Optional[str]
    type: str
    detail: bool = False
    items: Optional[tuple[str, ...]] = None


@dataclass(frozen=True)
class DispatchDescriptor:
    id: str
    header: str
    accessor_key: Optional[str]
    render: Any
    meta: ColumnMeta
    enable_sorting: bool = True
    enable_filtering: bool = True
    editable: bool = False

    def cell_context(self, row: Mapping[str, Any], row_index: int) -> CellContext:
        value = row.get(self.accessor_key) if self.accessor_key else None
        return CellContext(row=row, row_index=row_index, column_id=self.id, value=value)

    def render_cell(self, row: Mapping[str, Any], row_index: int) -> Any:
        return self.render.render(self.cell_context(row, row_index))


# type -> editor; anything not listed edits as free text
EDITORS: dict[str, Callable[..., Any]] = {
    ColumnType.DATE.value: DateEditor,
    ColumnType.LIST.value: ChoiceEditor,
    ColumnType.ARRAY.value: ChoiceEditor,
}


def _editor_options(column: ColumnDefBase, edit_options: dict[str, Any]) -> dict[str, Any]:
    column_type = column.type
    options: dict[str, Any] = {"input_type": column_type}
    if column_type in (ColumnType.LIST.value, ColumnType.ARRAY.value):
        items = edit_options.get("items")
        options["items"] = items if isinstance(items, list) else column.items
        if column_type == ColumnType.ARRAY.value:
            options["allow_additions"] = bool(edit_options.get("allow_additions"))
    elif column_type == ColumnType.DATE.value:
        options["min_date"] = edit_options.get("min_date")
        options["max_date"] = edit_options.get("max_date")
    elif column_type == ColumnType.NUMBER.value:
        options["min"] = edit_options.get("min")
        options["max"] = edit_options.get("max")
    elif column_type == ColumnType.TEXT.value:
        options["max_length"] = column.max_length
        options["placeholder"] = column.placeholder
    return options


def parse_column(column: ColumnDef, on_edit: Callable[[dict], None]) -> DispatchDescriptor:
    """Resolve a column definition into its render/edit dispatch descriptor.

    Precedence, lowest to highest: plain value, type renderer (date, badges),
    custom formatter, editor. The formatter only applies to read-only columns.
    """
    if column.type == ColumnType.ROW_NUMBER.value:
        header = column.header or ROW_NUMBER_HEADER
        return DispatchDescriptor(
            id=header,
            header=header,
            accessor_key=None,
            render=RowNumberRenderer(),
            meta=ColumnMeta(icon=column.header_icon_class, type=column.type, detail=column.detail),
            enable_sorting=False,
            enable_filtering=False,
        )

    accessor_key = column.accessor_key()
    items = getattr(column, "items", None)
    meta = ColumnMeta(
        icon=column.header_icon_class,
        type=column.type,
        detail=column.detail,
        items=tuple(items) if items is not None else None,
    )

    render: Any = ValueRenderer()
    if column.type == ColumnType.DATE.value:
        render = DateRenderer(column.date_format)
    elif column.type == ColumnType.ARRAY.value:
        render = BadgeListRenderer(collapse=True)
    elif column.type == ColumnType.LIST.value:
        render = BadgeListRenderer(collapse=False)

    edit_options = column.edit_options()

    if column.formatter is not None and edit_options is None:
        render = FormatterRenderer(column.formatter)

    if edit_options is not None:
        render = EditableRenderer(
            editor_factory=EDITORS.get(column.type, TextEditor),
            accessor_key=accessor_key,
            on_edit=on_edit,
            options=_editor_options(column, edit_options),
        )

    return DispatchDescriptor(
        id=accessor_key,
        header=column.header or accessor_key,
        accessor_key=accessor_key,
        render=render,
        meta=meta,
        enable_sorting=column.sortable,
        enable_filtering=column.filterable,
        editable=edit_options is not None,
    )


def parse_columns(columns: list[ColumnDef], on_edit: Callable[[dict], None]) -> list[DispatchDescriptor]:
    return [parse_column(column, on_edit) for column in columns]


def header_icon(descriptor: DispatchDescriptor) -> str:
    """Explicit header icon, else the default icon for the column type."""
    if descriptor.meta.icon:
        return descriptor.meta.icon
    return HEADER_ICONS.get(descriptor.meta.type, HEADER_ICONS[ColumnType.TEXT.value])
