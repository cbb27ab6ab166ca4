# datagrid/columns/editors.py
# Editable-cell capability: {current_value, on_commit}

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Optional, Protocol

from datagrid.columns.renderers import CellContext
from datagrid.constants import EDITOR_DATE_FORMAT
from datagrid.utils.formatting import format_date


class CellEditor(Protocol):
    """What the rendering layer drives. `on_commit` fires the edit callback."""

    @property
    def current_value(self) -> Any: ...

    def on_commit(self, new_value: Any) -> dict: ...


def _commit(cell: CellContext, accessor_key: str, on_edit: Callable[[dict], None], new_value: Any) -> dict:
    # Shallow copy: the caller's row object is never mutated
    edited = {**cell.row, accessor_key: new_value}
    on_edit(edited)
    return edited


class TextEditor:
    """Free-text input; `input_type` mirrors the column type (text/number/boolean)."""

    def __init__(
        self,
        cell: CellContext,
        accessor_key: str,
        on_edit: Callable[[dict], None],
        input_type: str = "text",
        min: Optional[float] = None,
        max: Optional[float] = None,
        max_length: Optional[int] = None,
        placeholder: Optional[str] = None,
    ):
        self.cell = cell
        self.accessor_key = accessor_key
        self.input_type = input_type
        self.min = min
        self.max = max
        self.max_length = max_length
        self.placeholder = placeholder
        self._on_edit = on_edit
        self._value = cell.value

    @property
    def current_value(self) -> Any:
        return self._value

    def set_value(self, value: Any) -> None:
        self._value = value

    def on_commit(self, new_value: Any) -> dict:
        self._value = new_value
        return _commit(self.cell, self.accessor_key, self._on_edit, new_value)

    def blur(self) -> dict:
        return self.on_commit(self._value)


class DateEditor:
    def __init__(
        self,
        cell: CellContext,
        accessor_key: str,
        on_edit: Callable[[dict], None],
        input_type: str = "date",
        min_date: Optional[datetime] = None,
        max_date: Optional[datetime] = None,
    ):
        self.cell = cell
        self.accessor_key = accessor_key
        self.input_type = input_type
        self.min_date = min_date
        self.max_date = max_date
        self._on_edit = on_edit
        self._value = cell.value

    @property
    def current_value(self) -> Any:
        return self._value

    @property
    def display_value(self) -> str:
        return format_date(self._value, EDITOR_DATE_FORMAT)

    def set_value(self, value: Any) -> None:
        self._value = value

    def on_commit(self, new_value: Any) -> dict:
        self._value = new_value
        return _commit(self.cell, self.accessor_key, self._on_edit, new_value)

    def blur(self) -> dict:
        return self.on_commit(self._value)


class ChoiceEditor:
    """
    Constrained choice over `items`.

    Array columns hold several values (`multiple`); list columns hold one.
    New values outside `items` are only accepted with `allow_additions`.
    """

    def __init__(
        self,
        cell: CellContext,
        accessor_key: str,
        on_edit: Callable[[dict], None],
        input_type: str = "list",
        items: Optional[list[str]] = None,
        allow_additions: bool = False,
    ):
        self.cell = cell
        self.accessor_key = accessor_key
        self.input_type = input_type
        self.items = list(items) if items is not None else None
        self.allow_additions = allow_additions
        self.multiple = input_type == "array"
        self._on_edit = on_edit
        self._value = cell.value

    @property
    def current_value(self) -> Any:
        return self._value

    def set_value(self, value: Any) -> None:
        self._value = value

    def add_item(self, tag: str) -> bool:
        """Append a tag to an array value. Returns False when it is not allowed."""
        if not self.multiple:
            return False
        if not self.allow_additions and (self.items is None or tag not in self.items):
            return False
        current = list(self._value) if isinstance(self._value, (list, tuple)) else []
        self._value = [*current, tag]
        return True

    def on_commit(self, new_value: Any) -> dict:
        self._value = new_value
        return _commit(self.cell, self.accessor_key, self._on_edit, new_value)

    def blur(self) -> dict:
        return self.on_commit(self._value)
