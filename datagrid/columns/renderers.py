# datagrid/columns/renderers.py
# Render strategies: one small object per column, resolved at parse time

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from markupsafe import Markup

from datagrid.constants import MAX_VISIBLE_BADGES
from datagrid.utils.formatting import format_date, render_badges


@dataclass(frozen=True)
class CellContext:
    """What a render strategy sees for one cell."""
    row: Mapping[str, Any]
    row_index: int
    column_id: str
    value: Any = None


class ValueRenderer:
    """Plain value, unchanged."""

    def render(self, cell: CellContext) -> Any:
        return cell.value


class RowNumberRenderer:
    """1-based index of the row in the source data."""

    def render(self, cell: CellContext) -> int:
        return cell.row_index + 1


@dataclass(frozen=True)
class DateRenderer:
    date_format: Optional[str] = None

    def render(self, cell: CellContext) -> str:
        return format_date(cell.value, self.date_format)


@dataclass(frozen=True)
class BadgeListRenderer:
    """
    Badges for list/array cells.

    Array cells show at most three values; any remainder collapses into a
    single "+N" badge. List cells hold one value and render one badge.
    """
    collapse: bool = True

    def tokens(self, value: Any) -> list[str]:
        if value is None or value == "":
            return []
        if not self.collapse:
            return [str(value)]
        values = list(value) if isinstance(value, (list, tuple)) else [value]
        shown = [str(v) for v in values[:MAX_VISIBLE_BADGES]]
        if len(values) > MAX_VISIBLE_BADGES:
            shown.append(f"+{len(values) - MAX_VISIBLE_BADGES}")
        return shown

    def render(self, cell: CellContext) -> Markup:
        return render_badges(self.tokens(cell.value))


@dataclass(frozen=True)
class FormatterRenderer:
    formatter: Callable[[CellContext], Any]

    def render(self, cell: CellContext) -> Any:
        return self.formatter(cell)


@dataclass(frozen=True)
class EditableRenderer:
    """Delegates the cell to an editor bound to the row being rendered."""
    editor_factory: Callable[..., Any]
    accessor_key: str
    on_edit: Callable[[dict], None]
    options: Mapping[str, Any]

    def render(self, cell: CellContext) -> Any:
        return self.editor_factory(
            cell=cell,
            accessor_key=self.accessor_key,
            on_edit=self.on_edit,
            **self.options,
        )
