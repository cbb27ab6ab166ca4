from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Literal, Mapping, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from datagrid.constants import ColumnType
from datagrid.exceptions import ColumnDefinitionError

# Literal row key, or a zero-argument function returning it
FieldAccessor = Union[str, Callable[[], str]]


class ColumnDefBase(BaseModel):
    header: Optional[str] = None
    # Show the detail button in this column's cells
    detail: bool = False
    primary: bool = False
    sortable: bool = True
    filterable: bool = True
    header_icon_class: Optional[str] = Field(None, alias="headerIconClass")
    # Called with the CellContext; ignored when the column is editable
    formatter: Optional[Callable[..., Any]] = None

    class Config:
        populate_by_name = True

    def accessor_key(self) -> Optional[str]:
        field = getattr(self, "field", None)
        if field is None:
            return None
        return field() if callable(field) else field

    def edit_options(self) -> Optional[dict[str, Any]]:
        """Editor options, or None when the column is read-only.

        `editable=True` yields an empty options dict; an options model yields
        its fields.
        """
        editable = getattr(self, "editable", None)
        if editable is True:
            return {}
        if isinstance(editable, BaseModel):
            return editable.model_dump()
        return None


class RowNumberColumnDef(ColumnDefBase):
    type: Literal["rowNumber"] = "rowNumber"


class TextColumnDef(ColumnDefBase):
    type: Literal["text"] = "text"
    field: FieldAccessor
    editable: Optional[bool] = False
    max_length: Optional[int] = Field(None, alias="maxLength")
    placeholder: Optional[str] = None


class DateEditOptions(BaseModel):
    min_date: Optional[datetime] = Field(None, alias="minDate")
    max_date: Optional[datetime] = Field(None, alias="maxDate")

    class Config:
        populate_by_name = True


class DateColumnDef(ColumnDefBase):
    type: Literal["date"] = "date"
    field: FieldAccessor
    date_format: Optional[str] = Field(None, alias="dateFormat")
    editable: Optional[Union[bool, DateEditOptions]] = False


class NumberEditOptions(BaseModel):
    min: Optional[float] = None
    max: Optional[float] = None


class NumberColumnDef(ColumnDefBase):
    type: Literal["number"] = "number"
    field: FieldAccessor
    editable: Optional[Union[bool, NumberEditOptions]] = False


class BooleanColumnDef(ColumnDefBase):
    type: Literal["boolean"] = "boolean"
    field: FieldAccessor
    editable: Optional[bool] = False


class ListEditOptions(BaseModel):
    items: Optional[list[str]] = None


class ListColumnDef(ColumnDefBase):
    type: Literal["list"] = "list"
    field: FieldAccessor
    items: Optional[list[str]] = None
    editable: Optional[Union[bool, ListEditOptions]] = False


class ArrayEditOptions(BaseModel):
    allow_additions: bool = Field(False, alias="allowAdditions")
    items: Optional[list[str]] = None

    class Config:
        populate_by_name = True


class ArrayColumnDef(ColumnDefBase):
    type: Literal["array"] = "array"
    field: FieldAccessor
    items: Optional[list[str]] = None
    editable: Optional[Union[bool, ArrayEditOptions]] = False


ColumnDef = Union[
    RowNumberColumnDef,
    TextColumnDef,
    DateColumnDef,
    NumberColumnDef,
    BooleanColumnDef,
    ArrayColumnDef,
    ListColumnDef,
]

COLUMN_CLASSES: dict[str, type[ColumnDefBase]] = {
    ColumnType.ROW_NUMBER.value: RowNumberColumnDef,
    ColumnType.TEXT.value: TextColumnDef,
    ColumnType.DATE.value: DateColumnDef,
    ColumnType.NUMBER.value: NumberColumnDef,
    ColumnType.BOOLEAN.value: BooleanColumnDef,
    ColumnType.ARRAY.value: ArrayColumnDef,
    ColumnType.LIST.value: ListColumnDef,
}


def column_from_dict(mapping: Mapping[str, Any]) -> ColumnDef:
    """Build the column variant named by mapping["type"] (text when absent)."""
    type_tag = mapping.get("type") or ColumnType.TEXT.value
    cls = COLUMN_CLASSES.get(type_tag)
    if cls is None:
        raise ColumnDefinitionError(
            f"Unknown column type: {type_tag!r}",
            details={"allowed": sorted(COLUMN_CLASSES)},
        )
    try:
        return cls.model_validate({**mapping, "type": type_tag})
    except ValidationError as e:
        raise ColumnDefinitionError(
            f"Invalid {type_tag} column",
            details={"errors": e.errors(include_url=False)},
        ) from e
