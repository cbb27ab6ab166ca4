from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from datagrid.constants import StorageKind, ViewMode


class SortEntry(BaseModel):
    id: str
    desc: bool = False


class ColumnFilter(BaseModel):
    id: str
    value: Any = ""


class PaginationState(BaseModel):
    page_index: int = Field(0, ge=0, alias="pageIndex")
    page_size: int = Field(10, gt=0, alias="pageSize")

    class Config:
        populate_by_name = True


class PersistedState(BaseModel):
    """Serialisable snapshot of the policy-selected grid state.

    Only `updated_at` is always present; every other field is written only
    when the persistence policy includes it.
    """
    view: Optional[ViewMode] = None
    pagination: Optional[PaginationState] = None
    search: Optional[str] = None
    sorting: Optional[list[SortEntry]] = None
    column_order: Optional[list[str]] = Field(None, alias="columnOrder")
    column_visibility: Optional[dict[str, bool]] = Field(None, alias="columnVisibility")
    column_filters: Optional[list[ColumnFilter]] = Field(None, alias="columnFilters")
    column_sizing: Optional[dict[str, int | float]] = Field(None, alias="columnSizing")
    updated_at: Optional[int] = Field(None, alias="updatedAt")

    class Config:
        populate_by_name = True
        use_enum_values = True

    def to_record(self) -> dict[str, Any]:
        """Wire form: camelCase keys, absent fields omitted."""
        return self.model_dump(by_alias=True, exclude_none=True)


class PersistStateFlags(BaseModel):
    """Per-field inclusion map. Everything is persisted except column visibility."""
    view: bool = True
    pagination: bool = True
    sorting: bool = True
    filters: bool = True
    search: bool = True
    column_order: bool = Field(True, alias="columnOrder")
    column_visibility: bool = Field(False, alias="columnVisibility")
    column_sizing: bool = Field(True, alias="columnSizing")

    class Config:
        populate_by_name = True


class PersistConfig(BaseModel):
    enabled: bool = True
    key: Optional[str] = None
    storage: StorageKind = StorageKind.DOCUMENT_STORE
    state: PersistStateFlags = Field(default_factory=PersistStateFlags)
    # Reserved: accepted for compatibility, expiry is not implemented
    ttl: Optional[int] = None

    class Config:
        populate_by_name = True

    @field_validator("storage", mode="before")
    @classmethod
    def parse_storage(cls, v: Any) -> StorageKind:
        return StorageKind.parse(v)


class GridOptions(BaseModel):
    """Options supplied by the host component."""
    id: Optional[str] = None
    image_field: Optional[str] = Field(None, alias="imageField")
    title_field: Optional[str] = Field(None, alias="titleField")
    description_field: Optional[str] = Field(None, alias="descriptionField")
    start_date_field: Optional[str] = Field(None, alias="startDateField")
    end_date_field: Optional[str] = Field(None, alias="endDateField")
    badge_field: Optional[str] = Field(None, alias="badgeField")
    persist: PersistConfig = Field(default_factory=PersistConfig)

    class Config:
        populate_by_name = True
