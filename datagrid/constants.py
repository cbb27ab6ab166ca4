# datagrid/constants.py
# Shared literals for column types, view modes and grid defaults

from enum import Enum


class ColumnType(str, Enum):
    """Type tag of a column definition."""
    ROW_NUMBER = "rowNumber"
    TEXT = "text"
    DATE = "date"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    LIST = "list"


class ViewMode(str, Enum):
    """Active presentation of the grid."""
    TABLE = "table"
    GALLERY = "gallery"
    CALENDAR = "calendar"


DEFAULT_DATE_FORMAT: str = "YYYY-MM-DD HH:mm"
EDITOR_DATE_FORMAT: str = "YYYY-MM-DD"
ROW_NUMBER_HEADER: str = "row_number"

# Badge columns show this many values before collapsing into "+N"
MAX_VISIBLE_BADGES: int = 3

DEFAULT_COLUMN_SIZE: int = 150

# Document-store collection (table) name and key length limit
STATE_COLLECTION: str = "datagrid_states"
MAX_KEY_LENGTH: int = 100

HEADER_ICONS: dict[str, str] = {
    ColumnType.TEXT.value: "icon-[tabler--letters-case]",
    ColumnType.NUMBER.value: "icon-[tabler--hash]",
    ColumnType.ROW_NUMBER.value: "icon-[tabler--hash]",
    ColumnType.DATE.value: "icon-[tabler--calendar]",
    ColumnType.BOOLEAN.value: "icon-[tabler--toggle-left]",
    ColumnType.ARRAY.value: "icon-[tabler--list]",
    ColumnType.LIST.value: "icon-[tabler--list-check]",
}


class StorageKind(str, Enum):
    """Storage backend selector."""
    DOCUMENT_STORE = "document-store"
    FLAT_KV = "flat-kv"

    @classmethod
    def parse(cls, value) -> "StorageKind":
        """Accept enum members, canonical names and the browser-era aliases."""
        if isinstance(value, cls):
            return value
        aliases = {"indexeddb": cls.DOCUMENT_STORE, "localstorage": cls.FLAT_KV}
        text = str(value).lower()
        if text in aliases:
            return aliases[text]
        return cls(text)
