# datagrid/store/filters.py
# Column filter functions and global search
# Pure functions with no side effects

from datetime import datetime, timezone
from typing import Any, Callable, Optional

from datagrid.constants import ColumnType
from datagrid.utils.formatting import parse_date

FilterFn = Callable[[Any, Any], bool]


def is_empty_filter_value(value: Any) -> bool:
    """Filters holding no value are kept in state but do not filter rows."""
    if value is None or value == "":
        return True
    if isinstance(value, (list, tuple)):
        return all(is_empty_filter_value(v) for v in value)
    return False


def _as_list(value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return list(value)
    return [value]


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _as_naive_utc(value: Any) -> Optional[datetime]:
    dt = parse_date(value)
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def includes_string(value: Any, filter_value: Any) -> bool:
    if value is None:
        return False
    return str(filter_value).lower() in str(value).lower()


def equals_string(value: Any, filter_value: Any) -> bool:
    if value is None:
        return False
    return str(value).lower() == str(filter_value).lower()


def equals(value: Any, filter_value: Any) -> bool:
    if value == filter_value:
        return True
    # Filter inputs arrive as text; compare numbers numerically
    left, right = _as_number(value), _as_number(filter_value)
    if left is not None and right is not None:
        return left == right
    if isinstance(value, bool) and isinstance(filter_value, str):
        return str(value).lower() == filter_value.lower()
    return False


def in_number_range(value: Any, filter_value: Any) -> bool:
    """filter_value is [min, max]; either bound may be empty."""
    low, high = (list(_as_list(filter_value)) + [None, None])[:2]
    number = _as_number(value)
    if number is None:
        return False
    low, high = _as_number(low), _as_number(high)
    if low is not None and number < low:
        return False
    if high is not None and number > high:
        return False
    return True


def in_date_range(value: Any, filter_value: Any) -> bool:
    """filter_value is [start, end]; either bound may be empty."""
    start, end = (list(_as_list(filter_value)) + [None, None])[:2]
    dt = _as_naive_utc(value)
    if dt is None:
        return False
    start, end = _as_naive_utc(start), _as_naive_utc(end)
    if start is not None and dt < start:
        return False
    if end is not None and dt > end:
        return False
    return True


def arr_includes_all(value: Any, filter_value: Any) -> bool:
    row_values = _as_list(value)
    return all(v in row_values for v in _as_list(filter_value))


def arr_includes_some(value: Any, filter_value: Any) -> bool:
    row_values = _as_list(value)
    return any(v in row_values for v in _as_list(filter_value))


def arr_includes(value: Any, filter_value: Any) -> bool:
    # A multi-select filter widget hands over a list: match any of it
    if isinstance(filter_value, (list, tuple)):
        return arr_includes_some(value, filter_value)
    return filter_value in _as_list(value)


FILTER_FUNCTIONS: dict[str, FilterFn] = {
    "includesString": includes_string,
    "equalsString": equals_string,
    "equals": equals,
    "inNumberRange": in_number_range,
    "inDateRange": in_date_range,
    "arrIncludes": arr_includes,
    "arrIncludesAll": arr_includes_all,
    "arrIncludesSome": arr_includes_some,
}

# Valid filter functions per column type; the first one is the default
FILTER_FUNCTIONS_BY_TYPE: dict[str, list[str]] = {
    ColumnType.ROW_NUMBER.value: [],
    ColumnType.TEXT.value: ["includesString", "equalsString"],
    ColumnType.NUMBER.value: ["equals", "inNumberRange"],
    ColumnType.DATE.value: ["equals", "inDateRange"],
    ColumnType.LIST.value: ["arrIncludes", "arrIncludesAll", "arrIncludesSome"],
    ColumnType.ARRAY.value: ["arrIncludes", "arrIncludesAll", "arrIncludesSome"],
    ColumnType.BOOLEAN.value: ["equals"],
}


def filter_functions_for(column_type: str) -> list[str]:
    return list(FILTER_FUNCTIONS_BY_TYPE.get(column_type, FILTER_FUNCTIONS_BY_TYPE[ColumnType.TEXT.value]))


def default_filter_function(column_type: str) -> Optional[str]:
    names = filter_functions_for(column_type)
    return names[0] if names else None


def _searchable_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return " ".join(_searchable_text(v) for v in value)
    return str(value)


def matches_search(row: dict, keys: list[str], query: str) -> bool:
    """Case-insensitive substring match of query against any of the row's keys."""
    if not query:
        return True
    needle = query.lower()
    return any(needle in _searchable_text(row.get(key)).lower() for key in keys)
