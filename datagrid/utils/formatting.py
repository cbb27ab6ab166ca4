# datagrid/utils/formatting.py
# Pure display helpers: date tokens, badge markup, search highlighting

import re
from datetime import date, datetime, timezone
from typing import Any, Iterable, Optional

from markupsafe import Markup, escape

from datagrid.constants import DEFAULT_DATE_FORMAT

INVALID_DATE = "Invalid Date"

# Day.js-style tokens, longest first so "YYYY" wins over "YY"
_DATE_TOKENS = re.compile(
    r"\[([^\]]*)\]|YYYY|YY|MMMM|MMM|MM|M|DD|D|dddd|ddd|HH|H|hh|h|mm|m|ss|s|SSS|A|a|Z"
)


def parse_date(value: Any) -> Optional[datetime]:
    """Coerce a cell value into a datetime, or None if it cannot be read.

    Numbers are epoch milliseconds; strings are ISO 8601 (a trailing "Z" is
    accepted).
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            return None
    return None


def _token(dt: datetime, token: str) -> str:
    hour12 = dt.hour % 12 or 12
    if token == "YYYY":
        return f"{dt.year:04d}"
    if token == "YY":
        return f"{dt.year % 100:02d}"
    if token == "MMMM":
        return dt.strftime("%B")
    if token == "MMM":
        return dt.strftime("%b")
    if token == "MM":
        return f"{dt.month:02d}"
    if token == "M":
        return str(dt.month)
    if token == "DD":
        return f"{dt.day:02d}"
    if token == "D":
        return str(dt.day)
    if token == "dddd":
        return dt.strftime("%A")
    if token == "ddd":
        return dt.strftime("%a")
    if token == "HH":
        return f"{dt.hour:02d}"
    if token == "H":
        return str(dt.hour)
    if token == "hh":
        return f"{hour12:02d}"
    if token == "h":
        return str(hour12)
    if token == "mm":
        return f"{dt.minute:02d}"
    if token == "m":
        return str(dt.minute)
    if token == "ss":
        return f"{dt.second:02d}"
    if token == "s":
        return str(dt.second)
    if token == "SSS":
        return f"{dt.microsecond // 1000:03d}"
    if token == "A":
        return "PM" if dt.hour >= 12 else "AM"
    if token == "a":
        return "pm" if dt.hour >= 12 else "am"
    # Z
    offset = dt.strftime("%z")
    return f"{offset[:3]}:{offset[3:]}" if offset else "+00:00"


def format_date(value: Any, fmt: Optional[str] = None) -> str:
    """Format a cell value with a Day.js-style pattern (default "YYYY-MM-DD HH:mm").

    Empty values format as "". Text inside [brackets] is emitted literally.
    """
    if value is None or value == "":
        return ""
    dt = parse_date(value)
    if dt is None:
        return INVALID_DATE

    def _sub(match: re.Match) -> str:
        if match.group(1) is not None:
            return match.group(1)
        return _token(dt, match.group(0))

    return _DATE_TOKENS.sub(_sub, fmt or DEFAULT_DATE_FORMAT)


def badge(value: Any) -> Markup:
    return Markup('<span class="badge badge-soft" data-value="{0}">{0}</span>').format(value)


def render_badges(values: Iterable[Any]) -> Markup:
    """Join badge spans with a single space; values are HTML-escaped."""
    return Markup(" ").join(badge(v) for v in values)


def highlight(value: Any, target: Optional[str]) -> Markup:
    """Wrap case-insensitive matches of target in <mark> tags."""
    text = str(escape("" if value is None else value))
    if not target:
        return Markup(text)
    pattern = re.compile(re.escape(str(escape(target))), re.IGNORECASE)
    return Markup(pattern.sub(lambda m: f"<mark>{m.group(0)}</mark>", text))
