"""Local list filtering over rows already held by a store."""
from datetime import date, datetime
from typing import Iterable, List, Optional, Sequence, Union

DateLike = Union[date, datetime, str, None]


def to_date(value: DateLike) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def is_date_in_range(value: DateLike, start: DateLike = None, end: DateLike = None) -> bool:
    """Inclusive on both bounds; a missing bound disables the filter entirely."""
    start_date, end_date = to_date(start), to_date(end)
    if start_date is None or end_date is None:
        return True
    current = to_date(value)
    if current is None:
        return False
    return start_date <= current <= end_date


def filter_by_date_range(rows: Iterable[dict], field: str, start: DateLike = None, end: DateLike = None) -> List[dict]:
    return [row for row in rows if is_date_in_range(row.get(field), start, end)]


def _haystack(row: dict, fields: Sequence[str]) -> str:
    parts = []
    for name in fields:
        value = row
        for key in name.split("."):
            value = value.get(key) if isinstance(value, dict) else None
        if value is not None:
            parts.append(str(value))
    return " ".join(parts).lower()


def filter_by_text(rows: Iterable[dict], query: Optional[str], fields: Sequence[str]) -> List[dict]:
    """Case-insensitive substring match; dotted names reach into embedded rows (``patients.name``)."""
    rows = list(rows)
    needle = (query or "").strip().lower()
    if not needle:
        return rows
    return [row for row in rows if needle in _haystack(row, fields)]


def filter_by_value(rows: Iterable[dict], field: str, value) -> List[dict]:
    """Exact match; ``None`` or ``"all"`` keeps every row."""
    rows = list(rows)
    if value is None or value == "all":
        return rows
    return [row for row in rows if row.get(field) == value]
