"""Date parsing for entity fields stored as ISO strings."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any


def to_date(value: Any) -> date | None:
    """Coerce an entity date value to a :class:`date`.

    Accepts ``date``/``datetime`` objects and ISO-8601 strings (with or
    without a time part or a trailing ``Z``). Blank or unparseable values
    yield ``None``.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip().replace("Z", "+00:00")
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def today() -> date:
    return datetime.now(timezone.utc).date()


def days_between(start: date, end: date) -> int:
    return (end - start).days
