from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any

UTC = timezone.utc


def parse_day(value: Any) -> date | None:
    """Calendar date of an API timestamp such as ``2025-01-06T00:00:00.000Z``."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def parse_timestamp(value: Any) -> datetime | None:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def day_to_api(d: date) -> str:
    """Midnight UTC timestamp the allocation API stores for a calendar day."""
    return datetime(d.year, d.month, d.day, tzinfo=UTC).isoformat().replace("+00:00", "Z")
