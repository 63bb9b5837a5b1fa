# furnace_LogReporter/core/bucketing.py
from __future__ import annotations
from datetime import date
from typing import Literal

from .normalize import parse_date, to_text

Granularity = Literal["day", "month", "year"]
GRANULARITIES: tuple[str, ...] = ("day", "month", "year")


def bucket_key(value, granularity: str = "day") -> str | None:
    """
    Map a record date to its day/month/year bucket.
    Keys are fixed-width and most-significant-first, so string order is time order.
    Unknown granularities behave like "day".
    """
    if granularity == "month":
        d = parse_date(value)
        return f"{d.year:04d}-{d.month:02d}" if d is not None else None
    if granularity == "year":
        d = parse_date(value)
        return f"{d.year:04d}" if d is not None else None
    # day: the date exactly as entered
    if isinstance(value, date):
        return value.isoformat()
    text = to_text(value)
    return text or None
