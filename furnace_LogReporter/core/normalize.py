# furnace_LogReporter/core/normalize.py
from __future__ import annotations
from datetime import date, datetime, time
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
import json
import math
import re
import pandas as pd

_INT_PREFIX = re.compile(r"^\s*([+-]?\d+)")
_FLOAT_PREFIX = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")
_HHMM = re.compile(r"^\s*(\d{1,2}):(\d{2})(?::(\d{2}))?\s*$")
_TWO_PLACES = Decimal("0.01")


def to_text(value) -> str:
    """Raw store values are usually strings; numbers and None show up in hand-edited dumps."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return str(value)


def is_blank(value) -> bool:
    return to_text(value) == ""


def parse_int_prefix(value) -> int | None:
    m = _INT_PREFIX.match(to_text(value))
    return int(m.group(1)) if m else None


def parse_float_prefix(value) -> float | None:
    m = _FLOAT_PREFIX.match(to_text(value))
    if not m:
        return None
    try:
        return float(m.group(1))
    except ValueError:
        return None


def parse_date(value) -> date | None:
    """ISO calendar date of a record; None when it cannot be read."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = to_text(value).strip()
    if not text:
        return None
    ts = pd.to_datetime(text, format="%Y-%m-%d", errors="coerce")
    if pd.isna(ts):
        ts = pd.to_datetime(text, format="ISO8601", errors="coerce")
    if pd.isna(ts):
        return None
    return ts.date()


def parse_clock(value) -> time | None:
    m = _HHMM.match(to_text(value))
    if not m:
        return None
    hh, mm, ss = int(m.group(1)), int(m.group(2)), int(m.group(3) or 0)
    if hh > 23 or mm > 59 or ss > 59:
        return None
    return time(hh, mm, ss)


def round_half_up(value: float, places: Decimal = _TWO_PLACES) -> float:
    """Round on the decimal representation (2.675 -> 2.68), not the binary one."""
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(value):
        return 0.0
    try:
        return float(Decimal(repr(value)).quantize(places, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        return 0.0


def format_two_places(value: float) -> str:
    return f"{Decimal(repr(round_half_up(value))).quantize(_TWO_PLACES)}"
