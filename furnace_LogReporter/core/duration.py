# furnace_LogReporter/core/duration.py
from __future__ import annotations
import re

from .normalize import to_text

_HOURS = re.compile(r"(\d+)\s+hours?")
_MINUTES = re.compile(r"(\d+)\s+minutes?")


def parse_duration_hours(text) -> float:
    """
    Hours described by operator free text such as "2 hours, 30 minutes".

    Only the first "<n> hour(s)" and the first "<n> minute(s)" phrase count;
    a missing phrase contributes 0. Anything else in the text is ignored.
    """
    s = to_text(text)
    h = _HOURS.search(s)
    m = _MINUTES.search(s)
    hours = int(h.group(1)) if h else 0
    minutes = int(m.group(1)) if m else 0
    return hours + minutes / 60.0
