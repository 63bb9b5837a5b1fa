# furnace_LogReporter/core/filters.py
from __future__ import annotations
from dataclasses import dataclass
from datetime import date, datetime
import logging
from typing import Iterable, Literal, Sequence, TypeVar

import pandas as pd

from .bucketing import GRANULARITIES
from .model import BreakdownRecord, ProcessRunRecord
from .search import search_runs

TimeWindow = Literal["all", "week", "month", "quarter", "year"]
ALL = "all"

# calendar-aware offsets; month ends clamp (31 Mar - 1 month = end of Feb)
_WINDOW_OFFSETS: dict[str, pd.DateOffset] = {
    "week":    pd.DateOffset(days=7),
    "month":   pd.DateOffset(months=1),
    "quarter": pd.DateOffset(months=3),
    "year":    pd.DateOffset(years=1),
}

R = TypeVar("R", ProcessRunRecord, BreakdownRecord)

_LOG = logging.getLogger(__name__)


def _as_date(now) -> date:
    if now is None:
        return datetime.now().date()
    if isinstance(now, datetime):
        return now.date()
    if isinstance(now, date):
        return now
    return pd.Timestamp(now).date()


def window_start(window: str, now=None) -> date | None:
    """First calendar day inside the window, or None for "all"."""
    if window == ALL:
        return None
    ref = pd.Timestamp(_as_date(now))
    offset = _WINDOW_OFFSETS.get(window)
    if offset is None:
        _LOG.debug("unknown time window %r; anchoring at the reference day", window)
        return ref.date()
    return (ref - offset).date()


def filter_by_window(records: Iterable[R], window: str, now=None) -> list[R]:
    records = list(records)
    start = window_start(window, now)
    if start is None:
        return records
    out = []
    for r in records:
        d = r.calendar_date
        if d is not None and d >= start:
            out.append(r)
    return out


def filter_by_field(records: Iterable[R], field: str, selector: str) -> list[R]:
    """
    Exact, case-sensitive match of one attribute against the selector.
    "all" keeps everything. Records without the attribute are left in place.
    """
    records = list(records)
    if selector == ALL:
        return records
    return [r for r in records if not hasattr(r, field) or getattr(r, field) == selector]


def filter_by_equipment(records: Iterable[R], selector: str) -> list[R]:
    records = list(records)
    if selector == ALL:
        return records
    return [r for r in records if r.equipment.name == selector]


@dataclass(frozen=True)
class FilterSelection:
    time_range: str = ALL
    equipment: str = ALL
    process: str = ALL
    granularity: str = "day"
    reference_date: date | None = None
    search: str = ""               # free-text lookup over runs, "" = off


def prepare_filters(global_cfg: dict) -> FilterSelection:
    """
    Read the ``filters`` section of the config into a FilterSelection.
    Unknown values fall back to their defaults with a warning.
    """
    flt = (global_cfg or {}).get("filters", {}) or {}

    time_range = str(flt.get("time_range", ALL)).lower().strip()
    if time_range != ALL and time_range not in _WINDOW_OFFSETS:
        _LOG.warning("unknown filters.time_range %r; using 'all'", time_range)
        time_range = ALL

    granularity = str(flt.get("granularity", "day")).lower().strip()
    if granularity not in GRANULARITIES:
        _LOG.warning("unknown filters.granularity %r; using 'day'", granularity)
        granularity = "day"

    ref = flt.get("reference_date")
    reference_date = None
    if ref not in (None, ""):
        ts = pd.to_datetime(ref, errors="coerce")
        if pd.isna(ts):
            _LOG.warning("unreadable filters.reference_date %r; using today", ref)
        else:
            reference_date = ts.date()

    # selectors are matched verbatim, so no stripping here
    equipment = flt.get("equipment", ALL)
    process = flt.get("process", ALL)
    search = flt.get("search", "")
    return FilterSelection(
        time_range=time_range,
        equipment=ALL if equipment is None else str(equipment),
        process=ALL if process is None else str(process),
        granularity=granularity,
        reference_date=reference_date,
        search="" if search is None else str(search),
    )


def apply_filters(runs: Sequence[ProcessRunRecord],
                  breakdowns: Sequence[BreakdownRecord],
                  selection: FilterSelection,
                  now=None) -> tuple[list[ProcessRunRecord], list[BreakdownRecord]]:
    """
    Time window first, then equipment on both collections, then process and
    the free-text search on runs.
    Breakdowns carry no process, so the process filter leaves them untouched.
    """
    ref = selection.reference_date or now
    f_runs = filter_by_window(runs, selection.time_range, ref)
    f_bds = filter_by_window(breakdowns, selection.time_range, ref)

    f_runs = filter_by_equipment(f_runs, selection.equipment)
    f_bds = filter_by_equipment(f_bds, selection.equipment)

    f_runs = filter_by_field(f_runs, "process", selection.process)
    f_runs = search_runs(f_runs, selection.search)
    _LOG.debug("filters %s kept %d/%d runs, %d/%d breakdowns",
               selection, len(f_runs), len(runs), len(f_bds), len(breakdowns))
    return f_runs, f_bds
