# furnace_LogReporter/core/search.py
from __future__ import annotations
from typing import Iterable, Sequence

from .model import ProcessRunRecord
from .normalize import to_text


def search_runs(runs: Iterable[ProcessRunRecord], term: str) -> list[ProcessRunRecord]:
    """
    Free-text lookup used by the log list: job number, material, process and
    furnace match case-insensitively; the date matches on the term as typed.
    """
    runs = list(runs)
    if not (term or "").strip():
        return runs
    needle = term.lower()
    out = []
    for r in runs:
        if (needle in r.job_no.lower() or needle in r.material.lower()
                or needle in r.process.lower() or needle in r.furnace.lower()
                or term in r.date):
            out.append(r)
    return out


def sort_runs(runs: Sequence[ProcessRunRecord], field: str = "date",
              descending: bool = True) -> list[ProcessRunRecord]:
    """Order by one raw field, compared as text (ISO dates and HH:MM sort correctly)."""
    return sorted(runs, key=lambda r: to_text(r.raw.get(field)), reverse=descending)
