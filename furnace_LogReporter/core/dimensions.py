# furnace_LogReporter/core/dimensions.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Sequence

from .model import BreakdownRecord, ProcessRunRecord


@dataclass(frozen=True)
class Dimensions:
    equipment: tuple[str, ...]   # furnaces and machines, one namespace
    processes: tuple[str, ...]


def enumerate_dimensions(runs: Sequence[ProcessRunRecord],
                         breakdowns: Sequence[BreakdownRecord]) -> Dimensions:
    """Distinct filter choices over the unfiltered collections, sorted for display."""
    equipment = {r.equipment.name for r in runs if r.equipment.name}
    equipment |= {b.equipment.name for b in breakdowns if b.equipment.name}
    processes = {r.process for r in runs if r.process}
    return Dimensions(equipment=tuple(sorted(equipment)), processes=tuple(sorted(processes)))
