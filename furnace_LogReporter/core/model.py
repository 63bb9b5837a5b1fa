# furnace_LogReporter/core/model.py
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date, time
from typing import Any, Literal, Mapping

from .normalize import (parse_clock, parse_date, parse_float_prefix,
                        parse_int_prefix, to_text)

EquipmentRole = Literal["furnace", "machine"]

RUN_FIELDS = ("id", "date", "shift", "furnace", "jobNo", "material", "quantity",
              "weightPerForging", "heatNo", "serialNo", "htBatchNo", "process",
              "processStartTime", "temperature", "endTime", "coolingMode", "createdAt")
BREAKDOWN_FIELDS = ("id", "date", "machine", "breakdownType", "breakdownTime",
                    "rectificationTime", "repairTime", "createdAt")


@dataclass(frozen=True)
class Equipment:
    name: str                 # e.g. HF1, Pit Furnace 150kW
    role: EquipmentRole       # which record kind named it


@dataclass(frozen=True)
class ProcessRunRecord:
    id: str
    date: str                 # ISO YYYY-MM-DD as entered
    shift: str
    equipment: Equipment
    job_no: str
    material: str
    quantity: str             # piece count, free text
    weight_per_forging: str   # kg per piece, free text
    heat_no: str
    serial_no: str
    ht_batch_no: str
    process: str
    start_time: str           # HH:MM
    temperature: str
    end_time: str             # HH:MM
    cooling_mode: str
    created_at: str
    raw: Mapping[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def furnace(self) -> str:
        return self.equipment.name

    @property
    def calendar_date(self) -> date | None:
        return parse_date(self.date)

    @property
    def piece_count(self) -> int:
        n = parse_int_prefix(self.quantity)
        return max(n, 0) if n is not None else 0

    @property
    def unit_weight(self) -> float:
        w = parse_float_prefix(self.weight_per_forging)
        return max(w, 0.0) if w is not None else 0.0

    @property
    def total_weight(self) -> float:
        return self.piece_count * self.unit_weight

    @property
    def start_clock(self) -> time | None:
        return parse_clock(self.start_time)

    @property
    def end_clock(self) -> time | None:
        return parse_clock(self.end_time)

    @property
    def duration_hours(self) -> float | None:
        """Run length in hours; an end before the start means the run finished the next day."""
        start, end = self.start_clock, self.end_clock
        if start is None or end is None:
            return None
        s = start.hour * 3600 + start.minute * 60 + start.second
        e = end.hour * 3600 + end.minute * 60 + end.second
        if e < s:
            e += 24 * 3600
        return (e - s) / 3600.0

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "ProcessRunRecord":
        g = lambda k: to_text(raw.get(k))
        return cls(
            id=g("id"), date=g("date"), shift=g("shift"),
            equipment=Equipment(g("furnace"), "furnace"),
            job_no=g("jobNo"), material=g("material"), quantity=g("quantity"),
            weight_per_forging=g("weightPerForging"), heat_no=g("heatNo"),
            serial_no=g("serialNo"), ht_batch_no=g("htBatchNo"), process=g("process"),
            start_time=g("processStartTime"), temperature=g("temperature"),
            end_time=g("endTime"), cooling_mode=g("coolingMode"), created_at=g("createdAt"),
            raw=dict(raw),
        )


@dataclass(frozen=True)
class BreakdownRecord:
    id: str
    date: str
    equipment: Equipment
    breakdown_type: str
    breakdown_time: str
    rectification_time: str
    repair_time: str          # free text, e.g. "2 hours, 30 minutes"
    created_at: str
    raw: Mapping[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def machine(self) -> str:
        return self.equipment.name

    @property
    def calendar_date(self) -> date | None:
        return parse_date(self.date)

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "BreakdownRecord":
        g = lambda k: to_text(raw.get(k))
        return cls(
            id=g("id"), date=g("date"),
            equipment=Equipment(g("machine"), "machine"),
            breakdown_type=g("breakdownType"), breakdown_time=g("breakdownTime"),
            rectification_time=g("rectificationTime"), repair_time=g("repairTime"),
            created_at=g("createdAt"),
            raw=dict(raw),
        )
