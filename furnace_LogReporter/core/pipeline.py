# furnace_LogReporter/core/pipeline.py
from __future__ import annotations
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Sequence
import logging
import pandas as pd

from .dimensions import Dimensions, enumerate_dimensions
from .export import write_export
from .filters import FilterSelection, apply_filters, prepare_filters
from .metrics import (breakdown_hours, equipment_overview, furnace_utilization,
                      process_distribution, total_weight, weight_by_process,
                      weight_by_time)
from .model import BreakdownRecord, ProcessRunRecord
from .plotting import save_dashboard_plots
from .search import sort_runs
from .reports import build_summary, write_table

_LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalyticsSnapshot:
    selection: FilterSelection
    runs: tuple[ProcessRunRecord, ...]            # after all filters
    breakdowns: tuple[BreakdownRecord, ...]
    total_weight: float
    weight_by_process: pd.DataFrame
    weight_by_time: pd.DataFrame
    furnace_utilization: pd.DataFrame
    breakdown_hours: pd.DataFrame
    process_distribution: pd.DataFrame
    equipment_overview: pd.DataFrame
    dimensions: Dimensions                        # from the unfiltered collections


def compute_snapshot(runs: Sequence[ProcessRunRecord],
                     breakdowns: Sequence[BreakdownRecord],
                     selection: FilterSelection | None = None,
                     now=None) -> AnalyticsSnapshot:
    """
    Filter once, then run every aggregator over the same filtered collections.
    Nothing is cached between calls; a new selection means a full recompute.
    """
    selection = selection or FilterSelection()
    f_runs, f_bds = apply_filters(runs, breakdowns, selection, now)
    f_runs, f_bds = tuple(f_runs), tuple(f_bds)

    util = furnace_utilization(f_runs)
    down = breakdown_hours(f_bds)
    return AnalyticsSnapshot(
        selection=selection,
        runs=f_runs,
        breakdowns=f_bds,
        total_weight=total_weight(f_runs),
        weight_by_process=weight_by_process(f_runs),
        weight_by_time=weight_by_time(f_runs, selection.granularity),
        furnace_utilization=util,
        breakdown_hours=down,
        process_distribution=process_distribution(f_runs),
        equipment_overview=equipment_overview(util, down),
        dimensions=enumerate_dimensions(runs, breakdowns),
    )


def run_pipeline(runs: Sequence[ProcessRunRecord],
                 breakdowns: Sequence[BreakdownRecord],
                 cfg: dict,
                 out_root: Path,
                 now=None) -> AnalyticsSnapshot:
    selection = prepare_filters(cfg)
    snap = compute_snapshot(runs, breakdowns, selection, now)
    _LOG.info("snapshot: %d/%d runs, %d/%d breakdowns after filters",
              len(snap.runs), len(runs), len(snap.breakdowns), len(breakdowns))

    out_root.mkdir(parents=True, exist_ok=True)

    # reports
    fmt = str(cfg.get("reports", {}).get("format", "csv")).lower()
    mat_var = str(cfg.get("reports", {}).get("mat_variable", "report"))

    write_table(build_summary(snap.total_weight, len(snap.runs), len(snap.breakdowns), selection),
                out_root / "summary", "summary", fmt=fmt, mat_variable=mat_var)
    tables = [
        (snap.weight_by_process,    "weight_by_process",    "weight by process"),
        (snap.weight_by_time,       "weight_by_time",       f"weight by {selection.granularity}"),
        (snap.furnace_utilization,  "furnace_utilization",  "furnace utilization"),
        (snap.breakdown_hours,      "breakdown_hours",      "breakdown hours"),
        (snap.process_distribution, "process_distribution", "process distribution"),
        (snap.equipment_overview,   "equipment_overview",   "equipment overview"),
    ]
    for df, name, title in tables:
        write_table(df, out_root / name, title, fmt=fmt, mat_variable=mat_var)

    # raw exports of the filtered collections
    exp_cfg = cfg.get("export", {}) or {}
    if bool(exp_cfg.get("raw_csv", False)):
        today = selection.reference_date or date.today()
        export_runs = snap.runs
        sort_by = exp_cfg.get("sort_by")
        if sort_by:
            export_runs = sort_runs(export_runs, str(sort_by), bool(exp_cfg.get("descending", True)))
        write_export(export_runs, out_root / "exports", "heat_treatment_logs", today)
        write_export(snap.breakdowns, out_root / "exports", "maintenance_logs", today)

    # plots
    if bool(cfg.get("plots", {}).get("enabled", True)):
        save_dashboard_plots(snap, out_root / "plots")

    print(f"[INFO] total weight: {snap.total_weight:.2f} kg "
          f"({len(snap.runs)} run(s), {len(snap.breakdowns)} breakdown(s))")
    return snap
