# furnace_LogReporter/core/metrics.py
from __future__ import annotations
from typing import Sequence
import pandas as pd

from .bucketing import bucket_key
from .duration import parse_duration_hours
from .model import BreakdownRecord, ProcessRunRecord
from .normalize import round_half_up

# Grouped tables keep first-seen group order (groupby sort=False); chart
# renderers draw bars/slices in that order. Only the time series is sorted.


def runs_frame(runs: Sequence[ProcessRunRecord]) -> pd.DataFrame:
    """One row per run with the typed columns the aggregators group on."""
    cols = ["date", "furnace", "process", "quantity", "weight_per_forging",
            "start_time", "end_time", "total_weight", "duration_h"]
    if not runs:
        return pd.DataFrame(columns=cols)
    return pd.DataFrame(
        {
            "date":               [r.date for r in runs],
            "furnace":            [r.furnace for r in runs],
            "process":            [r.process for r in runs],
            "quantity":           [r.quantity for r in runs],
            "weight_per_forging": [r.weight_per_forging for r in runs],
            "start_time":         [r.start_time for r in runs],
            "end_time":           [r.end_time for r in runs],
            "total_weight":       [r.total_weight for r in runs],
            "duration_h":         [r.duration_hours for r in runs],
        },
        columns=cols,
    )


def breakdowns_frame(breakdowns: Sequence[BreakdownRecord]) -> pd.DataFrame:
    cols = ["date", "machine", "repair_time", "repair_h"]
    if not breakdowns:
        return pd.DataFrame(columns=cols)
    return pd.DataFrame(
        {
            "date":        [b.date for b in breakdowns],
            "machine":     [b.machine for b in breakdowns],
            "repair_time": [b.repair_time for b in breakdowns],
            "repair_h":    [parse_duration_hours(b.repair_time) for b in breakdowns],
        },
        columns=cols,
    )


def _present(df: pd.DataFrame, *columns: str) -> pd.Series:
    mask = pd.Series(True, index=df.index)
    for c in columns:
        mask &= df[c].astype(str) != ""
    return mask


def _grouped_sum(df: pd.DataFrame, key: str, value: str, out_key: str, out_value: str,
                 sort: bool = False) -> pd.DataFrame:
    if df.empty:
        return pd.DataFrame(columns=[out_key, out_value])
    agg = df.groupby(key, sort=sort)[value].sum()
    return pd.DataFrame({
        out_key: [str(k) for k in agg.index],
        out_value: [round_half_up(v) for v in agg.to_numpy(dtype=float)],
    }, columns=[out_key, out_value])


def total_weight(runs: Sequence[ProcessRunRecord]) -> float:
    """Sum of pieces x unit weight; unreadable numbers count as 0. Rounded once, at the end."""
    return round_half_up(sum(r.total_weight for r in runs))


def weight_by_process(runs: Sequence[ProcessRunRecord]) -> pd.DataFrame:
    df = runs_frame(runs)
    df = df[_present(df, "process", "quantity", "weight_per_forging")]
    return _grouped_sum(df, "process", "total_weight", "name", "weight")


def weight_by_time(runs: Sequence[ProcessRunRecord], granularity: str = "day") -> pd.DataFrame:
    df = runs_frame(runs)
    df = df[_present(df, "date", "quantity", "weight_per_forging")].copy()
    df["bucket"] = [bucket_key(d, granularity) for d in df["date"]]
    df = df[df["bucket"].notna()]
    # bucket keys are fixed-width, so lexical sort is chronological
    return _grouped_sum(df, "bucket", "total_weight", "time", "weight", sort=True)


def furnace_utilization(runs: Sequence[ProcessRunRecord]) -> pd.DataFrame:
    df = runs_frame(runs)
    df = df[_present(df, "furnace", "start_time", "end_time")]
    df = df[df["duration_h"].notna()]
    return _grouped_sum(df, "furnace", "duration_h", "name", "hours")


def breakdown_hours(breakdowns: Sequence[BreakdownRecord]) -> pd.DataFrame:
    df = breakdowns_frame(breakdowns)
    df = df[_present(df, "machine", "repair_time")]
    return _grouped_sum(df, "machine", "repair_h", "name", "hours")


def process_distribution(runs: Sequence[ProcessRunRecord]) -> pd.DataFrame:
    df = runs_frame(runs)
    df = df[_present(df, "process")]
    if df.empty:
        return pd.DataFrame(columns=["name", "value"])
    counts = df.groupby("process", sort=False).size()
    return pd.DataFrame({
        "name": [str(k) for k in counts.index],
        "value": [int(v) for v in counts.to_numpy()],
    }, columns=["name", "value"])


def equipment_overview(utilization: pd.DataFrame, downtime: pd.DataFrame) -> pd.DataFrame:
    """
    Utilization and downtime side by side per equipment name.
    Furnaces and machines share names, so one join covers both roles.
    Order: utilization rows first, then names that only broke down.
    """
    cols = ["name", "utilization_hours", "downtime_hours"]
    util = utilization.rename(columns={"hours": "utilization_hours"})[["name", "utilization_hours"]]
    down = downtime.rename(columns={"hours": "downtime_hours"})[["name", "downtime_hours"]]
    if util.empty and down.empty:
        return pd.DataFrame(columns=cols)
    out = util.merge(down, on="name", how="outer", sort=False)
    seen = set(util["name"])
    order = list(util["name"]) + [n for n in down["name"] if n not in seen]
    out = out.set_index("name").reindex(order).reset_index()
    out["utilization_hours"] = out["utilization_hours"].astype(float).fillna(0.0)
    out["downtime_hours"] = out["downtime_hours"].astype(float).fillna(0.0)
    return out[cols]


def table_records(df: pd.DataFrame) -> list[dict]:
    """Chart-ready list of row dicts."""
    return df.to_dict(orient="records")
