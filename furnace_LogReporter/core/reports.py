# furnace_LogReporter/core/reports.py
from __future__ import annotations
from pathlib import Path
from typing import Literal
import numpy as np
import pandas as pd
from scipy.io import savemat

from .normalize import format_two_places

ReportFormat = Literal["csv", "mat", "both"]


def build_summary(total_weight_kg: float, n_runs: int, n_breakdowns: int,
                  selection) -> pd.DataFrame:
    """Single-row summary; total weight kept as the two-decimal text shown to operators."""
    return pd.DataFrame([{
        "total_weight_kg": format_two_places(total_weight_kg),
        "n_runs": int(n_runs),
        "n_breakdowns": int(n_breakdowns),
        "time_range": selection.time_range,
        "equipment": selection.equipment,
        "process": selection.process,
        "granularity": selection.granularity,
    }])


def _write_csv(df_out: pd.DataFrame, out_csv: Path, title: str) -> None:
    out_csv.parent.mkdir(parents=True, exist_ok=True)
    df_out.to_csv(out_csv, index=False, encoding="utf-8")
    print(f"[OK] wrote report: {title} → {out_csv}")

def _to_mat_cellstr(seq: list[str]) -> np.ndarray:
    """Make a MATLAB column cell array from a list of strings."""
    seq2 = [("" if s is None else str(s)) for s in seq]
    arr = np.empty((len(seq2), 1), dtype=object)
    arr[:, 0] = seq2
    return arr

def _write_mat(df_out: pd.DataFrame, out_mat: Path, varname: str, title: str) -> None:
    """
    Save a MATLAB struct with fields matching the CSV columns.
    Strings become cell arrays (Nx1), numerics become double (Nx1).
    """
    out_mat.parent.mkdir(parents=True, exist_ok=True)

    mat_struct = {}
    for col in df_out.columns:
        values = df_out[col]
        if pd.api.types.is_numeric_dtype(values) and not pd.api.types.is_bool_dtype(values):
            mat_struct[str(col)] = values.to_numpy(dtype=float).reshape(-1, 1)
        else:
            mat_struct[str(col)] = _to_mat_cellstr(values.astype(str).tolist())

    savemat(out_mat, {varname: mat_struct})
    print(f"[OK] wrote report: {title} → {out_mat}")

def write_table(df_out: pd.DataFrame,
                out_base: Path,
                title: str,
                fmt: ReportFormat = "csv",
                mat_variable: str = "report") -> None:
    """
    Write one metric table in the requested format.
    - out_base is a *base path without extension* (e.g., .../weight_by_process)
    - fmt: "csv" | "mat" | "both"
    - mat_variable: MATLAB variable name of the struct
    Empty tables are still written so consumers see the header.
    """
    if fmt in ("csv", "both"):
        _write_csv(df_out, out_base.with_suffix(".csv"), title)
    if fmt in ("mat", "both"):
        if df_out.empty:
            print(f"[SKIP] {title}: empty table, no MAT file")
        else:
            _write_mat(df_out, out_base.with_suffix(".mat"), mat_variable, title)
