# furnace_LogReporter/core/export.py
from __future__ import annotations
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Iterable, Mapping
import json
import logging

from .model import BreakdownRecord, ProcessRunRecord

_LOG = logging.getLogger(__name__)

# Spreadsheet macros downstream read this exact layout: header from the first
# record's keys, each row from its own record's values, "\n" separators and no
# trailing newline.


def _js_number(x: float) -> str:
    """Number text as a browser writes it: shortest digits, exponent only below 1e-6 or from 1e21."""
    if x != x:
        return "NaN"
    if x in (float("inf"), float("-inf")):
        return "Infinity" if x > 0 else "-Infinity"
    if x == 0:
        return "0"
    sign = "-" if x < 0 else ""
    # repr holds the shortest round-trip digits; normalize drops trailing zeros
    _, digits, exp = Decimal(repr(abs(x))).normalize().as_tuple()
    ds = "".join(str(d) for d in digits)
    k = len(ds)
    n = exp + k                      # decimal point position relative to ds
    if k <= n <= 21:
        return sign + ds + "0" * (n - k)
    if 0 < n <= 21:
        return sign + ds[:n] + "." + ds[n:]
    if -6 < n <= 0:
        return sign + "0." + "0" * (-n) + ds
    e = n - 1
    mantissa = ds[0] + ("." + ds[1:] if k > 1 else "")
    return f"{sign}{mantissa}e{'+' if e >= 0 else '-'}{abs(e)}"


def _quote(text: str) -> str:
    return '"' + text.replace('"', '""') + '"'


def csv_cell(value: Any) -> str:
    if value is None or isinstance(value, (dict, list, tuple)):
        return _quote(json.dumps(value, separators=(",", ":"), ensure_ascii=False))
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        # the browser held every number as a double
        return str(value) if abs(value) < 2 ** 53 else _js_number(float(value))
    if isinstance(value, float):
        return _js_number(value)
    text = str(value)
    if "," in text:
        return _quote(text)
    return text


def _raw(record) -> Mapping[str, Any]:
    if isinstance(record, (ProcessRunRecord, BreakdownRecord)):
        return record.raw
    return record


def export_csv(records: Iterable) -> str:
    """CSV text for raw log records (dicts or parsed records carrying their raw mapping)."""
    raws = [_raw(r) for r in records]
    if not raws:
        raise ValueError("No logs to export")
    header = ",".join(str(k) for k in raws[0].keys())
    rows = "\n".join(",".join(csv_cell(v) for v in raw.values()) for raw in raws)
    return f"{header}\n{rows}"


def export_file_name(collection: str, today: date | None = None) -> str:
    """heat_treatment_logs_2024-03-15.csv style names."""
    today = today or date.today()
    return f"{collection}_{today.isoformat()}.csv"


def write_export(records: Iterable, out_dir: Path, collection: str,
                 today: date | None = None) -> Path | None:
    records = list(records)
    if not records:
        _LOG.info("no %s to export", collection)
        return None
    out_dir.mkdir(parents=True, exist_ok=True)
    out_path = out_dir / export_file_name(collection, today)
    # newline="" keeps the "\n" separators byte-exact on every platform
    with out_path.open("w", encoding="utf-8", newline="") as f:
        f.write(export_csv(records))
    print(f"[OK] wrote export: {collection} → {out_path}")
    return out_path
