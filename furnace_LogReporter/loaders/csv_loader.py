# furnace_LogReporter/loaders/csv_loader.py
from __future__ import annotations
from pathlib import Path
import csv
import io
import logging
import zipfile
import pandas as pd

from ..core.model import BreakdownRecord, ProcessRunRecord

_LOG = logging.getLogger(__name__)

RUNS_PREFIX = "heat_treatment_logs"
BREAKDOWNS_PREFIX = "maintenance_logs"

# ---------- filename helpers ----------
def collection_from_name(fname: str) -> str | None:
    """'runs' / 'breakdowns' from an export file name, None if it is neither."""
    base = Path(fname).name.lower()
    if base.startswith(RUNS_PREFIX):
        return "runs"
    if base.startswith(BREAKDOWNS_PREFIX):
        return "breakdowns"
    return None

# ---------- CSV normalization ----------
def _rows_from_csv_bytes(buff: bytes, source: str) -> list[dict]:
    """
    Exports only quote values containing a comma, so a free-text value with a
    line break, or one that opens with a quote, comes back as a row of the
    wrong shape. Those rows are dropped with a warning instead of becoming
    phantom records. pandas' tokenizer pads short rows with blanks, which
    hides exactly this damage, hence the strict reader for the shape check.
    """
    reader = csv.reader(io.StringIO(buff.decode("utf-8"), newline=""), strict=True)
    header: list[str] | None = None
    good: list[list[str]] = []
    while True:
        try:
            row = next(reader)
        except StopIteration:
            break
        except csv.Error as e:
            _LOG.warning("%s line %d: malformed quoting (%s); row dropped", source, reader.line_num, e)
            continue
        if not row:
            continue
        if header is None:
            header = [str(c).strip() for c in row]
            continue
        if len(row) != len(header):
            _LOG.warning("%s line %d: %d fields, header has %d; row dropped",
                         source, reader.line_num, len(row), len(header))
            continue
        good.append(row)

    if header is None:
        return []
    # everything stays text: the records are free text and blanks must stay ""
    df = pd.DataFrame.from_records(good, columns=header).astype(str)
    return df.to_dict(orient="records")


def _to_records(rows: list[dict], kind: str):
    if kind == "runs":
        return [ProcessRunRecord.from_raw(r) for r in rows], []
    return [], [BreakdownRecord.from_raw(r) for r in rows]

# ---------- public loader ----------
def load(path: Path, cfg: dict) -> tuple[list[ProcessRunRecord], list[BreakdownRecord]]:
    """
    Accepts: an exported .csv, or a .zip with exported CSV members.
    The collection is taken from each file name.
    """
    runs: list[ProcessRunRecord] = []
    breakdowns: list[BreakdownRecord] = []

    if path.suffix.lower() == ".csv":
        kind = collection_from_name(path.name)
        if kind is None:
            raise ValueError(f"{path.name}: not a heat-treatment or maintenance export")
        r, b = _to_records(_rows_from_csv_bytes(path.read_bytes(), path.name), kind)
        return r, b

    with zipfile.ZipFile(path, "r") as zf:
        for member in zf.namelist():
            if not member.lower().endswith(".csv"):
                continue
            kind = collection_from_name(member)
            if kind is None:
                _LOG.info("skipping %s in %s: unknown collection", member, path.name)
                continue
            try:
                rows = _rows_from_csv_bytes(zf.read(member), f"{path.name}:{member}")
            except UnicodeDecodeError as e:
                _LOG.warning("unreadable member %s in %s: %s", member, path.name, e)
                continue
            r, b = _to_records(rows, kind)
            runs.extend(r)
            breakdowns.extend(b)
    return runs, breakdowns
