# furnace_LogReporter/utils/detect.py
from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Literal
import zipfile

from ..loaders.csv_loader import collection_from_name

DetectedKind = Literal["store", "csv", "csvzip", "unknown"]


@dataclass(frozen=True)
class DetectedItem:
    path: Path
    kind: DetectedKind


def _zip_holds_log_export(archive: Path) -> bool:
    """True when some member is a heat-treatment or maintenance CSV export."""
    try:
        with zipfile.ZipFile(archive, "r") as zf:
            return any(m.lower().endswith(".csv") and collection_from_name(m) is not None
                       for m in zf.namelist())
    except (OSError, zipfile.BadZipFile):
        return False


def detect_kind(p: Path) -> DetectedKind:
    """
    What a single file holds, as far as the loaders are concerned:
    a JSON store dump, one exported log CSV, or a ZIP bundling such exports.
    CSVs whose name names neither log collection are not ours.
    """
    ext = p.suffix.lower()
    if ext == ".json":
        return "store"
    if ext == ".csv":
        return "csv" if collection_from_name(p.name) else "unknown"
    if ext == ".zip" and p.is_file() and zipfile.is_zipfile(p):
        return "csvzip" if _zip_holds_log_export(p) else "unknown"
    return "unknown"


def _files_under(folder: Path, recurse: bool) -> Iterator[Path]:
    pattern = folder.rglob("*") if recurse else folder.glob("*")
    return (p for p in pattern if p.is_file())


def discover_inputs(root: Path, recurse: bool = True) -> list[DetectedItem]:
    """
    Loadable log sources at ``root``: the file itself, or every recognised
    file in the folder. Sorted by kind then path so reruns load in one order.
    """
    candidates = [root] if root.is_file() else _files_under(root, recurse)
    found = []
    for p in candidates:
        kind = detect_kind(p)
        if kind == "unknown":
            continue
        found.append(DetectedItem(p.resolve(), kind))
    return sorted(found, key=lambda item: (item.kind, str(item.path)))
