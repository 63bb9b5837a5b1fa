# furnace_LogReporter/loaders/store_loader.py
from __future__ import annotations
from pathlib import Path
from typing import Any, Mapping
import json
import logging

from ..core.model import BreakdownRecord, ProcessRunRecord

RUNS_KEY = "heatTreatmentLogs"
BREAKDOWNS_KEY = "maintenanceLogs"

_LOG = logging.getLogger(__name__)


class StoreFormatError(ValueError):
    """A store key holds something other than a JSON array of objects."""

    def __init__(self, key: str, reason: str):
        super().__init__(f"store key {key!r}: {reason}")
        self.key = key


def _decode_collection(store: Mapping[str, Any], key: str) -> list[dict]:
    payload = store.get(key)
    if payload is None:
        return []
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as e:
            raise StoreFormatError(key, f"invalid JSON ({e.msg})") from e
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise StoreFormatError(key, f"expected an array, got {type(payload).__name__}")
    items = []
    for i, item in enumerate(payload):
        if not isinstance(item, dict):
            _LOG.warning("%s[%d] is not an object; skipped", key, i)
            continue
        items.append(item)
    return items


def records_from_store(store: Mapping[str, Any]) -> tuple[list[ProcessRunRecord], list[BreakdownRecord]]:
    """
    Read both log collections from a key-value store.
    A missing key is an empty collection; values are JSON-encoded arrays
    (already-decoded lists are accepted as well).
    """
    runs = [ProcessRunRecord.from_raw(x) for x in _decode_collection(store, RUNS_KEY)]
    breakdowns = [BreakdownRecord.from_raw(x) for x in _decode_collection(store, BREAKDOWNS_KEY)]
    _LOG.debug("store: %d runs, %d breakdowns", len(runs), len(breakdowns))
    return runs, breakdowns


def read_store(path: Path) -> dict[str, Any]:
    """A store dump on disk: one JSON object mapping keys to their stored values."""
    with path.open("r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise StoreFormatError("<root>", f"invalid JSON in {path.name} ({e.msg})") from e
    if not isinstance(data, dict):
        raise StoreFormatError("<root>", f"{path.name} is not a JSON object")
    return data


def load(path: Path, cfg: dict) -> tuple[list[ProcessRunRecord], list[BreakdownRecord]]:
    return records_from_store(read_store(path))
