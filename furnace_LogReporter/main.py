# furnace_LogReporter/main.py
from __future__ import annotations
from pathlib import Path
import logging
import os
import sys
import matplotlib
import yaml

from .loaders import csv_loader, store_loader
from .loaders.store_loader import StoreFormatError
from .utils.detect import discover_inputs
from .core.dimensions import enumerate_dimensions
from .core.pipeline import run_pipeline

def load_config(cfg_path: Path) -> dict:
    with cfg_path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}

def main(argv: list[str] | None = None):
    # ---------- config ----------
    argv = sys.argv[1:] if argv is None else argv
    here = Path(__file__).resolve().parent
    cfg_path = Path(argv[0]).resolve() if argv else here / "config.yaml"
    cfg = load_config(cfg_path)

    in_path = Path(cfg["input"]["path"]).resolve()
    recurse = bool(cfg["input"].get("recurse", True))
    out_root = Path(cfg["output"]["root"]).resolve()
    out_root.mkdir(parents=True, exist_ok=True)

    verbose = bool(cfg.get("logging", {}).get("verbose", True))
    logging.basicConfig(level=logging.INFO if verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")
    if verbose:
        print(f"[cfg] config={cfg_path}")
        print(f"[cfg] input={in_path} (recurse={recurse})")
        print(f"[cfg] output={out_root}")

    # ---------- discover ----------
    detected = discover_inputs(in_path, recurse=recurse)
    if not detected:
        print(f"[INFO] No store dumps or log exports found under: {in_path}")
        sys.exit(0)
    if verbose:
        kinds = {}
        for d in detected:
            kinds.setdefault(d.kind, 0)
            kinds[d.kind] += 1
        print(f"[detector] found {sum(kinds.values())} inputs → {kinds}")

    # ---------- loader registry ----------
    registry = {
        "store":  store_loader.load,
        "csv":    csv_loader.load,
        "csvzip": csv_loader.load,
    }

    runs, breakdowns = [], []
    for item in detected:
        loader = registry.get(item.kind)
        if loader is None:
            if verbose:
                print(f"[skip] no loader for {item.kind}: {item.path.name}")
            continue
        if verbose:
            print(f"  [load] {item.kind:6} {item.path.name}")
        try:
            r, b = loader(item.path, cfg)
        except (OSError, ValueError) as e:
            # StoreFormatError is a ValueError; one bad dump must not stop the others
            kind = "store format" if isinstance(e, StoreFormatError) else "loader"
            print(f"[WARN] {kind} failed for {item.path.name}: {e}")
            continue
        runs.extend(r)
        breakdowns.extend(b)

    if not runs and not breakdowns:
        if verbose:
            print("[INFO] No records loaded; exiting without processing pipeline.")
        sys.exit(0)

    if verbose:
        dims = enumerate_dimensions(runs, breakdowns)
        print(f"[records] {len(runs)} run(s), {len(breakdowns)} breakdown(s)")
        print(f"[dimensions] equipment: {', '.join(dims.equipment) or '-'}")
        print(f"[dimensions] processes: {', '.join(dims.processes) or '-'}")

    # batch run: charts only go to files, unless MPLBACKEND says otherwise
    if bool(cfg.get("plots", {}).get("enabled", True)) and not os.environ.get("MPLBACKEND"):
        matplotlib.use("Agg")

    run_pipeline(runs, breakdowns, cfg, out_root)

    if verbose:
        print(f"[summary] reports written to {out_root}")

if __name__ == "__main__":
    main()
