# furnace_LogReporter/core/plotting.py
from __future__ import annotations
from pathlib import Path
import matplotlib.pyplot as plt
import pandas as pd

COLORS = ["#0088FE", "#00C49F", "#FFBB28", "#FF8042", "#8884d8", "#82ca9d", "#ffc658", "#8dd1e1"]


def save_dashboard_plots(snapshot, out_dir: Path) -> list[Path]:
    """One PNG per metric table; empty tables are skipped with a note."""
    out_dir.mkdir(parents=True, exist_ok=True)
    written = []
    charts = [
        (snapshot.weight_by_process, "name", "weight", "bar", "Total Weight by Process (kg)",
         "weight_by_process.png"),
        (snapshot.weight_by_time, "time", "weight", "line",
         f"Total Weight by {snapshot.selection.granularity.capitalize()} (kg)", "weight_by_time.png"),
        (snapshot.furnace_utilization, "name", "hours", "bar", "Furnace Utilization (hours)",
         "furnace_utilization.png"),
        (snapshot.breakdown_hours, "name", "hours", "bar", "Breakdown Hours by Machine",
         "breakdown_hours.png"),
        (snapshot.process_distribution, "name", "value", "pie", "Process Distribution",
         "process_distribution.png"),
    ]
    for df, x_col, y_col, kind, title, file_name in charts:
        path = _save_chart(df, x_col, y_col, kind, title, out_dir / file_name)
        if path is not None:
            written.append(path)
    return written


def _save_chart(df: pd.DataFrame, x_col: str, y_col: str, kind: str,
                title: str, out_path: Path) -> Path | None:
    if df.empty:
        print(f"[INFO] {title}: no data; skipping plot.")
        return None

    labels = df[x_col].astype(str).tolist()
    values = pd.to_numeric(df[y_col], errors="coerce").fillna(0.0).tolist()

    plt.figure(figsize=(10, 5))
    if kind == "pie":
        colors = [COLORS[i % len(COLORS)] for i in range(len(values))]
        plt.pie(values, labels=labels, colors=colors, autopct="%1.0f%%")
        plt.axis("equal")
    elif kind == "line":
        plt.plot(labels, values, marker="o", color=COLORS[4])
        plt.grid(True, alpha=0.3)
        plt.xticks(rotation=45, ha="right")
    else:
        plt.bar(labels, values, color=COLORS[4])
        plt.grid(True, axis="y", alpha=0.3)
        plt.xticks(rotation=30, ha="right")
    plt.title(title)
    plt.tight_layout()
    plt.savefig(out_path, dpi=160)
    plt.close()
    print(f"[OK] {title}: {len(values)} point(s) → {out_path}")
    return out_path
