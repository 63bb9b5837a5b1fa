from datetime import date
import importlib
import json
import os
from pathlib import Path
import tempfile
import unittest
from unittest import mock
import zipfile

import matplotlib
import pandas as pd
import yaml

from furnace_LogReporter.core.export import csv_cell, export_csv, export_file_name, write_export
from furnace_LogReporter.core.filters import FilterSelection
from furnace_LogReporter.core.metrics import table_records
from furnace_LogReporter.core.pipeline import compute_snapshot, run_pipeline
from furnace_LogReporter.loaders import csv_loader, store_loader
from furnace_LogReporter.loaders.store_loader import StoreFormatError, records_from_store
from furnace_LogReporter.main import main
from furnace_LogReporter.utils.detect import detect_kind, discover_inputs

matplotlib.use("Agg")

RUNS = [
    {
        "id": "a1", "date": "2024-03-15", "shift": "A", "furnace": "HF1", "jobNo": "J-1",
        "material": "EN8, forged", "quantity": "10", "weightPerForging": "2.5", "heatNo": "H1",
        "serialNo": "", "htBatchNo": "B7", "process": "Normalising", "processStartTime": "22:00",
        "temperature": "880", "endTime": "02:00", "coolingMode": "Air",
        "createdAt": "2024-03-15T22:01:00.000Z",
    },
    {
        "id": "a2", "date": "2024-03-20", "shift": "B", "furnace": "TF2", "jobNo": "J-2",
        "material": "42CrMo4", "quantity": "4", "weightPerForging": "5", "heatNo": "",
        "serialNo": "S-9", "htBatchNo": "", "process": "Tempering", "processStartTime": "08:00",
        "temperature": "600", "endTime": "11:00", "coolingMode": "Furnace",
        "createdAt": "2024-03-20T11:02:00.000Z",
    },
]
BREAKDOWNS = [
    {
        "id": "m1", "date": "2024-03-18", "machine": "HF1", "breakdownType": "Burner",
        "breakdownTime": "10:00", "rectificationTime": "11:15",
        "repairTime": "1 hour, 15 minutes", "createdAt": "2024-03-18T11:20:00.000Z",
    },
]


def _store() -> dict:
    return {"heatTreatmentLogs": json.dumps(RUNS), "maintenanceLogs": json.dumps(BREAKDOWNS),
            "unrelated": "x"}


class StoreLoaderTests(unittest.TestCase):
    def test_reads_both_collections(self):
        runs, bds = records_from_store(_store())
        self.assertEqual(["a1", "a2"], [r.id for r in runs])
        self.assertEqual("HF1", bds[0].machine)
        self.assertEqual(RUNS[0], dict(runs[0].raw))

    def test_missing_key_is_empty_collection(self):
        runs, bds = records_from_store({"heatTreatmentLogs": json.dumps(RUNS)})
        self.assertEqual(2, len(runs))
        self.assertEqual([], bds)
        self.assertEqual(([], []), records_from_store({}))

    def test_malformed_payload_names_the_key(self):
        with self.assertRaises(StoreFormatError) as ctx:
            records_from_store({"maintenanceLogs": "{not json"})
        self.assertEqual("maintenanceLogs", ctx.exception.key)
        with self.assertRaises(StoreFormatError):
            records_from_store({"heatTreatmentLogs": json.dumps({"id": "x"})})

    def test_load_from_dump_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            p = Path(tmpdir) / "store.json"
            p.write_text(json.dumps(_store()), encoding="utf-8")
            runs, bds = store_loader.load(p, {})
        self.assertEqual((2, 1), (len(runs), len(bds)))


class CsvExportTests(unittest.TestCase):
    def test_layout_is_byte_exact(self):
        rows = [
            {"id": "1", "material": 'EN8, "A"', "quantity": "10", "meta": {"a": 1},
             "note": None, "n": 2.5, "flag": True},
            {"id": "2", "material": "plain", "quantity": "3", "meta": [1, "x"],
             "note": "ok", "n": 4.0, "flag": False},
        ]
        expected = (
            "id,material,quantity,meta,note,n,flag\n"
            '1,"EN8, ""A""",10,"{""a"":1}","null",2.5,true\n'
            '2,plain,3,"[1,""x""]",ok,4,false'
        )
        self.assertEqual(expected, export_csv(rows))

    def test_strings_without_comma_stay_verbatim(self):
        self.assertEqual('say "hi"', csv_cell('say "hi"'))
        self.assertEqual("1e-7", csv_cell(1e-7))

    def test_numbers_are_written_like_a_browser_writes_them(self):
        self.assertEqual("0.00001", csv_cell(0.00001))
        self.assertEqual("0.000001", csv_cell(1e-6))
        self.assertEqual("123456789012345680000", csv_cell(123456789012345678901.0))
        self.assertEqual("1e+21", csv_cell(1e21))
        self.assertEqual("-2.5e-8", csv_cell(-2.5e-8))
        self.assertEqual("100", csv_cell(100.0))
        self.assertEqual("9007199254740992", csv_cell(2 ** 53))

    def test_empty_export_is_an_error(self):
        with self.assertRaises(ValueError):
            export_csv([])

    def test_parsed_records_export_their_raw_fields(self):
        runs, _ = records_from_store(_store())
        text = export_csv(runs)
        self.assertTrue(text.startswith("id,date,shift,furnace,"))
        self.assertIn('"EN8, forged"', text)
        self.assertFalse(text.endswith("\n"))
        self.assertEqual("heat_treatment_logs_2024-03-15.csv",
                         export_file_name("heat_treatment_logs", date(2024, 3, 15)))


class CsvLoaderTests(unittest.TestCase):
    def test_round_trip_through_export(self):
        runs, _ = records_from_store(_store())
        with tempfile.TemporaryDirectory() as tmpdir:
            path = write_export(runs, Path(tmpdir), "heat_treatment_logs", date(2024, 3, 21))
            self.assertEqual("csv", detect_kind(path))
            loaded, bds = csv_loader.load(path, {})
        self.assertEqual([], bds)
        self.assertEqual(runs, loaded)
        self.assertEqual("EN8, forged", loaded[0].material)
        self.assertEqual("", loaded[0].serial_no)

    def _reimport(self, material):
        rows = [dict(RUNS[0], material=material), RUNS[1]]
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "heat_treatment_logs_2024-03-21.csv"
            path.write_text(export_csv(rows), encoding="utf-8", newline="")
            with self.assertLogs("furnace_LogReporter.loaders.csv_loader", level="WARNING") as logs:
                loaded, _ = csv_loader.load(path, {})
        return loaded, logs.output

    def test_line_break_in_a_value_drops_the_row_instead_of_inventing_one(self):
        loaded, warnings = self._reimport("EN8\nforged")
        self.assertEqual(["a2"], [r.id for r in loaded])
        self.assertEqual("42CrMo4", loaded[0].material)
        self.assertEqual(2, len(warnings))
        self.assertIn("heat_treatment_logs_2024-03-21.csv line 2", warnings[0])

    def test_value_opening_with_a_quote_is_dropped_not_unquoted(self):
        loaded, warnings = self._reimport('"EN8" bar')
        self.assertEqual(["a2"], [r.id for r in loaded])
        self.assertEqual(1, len(warnings))
        self.assertIn("line 2", warnings[0])

    def test_zip_members_are_split_by_collection(self):
        runs, bds = records_from_store(_store())
        with tempfile.TemporaryDirectory() as tmpdir:
            zpath = Path(tmpdir) / "exports.zip"
            with zipfile.ZipFile(zpath, "w") as zf:
                zf.writestr("heat_treatment_logs_2024-03-21.csv", export_csv(runs))
                zf.writestr("maintenance_logs_2024-03-21.csv", export_csv(bds))
                zf.writestr("notes.csv", "a,b\n1,2")
            self.assertEqual("csvzip", detect_kind(zpath))
            r, b = csv_loader.load(zpath, {})
        self.assertEqual(2, len(r))
        self.assertEqual(1, len(b))
        self.assertEqual("1 hour, 15 minutes", b[0].repair_time)

    def test_discover_ignores_unrelated_files(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / "store.json").write_text("{}", encoding="utf-8")
            (root / "sub").mkdir()
            (root / "sub" / "maintenance_logs_2024-01-01.csv").write_text("id\n1", encoding="utf-8")
            (root / "readme.txt").write_text("x", encoding="utf-8")
            (root / "other.csv").write_text("a\n1", encoding="utf-8")
            kinds = [d.kind for d in discover_inputs(root)]
            flat = [d.kind for d in discover_inputs(root, recurse=False)]
        self.assertEqual(["csv", "store"], kinds)
        self.assertEqual(["store"], flat)


class PipelineTests(unittest.TestCase):
    def test_snapshot_computes_every_table(self):
        runs, bds = records_from_store(_store())
        snap = compute_snapshot(runs, bds, FilterSelection(granularity="month"))
        self.assertEqual(45.0, snap.total_weight)
        self.assertEqual([{"name": "Normalising", "weight": 25.0}, {"name": "Tempering", "weight": 20.0}],
                         table_records(snap.weight_by_process))
        self.assertEqual([{"time": "2024-03", "weight": 45.0}], table_records(snap.weight_by_time))
        self.assertEqual([{"name": "HF1", "hours": 4.0}, {"name": "TF2", "hours": 3.0}],
                         table_records(snap.furnace_utilization))
        self.assertEqual([{"name": "HF1", "hours": 1.25}], table_records(snap.breakdown_hours))
        self.assertEqual([{"name": "Normalising", "value": 1}, {"name": "Tempering", "value": 1}],
                         table_records(snap.process_distribution))
        self.assertEqual(("HF1", "TF2"), snap.dimensions.equipment)

    def test_equipment_selection_narrows_tables_but_not_dimensions(self):
        runs, bds = records_from_store(_store())
        snap = compute_snapshot(runs, bds, FilterSelection(equipment="TF2"))
        self.assertEqual(20.0, snap.total_weight)
        self.assertTrue(snap.breakdown_hours.empty)
        self.assertEqual(("Normalising", "Tempering"), snap.dimensions.processes)

    def test_run_pipeline_writes_reports_exports_and_plots(self):
        runs, bds = records_from_store(_store())
        cfg = {
            "filters": {"time_range": "month", "reference_date": "2024-03-31", "granularity": "day"},
            "reports": {"format": "csv"},
            "export": {"raw_csv": True},
            "plots": {"enabled": True},
        }
        with tempfile.TemporaryDirectory() as tmpdir:
            out_root = Path(tmpdir) / "out"
            snap = run_pipeline(runs, bds, cfg, out_root)

            for name in ("summary", "weight_by_process", "weight_by_time", "furnace_utilization",
                         "breakdown_hours", "process_distribution", "equipment_overview"):
                self.assertTrue((out_root / f"{name}.csv").exists(), f"{name} report missing")

            summary = pd.read_csv(out_root / "summary.csv", dtype=str)
            self.assertEqual("45.00", summary.loc[0, "total_weight_kg"])

            by_time = pd.read_csv(out_root / "weight_by_time.csv", dtype={"time": str})
            self.assertEqual(["2024-03-15", "2024-03-20"], by_time["time"].tolist())

            export = out_root / "exports" / "heat_treatment_logs_2024-03-31.csv"
            self.assertEqual(export_csv(runs), export.read_text(encoding="utf-8"))
            self.assertTrue((out_root / "exports" / "maintenance_logs_2024-03-31.csv").exists())
            self.assertTrue((out_root / "plots" / "weight_by_process.png").exists())
        self.assertEqual(2, len(snap.runs))

    def test_search_and_sorted_export_from_config(self):
        runs, bds = records_from_store(_store())
        cfg = {
            "filters": {"search": "hf1", "reference_date": "2024-03-31"},
            "export": {"raw_csv": True, "sort_by": "date", "descending": True},
            "plots": {"enabled": False},
        }
        with tempfile.TemporaryDirectory() as tmpdir:
            snap = run_pipeline(runs, bds, cfg, Path(tmpdir))
            self.assertEqual(["a1"], [r.id for r in snap.runs])
            self.assertEqual(25.0, snap.total_weight)

            cfg = {"filters": {"reference_date": "2024-03-31"},
                   "export": {"raw_csv": True, "sort_by": "date"}, "plots": {"enabled": False}}
            run_pipeline(runs, bds, cfg, Path(tmpdir))
            export = Path(tmpdir) / "exports" / "heat_treatment_logs_2024-03-31.csv"
            self.assertEqual(export_csv([runs[1], runs[0]]), export.read_text(encoding="utf-8"))

    def test_mat_reports(self):
        from scipy.io import loadmat
        runs, bds = records_from_store(_store())
        cfg = {"reports": {"format": "both", "mat_variable": "ht"}, "plots": {"enabled": False}}
        with tempfile.TemporaryDirectory() as tmpdir:
            out_root = Path(tmpdir)
            run_pipeline(runs, bds, cfg, out_root)
            self.assertTrue((out_root / "weight_by_process.csv").exists())
            m = loadmat(out_root / "weight_by_process.mat", squeeze_me=True, struct_as_record=False)
            self.assertEqual([25.0, 20.0], list(m["ht"].weight))


class MainTests(unittest.TestCase):
    def test_main_runs_from_config(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            data = root / "data"
            data.mkdir()
            (data / "store.json").write_text(json.dumps(_store()), encoding="utf-8")
            (data / "broken.json").write_text("[1, 2", encoding="utf-8")
            cfg = {
                "input": {"path": str(data), "recurse": True},
                "output": {"root": str(root / "out")},
                "filters": {"granularity": "year"},
                "plots": {"enabled": False},
                "logging": {"verbose": False},
            }
            cfg_path = root / "config.yaml"
            cfg_path.write_text(yaml.safe_dump(cfg), encoding="utf-8")
            main([str(cfg_path)])
            by_time = pd.read_csv(root / "out" / "weight_by_time.csv", dtype={"time": str})
        self.assertEqual([{"time": "2024", "weight": 45.0}], by_time.to_dict(orient="records"))

    def _config(self, root: Path, plots: bool) -> Path:
        data = root / "data"
        data.mkdir()
        (data / "store.json").write_text(json.dumps(_store()), encoding="utf-8")
        cfg = {
            "input": {"path": str(data)},
            "output": {"root": str(root / "out")},
            "plots": {"enabled": plots},
            "logging": {"verbose": False},
        }
        cfg_path = root / "config.yaml"
        cfg_path.write_text(yaml.safe_dump(cfg), encoding="utf-8")
        return cfg_path

    def test_importing_the_chart_module_leaves_the_backend_alone(self):
        from furnace_LogReporter.core import plotting
        with mock.patch("matplotlib.use") as use:
            importlib.reload(plotting)
        use.assert_not_called()

    def test_cli_picks_a_file_backend_only_when_none_is_set(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            cfg_path = self._config(Path(tmpdir), plots=True)
            with mock.patch("furnace_LogReporter.main.run_pipeline"), \
                    mock.patch("matplotlib.use") as use:
                with mock.patch.dict(os.environ):
                    os.environ.pop("MPLBACKEND", None)
                    main([str(cfg_path)])
                use.assert_called_once_with("Agg")

                use.reset_mock()
                with mock.patch.dict(os.environ, {"MPLBACKEND": "pdf"}):
                    main([str(cfg_path)])
                use.assert_not_called()


if __name__ == "__main__":
    unittest.main()
