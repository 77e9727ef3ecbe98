from datetime import date, datetime, timedelta

import pandas as pd

from worker_registry.export import (
    EXPORT_COLUMNS,
    export_csv,
    export_filename,
    export_xlsx,
    summary_frame,
    worker_export_frame,
)
from worker_registry.store import RegistryStore


def _store(tmp_path):
    s = RegistryStore(tmp_path / "registry.duckdb")
    course = s.insert_course({"name": "First Aid"})
    w = s.insert_worker(
        {
            "workers_id": "W001",
            "name": "Alice",
            "nationality": "SG",
            "date_of_birth": date(1990, 3, 4),
        }
    )
    s.insert_worker({"workers_id": "W002", "name": "Bob"})
    today = date.today()
    s.insert_certification({"worker_id": w.id, "course_id": course.id, "expiry_date": today + timedelta(days=5)})
    s.insert_certification({"worker_id": w.id, "course_id": course.id, "expiry_date": today - timedelta(days=5)})
    return s


def test_export_frame_counts_by_derived_status(tmp_path):
    df = worker_export_frame(_store(tmp_path))
    assert list(df.columns) == EXPORT_COLUMNS
    first = df.iloc[0]
    assert first["Row"] == 1
    assert first["Workers ID"] == "W001"
    assert first["Date of Birth"] == "04/03/1990"
    assert first["Date of Expiry"] == ""
    assert first["Total Certifications"] == 2
    assert first["Expiring Certifications"] == 1
    assert first["Expired Certifications"] == 1
    assert df.iloc[1]["Total Certifications"] == 0


def test_export_csv_has_bom(tmp_path):
    out = tmp_path / "out" / "workers.csv"
    assert export_csv(_store(tmp_path), out) == 2
    raw = out.read_bytes()
    assert raw.startswith(b"\xef\xbb\xbf")
    assert b"Name of Workers" in raw


def test_export_xlsx_sheets(tmp_path):
    out = tmp_path / "workers.xlsx"
    assert export_xlsx(_store(tmp_path), out) == 2
    sheets = pd.read_excel(out, sheet_name=None, engine="openpyxl")
    assert list(sheets) == ["Worker Data", "Export Info"]
    assert sheets["Worker Data"]["Workers ID"].tolist() == ["W001", "W002"]
    info = dict(zip(sheets["Export Info"]["Field"], sheets["Export Info"]["Value"]))
    assert int(info["Total Workers"]) == 2


def test_summary_and_filename():
    empty = pd.DataFrame(columns=EXPORT_COLUMNS)
    at = datetime(2025, 2, 3, 4, 5, 6)
    summary = summary_frame(empty, at)
    assert summary["Value"].tolist()[:4] == ["03/02/2025", "04:05:06", 0, 0]
    assert export_filename(at) == "WorkerData_20250203_040506.xlsx"
