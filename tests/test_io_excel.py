from __future__ import annotations

import io

import pandas as pd

from worker_registry.io_excel import available_columns, list_sheets, read_first_sheet


def _workbook(frames: dict[str, pd.DataFrame]) -> bytes:
    bio = io.BytesIO()
    with pd.ExcelWriter(bio, engine="openpyxl") as xw:
        for name, df in frames.items():
            df.to_excel(xw, index=False, sheet_name=name)
    return bio.getvalue()


def test_reads_only_first_sheet_with_trimmed_headers() -> None:
    first = pd.DataFrame({" Workers ID ": ["W001", None], "Name of Workers": ["  Alice   Tan ", None]})
    second = pd.DataFrame({"Workers ID": ["X"]})
    data = _workbook({"Main": first, "Other": second})

    sheet = read_first_sheet(data)
    assert sheet.sheet == "Main"
    assert sheet.headers == ["Workers ID", "Name of Workers"]
    # the all-empty row is dropped
    assert sheet.rows == [{"Workers ID": "W001", "Name of Workers": "Alice Tan"}]
    assert list_sheets(data) == ["Main", "Other"]


def test_blank_cells_become_none_and_dates_stay_native(tmp_path) -> None:
    df = pd.DataFrame(
        {
            "Workers ID": ["W001", "W002"],
            "First Aid": [pd.Timestamp("2025-06-15"), None],
        }
    )
    path = tmp_path / "sheet.xlsx"
    path.write_bytes(_workbook({"S": df}))

    rows = read_first_sheet(path).rows
    assert rows[1]["First Aid"] is None
    assert pd.Timestamp(rows[0]["First Aid"]).date().isoformat() == "2025-06-15"


def test_file_object_source() -> None:
    data = _workbook({"S": pd.DataFrame({"A": [1]})})
    sheet = read_first_sheet(io.BytesIO(data), filename="upload.bin")
    assert sheet.headers == ["A"]


def test_available_columns_preserves_first_seen_order() -> None:
    rows = [{"b": 1, "a": 2}, {"c": 3, "a": 4}]
    assert available_columns(rows) == ["b", "a", "c"]
