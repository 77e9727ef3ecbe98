from __future__ import annotations

import io
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any, Dict, List, Literal, Mapping, Tuple, Union

import pandas as pd

from .normalize import is_blank, strip_whitespace

ExcelSource = Union[str, Path, bytes, bytearray, IO[bytes]]

_OLE_MAGIC = b"\xd0\xcf\x11\xe0"


@dataclass
class SheetRows:
    sheet: str
    headers: List[str]
    rows: List[Dict[str, Any]]


def _engine_for(path: Path) -> Literal["openpyxl", "xlrd"]:
    suffix = path.suffix.lower()
    if suffix in (".xlsx", ".xlsm", ".xltx", ".xltm"):
        return "openpyxl"
    return "xlrd"


def _open(source: ExcelSource, filename: str | None = None) -> Tuple[Any, Literal["openpyxl", "xlrd"]]:
    """Return a pandas-readable handle plus the engine for it."""
    if isinstance(source, (str, Path)):
        path = Path(source)
        return path, _engine_for(path)
    if isinstance(source, (bytes, bytearray)):
        data = bytes(source)
    else:
        data = source.read()
    if filename:
        engine = _engine_for(Path(filename))
    else:
        engine = "openpyxl"
    # Legacy .xls workbooks are OLE compound files regardless of their name
    if data[:4] == _OLE_MAGIC:
        engine = "xlrd"
    elif data[:2] == b"PK":
        engine = "openpyxl"
    return io.BytesIO(data), engine


def list_sheets(source: ExcelSource, filename: str | None = None) -> List[str]:
    handle, engine = _open(source, filename)
    with pd.ExcelFile(handle, engine=engine) as xf:
        return list(map(str, xf.sheet_names))


def read_first_sheet(source: ExcelSource, filename: str | None = None) -> SheetRows:
    """Read sheet 1 with its first row as headers.

    Cells come back as Python objects (text, numbers, Timestamps); blanks
    are None. Rows without any value are dropped.
    """
    handle, engine = _open(source, filename)
    with pd.ExcelFile(handle, engine=engine) as xf:
        sheet_names = list(map(str, xf.sheet_names))
        if not sheet_names:
            raise ValueError("Workbook has no sheets")
        df = xf.parse(sheet_name=0, header=0, dtype="object")
    df.columns = [str(c).strip() for c in df.columns]
    df = df.dropna(axis=0, how="all")
    df = strip_whitespace(df)
    return SheetRows(sheet=sheet_names[0], headers=list(df.columns), rows=frame_to_rows(df))


def frame_to_rows(df: pd.DataFrame) -> List[Dict[str, Any]]:
    rows: List[Dict[str, Any]] = []
    for record in df.to_dict(orient="records"):
        rows.append({str(k): (None if is_blank(v) else v) for k, v in record.items()})
    return rows


def available_columns(rows: List[Mapping[str, Any]]) -> List[str]:
    seen: Dict[str, None] = {}
    for row in rows:
        for key in row.keys():
            seen.setdefault(str(key), None)
    return list(seen)


def write_xlsx(sheets: Mapping[str, pd.DataFrame], out: Path | IO[bytes]) -> None:
    """Write one or more frames into a workbook; column widths follow content."""
    if isinstance(out, Path):
        out.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(out, engine="openpyxl") as xw:
        for sheet_name, df in sheets.items():
            df.to_excel(xw, index=False, sheet_name=sheet_name)
            ws = xw.sheets[sheet_name]
            for idx, col in enumerate(df.columns, start=1):
                values = [str(col)] + [str(v) for v in df[col].tolist() if v is not None]
                width = min(max(len(v) for v in values) + 2, 40)
                ws.column_dimensions[ws.cell(row=1, column=idx).column_letter].width = width


def write_csv(df: pd.DataFrame, out: Path | IO[str]) -> None:
    if isinstance(out, Path):
        out.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(out, index=False, encoding="utf-8-sig")


__all__ = [
    "SheetRows",
    "list_sheets",
    "read_first_sheet",
    "frame_to_rows",
    "available_columns",
    "write_xlsx",
    "write_csv",
]
