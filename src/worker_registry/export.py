from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import IO, Optional

import pandas as pd

from .dates import format_dmy
from .io_excel import write_csv, write_xlsx
from .status import ACTIVE, EXPIRED, EXPIRING_SOON
from .stats import workers_with_certifications
from .store import RegistryStore

EXPORT_COLUMNS = [
    "Row",
    "Entity",
    "S/N",
    "Workers ID",
    "Name of Workers",
    "Designation",
    "Contact No.",
    "Nationality",
    "WP No.",
    "NRIC / Fin No",
    "Date of Expiry",
    "Date of Birth",
    "Total Certifications",
    "Active Certifications",
    "Expiring Certifications",
    "Expired Certifications",
]


def worker_export_frame(store: RegistryStore, now: Optional[datetime] = None) -> pd.DataFrame:
    """One row per active worker with certification counts by derived status."""
    records = []
    for idx, item in enumerate(workers_with_certifications(store, now), start=1):
        w = item.worker
        statuses = [cert.status for cert, _ in item.certifications]
        records.append(
            {
                "Row": idx,
                "Entity": w.entity or "",
                "S/N": w.serial_number or "",
                "Workers ID": w.workers_id,
                "Name of Workers": w.name,
                "Designation": w.designation or "",
                "Contact No.": w.contact_no or "",
                "Nationality": w.nationality or "",
                "WP No.": w.wp_no or "",
                "NRIC / Fin No": w.nric_fin_no or "",
                "Date of Expiry": format_dmy(w.date_of_expiry),
                "Date of Birth": format_dmy(w.date_of_birth),
                "Total Certifications": len(statuses),
                "Active Certifications": statuses.count(ACTIVE),
                "Expiring Certifications": statuses.count(EXPIRING_SOON),
                "Expired Certifications": statuses.count(EXPIRED),
            }
        )
    return pd.DataFrame(records, columns=EXPORT_COLUMNS)


def summary_frame(workers: pd.DataFrame, exported_at: Optional[datetime] = None) -> pd.DataFrame:
    exported_at = exported_at or datetime.now()
    rows = [
        ("Export Date", exported_at.strftime("%d/%m/%Y")),
        ("Export Time", exported_at.strftime("%H:%M:%S")),
        ("Total Workers", int(len(workers))),
        ("Total Certifications", int(workers["Total Certifications"].sum()) if len(workers) else 0),
        ("Active Certifications", int(workers["Active Certifications"].sum()) if len(workers) else 0),
        ("Export Format", "Microsoft Excel (.xlsx)"),
    ]
    return pd.DataFrame(rows, columns=["Field", "Value"])


def export_csv(store: RegistryStore, out: Path | IO[str]) -> int:
    df = worker_export_frame(store)
    write_csv(df, out)
    return len(df)


def export_xlsx(store: RegistryStore, out: Path | IO[bytes]) -> int:
    df = worker_export_frame(store)
    write_xlsx({"Worker Data": df, "Export Info": summary_frame(df)}, out)
    return len(df)


def export_filename(now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return f"WorkerData_{now.strftime('%Y%m%d_%H%M%S')}.xlsx"


__all__ = [
    "EXPORT_COLUMNS",
    "worker_export_frame",
    "summary_frame",
    "export_csv",
    "export_xlsx",
    "export_filename",
]
