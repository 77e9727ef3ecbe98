from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .field_map import accepted_variations
from .io_excel import ExcelSource, available_columns, read_first_sheet
from .mapper import REQUIRED_COLUMNS, MappingResult, RowExtraction, map_rows
from .models import Worker
from .store import DuplicateKeyError, RegistryStore, StoreError

logger = logging.getLogger(__name__)


class NoValidRowsError(ValueError):
    """Raised when an import yields no usable worker rows.

    ``payload`` carries the diagnostics returned to the uploader.
    """

    def __init__(self, payload: Dict[str, Any]) -> None:
        super().__init__(payload.get("message", "No valid workers found"))
        self.payload = payload


@dataclass
class ImportSummary:
    workers: List[Worker] = field(default_factory=list)
    certifications_created: int = 0
    certifications_updated: int = 0
    skipped: int = 0
    total_rows: int = 0
    issues: List[str] = field(default_factory=list)
    failures: List[str] = field(default_factory=list)

    @property
    def workers_processed(self) -> int:
        return len(self.workers)

    @property
    def certifications_processed(self) -> int:
        return self.certifications_created + self.certifications_updated

    @property
    def message(self) -> str:
        return (
            f"Successfully processed {self.workers_processed} workers and "
            f"{self.certifications_processed} certifications "
            f"({self.skipped} invalid rows skipped)"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "workers": [w.to_dict() for w in self.workers],
            "stats": {
                "workersProcessed": self.workers_processed,
                "certificationsCreated": self.certifications_processed,
                "skipped": self.skipped,
                "totalRows": self.total_rows,
            },
        }


def _upsert_worker(store: RegistryStore, entry: RowExtraction, summary: ImportSummary) -> Optional[Worker]:
    values = entry.worker.as_values()
    workers_id = entry.worker.workers_id
    try:
        return store.insert_worker(values)
    except DuplicateKeyError:
        logger.info("Worker %s already exists, updating", workers_id)
    except (StoreError, ValueError) as exc:
        logger.warning("Failed to process worker %s: %s", workers_id, exc)
        summary.failures.append(f"Row {entry.row_number}: worker {workers_id}: {exc}")
        return None

    try:
        existing = store.get_worker_by_external_id(workers_id)
        updated = store.update_worker(existing.id, values) if existing is not None else None
    except (StoreError, ValueError) as exc:
        logger.warning("Failed to update worker %s: %s", workers_id, exc)
        summary.failures.append(f"Row {entry.row_number}: worker {workers_id}: {exc}")
        return None
    if updated is None:
        logger.warning("Worker %s reported as duplicate but could not be found", workers_id)
        summary.failures.append(f"Row {entry.row_number}: worker {workers_id} not found for update")
    return updated


def _apply_certifications(
    store: RegistryStore,
    worker: Worker,
    entry: RowExtraction,
    summary: ImportSummary,
    today: date,
) -> None:
    for cert in entry.certifications:
        try:
            existing = next(
                (c for c in store.list_certifications_for_worker(worker.id) if c.course_id == cert.course_id),
                None,
            )
            if existing is not None:
                store.update_certification(
                    existing.id, {"expiry_date": cert.expiry_date, "status": cert.status}
                )
                summary.certifications_updated += 1
            else:
                store.insert_certification(
                    {
                        "worker_id": worker.id,
                        "course_id": cert.course_id,
                        "name": cert.course_name,
                        "certificate_number": None,
                        "issued_date": today,
                        "expiry_date": cert.expiry_date,
                        "status": cert.status,
                    }
                )
                summary.certifications_created += 1
        except (StoreError, ValueError) as exc:
            logger.warning(
                "Failed to record certification %s for worker %s: %s",
                cert.course_name,
                worker.workers_id,
                exc,
            )
            summary.failures.append(
                f"Row {entry.row_number}: certification {cert.course_name} for {worker.workers_id}: {exc}"
            )


def reconcile(store: RegistryStore, mapping: MappingResult, *, today: Optional[date] = None) -> ImportSummary:
    """Merge mapped rows into the store, one worker at a time.

    Workers are keyed by external ID (insert, or update on conflict);
    certifications by (worker, course). Failures are recorded per item
    and never abort the batch; nothing is rolled back.
    """
    today = today or date.today()
    summary = ImportSummary(
        skipped=mapping.skipped,
        total_rows=mapping.total_rows,
        issues=list(mapping.issues),
    )
    for entry in mapping.entries:
        worker = _upsert_worker(store, entry, summary)
        if worker is None:
            continue
        summary.workers.append(worker)
        _apply_certifications(store, worker, entry, summary, today)

    logger.info(
        "Import finished: %d workers, %d certifications created, %d updated, %d skipped, %d failures",
        summary.workers_processed,
        summary.certifications_created,
        summary.certifications_updated,
        summary.skipped,
        len(summary.failures),
    )
    return summary


def diagnostics(rows: Sequence[Mapping[str, Any]], mapping: MappingResult, headers: Sequence[str] | None = None) -> Dict[str, Any]:
    return {
        "message": "No valid workers found in Excel file",
        "details": {
            "totalRows": mapping.total_rows,
            "availableColumns": list(headers) if headers is not None else available_columns(rows),
            "issues": mapping.issues[:5],
            "requiredColumns": list(REQUIRED_COLUMNS),
            "acceptedVariations": accepted_variations(),
        },
    }


def import_rows(
    store: RegistryStore,
    rows: Sequence[Mapping[str, Any]],
    *,
    today: Optional[date] = None,
    headers: Sequence[str] | None = None,
) -> ImportSummary:
    mapping = map_rows(rows, store.list_active_courses(), today=today)
    if mapping.issues:
        logger.info("Import issues found: %d rows skipped", len(mapping.issues))
    if not mapping.entries:
        raise NoValidRowsError(diagnostics(rows, mapping, headers))
    return reconcile(store, mapping, today=today)


def import_workbook(
    store: RegistryStore,
    source: ExcelSource,
    *,
    filename: str | None = None,
    today: Optional[date] = None,
) -> ImportSummary:
    """Import sheet 1 of a workbook (path, bytes or binary file object)."""
    sheet = read_first_sheet(source, filename=filename)
    logger.info("Found %d rows in sheet %r", len(sheet.rows), sheet.sheet)
    return import_rows(store, sheet.rows, today=today, headers=sheet.headers)


__all__ = [
    "ImportSummary",
    "NoValidRowsError",
    "reconcile",
    "import_rows",
    "import_workbook",
    "diagnostics",
]
