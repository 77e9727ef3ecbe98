"""Map loosely-structured spreadsheet rows onto worker drafts and course
certifications.

Worker fields are resolved through the ordered synonym table in
:mod:`worker_registry.field_map`; certifications are found by scanning every
cell of the row against the course catalog.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from .dates import normalize_date
from .field_map import (
    BCSSC_COURSE,
    BCSSC_MARKERS,
    DATE_FIELDS,
    FIELD_LABELS,
    REQUIRED_FIELDS,
    SPIC_COLUMN,
    SPIC_COURSE,
    get_course_columns,
    get_worker_fields,
)
from .models import Course
from .normalize import cell_text, is_blank
from .status import derive_status

REQUIRED_COLUMNS = [FIELD_LABELS[f] for f in REQUIRED_FIELDS]

Catalog = Mapping[str, Course]


@dataclass
class WorkerDraft:
    workers_id: str
    name: str
    fields: Dict[str, Any] = field(default_factory=dict)

    def as_values(self) -> Dict[str, Any]:
        """Store values: the non-empty fields found in the row, plus the key."""
        values = dict(self.fields)
        values["workers_id"] = self.workers_id
        values["name"] = self.name
        values["is_active"] = True
        return values


@dataclass
class CertificationExtraction:
    course_id: str
    course_name: str
    expiry_date: Optional[date]
    status: str


@dataclass
class RowExtraction:
    row_number: int
    worker: WorkerDraft
    certifications: List[CertificationExtraction] = field(default_factory=list)


@dataclass
class MappingResult:
    entries: List[RowExtraction] = field(default_factory=list)
    issues: List[str] = field(default_factory=list)
    total_rows: int = 0

    @property
    def skipped(self) -> int:
        return len(self.issues)


def catalog_index(courses: Union[Iterable[Course], Catalog]) -> Dict[str, Course]:
    """Lower-cased course name -> course. Later duplicates do not replace earlier ones."""
    if isinstance(courses, Mapping):
        return {str(k).lower(): v for k, v in courses.items()}
    index: Dict[str, Course] = {}
    for course in courses:
        index.setdefault(course.name.lower(), course)
    return index


def first_value(row: Mapping[str, Any], headers: Sequence[str]) -> Any:
    for header in headers:
        value = row.get(header)
        if not is_blank(value):
            return value
    return None


def extract_worker_fields(row: Mapping[str, Any]) -> Dict[str, Any]:
    """Resolve each logical worker field to its first non-empty synonym.

    Date fields go through the date normalizer; fields that are missing or
    carry no usable value are left out.
    """
    out: Dict[str, Any] = {}
    for fname, headers in get_worker_fields():
        raw = first_value(row, headers)
        if raw is None:
            continue
        if fname in DATE_FIELDS:
            parsed = normalize_date(raw)
            if parsed is not None:
                out[fname] = parsed
            continue
        text = cell_text(raw)
        if text:
            out[fname] = text
    return out


def _has_bcssc_marker(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    upper = value.upper()
    return any(marker in upper for marker in BCSSC_MARKERS)


def extract_certifications(
    row: Mapping[str, Any], catalog: Catalog, *, today: Optional[date] = None
) -> List[CertificationExtraction]:
    """Scan every cell of ``row`` for certification evidence.

    Courses absent from ``catalog`` are ignored. Several hits in one row
    each yield their own extraction.
    """
    course_columns = get_course_columns()
    found: List[CertificationExtraction] = []

    def _add(course_name: str, expiry: Optional[date]) -> None:
        course = catalog.get(course_name.lower())
        if course is None:
            return
        found.append(
            CertificationExtraction(
                course_id=course.id,
                course_name=course.name,
                expiry_date=expiry,
                status=derive_status(expiry, today),
            )
        )

    for column, value in row.items():
        if is_blank(value):
            continue
        if _has_bcssc_marker(value):
            _add(BCSSC_COURSE, None)
        elif column == SPIC_COLUMN:
            _add(SPIC_COURSE, normalize_date(value))
        elif column in course_columns:
            _add(course_columns[column], normalize_date(value))
    return found


def map_row(
    row: Mapping[str, Any], row_number: int, catalog: Catalog, *, today: Optional[date] = None
) -> RowExtraction | str:
    """Map one row; returns the issue text instead when it cannot be used."""
    values = extract_worker_fields(row)
    workers_id = values.pop("workers_id", "")
    name = values.pop("name", "")
    if not workers_id or not name:
        return (
            f"Row {row_number}: Missing required fields - "
            f"Workers ID: '{workers_id}', Name: '{name}'"
        )
    draft = WorkerDraft(workers_id=workers_id, name=name, fields=values)
    return RowExtraction(
        row_number=row_number,
        worker=draft,
        certifications=extract_certifications(row, catalog, today=today),
    )


def map_rows(
    rows: Sequence[Mapping[str, Any]],
    catalog: Union[Iterable[Course], Catalog],
    *,
    today: Optional[date] = None,
) -> MappingResult:
    index = catalog_index(catalog)
    result = MappingResult(total_rows=len(rows))
    for i, row in enumerate(rows):
        # +2: spreadsheet rows are 1-based and row 1 holds the headers
        mapped = map_row(row, i + 2, index, today=today)
        if isinstance(mapped, str):
            result.issues.append(mapped)
        else:
            result.entries.append(mapped)
    return result


__all__ = [
    "WorkerDraft",
    "CertificationExtraction",
    "RowExtraction",
    "MappingResult",
    "REQUIRED_COLUMNS",
    "catalog_index",
    "extract_worker_fields",
    "extract_certifications",
    "map_row",
    "map_rows",
]
