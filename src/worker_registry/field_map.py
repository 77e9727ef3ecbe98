from __future__ import annotations

import logging
from functools import lru_cache
from typing import Dict, Iterable, List, Tuple

import yaml

from .paths import resolve_field_map_path

logger = logging.getLogger(__name__)

# Worker field -> header names tried in order; the first non-empty cell wins.
WORKER_FIELDS: List[Tuple[str, List[str]]] = [
    ("entity", ["Entity", "entity"]),
    ("serial_number", ["S/N", "Serial Number", "serialNumber"]),
    ("workers_id", ["Workers ID", "workersId", "Worker ID", "workerID"]),
    ("name", ["Name of Workers", "Name", "nameOfWorkers", "Worker Name"]),
    ("designation", ["Designation", "designation"]),
    ("contact_no", ["Contact No.", "Contact No", "contactNo", "Contact"]),
    ("nationality", ["Nationality", "nationality"]),
    ("wp_no", ["WP No.", "WP No", "wpNo"]),
    ("nric_fin_no", ["NRIC / Fin No", "NRIC/Fin No", "nricFinNo", "NRIC"]),
    ("date_of_expiry", ["Date of Expiry", "dateOfExpiry", "Expiry Date"]),
    ("date_of_birth", ["Date of Birth", "dateOfBirth", "DOB"]),
]

REQUIRED_FIELDS = ("workers_id", "name")
DATE_FIELDS = {"date_of_expiry", "date_of_birth"}

# Human labels used in import diagnostics
FIELD_LABELS: Dict[str, str] = {
    "workers_id": "Workers ID",
    "name": "Name of Workers",
}

# Any cell containing one of these markers is a BCSSC/CSC certificate (no expiry)
BCSSC_MARKERS = ("BCSSC", "CSC")
BCSSC_COURSE = "BCSSC/CSC"

# Column whose cells hold the SPIC expiry
SPIC_COLUMN = "SPIC"
SPIC_COURSE = "SPIC"

# Closed set of column headers that are course names; cells hold the expiry
COURSE_COLUMNS: Dict[str, str] = {
    "First Aid": "First Aid",
    "bizsafe Level 1": "bizsafe Level 1",
    "bizsafe Level 2": "bizsafe Level 2",
    "WSH Level B - Safety Coordinator": "WSH Level B - Safety Coordinator",
    "WSH Level C - Safety Officer": "WSH Level C - Safety Officer",
    "Coretrade": "Coretrade",
    "Multiskill": "Multiskill",
    "Direct R1": "Direct R1",
    "MBF": "MBF",
    "CSOC": "CSOC",
}


def _ensure_str_list(x) -> Iterable[str]:
    if isinstance(x, (list, tuple, set)):
        return [str(i) for i in x if i is not None]
    return [str(x)] if x is not None else []


def _load_overrides() -> dict:
    path = resolve_field_map_path()
    if path is None or not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Ignoring unreadable field map %s: %s", path, exc)
        return {}
    return data if isinstance(data, dict) else {}


@lru_cache(maxsize=1)
def get_worker_fields() -> Tuple[Tuple[str, Tuple[str, ...]], ...]:
    """Worker synonym table, extended by the optional YAML field map.

    YAML layout::

        workers:
          workers_id: ["Emp ID"]
        course_columns:
          "Boomlift": "Boomlift Operator"

    Extra synonyms are appended after the built-in ones so they never
    shadow an existing header.
    """
    overrides = _load_overrides().get("workers") or {}
    out: list[tuple[str, tuple[str, ...]]] = []
    for field, headers in WORKER_FIELDS:
        merged = list(headers)
        for extra in _ensure_str_list(overrides.get(field)):
            if extra and extra not in merged:
                merged.append(extra)
        out.append((field, tuple(merged)))
    return tuple(out)


@lru_cache(maxsize=1)
def get_course_columns() -> Dict[str, str]:
    columns = dict(COURSE_COLUMNS)
    extra = _load_overrides().get("course_columns") or {}
    if isinstance(extra, dict):
        for header, course in extra.items():
            if header and course:
                columns[str(header)] = str(course)
    return columns


def accepted_variations() -> Dict[str, List[str]]:
    fields = dict(get_worker_fields())
    return {FIELD_LABELS[f]: list(fields[f]) for f in REQUIRED_FIELDS}


def clear_cache() -> None:
    get_worker_fields.cache_clear()
    get_course_columns.cache_clear()


__all__ = [
    "WORKER_FIELDS",
    "REQUIRED_FIELDS",
    "DATE_FIELDS",
    "FIELD_LABELS",
    "BCSSC_MARKERS",
    "BCSSC_COURSE",
    "SPIC_COLUMN",
    "SPIC_COURSE",
    "COURSE_COLUMNS",
    "get_worker_fields",
    "get_course_columns",
    "accepted_variations",
    "clear_cache",
]
