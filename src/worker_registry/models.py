from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import date
from typing import Any, Dict, List, Mapping, Optional

from .dates import normalize_date, to_iso
from .normalize import clean_optional
from .status import ACTIVE, STATUSES

# snake_case attribute -> camelCase wire key
WORKER_WIRE_KEYS: Dict[str, str] = {
    "id": "id",
    "entity": "entity",
    "serial_number": "serialNumber",
    "workers_id": "workersId",
    "name": "nameOfWorkers",
    "designation": "designation",
    "contact_no": "contactNo",
    "nationality": "nationality",
    "wp_no": "wpNo",
    "nric_fin_no": "nricFinNo",
    "date_of_expiry": "dateOfExpiry",
    "date_of_birth": "dateOfBirth",
    "is_active": "isActive",
}

COURSE_WIRE_KEYS: Dict[str, str] = {
    "id": "id",
    "name": "name",
    "description": "description",
    "duration": "duration",
    "is_active": "isActive",
}

CERTIFICATION_WIRE_KEYS: Dict[str, str] = {
    "id": "id",
    "worker_id": "workerId",
    "course_id": "courseId",
    "name": "name",
    "certificate_number": "certificateNumber",
    "issued_date": "issuedDate",
    "expiry_date": "expiryDate",
    "status": "status",
}

WORKER_TEXT_FIELDS = (
    "entity",
    "serial_number",
    "workers_id",
    "name",
    "designation",
    "contact_no",
    "nationality",
    "wp_no",
    "nric_fin_no",
)
WORKER_DATE_FIELDS = ("date_of_expiry", "date_of_birth")


def _wire(obj: Any, keys: Mapping[str, str]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for attr, key in keys.items():
        value = getattr(obj, attr)
        if isinstance(value, date):
            value = to_iso(value)
        out[key] = value
    return out


def _from_row(cls, row: Mapping[str, Any]):
    names = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in row.items() if k in names})


@dataclass
class Worker:
    id: str
    workers_id: str
    name: str
    entity: Optional[str] = None
    serial_number: Optional[str] = None
    designation: Optional[str] = None
    contact_no: Optional[str] = None
    nationality: Optional[str] = None
    wp_no: Optional[str] = None
    nric_fin_no: Optional[str] = None
    date_of_expiry: Optional[date] = None
    date_of_birth: Optional[date] = None
    is_active: bool = True

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Worker":
        return _from_row(cls, row)

    def to_dict(self) -> Dict[str, Any]:
        return _wire(self, WORKER_WIRE_KEYS)


@dataclass
class Course:
    id: str
    name: str
    description: Optional[str] = None
    duration: Optional[int] = None
    is_active: bool = True

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Course":
        return _from_row(cls, row)

    def to_dict(self) -> Dict[str, Any]:
        return _wire(self, COURSE_WIRE_KEYS)


@dataclass
class Certification:
    id: str
    worker_id: str
    course_id: str
    name: str
    certificate_number: Optional[str] = None
    issued_date: Optional[date] = None
    expiry_date: Optional[date] = None
    status: str = ACTIVE

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Certification":
        return _from_row(cls, row)

    def to_dict(self) -> Dict[str, Any]:
        return _wire(self, CERTIFICATION_WIRE_KEYS)


@dataclass
class WorkerWithCertifications:
    worker: Worker
    certifications: List[tuple[Certification, Optional[Course]]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        out = self.worker.to_dict()
        certs = []
        for cert, course in self.certifications:
            item = cert.to_dict()
            item["course"] = course.to_dict() if course is not None else None
            certs.append(item)
        out["certifications"] = certs
        return out


# --- Request payload parsing (camelCase or snake_case keys accepted) ---


def _pick(data: Mapping[str, Any], attr: str, wire: str) -> tuple[bool, Any]:
    if wire in data:
        return True, data[wire]
    if attr in data:
        return True, data[attr]
    return False, None


def _text(value: Any) -> Optional[str]:
    value = clean_optional(value)
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)


def _date_field(value: Any, label: str) -> Optional[date]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    parsed = normalize_date(value)
    if parsed is None:
        raise ValueError(f"Invalid date for {label}: {value!r}")
    return parsed


def parse_worker_payload(data: Mapping[str, Any] | None, *, partial: bool = False) -> Dict[str, Any]:
    """Validate a worker payload into store fields.

    Raises ValueError when required fields are missing (full payloads) or
    a value cannot be interpreted.
    """
    if not isinstance(data, Mapping):
        raise ValueError("Worker data must be an object")
    out: Dict[str, Any] = {}
    for attr in WORKER_TEXT_FIELDS:
        present, value = _pick(data, attr, WORKER_WIRE_KEYS[attr])
        if present:
            out[attr] = _text(value)
    for attr in WORKER_DATE_FIELDS:
        present, value = _pick(data, attr, WORKER_WIRE_KEYS[attr])
        if present:
            out[attr] = _date_field(value, WORKER_WIRE_KEYS[attr])
    present, value = _pick(data, "is_active", "isActive")
    if present:
        out["is_active"] = bool(value)

    for required, label in (("workers_id", "workersId"), ("name", "nameOfWorkers")):
        if partial:
            if required in out and not out[required]:
                raise ValueError(f"{label} cannot be empty")
        elif not out.get(required):
            raise ValueError(f"{label} is required")
    return out


def parse_course_payload(data: Mapping[str, Any] | None, *, partial: bool = False) -> Dict[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError("Course data must be an object")
    out: Dict[str, Any] = {}
    if "name" in data:
        out["name"] = _text(data.get("name"))
    if "description" in data:
        out["description"] = _text(data.get("description"))
    if "duration" in data:
        raw = clean_optional(data.get("duration"))
        if raw is None:
            out["duration"] = None
        else:
            try:
                out["duration"] = int(raw)
            except (TypeError, ValueError):
                raise ValueError(f"Invalid duration: {raw!r}") from None
            if out["duration"] < 0:
                raise ValueError("duration must not be negative")
    present, value = _pick(data, "is_active", "isActive")
    if present:
        out["is_active"] = bool(value)
    if not partial and not out.get("name"):
        raise ValueError("name is required")
    if partial and "name" in out and not out["name"]:
        raise ValueError("name cannot be empty")
    return out


def parse_certification_payload(data: Mapping[str, Any] | None) -> Dict[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError("Certification data must be an object")
    out: Dict[str, Any] = {}
    for attr in ("worker_id", "course_id", "name", "certificate_number"):
        _, value = _pick(data, attr, CERTIFICATION_WIRE_KEYS[attr])
        out[attr] = _text(value)
    for attr in ("issued_date", "expiry_date"):
        _, value = _pick(data, attr, CERTIFICATION_WIRE_KEYS[attr])
        out[attr] = _date_field(value, CERTIFICATION_WIRE_KEYS[attr])
    status = _text(data.get("status")) or ACTIVE
    if status not in STATUSES:
        raise ValueError(f"Invalid status: {status!r}")
    out["status"] = status
    for required in ("worker_id", "course_id"):
        if not out.get(required):
            raise ValueError(f"{CERTIFICATION_WIRE_KEYS[required]} is required")
    return out


__all__ = [
    "Worker",
    "Course",
    "Certification",
    "WorkerWithCertifications",
    "parse_worker_payload",
    "parse_course_payload",
    "parse_certification_payload",
    "WORKER_TEXT_FIELDS",
    "WORKER_DATE_FIELDS",
]
