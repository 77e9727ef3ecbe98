from __future__ import annotations

import os
import uuid
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import duckdb

from .models import Certification, Course, Worker

DDL = r"""
CREATE TABLE IF NOT EXISTS workers (
  id VARCHAR PRIMARY KEY,
  entity VARCHAR,
  serial_number VARCHAR,
  workers_id VARCHAR NOT NULL UNIQUE,
  name VARCHAR NOT NULL,
  designation VARCHAR,
  contact_no VARCHAR,
  nationality VARCHAR,
  wp_no VARCHAR,
  nric_fin_no VARCHAR,
  date_of_expiry DATE,
  date_of_birth DATE,
  is_active BOOLEAN NOT NULL DEFAULT TRUE
);

CREATE TABLE IF NOT EXISTS courses (
  id VARCHAR PRIMARY KEY,
  name VARCHAR NOT NULL,
  description VARCHAR,
  duration INTEGER,
  is_active BOOLEAN NOT NULL DEFAULT TRUE
);

-- worker_id / course_id are checked in code; DuckDB foreign keys block
-- updates on the referenced rows
CREATE TABLE IF NOT EXISTS certifications (
  id VARCHAR PRIMARY KEY,
  worker_id VARCHAR NOT NULL,
  course_id VARCHAR NOT NULL,
  name VARCHAR NOT NULL,
  certificate_number VARCHAR,
  issued_date DATE,
  expiry_date DATE,
  status VARCHAR NOT NULL DEFAULT 'active'
);

CREATE INDEX IF NOT EXISTS idx_certifications_worker ON certifications(worker_id);
"""

WORKER_COLUMNS = (
    "entity",
    "serial_number",
    "workers_id",
    "name",
    "designation",
    "contact_no",
    "nationality",
    "wp_no",
    "nric_fin_no",
    "date_of_expiry",
    "date_of_birth",
    "is_active",
)
COURSE_COLUMNS = ("name", "description", "duration", "is_active")
CERTIFICATION_COLUMNS = (
    "worker_id",
    "course_id",
    "name",
    "certificate_number",
    "issued_date",
    "expiry_date",
    "status",
)

_SEARCH_COLUMNS = ("name", "workers_id", "designation", "contact_no", "nationality", "nric_fin_no")


class StoreError(Exception):
    """Raised for store failures other than key conflicts."""


class DuplicateKeyError(StoreError):
    """An insert or update collided with the unique external worker ID."""

    def __init__(self, key: str, message: str | None = None) -> None:
        super().__init__(message or f"Workers ID {key!r} already exists")
        self.key = key


def _new_id() -> str:
    return str(uuid.uuid4())


def _is_unique_violation(exc: Exception) -> bool:
    msg = str(exc).lower()
    return "duplicate key" in msg or "unique constraint" in msg


class RegistryStore:
    """DuckDB-backed store for workers, courses and certifications.

    Each operation opens its own short-lived connection, so one instance
    can be shared by the web app and the import pipeline.
    """

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = Path(os.fspath(db_path)).expanduser()
        self._ensure()

    # -- plumbing -------------------------------------------------------

    def _connect(self):
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        return duckdb.connect(str(self.db_path))

    def _ensure(self) -> None:
        with self._connect() as con:
            con.execute(DDL)

    def _fetch(self, sql: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        try:
            with self._connect() as con:
                cur = con.execute(sql, list(params))
                cols = [d[0] for d in cur.description]
                return [dict(zip(cols, row)) for row in cur.fetchall()]
        except duckdb.Error as exc:
            raise StoreError(str(exc)) from exc

    def _execute(self, sql: str, params: Sequence[Any] = (), *, key: str | None = None) -> None:
        try:
            with self._connect() as con:
                con.execute(sql, list(params))
        except duckdb.ConstraintException as exc:
            if key is not None and _is_unique_violation(exc):
                raise DuplicateKeyError(key) from exc
            raise StoreError(str(exc)) from exc
        except duckdb.Error as exc:
            raise StoreError(str(exc)) from exc

    def _insert(self, table: str, values: Mapping[str, Any], *, key: str | None = None) -> None:
        cols = list(values.keys())
        placeholders = ", ".join("?" for _ in cols)
        sql = f"INSERT INTO {table} ({', '.join(cols)}) VALUES ({placeholders})"
        self._execute(sql, [values[c] for c in cols], key=key)

    def _update(self, table: str, row_id: str, values: Mapping[str, Any], *, key: str | None = None) -> None:
        if not values:
            return
        assignments = ", ".join(f"{c} = ?" for c in values)
        sql = f"UPDATE {table} SET {assignments} WHERE id = ?"
        self._execute(sql, [*values.values(), row_id], key=key)

    @staticmethod
    def _pick(values: Mapping[str, Any], allowed: Iterable[str]) -> Dict[str, Any]:
        allowed = set(allowed)
        return {k: v for k, v in values.items() if k in allowed}

    # -- workers --------------------------------------------------------

    def get_worker_by_id(self, worker_id: str) -> Optional[Worker]:
        rows = self._fetch("SELECT * FROM workers WHERE id = ?", [worker_id])
        return Worker.from_row(rows[0]) if rows else None

    def get_worker_by_external_id(self, workers_id: str) -> Optional[Worker]:
        rows = self._fetch("SELECT * FROM workers WHERE workers_id = ?", [workers_id])
        return Worker.from_row(rows[0]) if rows else None

    def list_active_workers(self) -> List[Worker]:
        rows = self._fetch("SELECT * FROM workers WHERE is_active ORDER BY name, workers_id")
        return [Worker.from_row(r) for r in rows]

    def search_workers(self, query: str) -> List[Worker]:
        pattern = f"%{query.lower()}%"
        clause = " OR ".join(f"lower(coalesce({c}, '')) LIKE ?" for c in _SEARCH_COLUMNS)
        rows = self._fetch(
            f"SELECT * FROM workers WHERE is_active AND ({clause}) ORDER BY name, workers_id",
            [pattern] * len(_SEARCH_COLUMNS),
        )
        return [Worker.from_row(r) for r in rows]

    def insert_worker(self, values: Mapping[str, Any]) -> Worker:
        data = self._pick(values, WORKER_COLUMNS)
        if not data.get("workers_id") or not data.get("name"):
            raise ValueError("workers_id and name are required")
        data.setdefault("is_active", True)
        if data["is_active"] is None:
            data["is_active"] = True
        row_id = _new_id()
        self._insert("workers", {"id": row_id, **data}, key=str(data["workers_id"]))
        created = self.get_worker_by_id(row_id)
        if created is None:  # pragma: no cover - insert succeeded
            raise StoreError(f"worker {row_id} vanished after insert")
        return created

    def update_worker(self, worker_id: str, partial: Mapping[str, Any]) -> Optional[Worker]:
        """Overwrite the given fields; keys not present are left untouched."""
        current = self.get_worker_by_id(worker_id)
        if current is None:
            return None
        data = self._pick(partial, WORKER_COLUMNS)
        for required in ("workers_id", "name"):
            if required in data and not data[required]:
                raise ValueError(f"{required} cannot be empty")
        if "is_active" in data and data["is_active"] is None:
            data.pop("is_active")
        # Rewriting an indexed column to the same value is a delete+insert in DuckDB
        if data.get("workers_id") == current.workers_id:
            data.pop("workers_id")
        self._update("workers", worker_id, data, key=data.get("workers_id"))
        return self.get_worker_by_id(worker_id)

    def soft_delete_worker(self, worker_id: str) -> bool:
        if self.get_worker_by_id(worker_id) is None:
            return False
        self._update("workers", worker_id, {"is_active": False})
        return True

    # -- courses --------------------------------------------------------

    def get_course(self, course_id: str) -> Optional[Course]:
        rows = self._fetch("SELECT * FROM courses WHERE id = ?", [course_id])
        return Course.from_row(rows[0]) if rows else None

    def list_active_courses(self) -> List[Course]:
        rows = self._fetch("SELECT * FROM courses WHERE is_active ORDER BY name")
        return [Course.from_row(r) for r in rows]

    def count_courses(self) -> int:
        rows = self._fetch("SELECT count(*) AS n FROM courses")
        return int(rows[0]["n"]) if rows else 0

    def insert_course(self, values: Mapping[str, Any]) -> Course:
        data = self._pick(values, COURSE_COLUMNS)
        if not data.get("name"):
            raise ValueError("course name is required")
        if data.get("is_active") is None:
            data["is_active"] = True
        row_id = _new_id()
        self._insert("courses", {"id": row_id, **data})
        created = self.get_course(row_id)
        if created is None:  # pragma: no cover
            raise StoreError(f"course {row_id} vanished after insert")
        return created

    def update_course(self, course_id: str, partial: Mapping[str, Any]) -> Optional[Course]:
        if self.get_course(course_id) is None:
            return None
        data = self._pick(partial, COURSE_COLUMNS)
        if "name" in data and not data["name"]:
            raise ValueError("course name cannot be empty")
        self._update("courses", course_id, data)
        return self.get_course(course_id)

    def soft_delete_course(self, course_id: str) -> bool:
        if self.get_course(course_id) is None:
            return False
        self._update("courses", course_id, {"is_active": False})
        return True

    # -- certifications -------------------------------------------------

    def get_certification(self, cert_id: str) -> Optional[Certification]:
        rows = self._fetch("SELECT * FROM certifications WHERE id = ?", [cert_id])
        return Certification.from_row(rows[0]) if rows else None

    def list_certifications_for_worker(self, worker_id: str) -> List[Certification]:
        rows = self._fetch(
            "SELECT * FROM certifications WHERE worker_id = ? ORDER BY name, id", [worker_id]
        )
        return [Certification.from_row(r) for r in rows]

    def list_all_certifications(self) -> List[Certification]:
        rows = self._fetch("SELECT * FROM certifications ORDER BY worker_id, name, id")
        return [Certification.from_row(r) for r in rows]

    def list_certifications_with_courses(
        self, worker_id: str | None = None
    ) -> List[Tuple[Certification, Optional[Course]]]:
        sql = (
            "SELECT c.*, k.name AS course_name, k.description AS course_description, "
            "k.duration AS course_duration, k.is_active AS course_is_active "
            "FROM certifications c LEFT JOIN courses k ON k.id = c.course_id"
        )
        params: list[Any] = []
        if worker_id is not None:
            sql += " WHERE c.worker_id = ?"
            params.append(worker_id)
        sql += " ORDER BY c.worker_id, c.name, c.id"
        out: List[Tuple[Certification, Optional[Course]]] = []
        for row in self._fetch(sql, params):
            course = None
            if row.get("course_name") is not None:
                course = Course(
                    id=row["course_id"],
                    name=row["course_name"],
                    description=row.get("course_description"),
                    duration=row.get("course_duration"),
                    is_active=bool(row.get("course_is_active")),
                )
            out.append((Certification.from_row(row), course))
        return out

    def insert_certification(self, values: Mapping[str, Any]) -> Certification:
        data = self._pick(values, CERTIFICATION_COLUMNS)
        worker_id = data.get("worker_id")
        course_id = data.get("course_id")
        if not worker_id or self.get_worker_by_id(worker_id) is None:
            raise StoreError(f"unknown worker {worker_id!r}")
        course = self.get_course(course_id) if course_id else None
        if course is None:
            raise StoreError(f"unknown course {course_id!r}")
        if not data.get("name"):
            data["name"] = course.name
        if not data.get("status"):
            data["status"] = "active"
        row_id = _new_id()
        self._insert("certifications", {"id": row_id, **data})
        created = self.get_certification(row_id)
        if created is None:  # pragma: no cover
            raise StoreError(f"certification {row_id} vanished after insert")
        return created

    def update_certification(self, cert_id: str, partial: Mapping[str, Any]) -> Optional[Certification]:
        if self.get_certification(cert_id) is None:
            return None
        data = self._pick(partial, CERTIFICATION_COLUMNS)
        data.pop("worker_id", None)
        if "status" in data and not data["status"]:
            data.pop("status")
        self._update("certifications", cert_id, data)
        return self.get_certification(cert_id)

    def delete_certification(self, cert_id: str) -> bool:
        if self.get_certification(cert_id) is None:
            return False
        self._execute("DELETE FROM certifications WHERE id = ?", [cert_id])
        return True


__all__ = ["RegistryStore", "StoreError", "DuplicateKeyError"]
