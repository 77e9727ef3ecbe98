from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

import pandas as pd

from .models import WorkerWithCertifications
from .status import (
    ACTIVE,
    EXPIRED,
    EXPIRING_SOON,
    EXPIRING_SOON_DAYS,
    days_until,
    derive_status,
    permit_state,
    with_derived_status,
)
from .store import RegistryStore


@dataclass
class DashboardStats:
    total_workers: int
    active_courses: int
    total_certifications: int
    active: int
    expiring_soon: int
    expired: int
    permit_expiring_soon: int
    permit_expired: int

    def to_dict(self) -> Dict[str, int]:
        keys = {
            "total_workers": "totalWorkers",
            "active_courses": "activeCourses",
            "total_certifications": "totalCertifications",
            "active": "activeCertifications",
            "expiring_soon": "expiringSoon",
            "expired": "expired",
            "permit_expiring_soon": "permitExpiringSoon",
            "permit_expired": "permitExpired",
        }
        return {keys[k]: int(v) for k, v in asdict(self).items()}


def _today(now: Optional[date]) -> date:
    if now is None:
        return date.today()
    return now.date() if isinstance(now, datetime) else now


def certification_frame(store: RegistryStore, now: Optional[date] = None) -> pd.DataFrame:
    """All certifications with ``days_to_expiry`` and a freshly derived ``status``."""
    as_of = _today(now)
    certs = store.list_all_certifications()
    frame = pd.DataFrame(
        [
            {
                "id": c.id,
                "worker_id": c.worker_id,
                "course_id": c.course_id,
                "name": c.name,
                "certificate_number": c.certificate_number,
                "issued_date": c.issued_date,
                "expiry_date": c.expiry_date,
            }
            for c in certs
        ],
        columns=["id", "worker_id", "course_id", "name", "certificate_number", "issued_date", "expiry_date"],
    )
    expiries = [c.expiry_date for c in certs]
    frame["days_to_expiry"] = pd.Series(
        [days_until(e, as_of) if e is not None else None for e in expiries], dtype="Int64"
    )
    frame["status"] = pd.Series([derive_status(e, as_of) for e in expiries], dtype="string")
    return frame


def compute_stats(store: RegistryStore, now: Optional[date] = None) -> DashboardStats:
    """Dashboard counts, recomputed from the store on every call."""
    as_of = _today(now)
    workers = store.list_active_workers()
    courses = store.list_active_courses()
    certs = certification_frame(store, as_of)
    by_status = certs["status"].value_counts()
    permits = [permit_state(w.date_of_expiry, as_of) for w in workers]
    return DashboardStats(
        total_workers=len(workers),
        active_courses=len(courses),
        total_certifications=len(certs),
        active=int(by_status.get(ACTIVE, 0)),
        expiring_soon=int(by_status.get(EXPIRING_SOON, 0)),
        expired=int(by_status.get(EXPIRED, 0)),
        permit_expiring_soon=permits.count(EXPIRING_SOON),
        permit_expired=permits.count(EXPIRED),
    )


def expiring_certifications(
    store: RegistryStore, days: int = EXPIRING_SOON_DAYS, now: Optional[date] = None
) -> List[Dict[str, Any]]:
    """Certifications expiring on or before ``now + days`` (already expired
    ones included), each joined with its worker and course."""
    as_of = _today(now)
    cutoff = as_of + timedelta(days=days)
    workers = {w.id: w for w in store.list_active_workers()}
    out: List[Dict[str, Any]] = []
    for cert, course in store.list_certifications_with_courses():
        if cert.expiry_date is None or cert.expiry_date > cutoff:
            continue
        worker = workers.get(cert.worker_id) or store.get_worker_by_id(cert.worker_id)
        if worker is None or course is None:
            continue
        item = with_derived_status(cert, as_of).to_dict()
        item["daysToExpiry"] = days_until(cert.expiry_date, as_of)
        item["worker"] = worker.to_dict()
        item["course"] = course.to_dict()
        out.append(item)
    out.sort(key=lambda item: (item["daysToExpiry"], item["worker"]["nameOfWorkers"]))
    return out


def workers_with_certifications(
    store: RegistryStore, now: Optional[date] = None
) -> List[WorkerWithCertifications]:
    """Active workers with their certifications, statuses derived as of ``now``."""
    as_of = _today(now)
    grouped: Dict[str, list] = {}
    for cert, course in store.list_certifications_with_courses():
        grouped.setdefault(cert.worker_id, []).append((with_derived_status(cert, as_of), course))
    return [
        WorkerWithCertifications(worker=w, certifications=grouped.get(w.id, []))
        for w in store.list_active_workers()
    ]


def worker_with_certifications(
    store: RegistryStore, worker_id: str, now: Optional[date] = None
) -> Optional[WorkerWithCertifications]:
    worker = store.get_worker_by_id(worker_id)
    if worker is None:
        return None
    as_of = _today(now)
    certs = [
        (with_derived_status(cert, as_of), course)
        for cert, course in store.list_certifications_with_courses(worker_id)
    ]
    return WorkerWithCertifications(worker=worker, certifications=certs)


__all__ = [
    "DashboardStats",
    "certification_frame",
    "compute_stats",
    "expiring_certifications",
    "workers_with_certifications",
    "worker_with_certifications",
]
