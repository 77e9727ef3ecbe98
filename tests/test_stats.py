from datetime import date, timedelta

import pytest

from worker_registry.stats import (
    certification_frame,
    compute_stats,
    expiring_certifications,
    worker_with_certifications,
    workers_with_certifications,
)
from worker_registry.store import RegistryStore

TODAY = date(2025, 1, 1)


@pytest.fixture
def store(tmp_path):
    s = RegistryStore(tmp_path / "registry.duckdb")
    course = s.insert_course({"name": "First Aid"})
    other = s.insert_course({"name": "SPIC"})
    s.insert_course({"name": "Retired", "is_active": False})

    alice = s.insert_worker(
        {"workers_id": "W001", "name": "Alice", "date_of_expiry": TODAY + timedelta(days=20)}
    )
    bob = s.insert_worker({"workers_id": "W002", "name": "Bob", "date_of_expiry": TODAY})
    gone = s.insert_worker({"workers_id": "W003", "name": "Gone"})
    s.soft_delete_worker(gone.id)

    # stored status labels are stale on purpose
    s.insert_certification(
        {"worker_id": alice.id, "course_id": course.id, "expiry_date": TODAY - timedelta(days=1), "status": "active"}
    )
    s.insert_certification(
        {"worker_id": alice.id, "course_id": other.id, "expiry_date": TODAY + timedelta(days=10), "status": "active"}
    )
    s.insert_certification({"worker_id": bob.id, "course_id": course.id, "expiry_date": None, "status": "expired"})
    s.insert_certification(
        {"worker_id": bob.id, "course_id": other.id, "expiry_date": TODAY + timedelta(days=200)}
    )
    return s


def test_certification_frame_derives_status(store):
    frame = certification_frame(store, TODAY)
    assert len(frame) == 4
    assert sorted(frame["status"].tolist()) == ["active", "active", "expired", "expiring_soon"]
    assert frame["days_to_expiry"].isna().sum() == 1


def test_compute_stats(store):
    stats = compute_stats(store, TODAY)
    assert stats.to_dict() == {
        "totalWorkers": 2,
        "activeCourses": 2,
        "totalCertifications": 4,
        "activeCertifications": 2,
        "expiringSoon": 1,
        "expired": 1,
        "permitExpiringSoon": 1,
        "permitExpired": 1,
    }


def test_expiring_includes_expired_and_sorts_by_days(store):
    items = expiring_certifications(store, 30, TODAY)
    assert [(i["name"], i["daysToExpiry"], i["status"]) for i in items] == [
        ("First Aid", -1, "expired"),
        ("SPIC", 10, "expiring_soon"),
    ]
    assert items[0]["worker"]["workersId"] == "W001"
    assert items[0]["course"]["name"] == "First Aid"
    assert len(expiring_certifications(store, 365, TODAY)) == 3


def test_workers_with_certifications_embed_courses(store):
    items = workers_with_certifications(store, TODAY)
    assert [i.worker.workers_id for i in items] == ["W001", "W002"]
    payload = items[1].to_dict()
    assert payload["nameOfWorkers"] == "Bob"
    statuses = sorted(c["status"] for c in payload["certifications"])
    assert statuses == ["active", "active"]
    assert all(c["course"]["name"] for c in payload["certifications"])


def test_single_worker_view(store):
    alice = store.get_worker_by_external_id("W001")
    item = worker_with_certifications(store, alice.id, TODAY)
    assert len(item.certifications) == 2
    assert worker_with_certifications(store, "missing", TODAY) is None
