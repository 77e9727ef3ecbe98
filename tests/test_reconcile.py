import io
from datetime import date

import pandas as pd
import pytest

from worker_registry.catalog import seed_courses
from worker_registry.reconcile import NoValidRowsError, import_rows, import_workbook
from worker_registry.store import RegistryStore, StoreError

TODAY = date(2025, 1, 1)


@pytest.fixture
def store(tmp_path):
    s = RegistryStore(tmp_path / "registry.duckdb")
    seed_courses(s)
    return s


def _three_rows():
    return [
        {"Workers ID": "W001", "Name of Workers": "Alice", "Designation": "Fitter", "First Aid": "15/06/2025"},
        {"Workers ID": "W002", "Name of Workers": None, "Designation": None, "First Aid": None},
        {"Workers ID": "W001", "Name of Workers": "Alice", "Designation": "Supervisor", "First Aid": None},
    ]


def _counts(store):
    return len(store.list_active_workers()), len(store.list_all_certifications())


def test_three_row_sheet(store):
    summary = import_rows(store, _three_rows(), today=TODAY)

    assert summary.workers_processed == 2
    assert summary.skipped == 1
    assert summary.total_rows == 3
    assert summary.certifications_created == 1

    worker = store.get_worker_by_external_id("W001")
    assert worker.designation == "Supervisor"
    certs = store.list_certifications_for_worker(worker.id)
    assert [(c.name, c.expiry_date, c.issued_date) for c in certs] == [
        ("First Aid", date(2025, 6, 15), TODAY)
    ]
    assert _counts(store) == (1, 1)

    payload = summary.to_dict()
    assert payload["stats"] == {
        "workersProcessed": 2,
        "certificationsCreated": 1,
        "skipped": 1,
        "totalRows": 3,
    }
    assert payload["message"] == (
        "Successfully processed 2 workers and 1 certifications (1 invalid rows skipped)"
    )


def test_reimport_changes_no_counts(store):
    import_rows(store, _three_rows(), today=TODAY)
    before = _counts(store)
    second = import_rows(store, _three_rows(), today=TODAY)
    assert _counts(store) == before
    assert second.certifications_created == 0
    assert second.certifications_updated == 1


def test_reimport_overwrites_expiry(store):
    import_rows(store, [{"Workers ID": "W001", "Name": "Alice", "First Aid": "15/06/2025"}], today=TODAY)
    import_rows(store, [{"Workers ID": "W001", "Name": "Alice", "First Aid": "15/06/2027"}], today=TODAY)
    worker = store.get_worker_by_external_id("W001")
    (cert,) = store.list_certifications_for_worker(worker.id)
    assert cert.expiry_date == date(2027, 6, 15)


def test_bcssc_anywhere_creates_certificate_without_expiry(store):
    rows = [{"Workers ID": "W001", "Name": "Alice", "Remarks": "BCSSC done"}]
    import_rows(store, rows, today=TODAY)
    worker = store.get_worker_by_external_id("W001")
    (cert,) = store.list_certifications_for_worker(worker.id)
    assert cert.name == "BCSSC/CSC"
    assert cert.expiry_date is None
    assert cert.status == "active"


def test_soft_deleted_worker_is_revived_by_import(store):
    import_rows(store, [{"Workers ID": "W001", "Name": "Alice"}], today=TODAY)
    worker = store.get_worker_by_external_id("W001")
    store.soft_delete_worker(worker.id)
    import_rows(store, [{"Workers ID": "W001", "Name": "Alice"}], today=TODAY)
    assert [w.workers_id for w in store.list_active_workers()] == ["W001"]


def test_no_valid_rows_raises_with_diagnostics(store):
    rows = [{"ID": "x", "Full Name": "y"}, {"ID": None, "Full Name": "z"}]
    with pytest.raises(NoValidRowsError) as info:
        import_rows(store, rows, today=TODAY, headers=["ID", "Full Name"])
    payload = info.value.payload
    assert payload["message"] == "No valid workers found in Excel file"
    details = payload["details"]
    assert details["totalRows"] == 2
    assert details["availableColumns"] == ["ID", "Full Name"]
    assert len(details["issues"]) == 2
    assert details["requiredColumns"] == ["Workers ID", "Name of Workers"]
    assert "workersId" in details["acceptedVariations"]["Workers ID"]
    assert _counts(store) == (0, 0)


def test_import_workbook_from_bytes(store):
    df = pd.DataFrame(
        [
            {"Workers ID": "W001", "Name of Workers": "Alice", "First Aid": "15/06/2025"},
            {"Workers ID": "W002", "Name of Workers": "Bob", "First Aid": None},
        ]
    )
    bio = io.BytesIO()
    with pd.ExcelWriter(bio, engine="openpyxl") as xw:
        df.to_excel(xw, index=False, sheet_name="Workers")

    summary = import_workbook(store, bio.getvalue(), filename="upload.xlsx", today=TODAY)
    assert summary.workers_processed == 2
    assert summary.certifications_created == 1
    assert _counts(store) == (2, 1)


def test_certification_failure_does_not_stop_batch(store, monkeypatch):
    insert = store.insert_certification

    def flaky(values):
        if values["name"] == "First Aid":
            raise StoreError("boom")
        return insert(values)

    monkeypatch.setattr(store, "insert_certification", flaky)
    rows = [
        {"Workers ID": "W1", "Name": "Alice", "First Aid": "15/06/2025", "SPIC": "15/06/2025"},
        {"Workers ID": "W2", "Name": "Bob", "SPIC": "15/06/2025"},
    ]
    summary = import_rows(store, rows, today=TODAY)

    assert summary.workers_processed == 2
    assert summary.certifications_created == 2
    assert summary.failures == ["Row 2: certification First Aid for W1: boom"]
    assert _counts(store) == (2, 2)


def test_duplicate_worker_missing_on_lookup_is_skipped(store, monkeypatch):
    store.insert_worker({"workers_id": "W1", "name": "Alice"})
    monkeypatch.setattr(store, "get_worker_by_external_id", lambda workers_id: None)
    rows = [
        {"Workers ID": "W1", "Name": "Alice", "First Aid": "15/06/2025"},
        {"Workers ID": "W2", "Name": "Bob", "First Aid": "15/06/2025"},
    ]
    summary = import_rows(store, rows, today=TODAY)

    assert [w.workers_id for w in summary.workers] == ["W2"]
    assert summary.failures == ["Row 2: worker W1 not found for update"]
    assert summary.certifications_created == 1
    assert _counts(store) == (2, 1)
