import pytest

from worker_registry import field_map


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    # Keep tests away from a developer's data dir and field map overrides
    monkeypatch.setenv("WORKER_REGISTRY_HOME", str(tmp_path / "home"))
    monkeypatch.delenv("WORKER_REGISTRY_DB", raising=False)
    monkeypatch.setenv("WORKER_REGISTRY_FIELD_MAP", str(tmp_path / "no-field-map.yaml"))
    field_map.clear_cache()
    yield
    field_map.clear_cache()
