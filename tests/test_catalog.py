from worker_registry.catalog import DEFAULT_COURSES, seed_courses
from worker_registry.store import RegistryStore


def test_seed_only_when_empty(tmp_path):
    store = RegistryStore(tmp_path / "registry.duckdb")
    assert len(DEFAULT_COURSES) == 29
    assert seed_courses(store) == 29
    assert seed_courses(store) == 0
    assert store.count_courses() == 29


def test_seed_skips_non_empty_catalog(tmp_path):
    store = RegistryStore(tmp_path / "registry.duckdb")
    store.insert_course({"name": "Custom"})
    assert seed_courses(store) == 0
    assert [c.name for c in store.list_active_courses()] == ["Custom"]


def test_soft_deleted_courses_still_block_reseeding(tmp_path):
    store = RegistryStore(tmp_path / "registry.duckdb")
    seed_courses(store, names=["First Aid"])
    course = store.list_active_courses()[0]
    store.soft_delete_course(course.id)
    assert seed_courses(store) == 0
