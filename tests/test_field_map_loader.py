from worker_registry import field_map


def test_builtin_synonyms_keep_order():
    fields = dict(field_map.get_worker_fields())
    assert fields["workers_id"][0] == "Workers ID"
    assert fields["name"][:2] == ("Name of Workers", "Name")
    assert "NRIC / Fin No" in fields["nric_fin_no"]


def test_accepted_variations_lists_required_fields():
    variations = field_map.accepted_variations()
    assert set(variations) == {"Workers ID", "Name of Workers"}
    assert "workersId" in variations["Workers ID"]


def test_yaml_overrides_extend_tables(monkeypatch, tmp_path):
    yaml_path = tmp_path / "field_map.yaml"
    yaml_path.write_text(
        "workers:\n"
        "  workers_id: [\"Emp ID\", \"Workers ID\"]\n"
        "course_columns:\n"
        "  Boomlift: Boomlift Operator\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("WORKER_REGISTRY_FIELD_MAP", str(yaml_path))
    field_map.clear_cache()

    fields = dict(field_map.get_worker_fields())
    assert fields["workers_id"][0] == "Workers ID"
    assert fields["workers_id"][-1] == "Emp ID"
    assert fields["workers_id"].count("Workers ID") == 1

    columns = field_map.get_course_columns()
    assert columns["Boomlift"] == "Boomlift Operator"
    assert columns["First Aid"] == "First Aid"


def test_missing_yaml_means_builtins_only():
    assert field_map.get_course_columns() == field_map.COURSE_COLUMNS


def test_malformed_yaml_falls_back_to_builtins(monkeypatch, tmp_path, caplog):
    yaml_path = tmp_path / "field_map.yaml"
    yaml_path.write_text("workers: [unclosed\n", encoding="utf-8")
    monkeypatch.setenv("WORKER_REGISTRY_FIELD_MAP", str(yaml_path))
    field_map.clear_cache()

    with caplog.at_level("WARNING", logger="worker_registry.field_map"):
        assert field_map.get_course_columns() == field_map.COURSE_COLUMNS
        fields = dict(field_map.get_worker_fields())
    assert fields["workers_id"][0] == "Workers ID"
    assert "Ignoring unreadable field map" in caplog.text
