import argparse
import json

import pandas as pd

from worker_registry.__main__ import build_parser, main


def _subparser(name):
    parser = build_parser()
    sub_actions = [a for a in parser._actions if isinstance(a, argparse._SubParsersAction)]
    assert sub_actions, "no subparsers action found"
    return sub_actions[0].choices.get(name)


def test_all_subcommands_registered():
    for name in ("init", "inspect", "import", "stats", "expiring", "export", "serve"):
        assert _subparser(name) is not None, f"{name} subcommand missing"


def test_global_options_and_defaults():
    args = build_parser().parse_args(["--db", "x.duckdb", "-v", "expiring"])
    assert args.db == "x.duckdb"
    assert args.verbose is True
    assert args.days == 60
    serve = build_parser().parse_args(["serve"])
    assert (serve.host, serve.port) == ("127.0.0.1", 8766)


def _write_sheet(path, rows):
    with pd.ExcelWriter(path, engine="openpyxl") as xw:
        pd.DataFrame(rows).to_excel(xw, index=False, sheet_name="Workers")


def test_import_stats_and_export(tmp_path, capsys):
    db = str(tmp_path / "cli.duckdb")
    xls = tmp_path / "workers.xlsx"
    _write_sheet(xls, [{"Workers ID": "W001", "Name of Workers": "Alice", "First Aid": "15/06/2099"}])

    assert main(["--db", db, "init"]) == 0
    assert main(["--db", db, "import", str(xls)]) == 0
    assert "Successfully processed 1 workers" in capsys.readouterr().out

    assert main(["--db", db, "stats"]) == 0
    stats = json.loads(capsys.readouterr().out)
    assert stats["totalWorkers"] == 1
    assert stats["activeCourses"] == 29

    out = tmp_path / "export.csv"
    assert main(["--db", db, "export", str(out)]) == 0
    assert out.read_bytes().startswith(b"\xef\xbb\xbf")
    assert main(["--db", db, "export", str(tmp_path / "export.txt")]) == 2


def test_import_without_valid_rows_exits_2(tmp_path, capsys):
    xls = tmp_path / "bad.xlsx"
    _write_sheet(xls, [{"Employee": "x"}])
    assert main(["--db", str(tmp_path / "cli.duckdb"), "import", str(xls)]) == 2
    assert "No valid workers found" in capsys.readouterr().err


def test_missing_file_exits_2(tmp_path):
    assert main(["--db", str(tmp_path / "cli.duckdb"), "inspect", str(tmp_path / "nope.xlsx")]) == 2
