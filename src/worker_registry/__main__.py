from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from .catalog import seed_courses
from .field_map import SPIC_COLUMN, get_course_columns, get_worker_fields
from .io_excel import list_sheets, read_first_sheet
from .paths import resolve_db_path, resolve_log_path
from .reconcile import NoValidRowsError, import_workbook
from .stats import compute_stats, expiring_certifications
from .status import EXPIRING_SOON_DAYS
from .store import RegistryStore, StoreError

logger = logging.getLogger("worker_registry")


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    fmt = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    root = logging.getLogger()
    root.setLevel(level)
    if root.handlers:
        return
    stderr = logging.StreamHandler(sys.stderr)
    stderr.setFormatter(fmt)
    stderr.setLevel(level if verbose else logging.WARNING)
    root.addHandler(stderr)
    try:
        fh = logging.FileHandler(resolve_log_path("app.log"), encoding="utf-8")
    except OSError as exc:
        print(f"Log file unavailable: {exc}", file=sys.stderr)
        return
    fh.setFormatter(fmt)
    root.addHandler(fh)


def _store_from_args(args: argparse.Namespace) -> RegistryStore:
    store = RegistryStore(resolve_db_path(getattr(args, "db", None)))
    seed_courses(store)
    return store


def cmd_init(args: argparse.Namespace) -> int:
    db_path = resolve_db_path(args.db)
    store = RegistryStore(db_path)
    seeded = seed_courses(store)
    print(f"Database: {db_path}")
    print(f"Courses seeded: {seeded} (catalog size {store.count_courses()})")
    return 0


def cmd_inspect(args: argparse.Namespace) -> int:
    xls = Path(args.xls)
    if not xls.exists():
        print(f"File not found: {xls}", file=sys.stderr)
        return 2
    print("Sheets:", ", ".join(list_sheets(xls)))
    sheet = read_first_sheet(xls)
    print(f"Sheet: {sheet.sheet} | rows={len(sheet.rows)} cols={len(sheet.headers)}")
    print("  Headers:", ", ".join(sheet.headers))
    present = set(sheet.headers)
    for field, headers in get_worker_fields():
        hit = next((h for h in headers if h in present), None)
        print(f"  {field}: {hit if hit is not None else '-'}")
    courses = [c for c in get_course_columns() if c in present]
    if SPIC_COLUMN in present:
        courses.append(SPIC_COLUMN)
    print("  Course columns:", ", ".join(courses) if courses else "-")
    return 0


def cmd_import(args: argparse.Namespace) -> int:
    xls = Path(args.xls)
    if not xls.exists():
        print(f"File not found: {xls}", file=sys.stderr)
        return 2
    store = _store_from_args(args)
    try:
        summary = import_workbook(store, xls)
    except NoValidRowsError as exc:
        print(exc.payload["message"], file=sys.stderr)
        print(json.dumps(exc.payload["details"], ensure_ascii=False, indent=2), file=sys.stderr)
        return 2
    print(summary.message)
    for issue in summary.issues:
        print(f"  skipped: {issue}", file=sys.stderr)
    for failure in summary.failures:
        print(f"  failed: {failure}", file=sys.stderr)
    return 0


def cmd_stats(args: argparse.Namespace) -> int:
    store = _store_from_args(args)
    print(json.dumps(compute_stats(store).to_dict(), indent=2))
    return 0


def cmd_expiring(args: argparse.Namespace) -> int:
    store = _store_from_args(args)
    items = expiring_certifications(store, args.days)
    if not items:
        print(f"No certifications expiring within {args.days} days.")
        return 0
    for item in items:
        print(
            f"{item['expiryDate']}  {item['daysToExpiry']:>5}d  {item['status']:<13}  "
            f"{item['worker']['workersId']}  {item['worker']['nameOfWorkers']}  {item['course']['name']}"
        )
    return 0


def cmd_export(args: argparse.Namespace) -> int:
    from .export import export_csv, export_xlsx

    out = Path(args.out)
    store = _store_from_args(args)
    if out.suffix.lower() == ".csv":
        n = export_csv(store, out)
    elif out.suffix.lower() == ".xlsx":
        n = export_xlsx(store, out)
    else:
        print(f"Unsupported export format: {out.suffix or '(none)'}; use .csv or .xlsx", file=sys.stderr)
        return 2
    print(f"Wrote {n} workers to {out}")
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    from .webapp import run as run_app

    run_app(host=args.host, port=int(args.port), db_path=args.db)
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="worker_registry", description="Worker certification registry")
    p.add_argument("--db", help="Path to DuckDB file (default: env WORKER_REGISTRY_DB)")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging on stderr")
    sub = p.add_subparsers(dest="cmd", required=True)

    pn = sub.add_parser("init", help="Create the schema and seed the course catalog")
    pn.set_defaults(func=cmd_init)

    pi = sub.add_parser("inspect", help="Show headers and recognized fields of sheet 1")
    pi.add_argument("xls", help="Path to XLS/XLSX file")
    pi.set_defaults(func=cmd_inspect)

    pm = sub.add_parser("import", help="Import workers and certifications from sheet 1")
    pm.add_argument("xls", help="Path to XLS/XLSX file")
    pm.set_defaults(func=cmd_import)

    ps = sub.add_parser("stats", help="Print dashboard counts as JSON")
    ps.set_defaults(func=cmd_stats)

    pe = sub.add_parser("expiring", help="List certifications expiring within N days")
    pe.add_argument("--days", type=int, default=EXPIRING_SOON_DAYS)
    pe.set_defaults(func=cmd_expiring)

    px = sub.add_parser("export", help="Export the worker list to CSV or XLSX")
    px.add_argument("out", help="Output file (.csv or .xlsx)")
    px.set_defaults(func=cmd_export)

    pa = sub.add_parser("serve", help="Run the JSON API")
    pa.add_argument("--host", default="127.0.0.1")
    pa.add_argument("--port", type=int, default=8766)
    pa.set_defaults(func=cmd_serve)
    return p


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)
    try:
        return args.func(args)
    except StoreError as exc:
        logger.debug("Store failure", exc_info=exc)
        print(f"Database error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
