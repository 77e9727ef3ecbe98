from __future__ import annotations

import csv
import io
from datetime import date
from typing import Any, Dict, List, Mapping

from flask import Blueprint, Response, current_app, jsonify, request, send_file

from ..export import export_filename, summary_frame, worker_export_frame
from ..io_excel import write_xlsx
from ..models import parse_certification_payload, parse_course_payload, parse_worker_payload
from ..stats import (
    compute_stats,
    expiring_certifications,
    worker_with_certifications,
    workers_with_certifications,
)
from ..status import derive_status, with_derived_status
from ..store import DuplicateKeyError, RegistryStore, StoreError

STORE_KEY = "worker_registry.store"
XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

api_bp = Blueprint("api", __name__)


def _store() -> RegistryStore:
    return current_app.extensions[STORE_KEY]


def _json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _error(message: str, status: int = 400, **extra: Any):
    payload: Dict[str, Any] = {"message": message}
    payload.update(extra)
    return jsonify(payload), status


def _server_error(message: str, exc: Exception):
    current_app.logger.exception(message, exc_info=exc)
    return _error(message, 500)


def _duplicate_message(exc: DuplicateKeyError) -> str:
    return f'Workers ID "{exc.key}" already exists. Please use a different Workers ID.'


# --- workers ---------------------------------------------------------------


@api_bp.route("/workers", methods=["GET"])
def list_workers() -> Any:
    try:
        items = workers_with_certifications(_store())
    except StoreError as exc:
        return _server_error("Failed to fetch workers", exc)
    return jsonify([item.to_dict() for item in items])


@api_bp.route("/workers/search", methods=["GET"])
def search_workers() -> Any:
    query = (request.args.get("q") or "").strip()
    if not query:
        return _error("Search query is required")
    try:
        workers = _store().search_workers(query)
    except StoreError as exc:
        return _server_error("Failed to search workers", exc)
    return jsonify([w.to_dict() for w in workers])


@api_bp.route("/workers/<worker_id>", methods=["GET"])
def get_worker(worker_id: str) -> Any:
    try:
        item = worker_with_certifications(_store(), worker_id)
    except StoreError as exc:
        return _server_error("Failed to fetch worker", exc)
    if item is None:
        return _error("Worker not found", 404)
    return jsonify(item.to_dict())


def _certification_values(worker_id: str, raw: Any) -> Dict[str, Any]:
    if not isinstance(raw, Mapping):
        raise ValueError("certification entries must be objects")
    data = dict(raw)
    data["workerId"] = worker_id
    if not (data.get("issuedDate") or data.get("issued_date")):
        data["issuedDate"] = date.today().isoformat()
    values = parse_certification_payload(data)
    if not raw.get("status"):
        values["status"] = derive_status(values.get("expiry_date"))
    return values


@api_bp.route("/workers", methods=["POST"])
def create_worker() -> Any:
    body = _json_body()
    certs_raw = body.get("certifications") or []
    try:
        values = parse_worker_payload(body.get("worker", body))
        if not isinstance(certs_raw, list):
            raise ValueError("certifications must be a list")
    except ValueError as exc:
        return _error("Validation error", 400, errors=[str(exc)])

    store = _store()
    try:
        worker = store.insert_worker(values)
    except DuplicateKeyError as exc:
        return _error(_duplicate_message(exc), 409)
    except StoreError as exc:
        return _server_error("Failed to create worker", exc)

    created: List[Dict[str, Any]] = []
    for raw in certs_raw:
        try:
            cert = store.insert_certification(_certification_values(worker.id, raw))
        except (ValueError, StoreError) as exc:
            current_app.logger.warning("Skipping certification for worker %s: %s", worker.workers_id, exc)
            continue
        created.append(cert.to_dict())
    return jsonify({"worker": worker.to_dict(), "certifications": created}), 201


@api_bp.route("/workers/<worker_id>", methods=["PATCH"])
def update_worker(worker_id: str) -> Any:
    try:
        values = parse_worker_payload(_json_body(), partial=True)
        worker = _store().update_worker(worker_id, values)
    except DuplicateKeyError as exc:
        return _error(_duplicate_message(exc), 400)
    except (ValueError, StoreError) as exc:
        current_app.logger.info("Rejected worker update %s: %s", worker_id, exc)
        return _error("Invalid worker data")
    if worker is None:
        return _error("Worker not found", 404)
    return jsonify(worker.to_dict())


@api_bp.route("/workers/<worker_id>", methods=["DELETE"])
def delete_worker(worker_id: str) -> Any:
    try:
        deleted = _store().soft_delete_worker(worker_id)
    except StoreError as exc:
        return _server_error("Failed to delete worker", exc)
    if not deleted:
        return _error("Worker not found", 404)
    return Response(status=204)


# --- courses ---------------------------------------------------------------


@api_bp.route("/courses", methods=["GET"])
def list_courses() -> Any:
    try:
        courses = _store().list_active_courses()
    except StoreError as exc:
        return _server_error("Failed to fetch courses", exc)
    return jsonify([c.to_dict() for c in courses])


@api_bp.route("/courses", methods=["POST"])
def create_course() -> Any:
    try:
        values = parse_course_payload(_json_body())
    except ValueError as exc:
        return _error("Validation error", 400, errors=[str(exc)])
    store = _store()
    try:
        existing = {c.name.lower() for c in store.list_active_courses()}
        if values["name"].lower() in existing:
            return _error("Course with this name already exists", 409)
        course = store.insert_course(values)
    except StoreError as exc:
        return _server_error("Failed to create course", exc)
    current_app.logger.info("Course created: %s", course.name)
    return jsonify(course.to_dict()), 201


@api_bp.route("/courses/<course_id>", methods=["PATCH"])
def update_course(course_id: str) -> Any:
    try:
        values = parse_course_payload(_json_body(), partial=True)
        course = _store().update_course(course_id, values)
    except (ValueError, StoreError) as exc:
        current_app.logger.info("Rejected course update %s: %s", course_id, exc)
        return _error("Invalid course data")
    if course is None:
        return _error("Course not found", 404)
    return jsonify(course.to_dict())


@api_bp.route("/courses/<course_id>", methods=["DELETE"])
def delete_course(course_id: str) -> Any:
    try:
        deleted = _store().soft_delete_course(course_id)
    except StoreError as exc:
        return _server_error("Failed to delete course", exc)
    if not deleted:
        return _error("Course not found", 404)
    return Response(status=204)


# --- certifications --------------------------------------------------------


@api_bp.route("/certifications", methods=["GET"])
def list_certifications() -> Any:
    try:
        certs = _store().list_all_certifications()
    except StoreError as exc:
        return _server_error("Failed to fetch certifications", exc)
    today = date.today()
    return jsonify([with_derived_status(c, today).to_dict() for c in certs])


@api_bp.route("/certifications/expiring/<int:days>", methods=["GET"])
def list_expiring(days: int) -> Any:
    try:
        items = expiring_certifications(_store(), days)
    except StoreError as exc:
        return _server_error("Failed to fetch expiring certifications", exc)
    return jsonify(items)


@api_bp.route("/certifications", methods=["POST"])
def create_certification() -> Any:
    body = _json_body()
    try:
        values = parse_certification_payload(body)
        if not body.get("status"):
            values["status"] = derive_status(values.get("expiry_date"))
        cert = _store().insert_certification(values)
    except (ValueError, StoreError) as exc:
        current_app.logger.info("Rejected certification: %s", exc)
        return _error("Invalid certification data")
    return jsonify(cert.to_dict()), 201


@api_bp.route("/certifications/<cert_id>", methods=["DELETE"])
def delete_certification(cert_id: str) -> Any:
    try:
        deleted = _store().delete_certification(cert_id)
    except StoreError as exc:
        return _server_error("Failed to delete certification", exc)
    if not deleted:
        return _error("Certification not found", 404)
    return Response(status=204)


# --- stats / export --------------------------------------------------------


@api_bp.route("/stats", methods=["GET"])
def stats() -> Any:
    try:
        result = compute_stats(_store())
    except StoreError as exc:
        return _server_error("Failed to fetch statistics", exc)
    return jsonify(result.to_dict())


@api_bp.route("/export/workers-csv", methods=["GET"])
def export_workers_csv() -> Any:
    try:
        df = worker_export_frame(_store())
    except StoreError as exc:
        return _server_error("Failed to export CSV data", exc)
    buf = io.StringIO()
    df.to_csv(buf, index=False, quoting=csv.QUOTE_ALL)
    body = "\ufeff" + buf.getvalue()
    return Response(
        body,
        mimetype="text/csv",
        headers={"Content-Disposition": 'attachment; filename="worker_list.csv"'},
    )


@api_bp.route("/export/workers", methods=["GET"])
def export_workers_xlsx() -> Any:
    try:
        df = worker_export_frame(_store())
    except StoreError as exc:
        return _server_error("Failed to export workers data", exc)
    buf = io.BytesIO()
    write_xlsx({"Worker Data": df, "Export Info": summary_frame(df)}, buf)
    buf.seek(0)
    resp = send_file(
        buf,
        mimetype=XLSX_MIMETYPE,
        as_attachment=True,
        download_name=export_filename(),
    )
    resp.headers["Cache-Control"] = "private, no-cache, no-store, must-revalidate"
    return resp
