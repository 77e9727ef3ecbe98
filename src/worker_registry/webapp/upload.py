from __future__ import annotations

from typing import Any

from flask import Blueprint, current_app, jsonify, request

from ..reconcile import NoValidRowsError, import_workbook
from .routes import _store

upload_bp = Blueprint("upload", __name__)


@upload_bp.route("/excel", methods=["POST"])
def import_excel() -> Any:
    file_obj = request.files.get("file")
    if file_obj is None or not file_obj.filename:
        return jsonify({"message": "No file uploaded"}), 400

    current_app.logger.info("Processing Excel file: %s", file_obj.filename)
    try:
        summary = import_workbook(_store(), file_obj.read(), filename=file_obj.filename)
    except NoValidRowsError as exc:
        current_app.logger.info("No valid rows in %s", file_obj.filename)
        return jsonify(exc.payload), 400
    except Exception as exc:
        current_app.logger.exception("Excel import failed", exc_info=exc)
        return jsonify({"message": "Failed to import Excel file", "error": str(exc)}), 500

    return jsonify(summary.to_dict())


__all__ = ["upload_bp"]
