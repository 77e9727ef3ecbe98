from __future__ import annotations

from pathlib import Path
from typing import Any

from flask import Flask, jsonify, redirect, url_for

from ..catalog import seed_courses
from ..paths import resolve_db_path
from ..store import RegistryStore
from .routes import STORE_KEY, api_bp
from .upload import upload_bp

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8766


def create_app(*, db_path: Path | str | None = None, seed: bool = True) -> Flask:
    """Flask application factory for the worker registry JSON API."""

    app = Flask(__name__)
    resolved = resolve_db_path(db_path)
    app.config["WORKER_REGISTRY_DB_PATH"] = str(resolved)
    app.json.ensure_ascii = False
    app.config["MAX_CONTENT_LENGTH"] = 16 * 1024 * 1024

    store = RegistryStore(resolved)
    if seed:
        seed_courses(store)
    app.extensions[STORE_KEY] = store

    app.register_blueprint(api_bp, url_prefix="/api")
    app.register_blueprint(upload_bp, url_prefix="/api/import")

    @app.route("/")
    def root_redirect() -> Any:
        return redirect(url_for("api.stats"))

    _register_error_handlers(app)
    return app


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(404)
    def _nf(e):
        return jsonify({"message": "Not found"}), 404

    @app.errorhandler(405)
    def _method(e):
        return jsonify({"message": "Method not allowed"}), 405

    @app.errorhandler(413)
    def _too_large(e):
        return jsonify({"message": "Uploaded file is too large"}), 413

    @app.errorhandler(500)
    def _err(e):
        return jsonify({"message": "Internal server error"}), 500


def run(
    *,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    db_path: Path | str | None = None,
) -> None:
    app = create_app(db_path=db_path)
    app.run(host=host, port=port, debug=False)


__all__ = ["create_app", "run", "STORE_KEY", "DEFAULT_HOST", "DEFAULT_PORT"]
