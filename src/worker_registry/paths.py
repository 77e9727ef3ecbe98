from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

HOME_ENV = "WORKER_REGISTRY_HOME"
DB_PATH_ENV = "WORKER_REGISTRY_DB"
FIELD_MAP_ENV = "WORKER_REGISTRY_FIELD_MAP"
_DEFAULT_DB_NAME = "registry.duckdb"


def _user_data_base() -> Path:
    base = os.getenv("XDG_DATA_HOME") or os.getenv("LOCALAPPDATA")
    if base:
        return Path(base) / "worker-registry"
    return Path.home() / ".local" / "share" / "worker-registry"


def _project_root() -> Optional[Path]:
    """Source checkout holding this package, or None for an installed copy."""
    for parent in Path(__file__).resolve().parents:
        if (parent / "pyproject.toml").exists():
            return parent
    return None


def _candidate_data_dirs() -> list[Path]:
    candidates = [Path.cwd() / "warehouse"]
    root = _project_root()
    if root is not None:
        candidates.append(root / "warehouse")
    return list(dict.fromkeys(candidates))


def _dir_is_writable(path: Path) -> bool:
    return path.is_dir() and os.access(path, os.W_OK)


def resolve_data_dir() -> Path:
    """Directory holding the database and logs.

    ``WORKER_REGISTRY_HOME`` wins; otherwise an existing writable
    ``warehouse/`` in the working directory or the source checkout, then the
    per-user data directory. The result is created if missing.
    """
    env_root = os.getenv(HOME_ENV)
    if env_root:
        resolved = Path(env_root).expanduser()
    else:
        resolved = next(
            (c for c in _candidate_data_dirs() if _dir_is_writable(c)),
            _user_data_base() / "warehouse",
        )
    resolved.mkdir(parents=True, exist_ok=True)
    return resolved


def resolve_db_path(explicit: Path | str | None = None) -> Path:
    if explicit:
        return Path(explicit).expanduser()
    env_path = os.getenv(DB_PATH_ENV)
    if env_path:
        path = Path(env_path).expanduser()
        if path.is_dir():
            return path / _DEFAULT_DB_NAME
        return path
    return resolve_data_dir() / _DEFAULT_DB_NAME


def resolve_log_path(filename: str = "app.log") -> Path:
    log_dir = resolve_data_dir() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir / filename


def resolve_field_map_path() -> Path | None:
    env_path = os.getenv(FIELD_MAP_ENV)
    if env_path:
        return Path(env_path).expanduser()
    root = _project_root()
    return root / "docs" / "field_map.yaml" if root is not None else None


__all__ = [
    "resolve_data_dir",
    "resolve_db_path",
    "resolve_log_path",
    "resolve_field_map_path",
    "HOME_ENV",
    "DB_PATH_ENV",
    "FIELD_MAP_ENV",
]
