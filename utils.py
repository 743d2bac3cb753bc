"""
Filesystem and connection helpers driven by the configuration.

Relative paths in the configuration are anchored at the project root, never
at the current working directory, so the CLI behaves the same from anywhere.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent
CONNECTION_ENV_VAR = "DB_CONNECTION_STRING"
DEFAULT_DATA_DIR = "data"
DEFAULT_DB_FILENAME = "budget_tracker.db"


def _anchor(path_value: str | Path) -> Path:
    path = Path(path_value)
    return path if path.is_absolute() else PROJECT_ROOT / path


def _database_section(config: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    return (config or {}).get("database") or {}


def get_data_dir(config: Optional[Dict[str, Any]] = None) -> Path:
    """Return the configured data directory; it is not created."""
    return _anchor(_database_section(config).get("data_dir") or DEFAULT_DATA_DIR)


def ensure_data_dir(config: Optional[Dict[str, Any]] = None) -> Path:
    """
    Create the data directory if needed and return it.

    Raises:
        OSError: If the directory cannot be created
    """
    data_dir = get_data_dir(config)
    try:
        data_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.error("Failed to create data directory '%s': %s", data_dir, exc)
        raise
    return data_dir


def _parse_url(connection_string: str) -> Optional[URL]:
    try:
        return make_url(connection_string)
    except ArgumentError as exc:
        logger.debug("Connection string is not a SQLAlchemy URL: %s", exc)
        return None


def _prepare_sqlite_file(connection_string: str) -> None:
    """Create the parent directory of a file-backed SQLite database."""
    url = _parse_url(connection_string)
    if url is None or not url.drivername.startswith("sqlite"):
        return
    if url.database in (None, "", ":memory:"):
        return
    _anchor(url.database).parent.mkdir(parents=True, exist_ok=True)


def redact_connection_string(connection_string: str) -> str:
    """Return the connection string with any password masked, for logging."""
    url = _parse_url(connection_string)
    if url is None:
        return connection_string
    return url.render_as_string(hide_password=True)


def resolve_connection_string(config: Optional[Dict[str, Any]] = None) -> str:
    """
    Pick the database connection string.

    The ``DB_CONNECTION_STRING`` environment variable wins over
    ``database.connection_string``; when neither is set a SQLite file named
    by ``database.path`` inside the data directory is used.
    """
    explicit = os.environ.get(CONNECTION_ENV_VAR) or _database_section(config).get("connection_string")
    if explicit:
        _prepare_sqlite_file(explicit)
        return explicit

    db_path = Path(_database_section(config).get("path") or DEFAULT_DB_FILENAME)
    if db_path.is_absolute():
        db_path.parent.mkdir(parents=True, exist_ok=True)
    else:
        db_path = ensure_data_dir(config) / db_path
    return f"sqlite:///{db_path.as_posix()}"


def resolve_log_path(log_path: str) -> Path:
    """Anchor ``log_path`` at the project root and create its directory."""
    resolved = _anchor(log_path)
    resolved.parent.mkdir(parents=True, exist_ok=True)
    return resolved
