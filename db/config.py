"""
db/config.py

Environment-driven database configuration.
"""

from __future__ import annotations

import os
from pathlib import Path

_DATABASE_URL_VARS = ("DATABASE_URL", "CLOUD_DATABASE_URL", "LOCAL_DATABASE_URL")


def load_env_files() -> None:
    """
    Load simple KEY=VALUE pairs from `.env` and `.env.local` (if present).
    Existing process environment variables are not overwritten.
    """

    project_root = Path(__file__).resolve().parents[1]
    for filename in (".env", ".env.local"):
        env_path = project_root / filename
        if not env_path.exists():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key and key not in os.environ:
                os.environ[key] = value


def normalize_postgres_url(url: str) -> str:
    """
    Rewrite ``postgres://`` and ``postgresql://`` to the psycopg 3 driver form.
    """

    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            return "postgresql+psycopg://" + url[len(prefix) :]
    return url


def _first_configured_url() -> str | None:
    load_env_files()
    for name in _DATABASE_URL_VARS:
        value = (os.getenv(name) or "").strip()
        if value:
            return value
    return None


def database_configured() -> bool:
    """
    True when any database URL variable is set. Without one the API runs on
    in-memory planning and persistence stores.
    """

    return _first_configured_url() is not None


def resolve_database_url() -> str:
    """
    Return the first of DATABASE_URL, CLOUD_DATABASE_URL, LOCAL_DATABASE_URL,
    normalised for SQLAlchemy.

    Raises
    ------
    RuntimeError
        If none is set, or the URL is not PostgreSQL.
    """

    url = _first_configured_url()
    if url is None:
        raise RuntimeError(
            "No database URL configured. Set one of: " + ", ".join(_DATABASE_URL_VARS) + "."
        )
    url = normalize_postgres_url(url)
    if not url.startswith("postgresql"):
        raise RuntimeError("Only PostgreSQL URLs are supported.")
    return url
