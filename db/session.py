"""
db/session.py

Lazily created SQLAlchemy engine and session factory.

Nothing connects at import time, so modules that only need the ORM models
(and the test-suite, which never touches a database) can import freely.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from dataclasses import dataclass

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from db.config import resolve_database_url


@dataclass(frozen=True)
class PoolSettings:
    echo: bool = False
    pool_recycle: int = 1800
    pool_size: int = 5
    max_overflow: int = 10

    @classmethod
    def from_env(cls) -> "PoolSettings":
        def _int(name: str, default: int) -> int:
            try:
                return int(os.getenv(name, default))
            except ValueError:
                return default

        return cls(
            echo=os.getenv("SQL_ECHO", "").strip().lower() in {"1", "true", "yes", "on"},
            pool_recycle=_int("DB_POOL_RECYCLE", cls.pool_recycle),
            pool_size=_int("DB_POOL_SIZE", cls.pool_size),
            max_overflow=_int("DB_MAX_OVERFLOW", cls.max_overflow),
        )


def create_db_engine(settings: PoolSettings | None = None) -> Engine:
    settings = settings or PoolSettings.from_env()
    return create_engine(
        resolve_database_url(),
        echo=settings.echo,
        pool_pre_ping=True,
        pool_recycle=settings.pool_recycle,
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
    )


_engine: Engine | None = None
_session_factory: sessionmaker | None = None


def get_engine() -> Engine:
    """Return the shared engine, creating it on first call."""
    global _engine
    if _engine is None:
        _engine = create_db_engine()
    return _engine


def _get_session_factory() -> sessionmaker:
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(
            bind=get_engine(),
            class_=Session,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )
    return _session_factory


def SessionLocal() -> Session:
    """Open a new session on the shared engine."""
    return _get_session_factory()()


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
