"""
app/main.py

FastAPI application factory.

``create_app`` wires the process-wide collaborators onto ``app.state``:
the provider/store :class:`Backends`, the AI insight cache, the per-tenant
rate limiter and the narrator. Tests inject in-memory backends and a mock
narrator; a running server builds them from the environment at startup.
"""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.config import get_ai_settings, get_metrics_gateway_settings
from app.providers.base import Backends
from app.stores.rate_limiter import TenantRateLimiter
from app.stores.ttl_cache import TTLCache
from llm_synthesis.narrator import BaseNarrator

logger = logging.getLogger(__name__)

_KNOWN_ADAPTERS = ("mock", "openai")


def _validate_env(uses_database: bool) -> None:
    """
    Validate environment variables at startup.

    Raises RuntimeError listing every invalid variable so the operator can
    fix all problems in one restart cycle. A missing LLM key only disables
    the narrator; the deterministic endpoints do not need it.
    """

    errors: list[str] = []
    ai = get_ai_settings()

    if ai.adapter not in _KNOWN_ADAPTERS:
        errors.append(f"LLM_ADAPTER='{ai.adapter}' is not valid. Allowed values: {list(_KNOWN_ADAPTERS)}.")

    gateway = get_metrics_gateway_settings()
    if gateway.base_url and not gateway.base_url.startswith(("http://", "https://")):
        errors.append("METRICS_GATEWAY_URL must start with http:// or https://.")

    if uses_database:
        from db.config import resolve_database_url

        try:
            resolve_database_url()
        except RuntimeError as exc:
            errors.append(str(exc))

    if errors:
        raise RuntimeError(
            "Startup validation failed, missing or invalid environment variables:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _check_db() -> None:
    """Open a session and run SELECT 1. Raises RuntimeError if the DB is unreachable."""
    from sqlalchemy import text

    from db.session import SessionLocal

    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
    except Exception as exc:
        raise RuntimeError("Database unavailable.") from exc


def _check_schema() -> None:
    """
    Every table registered on Base.metadata must exist in the database.

    Does NOT auto-migrate; a missing table aborts startup.
    """
    from sqlalchemy import inspect as sa_inspect

    import db.models  # noqa: F401 registers all ORM models on Base.metadata
    from db.base import Base
    from db.session import get_engine

    inspector = sa_inspect(get_engine())
    actual: set[str] = set(inspector.get_table_names())
    expected: set[str] = set(Base.metadata.tables.keys())
    missing = expected - actual

    if missing:
        logger.critical(
            "Schema mismatch: %d table(s) defined in ORM metadata are absent from "
            "the database: %s. Run 'alembic upgrade head' and restart.",
            len(missing),
            ", ".join(sorted(missing)),
        )
        raise RuntimeError(
            f"Schema mismatch: {len(missing)} table(s) missing from the database "
            f"({', '.join(sorted(missing))}). Run migrations and restart."
        )


def _build_narrator() -> BaseNarrator | None:
    from llm_synthesis.adapter import build_adapter
    from llm_synthesis.narrator import LLMNarrator

    settings = get_ai_settings()
    if settings.adapter == "openai" and not settings.api_key:
        logger.warning("LLM_API_KEY/OPENAI_API_KEY not set; narrative endpoint disabled")
        return None
    return LLMNarrator(build_adapter(settings))


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """
    Build environment-driven collaborators that were not injected, validate
    the database when one is used, and drain background persistence on exit.
    """
    from app.services.persistence import drain_pending

    if application.state.backends is None:
        from app.providers.factory import build_default_backends

        backends, uses_database = build_default_backends(
            response_cache=application.state.response_cache,
        )
        _validate_env(uses_database)
        if uses_database:
            _check_db()
            logger.info("Database connectivity confirmed")
            _check_schema()
            logger.info("Database schema validated")
        application.state.backends = backends

    if application.state.narrator is None:
        application.state.narrator = _build_narrator()

    try:
        yield
    finally:
        await drain_pending()
        logger.info("Background persistence drained")


def create_app(
    backends: Backends | None = None,
    narrator: BaseNarrator | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Parameters
    ----------
    backends:
        Collaborators to use. When omitted they are built from the
        environment during startup.
    narrator:
        Narrative generator. When omitted it is built from ``LLM_ADAPTER``.
    """

    _configure_logging()
    ai = get_ai_settings()

    application = FastAPI(
        title="Marketing Intelligence API",
        version="1.0.0",
        lifespan=_lifespan,
    )
    application.state.backends = backends
    application.state.narrator = narrator
    application.state.insight_cache = TTLCache(ttl_seconds=ai.cache_ttl_seconds)
    application.state.response_cache = TTLCache(
        ttl_seconds=max(1.0, get_metrics_gateway_settings().response_cache_ttl_seconds)
    )
    application.state.rate_limiter = TenantRateLimiter(
        limits={
            "chat": ai.chat_limit_per_hour,
            "insights": ai.insights_limit_per_hour,
        }
    )

    from app.api.routers import alerts_router, intelligence_router, planning_router

    application.include_router(alerts_router)
    application.include_router(intelligence_router)
    application.include_router(planning_router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {
            "status": "ok",
            "backends": "ready" if application.state.backends is not None else "starting",
        }

    return application


app = create_app()
