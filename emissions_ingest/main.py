from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI

logger = logging.getLogger(__name__)


def _validate_env() -> None:
    """
    Validate required environment variables at startup.

    Raises RuntimeError listing every missing or invalid variable so the
    operator can fix all problems in one restart cycle.

    Rules:
    - APP_MODE must be 'cloud'.
    - A PostgreSQL URL must be configured.
    - An LLM API key is required only when LLM_ADAPTER=openai.
    """

    from db.config import load_env_files
    from emissions_ingest.config import get_app_settings

    load_env_files()

    errors: list[str] = []

    try:
        get_app_settings()
    except RuntimeError as exc:
        errors.append(str(exc))

    urls = [
        os.getenv(name, "").strip()
        for name in ("DATABASE_URL", "CLOUD_DATABASE_URL", "LOCAL_DATABASE_URL")
    ]
    configured = [url for url in urls if url]
    if not configured:
        errors.append(
            "No database URL configured. Set DATABASE_URL, CLOUD_DATABASE_URL or LOCAL_DATABASE_URL."
        )
    elif not all(url.startswith(("postgres://", "postgresql")) for url in configured):
        errors.append("Only PostgreSQL database URLs are supported.")

    adapter = os.getenv("LLM_ADAPTER", "openai").strip().lower()
    if adapter == "openai":
        llm_api_key = os.getenv("LLM_API_KEY", "").strip()
        openai_api_key = os.getenv("OPENAI_API_KEY", "").strip()
        if not llm_api_key and not openai_api_key:
            errors.append(
                "LLM API key is not set. Provide LLM_API_KEY or OPENAI_API_KEY, "
                "or set LLM_ADAPTER=mock|none."
            )

    if errors:
        raise RuntimeError(
            "Startup validation failed; missing or invalid environment variables:\n"
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
    """Run SELECT 1. Raises RuntimeError if the DB is unreachable."""
    from sqlalchemy import text

    from db.session import session_scope

    try:
        with session_scope() as db:
            db.execute(text("SELECT 1"))
    except Exception as exc:
        raise RuntimeError("Database unavailable.") from exc


def _check_schema() -> None:
    """
    Every table registered on Base.metadata must exist in the database.

    Does NOT auto-migrate.
    """
    from sqlalchemy import inspect as sa_inspect

    import db.models  # noqa: F401 registers ORM models on Base.metadata
    from db.base import Base
    from db.session import get_engine

    inspector = sa_inspect(get_engine())
    actual: set[str] = set(inspector.get_table_names())
    expected: set[str] = set(Base.metadata.tables.keys())
    missing = sorted(expected - actual)

    if missing:
        logger.critical(
            "Schema mismatch: %d table(s) absent from the database: %s. "
            "Run 'alembic upgrade head' and restart.",
            len(missing),
            ", ".join(missing),
        )
        raise RuntimeError(
            f"Schema mismatch: {len(missing)} table(s) missing from the database "
            f"({', '.join(missing)}). Run migrations and restart."
        )


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Validate DB connectivity and schema before serving traffic."""
    _check_db()
    logger.info("Database connectivity confirmed")
    _check_schema()
    logger.info("Database schema validated")
    yield


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _validate_env()
    _configure_logging()

    application = FastAPI(
        title="Emissions Ingest API",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from emissions_ingest.api.routers import ai_router, ingest_router

    application.include_router(ingest_router)
    application.include_router(ai_router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return application


app = create_app()
