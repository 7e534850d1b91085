from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from sqlalchemy import text as sql_text
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from ordinal.config import load_config
from ordinal.db.base import get_engine
from ordinal.db.migrations_runner import apply_migrations
from ordinal.http.problem import (
    handle_http_exception,
    handle_request_validation_error,
    handle_sequence_error,
    handle_unexpected_error,
)
from ordinal.http.history import PageHistoryMiddleware
from ordinal.http.request_id import RequestIdMiddleware
from ordinal.logging_setup import configure_logging
from ordinal.logic.errors import InvalidSequenceConfig, SequenceError
from ordinal.logic.page_history import history_settings
from ordinal.logic.sequenced_items import verify_item_schema
from ordinal.routes import api_router

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


def _health() -> dict:
    try:
        with get_engine().connect() as conn:
            conn.execute(sql_text("SELECT 1"))
        return {"status": "ok", "db": True}
    except SQLAlchemyError:
        logger.error("health_db_check_failed", exc_info=True)
        return {"status": "degraded", "db": False}


def create_app() -> FastAPI:
    configure_logging()
    config = load_config()

    app = FastAPI(title="ordinal")
    app.add_exception_handler(SequenceError, handle_sequence_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
    app.state.history_settings = history_settings(config.history)
    # Added innermost first: request id -> session -> page history -> routes
    app.add_middleware(
        PageHistoryMiddleware,
        settings=app.state.history_settings,
        skip_prefixes=(API_PREFIX + "/history", "/health", "/docs", "/redoc", "/openapi.json"),
    )
    app.add_middleware(SessionMiddleware, secret_key=config.history.session_secret)
    app.add_middleware(RequestIdMiddleware)

    # Migrations run on startup, not at import time
    @app.on_event("startup")
    def _prepare_schema() -> None:
        engine = get_engine(config.database.dsn)
        if config.database.auto_apply_migrations:
            applied = apply_migrations(engine)
            logger.info("startup_migrations applied=%s", applied)
        else:
            logger.info("AUTO_APPLY_MIGRATIONS disabled; skipping migrations at startup")
        try:
            verify_item_schema()
        except InvalidSequenceConfig:
            # Keep serving; item routes will fail with SEQUENCE_CONFIG_INVALID
            logger.error("item_schema_invalid", exc_info=True)

    app.include_router(api_router, prefix=API_PREFIX)

    @app.get("/health")
    def health():  # pragma: no cover - trivial
        return _health()

    return app


__all__ = ["create_app"]
