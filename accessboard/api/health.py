"""
Health endpoints.

Liveness never touches the store; readiness checks the entries table when a
database is configured.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

from accessboard.core.database import check_connection, get_database_url, get_engine

logger = logging.getLogger("accessboard")

root_router = APIRouter(tags=["health"])

REQUIRED_TABLES = ["entries"]


def _not_ready(detail: str) -> JSONResponse:
    return JSONResponse(status_code=503, content={"status": "error", "detail": detail})


@root_router.get("/healthz")
def healthz():
    """Lightweight liveness check (no deps)."""
    return {"status": "ok"}


@root_router.get("/readyz")
def readyz():
    """Readiness check: DB connectivity + required tables."""
    if not get_database_url():
        return {"status": "ok", "store": "memory"}

    if not check_connection():
        logger.error("[readyz] readiness check failed: database unreachable")
        return _not_ready("database unreachable")

    try:
        inspector = inspect(get_engine())
        missing = [t for t in REQUIRED_TABLES if not inspector.has_table(t)]
    except (SQLAlchemyError, ValueError) as e:
        logger.error(f"[readyz] readiness check failed: {e}")
        return _not_ready("database unreachable")

    if missing:
        detail = f"missing tables: {', '.join(missing)}"
        logger.warning(f"[readyz] {detail}")
        return _not_ready(detail)

    return {"status": "ok", "store": "sql"}
