"""
Health endpoints for the Route Ready API.

Lightweight liveness/readiness probes; no secrets are exposed.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import inspect

from routeready.core.database import check_connection, get_engine

logger = logging.getLogger("routeready")

router = APIRouter(tags=["health"])

REQUIRED_TABLES = ["profiles", "usage_events", "payment_events", "admin_audit_log"]


@router.get("/healthz")
def healthz():
    """Lightweight liveness check (no deps)."""
    return {"status": "ok"}


@router.get("/readyz")
def readyz():
    """Readiness check: DB connectivity + required tables."""
    try:
        engine = get_engine()
        if not check_connection():
            return JSONResponse(status_code=503, content={"status": "error", "detail": "database unreachable"})

        inspector = inspect(engine)
        missing = [t for t in REQUIRED_TABLES if not inspector.has_table(t)]
        if missing:
            detail = f"missing tables: {', '.join(missing)}"
            logger.warning(f"[readyz] {detail}")
            return JSONResponse(status_code=503, content={"status": "error", "detail": detail})

        return {"status": "ok"}
    except Exception as e:
        logger.error(f"[readyz] readiness check failed: {e}")
        return JSONResponse(status_code=503, content={"status": "error", "detail": "database unreachable"})
