"""Health check endpoint.

Reports storage backend reachability. Returns 503 when the database
cannot be queried.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

router = APIRouter(tags=["health"])
logger = logging.getLogger(__name__)


def _check_database(request: Request) -> dict[str, str]:
    """Check database connectivity via SELECT 1."""
    manager = getattr(request.app.state, "database", None)
    if manager is None:
        return {"status": "ok", "detail": "in-memory storage"}
    try:
        with manager.get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
        return {"status": "ok"}
    except Exception as exc:
        logger.warning("health_check: database unhealthy: %s", exc)
        return {"status": "error", "detail": str(exc)}


@router.get("/healthz")
def healthz(request: Request) -> Any:
    """Aggregated health check: 200 when healthy, 503 when degraded."""
    checks = {"database": _check_database(request)}
    all_ok = all(c["status"] == "ok" for c in checks.values())
    return JSONResponse(
        content={"status": "ok" if all_ok else "degraded", "checks": checks},
        status_code=200 if all_ok else 503,
    )
