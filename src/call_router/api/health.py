"""Health check endpoints."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy import text

from call_router.config import get_settings
from call_router.db.session import get_db_context

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: str
    version: str
    environment: str
    checks: dict[str, Any]


@router.get("/health")
async def health_check() -> HealthResponse:
    """Perform health check.

    Components checked:
    - API: Always ok if reachable
    - Database: Connectivity test via SELECT 1
    - Telephony: Twilio credentials and public URL present
    """
    settings = get_settings()

    checks: dict[str, Any] = {
        "api": "ok",
        "database": await _check_database(),
        "telephony": _check_telephony(),
    }

    return HealthResponse(
        status=_determine_overall_status(checks),
        timestamp=datetime.now(timezone.utc).isoformat(),
        version="0.1.0",
        environment=settings.environment,
        checks=checks,
    )


@router.get("/ready")
async def readiness_check() -> JSONResponse:
    """Readiness probe; 503 until the database answers."""
    database = await _check_database()
    ready = database["status"] == "ok"
    return JSONResponse(
        status_code=200 if ready else 503,
        content={"status": "ready" if ready else "not_ready", "checks": {"database": database["status"]}},
    )


async def _check_database() -> dict[str, Any]:
    try:
        async with get_db_context() as session:
            await session.execute(text("SELECT 1"))
        return {"status": "ok"}
    except Exception as e:
        return {"status": "error", "message": str(e)}


def _check_telephony() -> dict[str, Any]:
    twilio = get_settings().telephony.twilio
    missing = [
        name
        for name, value in (
            ("account_sid", twilio.account_sid),
            ("auth_token", twilio.auth_token),
            ("phone_number", twilio.phone_number),
            ("backend_url", twilio.backend_url),
        )
        if not value
    ]
    if missing:
        return {"status": "degraded", "message": "Twilio not fully configured", "missing": missing}
    return {"status": "ok"}


def _determine_overall_status(checks: dict[str, Any]) -> str:
    statuses = [
        check["status"] if isinstance(check, dict) else check
        for check in checks.values()
    ]
    if "error" in statuses:
        return "unhealthy"
    if "degraded" in statuses:
        return "degraded"
    return "healthy"
