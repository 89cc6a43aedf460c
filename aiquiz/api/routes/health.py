from __future__ import annotations

import asyncio
from typing import Any

import structlog
from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import text

from aiquiz.db.session import SessionLocal
from aiquiz.services.session_storage import SessionStorage

router = APIRouter(tags=["health"])
logger = structlog.get_logger(__name__)


def _ok_check(extra: dict[str, Any] | None = None) -> dict[str, Any]:
    payload: dict[str, Any] = {"status": "ok"}
    if extra:
        payload.update(extra)
    return payload


def _failed_check(error: str) -> dict[str, str]:
    return {"status": "failed", "error": error}


async def _check_database() -> dict[str, Any]:
    try:
        async with SessionLocal() as session:
            await session.execute(text("SELECT 1"))
        return _ok_check()
    except Exception as exc:
        logger.warning("health_database_check_failed", error_type=type(exc).__name__)
        return _failed_check("database_unavailable")


async def _check_session_storage(storage: SessionStorage) -> dict[str, Any]:
    try:
        if not await storage.ping():
            return _failed_check("session_storage_unavailable")
        return _ok_check()
    except Exception as exc:
        logger.warning("health_session_storage_check_failed", error_type=type(exc).__name__)
        return _failed_check("session_storage_unavailable")


async def _collect_checks(storage: SessionStorage) -> dict[str, dict[str, Any]]:
    checks = await asyncio.gather(
        _check_database(),
        _check_session_storage(storage),
    )
    return {
        "database": checks[0],
        "session_storage": checks[1],
    }


def _all_checks_ok(checks: dict[str, dict[str, Any]]) -> bool:
    return all(check.get("status") == "ok" for check in checks.values())


@router.get("/health")
async def health(request: Request) -> JSONResponse:
    checks = await _collect_checks(request.app.state.quiz_runtime.session_storage)
    is_healthy = _all_checks_ok(checks)
    return JSONResponse(
        status_code=status.HTTP_200_OK if is_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ok" if is_healthy else "degraded",
            "checks": checks,
        },
    )


@router.get("/ready")
async def ready(request: Request) -> JSONResponse:
    storage_check = await _check_session_storage(request.app.state.quiz_runtime.session_storage)
    is_ready = storage_check.get("status") == "ok"
    return JSONResponse(
        status_code=status.HTTP_200_OK if is_ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if is_ready else "not_ready",
            "checks": {"session_storage": storage_check},
        },
    )


@router.get("/live")
async def live() -> dict[str, str]:
    return {"status": "live"}
