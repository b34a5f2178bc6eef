from __future__ import annotations

import asyncio
from typing import Any

import structlog
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from redis.asyncio import Redis
from sqlalchemy import text

from quota_ledger.core.config import get_settings
from quota_ledger.db.session import SessionLocal
from quota_ledger.workers.celery_app import celery_app

router = APIRouter(tags=["health"])
logger = structlog.get_logger(__name__)


def _ok_check(extra: dict[str, Any] | None = None) -> dict[str, Any]:
    return {"status": "ok", **(extra or {})}


def _failed_check(error: str) -> dict[str, str]:
    return {"status": "failed", "error": error}


async def _check_database() -> dict[str, Any]:
    try:
        async with SessionLocal() as session:
            await session.execute(text("SELECT 1"))
    except Exception as exc:
        logger.warning("health_database_failed", error_type=type(exc).__name__)
        return _failed_check("database_unavailable")
    return _ok_check()


async def _check_redis() -> dict[str, Any]:
    redis_client = Redis.from_url(get_settings().redis_url)
    try:
        pong = await redis_client.ping()
    except Exception as exc:
        logger.warning("health_redis_failed", error_type=type(exc).__name__)
        return _failed_check("redis_unavailable")
    finally:
        await redis_client.aclose()
    if pong is not True:
        return _failed_check("redis_unexpected_ping")
    return _ok_check()


def _check_celery_worker_sync() -> dict[str, Any]:
    try:
        replies = celery_app.control.inspect(timeout=1.0).ping() or {}
    except Exception as exc:
        logger.warning("health_celery_failed", error_type=type(exc).__name__)
        return _failed_check("celery_unavailable")
    if not replies:
        return _failed_check("no celery workers responded to ping")
    return _ok_check({"workers": len(replies)})


async def _check_celery_worker() -> dict[str, Any]:
    return await asyncio.to_thread(_check_celery_worker_sync)


def _checks_response(checks: dict[str, dict[str, Any]], *, ok: str, failed: str) -> JSONResponse:
    healthy = all(check.get("status") == "ok" for check in checks.values())
    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": ok if healthy else failed, "checks": checks},
    )


@router.get("/health")
async def health() -> JSONResponse:
    database, redis, celery = await asyncio.gather(
        _check_database(),
        _check_redis(),
        _check_celery_worker(),
    )
    checks = {"database": database, "redis": redis, "celery": celery}
    return _checks_response(checks, ok="ok", failed="degraded")


@router.get("/ready")
async def ready() -> JSONResponse:
    database, redis = await asyncio.gather(_check_database(), _check_redis())
    return _checks_response({"database": database, "redis": redis}, ok="ready", failed="not_ready")


@router.get("/live")
async def live() -> dict[str, str]:
    return {"status": "live"}
