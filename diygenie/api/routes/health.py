"""
Health Check and System Information Endpoints
"""
import logging
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text

from diygenie.api.deps import get_context
from diygenie.context import AppContext
from diygenie.utils.logging_utils import mask_secret

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Health"])


async def _check_database(context: AppContext) -> dict[str, Any]:
    try:
        async with context.session_factory() as session:
            await session.execute(text("SELECT 1"))
        return {"ok": True}
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return {"ok": False, "error": e.__class__.__name__}


def _check_config(context: AppContext) -> dict[str, Any]:
    settings = context.settings
    missing = []
    if not settings.database_url:
        missing.append("database_url")
    if settings.is_production and not settings.stripe_webhook_secret:
        missing.append("stripe_webhook_secret")
    return {"ok": not missing, "missing": missing}


async def _run_checks(context: AppContext) -> dict[str, dict[str, Any]]:
    return {
        "database": await _check_database(context),
        "config": _check_config(context),
    }


@router.get("/health")
async def health_check(context: AppContext = Depends(get_context)):
    """Basic liveness summary."""
    return {
        "status": "healthy",
        "version": context.settings.app_version,
        "service": context.settings.app_name,
    }


@router.get("/health/live")
async def liveness():
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness(context: AppContext = Depends(get_context)):
    """Database reachable and required settings present; 503 otherwise."""
    checks = await _run_checks(context)
    ready = all(check["ok"] for check in checks.values())
    body = {"status": "ready" if ready else "not_ready", "checks": checks}
    return JSONResponse(body, status_code=200 if ready else 503)


@router.get("/health/full")
async def full_health(context: AppContext = Depends(get_context)):
    """Checks plus provider modes, uptime and a redacted configuration summary."""
    settings = context.settings
    checks = await _run_checks(context)
    ready = all(check["ok"] for check in checks.values())
    body = {
        "status": "healthy" if ready else "degraded",
        "version": settings.app_version,
        "environment": settings.environment,
        "uptime_seconds": round(context.uptime_seconds, 1),
        "checks": checks,
        "providers": {
            "preview": {"name": context.dispatch.preview_provider.name, "mode": context.dispatch.modes["preview"]},
            "plan": {"name": context.dispatch.plan_provider.name, "mode": context.dispatch.modes["plan"]},
        },
        "operations_in_flight": context.runner.in_flight,
        "suggestions_cache": context.suggestions_cache.stats(),
        "env": {
            "openai_api_key": mask_secret(settings.openai_api_key),
            "decor8_api_key": mask_secret(settings.decor8_api_key),
            "stripe_secret_key": mask_secret(settings.stripe_secret_key),
            "stripe_webhook_secret": mask_secret(settings.stripe_webhook_secret),
            "api_key": mask_secret(settings.api_key),
        },
    }
    return JSONResponse(body, status_code=200 if ready else 503)
