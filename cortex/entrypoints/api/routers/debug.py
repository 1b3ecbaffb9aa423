# cortex/entrypoints/api/routers/debug.py
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from sqlalchemy.engine import make_url

from ..deps import require_api_key
from ....config import settings

router = APIRouter(tags=["debug"])


def _redact(v: str | None) -> str | None:
    if not v:
        return v
    if len(v) <= 8:
        return "***"
    return v[:4] + "***" + v[-4:]


@router.get("/debug/config", dependencies=[Depends(require_api_key)])
def debug_config() -> dict[str, Any]:
    """
    Reads the *running server's* settings, not your shell's.
    Secrets are redacted.
    """
    return {
        "ENV": settings.ENV,
        "CORTEX_DB_URL": make_url(settings.CORTEX_DB_URL).render_as_string(hide_password=True),
        "LOG_LEVEL": settings.LOG_LEVEL,
        "API_KEY": _redact(settings.API_KEY),
        "DEFAULT_WINDOW_DAYS": settings.DEFAULT_WINDOW_DAYS,
        "MAX_WINDOW_DAYS": settings.MAX_WINDOW_DAYS,
        "RECENT_LEADS_LIMIT": settings.RECENT_LEADS_LIMIT,
        "TOP_CAMPAIGNS_LIMIT": settings.TOP_CAMPAIGNS_LIMIT,
        "MAX_PAGE_SIZE": settings.MAX_PAGE_SIZE,
        "HIGH_SCORE_THRESHOLD": settings.HIGH_SCORE_THRESHOLD,
        "STALE_LEAD_DAYS": settings.STALE_LEAD_DAYS,
        "FORECAST_HISTORY_DAYS": settings.FORECAST_HISTORY_DAYS,
        "FORECAST_JITTER": settings.FORECAST_JITTER,
    }


@router.get("/debug/routes", dependencies=[Depends(require_api_key)])
def debug_routes(request: Request) -> dict[str, Any]:
    """What this running server has actually mounted."""
    routes: list[str] = []
    for r in request.app.routes:
        methods = getattr(r, "methods", None)
        path = getattr(r, "path", None)
        if path:
            routes.append(f"{sorted(methods)} {path}" if methods else path)
    return {"count": len(routes), "routes": sorted(routes)}
