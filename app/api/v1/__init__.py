"""HTTP routes for the Drive relay service."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.v1.oauth import router as oauth_router
from app.api.v1.webhook import router as webhook_router
from app.core.context import AppContext, get_context

router = APIRouter()


@router.get("/health", tags=["health"])
async def health_check(context: AppContext = Depends(get_context)) -> dict[str, dict[str, str]]:
    """Report the service health information."""
    return {"data": {"status": "ok", "version": context.settings.version}}


__all__ = ["oauth_router", "router", "webhook_router"]
