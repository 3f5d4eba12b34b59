"""Telegram webhook endpoint."""
from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import ValidationError

from app.core.context import AppContext, get_context
from app.schemas import Update
from app.services.dispatcher import UpdateDispatcher

router = APIRouter(tags=["telegram"])

logger = logging.getLogger(__name__)


@router.post("/")
async def telegram_webhook(request: Request, context: AppContext = Depends(get_context)) -> dict[str, bool]:
    """Decode one Telegram update and dispatch it.

    Only an undecodable body yields a non-200 response; business failures are
    reported to the sender as chat replies.
    """

    body = await request.body()
    try:
        update = Update.model_validate(json.loads(body))
    except (ValueError, ValidationError) as exc:
        logger.info("Could not decode incoming update", extra={"error": str(exc)})
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": "BAD_REQUEST", "message": "Malformed update payload"},
        ) from exc

    await UpdateDispatcher(context).dispatch(update)
    return {"ok": True}
