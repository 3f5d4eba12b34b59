"""Google OAuth callback endpoint."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import PlainTextResponse

from app.core.context import AppContext, get_context
from app.core.errors import CredentialStoreError, InvalidStateError
from app.core.oauth_google import GoogleAPIError
from app.services.authorization import AuthorizationService

CALLBACK_PATH = "/oauth/callback"
SUCCESS_TEXT = "Authorization successful! You can now go back to Telegram and send files to the bot."

router = APIRouter(tags=["oauth"])

logger = logging.getLogger(__name__)


@router.get(CALLBACK_PATH, response_class=PlainTextResponse)
async def oauth_callback(
    state: str | None = None,
    code: str | None = None,
    error: str | None = None,
    context: AppContext = Depends(get_context),
) -> PlainTextResponse:
    """Complete the authorization handshake started by ``/connect_drive``."""

    service = AuthorizationService(context)

    if error or not code:
        if state:
            try:
                await service.discard_state(state)
            except CredentialStoreError:
                logger.exception("Failed to discard authorization state")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "code": "GOOGLE_OAUTH_ERROR" if error else "VALIDATION_ERROR",
                "message": error or "Missing authorization code",
            },
        )
    if not state:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": "INVALID_STATE", "message": "Invalid state parameter. Please try again."},
        )

    try:
        await service.handle_callback(state, code)
    except InvalidStateError as exc:
        logger.info("Rejected OAuth callback", extra={"reason": str(exc)})
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": "INVALID_STATE", "message": "Invalid state parameter. Please try again."},
        ) from exc
    except GoogleAPIError as exc:
        logger.error("Failed to exchange token", extra={"status_code": exc.status_code})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"code": "TOKEN_EXCHANGE_FAILED", "message": "Failed to exchange token."},
        ) from exc
    except CredentialStoreError as exc:
        logger.exception("Failed to save token")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"code": "TOKEN_STORE_FAILED", "message": "Failed to save token."},
        ) from exc

    return PlainTextResponse(SUCCESS_TEXT)
