"""Google OAuth helper utilities."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any
from urllib.parse import urlencode

import httpx

from app.core.config import Settings
from app.core.errors import RelayError
from app.schemas import TokenBundle

AUTH_BASE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
DRIVE_FILE_SCOPE = "https://www.googleapis.com/auth/drive.file"
TOKEN_REQUEST_TIMEOUT = 10.0

logger = logging.getLogger(__name__)


class GoogleOAuthError(RelayError):
    """Base error for Google OAuth operations."""


class GoogleAPIError(GoogleOAuthError):
    """Raised when Google API returns an error response."""

    def __init__(self, message: str, *, status_code: int | None = None, body: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class GoogleOAuthClient:
    """Handle OAuth URL generation and the authorization-code exchange."""

    def __init__(self, settings: Settings, *, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings
        self._transport = transport

    def build_authorize_url(self, *, state: str) -> str:
        """Return the Google consent URL requesting offline Drive upload access."""

        params: dict[str, Any] = {
            "client_id": self.settings.google_client_id,
            "redirect_uri": self.settings.google_redirect_url,
            "response_type": "code",
            "scope": DRIVE_FILE_SCOPE,
            "access_type": "offline",
            "prompt": "consent",
            "state": state,
        }
        return f"{AUTH_BASE_URL}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> TokenBundle:
        """Exchange an authorization code for a token bundle."""

        payload = {
            "code": code,
            "client_id": self.settings.google_client_id,
            "client_secret": self.settings.google_client_secret,
            "redirect_uri": self.settings.google_redirect_url,
            "grant_type": "authorization_code",
        }
        token_data = await self._request_token(payload)
        return self._to_bundle(token_data)

    @staticmethod
    def _to_bundle(token_data: dict[str, Any]) -> TokenBundle:
        access_token = token_data.get("access_token")
        if not access_token:
            raise GoogleAPIError("Google token response missing access_token")

        expiry: datetime | None = None
        if token_data.get("expires_in") is not None:
            expiry = datetime.now(timezone.utc) + timedelta(seconds=int(token_data["expires_in"]))

        return TokenBundle(
            access_token=access_token,
            refresh_token=token_data.get("refresh_token"),
            token_type=token_data.get("token_type") or "Bearer",
            expiry=expiry,
        )

    async def _request_token(self, payload: dict[str, str]) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(
                timeout=TOKEN_REQUEST_TIMEOUT, transport=self._transport
            ) as client:
                response = await client.post(TOKEN_URL, data=payload)
        except httpx.HTTPError as exc:
            logger.error("Failed to communicate with Google OAuth token endpoint", exc_info=exc)
            raise GoogleAPIError("Unable to reach Google OAuth endpoint") from exc

        if response.status_code >= 400:
            logger.error(
                "Google OAuth token exchange failed",
                extra={"status_code": response.status_code, "body": response.text},
            )
            raise GoogleAPIError(
                "Google OAuth token exchange failed",
                status_code=response.status_code,
                body=response.text,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise GoogleAPIError(
                "Google OAuth token endpoint returned invalid JSON",
                status_code=response.status_code,
                body=response.text,
            ) from exc
