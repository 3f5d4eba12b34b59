"""Google Drive upload client bound to one user's token bundle."""
from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Any

import httpx

from app.core.context import AppContext
from app.core.errors import DriveAPIError
from app.schemas import TokenBundle

UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3/files"

logger = logging.getLogger(__name__)


class DriveClient:
    """Upload files into the authenticated user's Drive root.

    A client is built per request from the stored token bundle; it never
    refreshes the access token.
    """

    def __init__(self, context: AppContext, token: TokenBundle):
        self._context = context
        self.token = token

    def _headers(self) -> dict[str, str]:
        return {"Authorization": self.token.authorization_header}

    async def upload_stream(
        self,
        name: str,
        content: AsyncIterator[bytes],
        *,
        size: int | None = None,
        mime_type: str | None = None,
    ) -> dict[str, Any]:
        """Create ``name`` in the Drive root with bytes streamed from ``content``.

        Uses a resumable upload session so the body is forwarded chunk by
        chunk and never held in memory as a whole.
        """

        metadata: dict[str, Any] = {"name": name}
        session_headers = {**self._headers(), "Content-Type": "application/json; charset=UTF-8"}
        if size is not None:
            session_headers["X-Upload-Content-Length"] = str(size)
        if mime_type:
            session_headers["X-Upload-Content-Type"] = mime_type

        try:
            async with self._context.http_client() as client:
                session_response = await client.post(
                    UPLOAD_URL,
                    params={"uploadType": "resumable", "fields": "id,name"},
                    headers=session_headers,
                    json=metadata,
                )
                if session_response.status_code >= 400:
                    raise DriveAPIError.from_response(
                        session_response, "Drive upload session could not be created"
                    )
                session_uri = session_response.headers.get("Location")
                if not session_uri:
                    raise DriveAPIError(
                        "Drive upload session returned no Location header",
                        status_code=session_response.status_code,
                    )

                upload_headers = self._headers()
                if size is not None:
                    upload_headers["Content-Length"] = str(size)
                if mime_type:
                    upload_headers["Content-Type"] = mime_type
                upload_response = await client.put(session_uri, headers=upload_headers, content=content)
        except httpx.HTTPError as exc:
            logger.error("Drive upload request failed", exc_info=exc)
            raise DriveAPIError("Failed to communicate with Google Drive") from exc

        if upload_response.status_code >= 400:
            raise DriveAPIError.from_response(upload_response, "Drive upload failed")

        try:
            return upload_response.json()
        except ValueError:
            return {}
