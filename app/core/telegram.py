"""Telegram Bot API client."""
from __future__ import annotations

import logging
from typing import Any

import httpx

from app.core.context import AppContext
from app.core.errors import TelegramAPIError

logger = logging.getLogger(__name__)


class TelegramClient:
    """Thin async wrapper over the Bot API methods the relay needs."""

    def __init__(self, context: AppContext):
        self._context = context
        settings = context.settings
        self._api_url = f"{settings.telegram_api_base_url}/bot{settings.telegram_bot_token}"
        self._file_url = f"{settings.telegram_api_base_url}/file/bot{settings.telegram_bot_token}"

    async def _call(self, method: str, payload: dict[str, Any]) -> Any:
        try:
            async with self._context.http_client() as client:
                response = await client.post(f"{self._api_url}/{method}", json=payload)
        except httpx.HTTPError as exc:
            # The exception text embeds the request URL, which carries the token.
            raise TelegramAPIError(f"Telegram {method} request failed: {type(exc).__name__}") from None

        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            data = {}

        if response.status_code >= 400 or not data.get("ok"):
            raise TelegramAPIError(
                f"Telegram {method} returned an error",
                status_code=response.status_code,
                description=data.get("description"),
            )
        return data.get("result")

    async def get_file_direct_url(self, file_id: str) -> str:
        """Resolve ``file_id`` to a time-limited direct download URL."""

        result = await self._call("getFile", {"file_id": file_id})
        file_path = result.get("file_path") if isinstance(result, dict) else None
        if not file_path:
            raise TelegramAPIError("Telegram getFile returned no file_path")
        return f"{self._file_url}/{file_path}"

    async def send_message(self, chat_id: int, text: str, *, reply_to_message_id: int | None = None) -> None:
        payload: dict[str, Any] = {"chat_id": chat_id, "text": text}
        if reply_to_message_id is not None:
            payload["reply_parameters"] = {
                "message_id": reply_to_message_id,
                "allow_sending_without_reply": True,
            }
        await self._call("sendMessage", payload)

    async def reply(self, chat_id: int, message_id: int, text: str) -> None:
        """Reply to a message, logging instead of raising on delivery failure."""

        try:
            await self.send_message(chat_id, text, reply_to_message_id=message_id)
        except TelegramAPIError as exc:
            logger.error(
                "Could not send reply message",
                extra={
                    "chat_id": chat_id,
                    "status_code": exc.status_code,
                    "description": exc.description,
                },
            )
