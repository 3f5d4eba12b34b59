"""Routing of decoded Telegram updates to commands and file handling."""
from __future__ import annotations

import logging

from app.core.context import AppContext
from app.core.errors import CredentialStoreError
from app.core.telegram import TelegramClient
from app.schemas import Message, Update
from app.services.authorization import AuthorizationService
from app.services.upload_relay import UploadRelay

CONNECT_COMMAND = "connect_drive"

WELCOME_TEXT = (
    "Welcome! Send me a document or photo and I will save it to your Google Drive.\n"
    "First use /connect_drive to authorize access to your Drive."
)
AUTHORIZE_TEXT = (
    "Open the link below to let this bot access your Google Drive (upload only):\n\n{url}"
)
AUTHORIZE_ERROR_TEXT = "Could not create the authorization link. Please try again later."
UNKNOWN_COMMAND_TEXT = "Unrecognized command."
PROMPT_TEXT = "Please send a file or use the /connect_drive command."

logger = logging.getLogger(__name__)


class UpdateDispatcher:
    """Handle one inbound update; all outcomes are reported as chat replies."""

    def __init__(self, context: AppContext):
        self._telegram = TelegramClient(context)
        self._authorization = AuthorizationService(context)
        self._relay = UploadRelay(context, self._telegram)

    async def dispatch(self, update: Update) -> None:
        message = update.message
        if message is None:
            return

        command = message.command()
        if command is not None:
            await self._handle_command(message, command)
        elif message.has_attachment:
            await self._relay.relay(message)
        else:
            await self._reply(message, PROMPT_TEXT)

    async def _handle_command(self, message: Message, command: str) -> None:
        if command in ("start", "help"):
            await self._reply(message, WELCOME_TEXT)
        elif command == CONNECT_COMMAND:
            await self._connect_drive(message)
        else:
            await self._reply(message, UNKNOWN_COMMAND_TEXT)

    async def _connect_drive(self, message: Message) -> None:
        try:
            url = await self._authorization.initiate_authorization(message.sender_id)
        except CredentialStoreError:
            logger.exception("Failed to save authorization state", extra={"user_id": message.sender_id})
            await self._reply(message, AUTHORIZE_ERROR_TEXT)
            return
        await self._reply(message, AUTHORIZE_TEXT.format(url=url))

    async def _reply(self, message: Message, text: str) -> None:
        await self._telegram.reply(message.chat.id, message.message_id, text)
