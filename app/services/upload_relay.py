"""Relay of Telegram attachments into the sender's Google Drive."""
from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass

import httpx

from app.core.context import AppContext
from app.core.drive import DriveClient
from app.core.errors import (
    CredentialNotFoundError,
    CredentialStoreError,
    DownloadError,
    DriveAPIError,
    TelegramAPIError,
)
from app.core.telegram import TelegramClient
from app.schemas import Message, TokenBundle
from app.services.credential_store import CredentialStore

# Bot API getFile refuses anything larger.
MAX_FILE_SIZE = 20 * 1024 * 1024
PHOTO_EXTENSION = ".jpg"

NOT_LINKED_TEXT = "Your Google Drive account is not linked yet. Use /connect_drive to link it."
CREDENTIAL_ERROR_TEXT = "Could not read your authorization right now. Please try again later."
TOO_LARGE_TEXT = (
    "The file is {size_mib:.2f} MB, which exceeds the 20 MB download limit for Telegram bots "
    "and cannot be processed."
)
RESOLVE_ERROR_TEXT = "Could not get the file from Telegram. Please try again later."
DOWNLOAD_ERROR_TEXT = "Could not download the file. Please try again later."
UPLOAD_ERROR_TEXT = "Uploading to your Google Drive failed."
SUCCESS_TEXT = "File '{name}' was uploaded to your Google Drive successfully!"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileAttachment:
    file_id: str
    name: str
    size: int
    mime_type: str | None = None


def classify_attachment(message: Message) -> FileAttachment | None:
    """Return the file carried by ``message``, or ``None`` for other shapes."""

    if message.document is not None:
        document = message.document
        return FileAttachment(
            file_id=document.file_id,
            name=document.file_name or document.file_id,
            size=document.file_size or 0,
            mime_type=document.mime_type,
        )
    if message.photo:
        largest = max(message.photo, key=lambda p: (p.width * p.height, p.file_size or 0))
        return FileAttachment(
            file_id=largest.file_id,
            name=f"{largest.file_id}{PHOTO_EXTENSION}",
            size=largest.file_size or 0,
            mime_type="image/jpeg",
        )
    return None


class UploadRelay:
    """Move one file from Telegram to Drive under the sender's own authority."""

    def __init__(self, context: AppContext, telegram: TelegramClient):
        self._context = context
        self._telegram = telegram
        self._store = CredentialStore(context.session_factory)

    def build_drive_client(self, token: TokenBundle) -> DriveClient:
        return DriveClient(self._context, token)

    async def relay(self, message: Message) -> None:
        user_id = message.sender_id
        chat_id = message.chat.id

        async def reply(text: str) -> None:
            await self._telegram.reply(chat_id, message.message_id, text)

        try:
            token = await self._store.get_credential(user_id)
        except CredentialNotFoundError:
            logger.info("Credential not found", extra={"user_id": user_id})
            await reply(NOT_LINKED_TEXT)
            return
        except CredentialStoreError:
            logger.exception("Failed to retrieve credential", extra={"user_id": user_id})
            await reply(CREDENTIAL_ERROR_TEXT)
            return

        drive = self.build_drive_client(token)

        attachment = classify_attachment(message)
        if attachment is None:
            return

        if attachment.size > MAX_FILE_SIZE:
            logger.info(
                "File exceeds download limit",
                extra={"user_id": user_id, "file_size": attachment.size},
            )
            await reply(TOO_LARGE_TEXT.format(size_mib=attachment.size / 1024 / 1024))
            return

        try:
            file_url = await self._telegram.get_file_direct_url(attachment.file_id)
        except TelegramAPIError as exc:
            logger.error(
                "Failed to resolve file URL",
                extra={"user_id": user_id, "status_code": exc.status_code, "description": exc.description},
            )
            await reply(RESOLVE_ERROR_TEXT)
            return

        try:
            await self._stream(drive, file_url, attachment)
        except DownloadError as exc:
            logger.error(
                "Failed to download file",
                extra={"user_id": user_id, "status_code": exc.status_code},
            )
            await reply(DOWNLOAD_ERROR_TEXT)
            return
        except DriveAPIError as exc:
            logger.error(
                "Failed to upload to Drive",
                extra={"user_id": user_id, "file_name": attachment.name, **exc.log_fields()},
            )
            await reply(UPLOAD_ERROR_TEXT)
            return

        logger.info(
            "Uploaded file to Drive",
            extra={"user_id": user_id, "file_name": attachment.name},
        )
        await reply(SUCCESS_TEXT.format(name=attachment.name))

    async def _stream(self, drive: DriveClient, file_url: str, attachment: FileAttachment) -> None:
        """Pipe the open download body straight into the Drive upload."""

        try:
            async with self._context.http_client() as client:
                async with client.stream("GET", file_url) as response:
                    if not response.is_success:
                        raise DownloadError(
                            "Direct file URL returned an error",
                            status_code=response.status_code,
                        )
                    length = response.headers.get("Content-Length")
                    # Content-Length counts encoded bytes; aiter_bytes yields decoded ones.
                    if "Content-Encoding" in response.headers:
                        length = None
                    await drive.upload_stream(
                        attachment.name,
                        _download_chunks(response),
                        size=int(length) if length and length.isdigit() else None,
                        mime_type=attachment.mime_type,
                    )
        except httpx.HTTPError as exc:
            raise DownloadError(f"Download failed: {type(exc).__name__}") from None


async def _download_chunks(response: httpx.Response) -> AsyncIterator[bytes]:
    """Yield the download body; read failures surface as ``DownloadError`` even
    though they are raised from inside the Drive PUT.
    """

    try:
        async for chunk in response.aiter_bytes():
            yield chunk
    except httpx.HTTPError as exc:
        raise DownloadError(f"Download interrupted: {type(exc).__name__}") from None
