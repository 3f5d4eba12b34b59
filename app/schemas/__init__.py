"""Pydantic schemas for the Drive relay service."""

from .telegram import Document, Message, MessageEntity, PhotoSize, TelegramChat, TelegramUser, Update
from .token import TokenBundle

__all__ = [
    "Document",
    "Message",
    "MessageEntity",
    "PhotoSize",
    "TelegramChat",
    "TelegramUser",
    "TokenBundle",
    "Update",
]
