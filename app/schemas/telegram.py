"""Pydantic schemas for the subset of the Telegram Bot API update envelope we consume."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class TelegramUser(BaseModel):
    id: int
    is_bot: bool = False
    first_name: str = ""
    username: str | None = None


class TelegramChat(BaseModel):
    id: int
    type: str = "private"


class MessageEntity(BaseModel):
    type: str
    offset: int
    length: int


class Document(BaseModel):
    file_id: str
    file_unique_id: str | None = None
    file_name: str | None = None
    mime_type: str | None = None
    file_size: int | None = None


class PhotoSize(BaseModel):
    file_id: str
    file_unique_id: str | None = None
    width: int = 0
    height: int = 0
    file_size: int | None = None


class Message(BaseModel):
    """One inbound chat message."""

    model_config = ConfigDict(populate_by_name=True)

    message_id: int
    chat: TelegramChat
    from_user: TelegramUser | None = Field(default=None, alias="from")
    text: str | None = None
    caption: str | None = None
    entities: list[MessageEntity] = Field(default_factory=list)
    document: Document | None = None
    photo: list[PhotoSize] = Field(default_factory=list)

    @property
    def sender_id(self) -> int:
        # Channel posts have no sender; the chat id is the closest identity.
        return self.from_user.id if self.from_user is not None else self.chat.id

    @property
    def has_attachment(self) -> bool:
        return self.document is not None or bool(self.photo)

    def command(self) -> str | None:
        """Return the bot command name without the slash or ``@botname`` suffix."""

        if not self.text:
            return None
        if self.entities:
            entity = next(
                (e for e in self.entities if e.type == "bot_command" and e.offset == 0),
                None,
            )
            if entity is None:
                return None
            token = self.text[1 : entity.length]
        elif self.text.startswith("/"):
            token = self.text[1:].split(maxsplit=1)[0] if len(self.text) > 1 else ""
        else:
            return None
        return token.split("@", 1)[0].lower()


class Update(BaseModel):
    update_id: int
    message: Message | None = None
