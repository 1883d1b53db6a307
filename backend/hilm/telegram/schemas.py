"""Pydantic models for the parts of a Telegram update the bot reads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class _TelegramModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class TelegramUser(_TelegramModel):
    id: int
    is_bot: bool = False
    first_name: str | None = None
    last_name: str | None = None
    username: str | None = None
    language_code: str | None = None


class TelegramChat(_TelegramModel):
    id: int
    type: str = "private"


class TelegramVoice(_TelegramModel):
    file_id: str
    duration: int | None = None
    mime_type: str | None = None


class TelegramPhotoSize(_TelegramModel):
    file_id: str
    width: int
    height: int
    file_size: int | None = None


class TelegramMessage(_TelegramModel):
    message_id: int
    chat: TelegramChat
    from_user: TelegramUser | None = Field(default=None, alias="from")
    text: str | None = None
    caption: str | None = None
    voice: TelegramVoice | None = None
    photo: list[TelegramPhotoSize] | None = None

    @property
    def largest_photo(self) -> TelegramPhotoSize | None:
        if not self.photo:
            return None
        return max(self.photo, key=lambda p: p.width * p.height)


class TelegramUpdate(_TelegramModel):
    update_id: int
    message: TelegramMessage | None = None
