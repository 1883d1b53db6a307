"""
Async HTTP client for the Telegram Bot API.

Implements MessageEditor so a ProgressController can drive it directly.
"""

from __future__ import annotations

import os
import tempfile
from typing import Any

import httpx

from hilm.core.config import settings
from hilm.core.logging import get_logger
from hilm.services.progress import MessageEditor, MessageLocation

logger = get_logger(__name__)


class TelegramAPIError(Exception):
    """The Bot API answered ``ok: false`` or the request failed."""

    def __init__(self, message: str, *, method: str, error_code: int | None = None) -> None:
        self.method = method
        self.error_code = error_code
        super().__init__(message)


class TelegramBotClient(MessageEditor):
    """Handles calls to the Bot API for one bot token."""

    def __init__(
        self,
        token: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.token = token or settings.TELEGRAM_BOT_TOKEN
        self.base_url = (base_url or settings.TELEGRAM_API_BASE_URL).rstrip("/")
        self._client = client or httpx.AsyncClient(
            timeout=timeout or settings.TELEGRAM_TIMEOUT_SECONDS,
        )

    async def _call(self, method: str, payload: dict[str, Any]) -> Any:
        url = f"{self.base_url}/bot{self.token}/{method}"
        try:
            response = await self._client.post(url, json=payload)
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise TelegramAPIError(f"{method} request failed: {exc}", method=method) from exc

        if not data.get("ok"):
            raise TelegramAPIError(
                data.get("description", f"{method} failed"),
                method=method,
                error_code=data.get("error_code"),
            )
        return data.get("result")

    # ─── Messages ──────────────────────────────────────

    async def send_message(
        self,
        chat_id: int,
        text: str,
        *,
        reply_markup: dict[str, Any] | None = None,
        parse_mode: str | None = "Markdown",
    ) -> MessageLocation:
        payload: dict[str, Any] = {"chat_id": chat_id, "text": text}
        if parse_mode:
            payload["parse_mode"] = parse_mode
        if reply_markup:
            payload["reply_markup"] = reply_markup
        result = await self._call("sendMessage", payload)
        return MessageLocation(chat_id=chat_id, message_id=result["message_id"])

    async def edit_text(
        self,
        location: MessageLocation,
        text: str,
        *,
        reply_markup: dict[str, Any] | None = None,
        parse_mode: str | None = "Markdown",
    ) -> None:
        payload: dict[str, Any] = {
            "chat_id": location.chat_id,
            "message_id": location.message_id,
            "text": text,
        }
        if parse_mode:
            payload["parse_mode"] = parse_mode
        if reply_markup:
            payload["reply_markup"] = reply_markup
        await self._call("editMessageText", payload)

    async def delete(self, location: MessageLocation) -> None:
        await self._call(
            "deleteMessage",
            {"chat_id": location.chat_id, "message_id": location.message_id},
        )

    # ─── Files ─────────────────────────────────────────

    async def download_file(self, file_id: str, suffix: str) -> str:
        """Download a file to a new temp path and return the path."""
        result = await self._call("getFile", {"file_id": file_id})
        file_path = result["file_path"]
        url = f"{self.base_url}/file/bot{self.token}/{file_path}"

        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise TelegramAPIError(f"File download failed: {exc}", method="getFile") from exc

        fd, local_path = tempfile.mkstemp(prefix="hilm_", suffix=suffix)
        with os.fdopen(fd, "wb") as fh:
            fh.write(response.content)
        logger.debug("Telegram file downloaded", file_id=file_id, bytes=len(response.content))
        return local_path

    async def aclose(self) -> None:
        await self._client.aclose()
