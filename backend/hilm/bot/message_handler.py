"""
MessageHandler — turns one Telegram update into a pipeline run with live progress.

Flow:
    1. Reject updates without a sender or without text/voice/photo
    2. Download voice/photo to temp files
    3. Send the mode-specific "processing" message, start a progress session
    4. Run the message-processing flow, mapping step transitions to stages
    5. Success: complete the session, edit the status message into the reply
       Failure: fail the session (deletes the status message), apologise,
       raise MessageProcessingError so the ledger records the update as failed
"""

from __future__ import annotations

from typing import Any

from hilm.core import messages
from hilm.core.constants import ProgressPolicy, ProgressStage
from hilm.core.logging import get_logger
from hilm.bot.stages import progress_listener
from hilm.pipeline.context import InboundMessage, MessageContext
from hilm.pipeline.engine import PipelineEngine, PipelineResult
from hilm.pipeline.step import PipelineStep
from hilm.pipeline.steps.cleanup_files import remove_temp_files
from hilm.services.progress import MessageLocation, ProgressController
from hilm.telegram.client import TelegramAPIError, TelegramBotClient
from hilm.telegram.schemas import TelegramMessage, TelegramUpdate

logger = get_logger(__name__)

FAILED_STEP_REPLIES = {
    "determine_input_type": messages.UNSUPPORTED_TYPE,
    "transcribe_voice": messages.TRANSCRIBE_FAILED,
    "extract_from_photo": messages.EXTRACT_FAILED,
}


class MessageProcessingError(Exception):
    """Handling a message failed; the user has already been told."""

    def __init__(
        self,
        message: str,
        *,
        failed_step: str | None = None,
        error_kind: str | None = None,
    ) -> None:
        self.failed_step = failed_step
        self.error_kind = error_kind
        super().__init__(message)


def apology_for(failed_step: str | None) -> str:
    return FAILED_STEP_REPLIES.get(failed_step or "", messages.GENERIC_ERROR)


class MessageHandler:
    """Processes inbound chat messages through the pipeline."""

    def __init__(
        self,
        client: TelegramBotClient,
        engine: PipelineEngine,
        steps: list[PipelineStep],
        *,
        progress_policy: ProgressPolicy = ProgressPolicy.DROP,
        default_mode: str = "chat",
    ) -> None:
        self.client = client
        self.engine = engine
        self.steps = steps
        self.progress_policy = ProgressPolicy(progress_policy)
        self.default_mode = default_mode

    async def handle_update(self, payload: dict[str, Any]) -> None:
        """Dispatch entry point for the webhook ingestor."""
        update = TelegramUpdate.model_validate(payload)
        if update.message is None:
            logger.debug("Ignoring non-message update", update_id=update.update_id)
            return
        await self.handle_message(update.message)

    async def handle_message(self, message: TelegramMessage) -> PipelineResult | None:
        chat_id = message.chat.id
        sender = message.from_user

        if sender is None:
            await self.client.send_message(chat_id, messages.NO_USER, parse_mode=None)
            return None

        if not (message.text or message.voice or message.photo):
            await self.client.send_message(chat_id, messages.UNSUPPORTED_TYPE, parse_mode=None)
            return None

        log = logger.bind(user_id=sender.id, chat_id=chat_id, message_id=message.message_id)
        texts = messages.stage_texts(self.default_mode)
        voice_path: str | None = None
        photo_path: str | None = None
        progress: ProgressController | None = None

        try:
            if not message.text:
                if message.voice is not None:
                    voice_path = await self.client.download_file(message.voice.file_id, ".ogg")
                elif message.largest_photo is not None:
                    photo_path = await self.client.download_file(message.largest_photo.file_id, ".jpg")

            inbound = InboundMessage(
                user_id=sender.id,
                chat_id=chat_id,
                message_id=message.message_id,
                text=message.text,
                caption=message.caption,
                voice_path=voice_path,
                photo_path=photo_path,
                username=sender.username,
                first_name=sender.first_name,
                last_name=sender.last_name,
                language_code=sender.language_code,
                mode=self.default_mode,
            )

            status = await self.client.send_message(chat_id, texts[ProgressStage.START])
            progress = ProgressController(
                self.client,
                status,
                texts,
                policy=self.progress_policy,
                initial_stage=ProgressStage.START,
            )

            ctx = MessageContext(message=inbound)
            result = await self.engine.run_steps(ctx, self.steps, listener=progress_listener(progress))

            if not result.succeeded:
                await progress.fail()
                await self._reply_quietly(chat_id, apology_for(result.failed_step))
                raise MessageProcessingError(
                    result.error or "Pipeline failed",
                    failed_step=result.failed_step,
                    error_kind=result.error_kind,
                )

            await progress.complete()
            await self._deliver(status, ctx)
            log.info(
                "Message processed",
                input_type=ctx.input_type,
                cached=ctx.is_cached,
                has_markup=ctx.reply_markup is not None,
            )
            return result

        except MessageProcessingError:
            raise
        except Exception as exc:
            log.error("Message handling failed", error=str(exc), exc_info=True)
            if progress is not None:
                await progress.fail()
            await self._reply_quietly(chat_id, messages.GENERIC_ERROR)
            raise MessageProcessingError(str(exc)) from exc
        finally:
            remove_temp_files([p for p in (voice_path, photo_path) if p])

    async def _deliver(self, status: MessageLocation, ctx: MessageContext) -> None:
        """Turn the status message into the reply; fall back to a fresh message."""
        text = ctx.response or "✅"
        try:
            await self.client.edit_text(status, text, reply_markup=ctx.reply_markup)
            return
        except TelegramAPIError as exc:
            logger.warning("Final edit failed, sending new message", error=str(exc))

        try:
            await self.client.delete(status)
        except TelegramAPIError as exc:
            logger.debug("Status message delete failed", error=str(exc))
        await self.client.send_message(
            status.chat_id,
            text,
            reply_markup=ctx.reply_markup,
            parse_mode=None,
        )

    async def _reply_quietly(self, chat_id: int, text: str) -> None:
        try:
            await self.client.send_message(chat_id, text, parse_mode=None)
        except TelegramAPIError as exc:
            logger.warning("Failed to send error reply", chat_id=chat_id, error=str(exc))
