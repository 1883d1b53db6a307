"""
Input branches: voice → transcription, photo → image reading, text → as is.

Each branch stores a single ProcessedInput under its own step name in
``ctx.branch_outputs``; UnwrapProcessedInputStep joins them.
"""

from __future__ import annotations

from hilm.core.constants import InputType
from hilm.core.logging import get_logger
from hilm.llm.base import ReceiptReader, Transcriber
from hilm.pipeline.context import MessageContext, ProcessedInput, StepResult
from hilm.pipeline.errors import StepExecutionError
from hilm.pipeline.step import PipelineStep

logger = get_logger(__name__)


class TranscribeVoiceStep(PipelineStep):
    """Transcribe the downloaded voice note."""

    name = "transcribe_voice"
    description = "Transcribe voice message"

    def __init__(self, transcriber: Transcriber) -> None:
        self.transcriber = transcriber

    async def execute(self, ctx: MessageContext) -> StepResult:
        started_at = self._now()
        path = ctx.message.voice_path
        if not path:
            raise StepExecutionError(
                "No voice file to transcribe",
                execution_id=ctx.execution_id,
                step_name=self.name,
            )

        text = await self.transcriber.transcribe(path)
        if not text:
            raise StepExecutionError(
                "Transcription returned no text",
                execution_id=ctx.execution_id,
                step_name=self.name,
            )

        ctx.branch_outputs[self.name] = ProcessedInput(
            input_type=InputType.VOICE,
            text=text,
            metadata={"transcription": text},
        )
        return self._success(started_at, {"chars": len(text)})


class ExtractFromPhotoStep(PipelineStep):
    """Read the downloaded photo, keeping the caption if there is one."""

    name = "extract_from_photo"
    description = "Extract text from photo"

    def __init__(self, reader: ReceiptReader) -> None:
        self.reader = reader

    async def execute(self, ctx: MessageContext) -> StepResult:
        started_at = self._now()
        path = ctx.message.photo_path
        if not path:
            raise StepExecutionError(
                "No photo to read",
                execution_id=ctx.execution_id,
                step_name=self.name,
            )

        extracted = await self.reader.extract(path)
        if not extracted:
            raise StepExecutionError(
                "Image reading returned no text",
                execution_id=ctx.execution_id,
                step_name=self.name,
            )

        caption = (ctx.message.caption or "").strip()
        text = f"{caption}\n\n{extracted}" if caption else extracted
        ctx.branch_outputs[self.name] = ProcessedInput(
            input_type=InputType.PHOTO,
            text=text,
            metadata={"extracted_text": extracted, "caption": caption or None},
        )
        return self._success(started_at, {"chars": len(extracted)})


class PassTextStep(PipelineStep):
    name = "pass_text"
    description = "Pass text message through"

    async def execute(self, ctx: MessageContext) -> StepResult:
        started_at = self._now()
        ctx.branch_outputs[self.name] = ProcessedInput(
            input_type=InputType.TEXT,
            text=(ctx.message.text or "").strip(),
        )
        return self._success(started_at)
