"""
CleanupFilesStep — delete downloaded voice/photo files and finalize the response.
"""

from __future__ import annotations

import os

from hilm.core.logging import get_logger
from hilm.pipeline.context import MessageContext, StepResult
from hilm.pipeline.step import PipelineStep

logger = get_logger(__name__)


def remove_temp_files(paths: list[str]) -> int:
    """Delete each path; missing files and OS errors are logged, never raised."""
    removed = 0
    for path in paths:
        try:
            os.remove(path)
            removed += 1
        except FileNotFoundError:
            continue
        except OSError as exc:
            logger.warning("Failed to delete temp file", path=path, error=str(exc))
    return removed


class CleanupFilesStep(PipelineStep):
    name = "cleanup_files"
    description = "Clean up temp files"

    async def execute(self, ctx: MessageContext) -> StepResult:
        started_at = self._now()
        removed = remove_temp_files(ctx.message.temp_files)

        ctx.response = ctx.reply.text if ctx.reply else ""
        ctx.response_metadata = {
            "input_type": ctx.input_type,
            "cached": ctx.is_cached,
        }
        return self._success(started_at, {"files_removed": removed})
