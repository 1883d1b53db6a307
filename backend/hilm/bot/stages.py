"""Which progress stage each pipeline step shows to the user."""

from __future__ import annotations

from typing import Callable

from hilm.core.constants import ProgressStage
from hilm.services.progress import ProgressController

# Steps missing here (check_cache, route_input) change nothing on screen.
STEP_STAGES: dict[str, ProgressStage] = {
    "determine_input_type": ProgressStage.START,
    "pass_text": ProgressStage.START,
    "transcribe_voice": ProgressStage.TRANSCRIBING,
    "extract_from_photo": ProgressStage.EXTRACTING,
    "unwrap_processed_input": ProgressStage.CATEGORIZED,
    "build_context_prompt": ProgressStage.CATEGORIZED,
    "supervisor_agent": ProgressStage.SAVING,
    "save_transactions": ProgressStage.SAVING,
    "cache_response": ProgressStage.FINALIZING,
    "cleanup_files": ProgressStage.FINALIZING,
}


def progress_listener(progress: ProgressController) -> Callable[[str], None]:
    """Step listener that forwards mapped stages to ``progress.emit``."""

    def on_step(step_name: str) -> None:
        stage = STEP_STAGES.get(step_name)
        if stage is not None:
            progress.emit(stage)

    return on_step
