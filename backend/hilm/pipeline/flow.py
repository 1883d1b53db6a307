"""
The message-processing flow: the ordered step list for one chat message.

    determine_input_type
    route_input ─┬─ transcribe_voice
                 ├─ extract_from_photo
                 └─ pass_text
    unwrap_processed_input (join)
    build_context_prompt
    check_cache
    supervisor_agent
    save_transactions
    cache_response
    cleanup_files
"""

from __future__ import annotations

from dataclasses import dataclass

from hilm.cache.response_cache import ResponseCache
from hilm.core.constants import InputType
from hilm.llm.base import ReceiptReader, SupervisorAgent, Transcriber
from hilm.pipeline.branch import Branch, BranchStep
from hilm.pipeline.step import PipelineStep
from hilm.pipeline.steps import (
    BuildContextPromptStep,
    CacheResponseStep,
    CheckCacheStep,
    CleanupFilesStep,
    DetermineInputTypeStep,
    ExtractFromPhotoStep,
    PassTextStep,
    SaveTransactionsStep,
    SupervisorAgentStep,
    TranscribeVoiceStep,
    UnwrapProcessedInputStep,
)
from hilm.services.transactions import TransactionService


@dataclass
class FlowServices:
    """Collaborators the flow's steps are built with."""

    transcriber: Transcriber
    receipt_reader: ReceiptReader
    agent: SupervisorAgent
    response_cache: ResponseCache
    transactions: TransactionService


def input_branch_point(services: FlowServices) -> BranchStep:
    return BranchStep(
        name="route_input",
        description="Route by input type",
        branches=[
            Branch(
                key=InputType.VOICE,
                predicate=lambda ctx: ctx.input_type == InputType.VOICE,
                step=TranscribeVoiceStep(services.transcriber),
            ),
            Branch(
                key=InputType.PHOTO,
                predicate=lambda ctx: ctx.input_type == InputType.PHOTO,
                step=ExtractFromPhotoStep(services.receipt_reader),
            ),
            Branch(
                key=InputType.TEXT,
                predicate=lambda ctx: ctx.input_type == InputType.TEXT,
                step=PassTextStep(),
            ),
        ],
    )


def message_processing_flow(services: FlowServices) -> list[PipelineStep]:
    return [
        DetermineInputTypeStep(),
        input_branch_point(services),
        UnwrapProcessedInputStep(),
        BuildContextPromptStep(),
        CheckCacheStep(services.response_cache),
        SupervisorAgentStep(services.agent),
        SaveTransactionsStep(services.transactions),
        CacheResponseStep(services.response_cache),
        CleanupFilesStep(),
    ]
