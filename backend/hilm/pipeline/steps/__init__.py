from hilm.pipeline.steps.build_context_prompt import BuildContextPromptStep
from hilm.pipeline.steps.cache_response import CacheResponseStep
from hilm.pipeline.steps.check_cache import CheckCacheStep
from hilm.pipeline.steps.cleanup_files import CleanupFilesStep
from hilm.pipeline.steps.determine_input_type import DetermineInputTypeStep
from hilm.pipeline.steps.input_branches import ExtractFromPhotoStep, PassTextStep, TranscribeVoiceStep
from hilm.pipeline.steps.save_transactions import SaveTransactionsStep
from hilm.pipeline.steps.supervisor_agent import SupervisorAgentStep
from hilm.pipeline.steps.unwrap_processed_input import UnwrapProcessedInputStep

__all__ = [
    "BuildContextPromptStep",
    "CacheResponseStep",
    "CheckCacheStep",
    "CleanupFilesStep",
    "DetermineInputTypeStep",
    "ExtractFromPhotoStep",
    "PassTextStep",
    "SaveTransactionsStep",
    "SupervisorAgentStep",
    "TranscribeVoiceStep",
    "UnwrapProcessedInputStep",
]
