"""Shared constants and enums used across the application."""

from enum import StrEnum


class PipelineStatus(StrEnum):
    """Overall status of a pipeline run."""

    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


class StepStatus(StrEnum):
    """Status of an individual pipeline step."""

    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class FailureKind(StrEnum):
    """Why a pipeline run ended in FAILED."""

    STEP_FAILED = "step_failed"
    CONFIGURATION = "configuration"


class WebhookUpdateStatus(StrEnum):
    """Lifecycle of an ingested webhook update."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class IngestOutcome(StrEnum):
    """What the ingestor did with one delivered event."""

    DUPLICATE = "duplicate"
    RACE_LOST = "race_lost"
    COMPLETED = "completed"
    FAILED = "failed"


class InputType(StrEnum):
    """Kind of content carried by an inbound chat message."""

    TEXT = "text"
    VOICE = "voice"
    PHOTO = "photo"


class UserMode(StrEnum):
    """Conversation mode selected by the user."""

    LOGGER = "logger"
    QUERY = "query"
    CHAT = "chat"


class ProgressStage(StrEnum):
    """User-facing stages shown in the live status message."""

    START = "start"
    TRANSCRIBING = "transcribing"
    EXTRACTING = "extracting"
    CATEGORIZED = "categorized"
    SAVING = "saving"
    FINALIZING = "finalizing"


class ProgressPolicy(StrEnum):
    """What a progress session does with updates requested while an edit is in flight."""

    DROP = "drop"
    LATEST_WINS = "latest_wins"
