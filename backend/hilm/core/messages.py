"""User-facing bot texts: per-mode progress stages and error replies."""

from __future__ import annotations

from hilm.core.constants import ProgressStage, UserMode

# ─── Progress stage texts, per user mode ──────────────

STAGE_TEXTS: dict[UserMode, dict[ProgressStage, str]] = {
    UserMode.LOGGER: {
        ProgressStage.START: "⏳ Logging transaction…",
        ProgressStage.TRANSCRIBING: "🎤 Transcribing voice…",
        ProgressStage.EXTRACTING: "📸 Reading receipt…",
        ProgressStage.CATEGORIZED: "🧾 Categorizing expense…",
        ProgressStage.SAVING: "💾 Saving to database…",
        ProgressStage.FINALIZING: "✅ Transaction logged…",
    },
    UserMode.QUERY: {
        ProgressStage.START: "⏳ Analyzing query…",
        ProgressStage.TRANSCRIBING: "🎤 Transcribing voice…",
        ProgressStage.EXTRACTING: "📸 Reading query image…",
        ProgressStage.CATEGORIZED: "🔍 Searching transactions…",
        ProgressStage.SAVING: "🤖 Generating insights…",
        ProgressStage.FINALIZING: "✅ Results ready…",
    },
    UserMode.CHAT: {
        ProgressStage.START: "⏳ Processing your message…",
        ProgressStage.TRANSCRIBING: "🎤 Transcribing voice…",
        ProgressStage.EXTRACTING: "📸 Reading image…",
        ProgressStage.CATEGORIZED: "💭 Understanding context…",
        ProgressStage.SAVING: "🤖 Thinking…",
        ProgressStage.FINALIZING: "✅ Ready…",
    },
}


def stage_texts(mode: str) -> dict[ProgressStage, str]:
    """Stage→text mapping for a user mode; unknown modes fall back to chat."""
    try:
        return STAGE_TEXTS[UserMode(mode)]
    except ValueError:
        return STAGE_TEXTS[UserMode.CHAT]


# ─── Error replies ─────────────────────────────────────

NO_USER = "❌ Unable to identify user."
GENERIC_ERROR = "❌ Sorry, something went wrong. Please try again in a moment."
UNSUPPORTED_TYPE = "❌ Sorry, I can only process text messages, voice messages, and photos."
TRANSCRIBE_FAILED = "❌ Sorry, I had trouble transcribing your voice message. Please try again."
EXTRACT_FAILED = "❌ Sorry, I couldn't read that image clearly. Please try a clearer photo."
