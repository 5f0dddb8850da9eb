"""
Exceptions raised by the live session engine.

Terminal errors end the session view; recoverable errors leave the state
machine positioned so the same transition can be called again.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from interview_session_engine.schemas import Notice, SpeechErrorKind

if TYPE_CHECKING:
    from interview_session_engine.schemas import SessionSummary


class SessionEngineError(Exception):
    """Base class for failures surfaced by the orchestrator."""

    kind: str = "SessionEngineError"
    fatal: bool = False
    default_message: str = "Something went wrong with the interview session."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_notice(self) -> Notice:
        """Convert the error into a notice for the caller."""
        return Notice(kind=self.kind, message=self.message, fatal=self.fatal)


class UnauthorizedError(SessionEngineError):
    kind = "Unauthorized"
    fatal = True
    default_message = "You do not have access to this interview session."


class SessionNotFoundError(SessionEngineError):
    kind = "NotFound"
    fatal = True
    default_message = "Interview session not found."


class InactiveSessionError(SessionEngineError):
    kind = "InactiveSession"
    fatal = True
    default_message = "This interview session is no longer active."


class QuestionFetchFailedError(SessionEngineError):
    kind = "QuestionFetchFailed"
    default_message = "Failed to load next question. Please try again."


class InteractionSaveFailedError(SessionEngineError):
    kind = "InteractionSaveFailed"
    default_message = "Failed to save your answer. Please try again."


class FinalizeFailedError(SessionEngineError):
    """Session record could not be completed; persisted answers are unaffected."""

    kind = "FinalizeFailed"
    default_message = "Failed to end interview. Please try again."

    def __init__(self, message: str | None = None, summary: SessionSummary | None = None) -> None:
        super().__init__(message)
        self.summary = summary


class SpeechCaptureError(SessionEngineError):
    """Speech capture failed; typed input remains available."""

    kind = "SpeechCaptureError"

    _MESSAGES = {
        SpeechErrorKind.UNSUPPORTED: "Speech recognition is not supported here. Please type your answer.",
        SpeechErrorKind.PERMISSION_DENIED: "Microphone access denied. Please allow microphone access and try again.",
        SpeechErrorKind.NO_SPEECH: "No speech detected. Please try speaking again.",
        SpeechErrorKind.ABORTED: "Speech recognition was interrupted.",
        SpeechErrorKind.NETWORK: "Network error occurred. Please check your internet connection.",
        SpeechErrorKind.AUDIO_CAPTURE: "No microphone found. Please check your microphone connection.",
    }

    def __init__(self, error_kind: SpeechErrorKind, message: str | None = None) -> None:
        self.error_kind = error_kind
        super().__init__(message or self._MESSAGES.get(error_kind, f"Speech recognition error: {error_kind.value}"))


class SessionBusyError(SessionEngineError):
    """A network-bound transition is already running for this session."""

    kind = "SessionBusy"
    default_message = "Please wait for the current operation to finish."


class SessionLoadFailedError(SessionEngineError):
    """The session could not be read; `load()` may be called again."""

    kind = "SessionLoadFailed"
    default_message = "Failed to load interview session. Please try again."
