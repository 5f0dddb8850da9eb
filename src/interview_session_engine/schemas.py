"""
Pydantic schemas for the session engine.

Defines the session record, persisted interactions, drafts and the
transient values exchanged between the orchestrator and its collaborators.
"""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


def _now_utc() -> datetime:
    """Get current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


# Fixed number of questions asked in one session.
MAX_QUESTIONS_PER_SESSION = 10

SKIPPED_ANSWER_TEXT = "[Question Skipped]"


class SessionType(str, Enum):
    """Kinds of interview a session can practise."""

    BEHAVIORAL = "Behavioral"
    TECHNICAL = "Technical"
    CASE_STUDY = "Case Study"


class SessionStatus(str, Enum):
    """Lifecycle status of a session record."""

    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class OrchestratorPhase(str, Enum):
    """States of the live session state machine."""

    LOADING = "loading"
    AUTHORIZING = "authorizing"
    AWAITING_ANSWER = "awaiting_answer"
    RECORDING = "recording"
    ADVANCING = "advancing"
    SAVING = "saving"
    COMPLETED = "completed"
    FAILED = "failed"


class SpeechErrorKind(str, Enum):
    """Error signals raised by the speech capture capability."""

    UNSUPPORTED = "unsupported"
    PERMISSION_DENIED = "permission-denied"
    NO_SPEECH = "no-speech"
    ABORTED = "aborted"
    NETWORK = "network"
    AUDIO_CAPTURE = "audio-capture"


class Session(BaseModel):
    """One interview attempt, created by the setup flow."""

    id: str = Field(..., description="Session identifier")
    user_id: str = Field(..., description="Identifier of the owning user")
    role: str = Field(..., description="Job role being practised")
    session_type: SessionType = Field(..., description="Kind of interview")
    experience_level: str = Field(default="mid", description="Candidate experience level")
    industry: str | None = Field(default=None, description="Target industry, if any")
    status: SessionStatus = Field(default=SessionStatus.ACTIVE, description="Lifecycle status")
    started_at: datetime = Field(default_factory=_now_utc, description="When the session was created")
    completed_at: datetime | None = Field(default=None, description="When the session was completed")
    final_score: int | None = Field(default=None, description="Final score (0-100)")
    total_questions: int = Field(default=0, description="Number of questions answered")


class Interaction(BaseModel):
    """A single question/answer exchange within a session."""

    id: str | None = Field(default=None, description="Identifier assigned by the store")
    session_id: str = Field(..., description="Owning session")
    question_text: str = Field(..., description="Question that was asked")
    answer_text: str = Field(default="", description="Answer given by the user")
    order: int = Field(..., ge=1, description="1-based position within the session")
    timestamp: datetime = Field(default_factory=_now_utc, description="When the answer was committed")


class Draft(BaseModel):
    """Unsent answer text held in ephemeral storage."""

    session_id: str = Field(..., description="Session the draft belongs to")
    question_order: int = Field(..., ge=1, description="Order of the question being answered")
    text: str = Field(default="", description="Partial answer text")
    question_text: str | None = Field(default=None, description="Question the draft answers")
    last_saved_at: datetime = Field(default_factory=_now_utc, description="When the draft was written")


class HistoryItem(BaseModel):
    """A prior question/answer pair passed to the question provider."""

    question: str = Field(..., description="Question text")
    answer: str = Field(default="", description="Answer text")


class QuestionRequest(BaseModel):
    """Parameters for selecting the next interview question."""

    role: str = Field(..., description="Job role")
    session_type: SessionType = Field(..., description="Kind of interview")
    experience_level: str = Field(default="mid", description="Candidate experience level")
    industry: str | None = Field(default=None, description="Target industry")
    history: list[HistoryItem] = Field(default_factory=list, description="Ordered prior exchanges")


class SessionUpdate(BaseModel):
    """Fields written to the session record at finalization."""

    status: SessionStatus = Field(..., description="New status")
    completed_at: datetime | None = Field(default=None, description="Completion timestamp")
    total_questions: int = Field(default=0, description="Number of interactions persisted")
    final_score: int | None = Field(default=None, description="Final score (0-100)")
    duration_seconds: float | None = Field(default=None, description="Elapsed session time")


class TranscriptEvent(BaseModel):
    """A transcript fragment delivered by the capture adapter."""

    text: str = Field(..., description="Recognised text")
    is_final: bool = Field(default=False, description="Whether the segment is final")


class Notice(BaseModel):
    """User-facing description of the last failure."""

    kind: str = Field(..., description="Error taxonomy name")
    message: str = Field(..., description="Human-readable cause")
    fatal: bool = Field(default=False, description="Whether the session view cannot continue")


class SessionSummary(BaseModel):
    """Locally held outcome of a session, available even if finalization fails."""

    session_id: str
    status: SessionStatus
    total_questions: int
    final_score: int
    duration_seconds: float
    completed_at: datetime
    interactions: list[Interaction] = Field(default_factory=list)


def compute_final_score(answered: int, total: int = MAX_QUESTIONS_PER_SESSION) -> int:
    """Score a session by the share of questions answered."""
    if total <= 0:
        return 0
    return round(min(answered, total) / total * 100)
