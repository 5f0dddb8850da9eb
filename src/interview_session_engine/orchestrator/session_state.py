"""
Session runtime state.

Tracks the in-memory state of one live interview session: the current
question, the answer being composed, persisted interactions and the last
failure notice. Nothing here is persisted.
"""

from interview_session_engine.schemas import (
    MAX_QUESTIONS_PER_SESSION,
    Draft,
    HistoryItem,
    Interaction,
    Notice,
    OrchestratorPhase,
    Session,
)


class SessionRuntimeState:
    """
    Manages the mutable state of a live session.

    The orchestrator is the only writer; callers read it through the
    orchestrator's properties.
    """

    def __init__(self, session_id: str) -> None:
        """
        Initialize runtime state.

        Args:
            session_id: Identifier of the session being driven.
        """
        self._session_id = session_id
        self._session: Session | None = None
        self._phase: OrchestratorPhase = OrchestratorPhase.LOADING
        self._interactions: list[Interaction] = []
        self._question_count: int = 0
        self._current_question: str | None = None
        self._final_text: str = ""
        self._interim_text: str = ""
        self._is_recording: bool = False
        self._in_flight: bool = False
        self._error: Notice | None = None
        self._recovered_draft: Draft | None = None

    @property
    def session_id(self) -> str:
        """Get the session identifier."""
        return self._session_id

    @property
    def session(self) -> Session | None:
        """Get the loaded session record."""
        return self._session

    @session.setter
    def session(self, session: Session) -> None:
        self._session = session

    @property
    def phase(self) -> OrchestratorPhase:
        """Get the current state machine phase."""
        return self._phase

    @phase.setter
    def phase(self, phase: OrchestratorPhase) -> None:
        self._phase = phase

    @property
    def interactions(self) -> list[Interaction]:
        """Get persisted interactions in order."""
        return self._interactions.copy()

    @property
    def question_count(self) -> int:
        """Get the number of persisted interactions."""
        return self._question_count

    @property
    def next_order(self) -> int:
        """Order value the next persisted interaction will carry."""
        return self._question_count + 1

    @property
    def cap_reached(self) -> bool:
        """Check whether the question cap has been reached."""
        return self._question_count >= MAX_QUESTIONS_PER_SESSION

    @property
    def current_question(self) -> str | None:
        """Get the question currently being answered."""
        return self._current_question

    @current_question.setter
    def current_question(self, question: str | None) -> None:
        self._current_question = question

    @property
    def final_text(self) -> str:
        """Get the accumulated answer text."""
        return self._final_text

    @property
    def interim_text(self) -> str:
        """Get the interim (not yet final) transcript."""
        return self._interim_text

    @property
    def answer_text(self) -> str:
        """Get the answer as it would be committed now."""
        if self._interim_text:
            return _join_segments(self._final_text, self._interim_text)
        return self._final_text

    @property
    def has_unsent_text(self) -> bool:
        """Check whether there is answer text that has not been persisted."""
        return bool(self.answer_text.strip())

    @property
    def is_recording(self) -> bool:
        """Check whether speech capture is running."""
        return self._is_recording

    @is_recording.setter
    def is_recording(self, value: bool) -> None:
        self._is_recording = value

    @property
    def in_flight(self) -> bool:
        """Check whether a network-bound transition is running."""
        return self._in_flight

    @in_flight.setter
    def in_flight(self, value: bool) -> None:
        self._in_flight = value

    @property
    def error(self) -> Notice | None:
        """Get the last failure notice."""
        return self._error

    @error.setter
    def error(self, notice: Notice | None) -> None:
        self._error = notice

    @property
    def recovered_draft(self) -> Draft | None:
        """Get the draft offered for recovery, if any."""
        return self._recovered_draft

    @recovered_draft.setter
    def recovered_draft(self, draft: Draft | None) -> None:
        self._recovered_draft = draft

    def load_history(self, interactions: list[Interaction]) -> None:
        """
        Seed state from interactions already persisted for the session.

        Args:
            interactions: Existing interactions ordered by `order`.
        """
        self._interactions = sorted(interactions, key=lambda item: item.order)
        self._question_count = len(self._interactions)

    def record_interaction(self, interaction: Interaction) -> None:
        """Append a persisted interaction and advance the counter."""
        self._interactions.append(interaction)
        self._question_count += 1

    def history(self) -> list[HistoryItem]:
        """Get prior exchanges in the form the question provider expects."""
        return [
            HistoryItem(question=item.question_text, answer=item.answer_text)
            for item in self._interactions
        ]

    def apply_interim(self, text: str) -> None:
        """Replace the interim scratch buffer."""
        self._interim_text = text.strip()

    def apply_final(self, text: str) -> None:
        """Append a final segment to the answer and clear the scratch buffer."""
        self._final_text = _join_segments(self._final_text, text.strip())
        self._interim_text = ""

    def set_answer_text(self, text: str) -> None:
        """Replace the answer with typed text."""
        self._final_text = text
        self._interim_text = ""

    def commit_interim(self) -> None:
        """Fold any pending interim text into the answer."""
        if self._interim_text:
            self.apply_final(self._interim_text)

    def clear_answer(self) -> None:
        """Reset the current question and transcript after a successful save."""
        self._current_question = None
        self._final_text = ""
        self._interim_text = ""
        self._recovered_draft = None


def _join_segments(existing: str, segment: str) -> str:
    if not segment:
        return existing
    if not existing.strip():
        return segment
    return f"{existing.rstrip()} {segment}"
