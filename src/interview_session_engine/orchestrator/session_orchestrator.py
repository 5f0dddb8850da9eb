"""
Live session orchestrator.

Drives one interview session from load to finalization: authorizes the
caller, fetches questions, collects the answer from speech or typed input,
persists each interaction, snapshots drafts and completes the session.

Every failure leaves the state machine where the same call can be retried
without losing the answer being composed.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Awaitable, NoReturn, TypeVar

from interview_session_engine.config import Settings, get_settings
from interview_session_engine.db.gateway import InteractionStore, StoreError
from interview_session_engine.drafts.autosave import DraftAutosaver
from interview_session_engine.drafts.store import DraftStore, InMemoryDraftStore
from interview_session_engine.errors import (
    FinalizeFailedError,
    InactiveSessionError,
    InteractionSaveFailedError,
    QuestionFetchFailedError,
    SessionBusyError,
    SessionEngineError,
    SessionLoadFailedError,
    SessionNotFoundError,
    SpeechCaptureError,
    UnauthorizedError,
)
from interview_session_engine.orchestrator.session_state import SessionRuntimeState
from interview_session_engine.questions.provider import QuestionProvider, QuestionServiceError
from interview_session_engine.schemas import (
    MAX_QUESTIONS_PER_SESSION,
    SKIPPED_ANSWER_TEXT,
    Draft,
    Interaction,
    Notice,
    OrchestratorPhase,
    QuestionRequest,
    Session,
    SessionStatus,
    SessionSummary,
    SessionUpdate,
    SpeechErrorKind,
    TranscriptEvent,
    compute_final_score,
)
from interview_session_engine.voice.transcript import (
    Subscription,
    TranscriptCaptureAdapter,
    TranscriptSignal,
    UnsupportedSpeechRecognizer,
)

T = TypeVar("T")

UNSAVED_CHANGES_WARNING = "You have an unsaved answer. Are you sure you want to leave?"

_ANSWERING_PHASES = (OrchestratorPhase.AWAITING_ANSWER, OrchestratorPhase.RECORDING)
_TERMINAL_PHASES = (OrchestratorPhase.COMPLETED, OrchestratorPhase.FAILED)


class SessionOrchestrator:
    """
    State machine for a single live interview session.

    Loading -> Authorizing -> AwaitingAnswer <-> Recording -> Advancing
    -> (AwaitingAnswer | Saving) -> Completed, with Failed reachable from
    loading and authorization only.

    Not safe for concurrent use: callers serialize transitions, and a
    network-bound transition started while another is running raises
    SessionBusyError.
    """

    def __init__(
        self,
        session_id: str,
        user_id: str,
        store: InteractionStore,
        question_provider: QuestionProvider,
        transcript: TranscriptCaptureAdapter | None = None,
        draft_store: DraftStore | None = None,
        settings: Settings | None = None,
        auto_advance: bool | None = None,
    ) -> None:
        """
        Initialize the orchestrator for one session.

        Args:
            session_id: Session to drive.
            user_id: Identifier of the caller; must own the session.
            store: Session and interaction storage.
            question_provider: Source of interview questions.
            transcript: Speech capture adapter. Defaults to typed input only.
            draft_store: Where unsent answers are snapshotted.
            settings: Application settings (defaults to cached settings).
            auto_advance: Fetch the next question after each save
                (defaults to settings).
        """
        settings = settings or get_settings()
        self._logger = logging.getLogger(__name__)
        self._state = SessionRuntimeState(session_id)
        self._user_id = user_id
        self._store = store
        self._questions = question_provider
        self._transcript = transcript or TranscriptCaptureAdapter(UnsupportedSpeechRecognizer())
        self._drafts = draft_store or InMemoryDraftStore()
        self._timeout = settings.network_timeout_seconds
        self._auto_advance = settings.auto_advance_questions if auto_advance is None else auto_advance
        self._autosaver = DraftAutosaver(
            store=self._drafts,
            snapshot=self._draft_snapshot,
            interval=settings.draft_autosave_interval,
        )
        self._subscription: Subscription | None = None
        self._fetching: bool = False
        self._fetch_generation: int = 0
        self._started_monotonic: float = time.monotonic()
        self._summary: SessionSummary | None = None

    # ------------------------------------------------------------------
    # Read-only view
    # ------------------------------------------------------------------

    @property
    def session_id(self) -> str:
        """Get the session identifier."""
        return self._state.session_id

    @property
    def session(self) -> Session | None:
        """Get the loaded session record."""
        return self._state.session

    @property
    def phase(self) -> OrchestratorPhase:
        """Get the current state machine phase."""
        return self._state.phase

    @property
    def is_active(self) -> bool:
        """Check whether the session can still take answers."""
        return self._state.phase not in _TERMINAL_PHASES and self._state.phase != OrchestratorPhase.LOADING

    @property
    def current_question(self) -> str | None:
        """Get the question being answered."""
        return self._state.current_question

    @property
    def answer_text(self) -> str:
        """Get the answer as it would be committed now (final plus interim)."""
        return self._state.answer_text

    @property
    def interim_text(self) -> str:
        """Get the interim transcript scratch buffer."""
        return self._state.interim_text

    @property
    def is_recording(self) -> bool:
        """Check whether speech capture is running."""
        return self._state.is_recording

    @property
    def is_saving(self) -> bool:
        """Check whether a save or finalize call is in flight."""
        return self._state.in_flight

    @property
    def is_loading_question(self) -> bool:
        """Check whether a question fetch is in flight."""
        return self._fetching

    @property
    def error(self) -> Notice | None:
        """Get the last failure notice."""
        return self._state.error

    @property
    def question_count(self) -> int:
        """Get the number of persisted interactions."""
        return self._state.question_count

    @property
    def max_questions(self) -> int:
        """Get the question cap."""
        return MAX_QUESTIONS_PER_SESSION

    @property
    def interactions(self) -> list[Interaction]:
        """Get persisted interactions in order."""
        return self._state.interactions

    @property
    def recovered_draft(self) -> Draft | None:
        """Get the draft found at load time, if it has not been accepted or discarded."""
        return self._state.recovered_draft

    @property
    def speech_supported(self) -> bool:
        """Check whether recording can be offered."""
        return self._transcript.supported

    @property
    def summary(self) -> SessionSummary | None:
        """Get the session outcome once completed."""
        return self._summary

    @property
    def unsaved_changes_warning(self) -> str | None:
        """Message the host should show before unloading, if an answer is unsent."""
        if self.is_active and self._state.has_unsent_text:
            return UNSAVED_CHANGES_WARNING
        return None

    # ------------------------------------------------------------------
    # Load and authorize
    # ------------------------------------------------------------------

    async def load(self) -> Draft | None:
        """
        Load the session, authorize the caller and restore history.

        Returns:
            A recovered draft for the next question, if one was saved.

        Raises:
            SessionNotFoundError: If the session does not exist.
            UnauthorizedError: If the caller does not own the session.
            InactiveSessionError: If the session is not active.
            SessionLoadFailedError: If storage could not be reached (retriable).
        """
        if self._state.phase != OrchestratorPhase.LOADING:
            raise RuntimeError("Session has already been loaded.")

        self._logger.info(f"Loading session {self.session_id}")
        try:
            session = await self._call(self._store.get_session(self.session_id))
        except (StoreError, asyncio.TimeoutError) as e:
            self._raise_recoverable(SessionLoadFailedError(), e)

        if session is None:
            self._fail(SessionNotFoundError())

        self._state.phase = OrchestratorPhase.AUTHORIZING
        if session.user_id != self._user_id:
            self._fail(UnauthorizedError())
        if session.status != SessionStatus.ACTIVE:
            self._fail(InactiveSessionError())
        self._state.session = session

        try:
            await self._load_history()
        except (StoreError, asyncio.TimeoutError) as e:
            self._state.phase = OrchestratorPhase.LOADING
            self._raise_recoverable(SessionLoadFailedError(), e)

        await self._recover_draft()

        self._state.error = None
        self._state.phase = OrchestratorPhase.AWAITING_ANSWER
        self._started_monotonic = time.monotonic()
        self._autosaver.start()
        self._logger.info(
            f"Session {self.session_id} ready: {self._state.question_count} of "
            f"{MAX_QUESTIONS_PER_SESSION} questions answered"
        )
        return self._state.recovered_draft

    async def _load_history(self) -> None:
        interactions = await self._call(self._store.list_interactions(self.session_id))
        self._state.load_history(interactions)

    async def _recover_draft(self) -> None:
        try:
            draft = await self._drafts.load(self.session_id)
        except (OSError, ValueError) as e:
            self._logger.warning(f"Could not read draft for session {self.session_id}: {e}")
            return
        if draft is None:
            return
        if draft.question_order == self._state.next_order and draft.text.strip():
            self._logger.info(f"Recovered draft for question {draft.question_order}")
            self._state.recovered_draft = draft
            if draft.question_text:
                self._state.current_question = draft.question_text
        else:
            self._logger.info(f"Discarding stale draft for question {draft.question_order}")
            await self._clear_draft()

    def accept_recovered_draft(self) -> str:
        """
        Use the recovered draft as the current answer.

        Returns:
            The restored answer text.
        """
        draft = self._state.recovered_draft
        if draft is None:
            raise RuntimeError("No recovered draft to accept.")
        self._state.set_answer_text(draft.text)
        self._state.recovered_draft = None
        return draft.text

    async def discard_recovered_draft(self) -> None:
        """Drop the recovered draft and clear its storage slot."""
        self._state.recovered_draft = None
        await self._clear_draft()

    # ------------------------------------------------------------------
    # Questions
    # ------------------------------------------------------------------

    async def fetch_question(self) -> str | None:
        """
        Request the next question.

        Returns:
            The question text, or None if the result was discarded because the
            cap was reached or the session ended while it was in flight.

        Raises:
            QuestionFetchFailedError: If the provider failed; call again to retry.
        """
        self._require_answering()
        if self._state.current_question is not None:
            return self._state.current_question
        if self._state.cap_reached:
            self._logger.info("Question cap reached; not fetching another question")
            return None
        if self._fetching:
            raise SessionBusyError()

        session = self._require_session()
        request = QuestionRequest(
            role=session.role,
            session_type=session.session_type,
            experience_level=session.experience_level,
            industry=session.industry,
            history=self._state.history(),
        )
        generation = self._fetch_generation
        self._fetching = True
        try:
            question = await self._call(self._questions.next_question(request))
        except (QuestionServiceError, asyncio.TimeoutError) as e:
            if generation != self._fetch_generation:
                return None
            self._raise_recoverable(QuestionFetchFailedError(), e)
        finally:
            self._fetching = False

        if generation != self._fetch_generation or self._state.cap_reached or not self.is_active:
            self._logger.info("Discarding question fetched after the session moved on")
            return None

        self._state.current_question = question
        self._clear_notice(QuestionFetchFailedError.kind)
        self._autosaver.start()
        self._logger.info(f"Question {self._state.next_order} of {MAX_QUESTIONS_PER_SESSION} ready")
        return question

    # ------------------------------------------------------------------
    # Answer capture
    # ------------------------------------------------------------------

    async def start_recording(self) -> bool:
        """
        Start speech capture.

        Returns:
            True if recording, False if capture is unavailable (a notice is set).
        """
        self._require_answering()
        if self._state.is_recording:
            return True
        if not self._transcript.supported:
            self._surface_speech_error(SpeechCaptureError(SpeechErrorKind.UNSUPPORTED))
            return False

        self._subscription = self._transcript.subscribe(self._on_transcript_signal)
        try:
            await self._call(self._transcript.start())
        except SpeechCaptureError as e:
            self._subscription = None
            self._surface_speech_error(e)
            return False
        except asyncio.TimeoutError:
            await self._transcript.stop()
            self._subscription = None
            self._surface_speech_error(SpeechCaptureError(SpeechErrorKind.ABORTED))
            return False

        self._state.is_recording = True
        self._state.phase = OrchestratorPhase.RECORDING
        self._clear_notice(SpeechCaptureError.kind)
        return True

    async def stop_recording(self) -> None:
        """Stop speech capture. Calling it when not recording does nothing."""
        if not self._state.is_recording:
            return
        await self._transcript.stop()
        self._subscription = None
        self._end_recording()

    def set_answer_text(self, text: str) -> None:
        """Replace the answer with typed text; always available as a fallback."""
        self._require_answering()
        self._state.set_answer_text(text)

    def dismiss_error(self) -> None:
        """Clear a recoverable notice."""
        if self._state.error is not None and not self._state.error.fatal:
            self._state.error = None

    def _on_transcript_signal(self, signal: TranscriptSignal) -> None:
        if isinstance(signal, TranscriptEvent):
            if signal.is_final:
                self._state.apply_final(signal.text)
            else:
                self._state.apply_interim(signal.text)
            return

        # The adapter has already stopped itself and dropped this listener.
        self._subscription = None
        if self._state.is_recording:
            self._end_recording()
        self._surface_speech_error(signal)

    def _end_recording(self) -> None:
        self._state.commit_interim()
        self._state.is_recording = False
        if self._state.phase == OrchestratorPhase.RECORDING:
            self._state.phase = OrchestratorPhase.AWAITING_ANSWER

    # ------------------------------------------------------------------
    # Advance
    # ------------------------------------------------------------------

    async def advance(self) -> Interaction:
        """
        Commit the current answer.

        Persists the answer as the next interaction. At the question cap the
        session is finalized immediately; otherwise the next question is
        fetched when auto-advance is enabled.

        Returns:
            The stored interaction.

        Raises:
            InteractionSaveFailedError: If the save failed; the answer is kept
                and calling advance() again retries the same order.
            SessionBusyError: If a save is already in flight.
            FinalizeFailedError: If this was the last question and the session
                record could not be completed.
        """
        question = self._require_committable()
        answer = self._state.answer_text.strip()
        if not answer:
            raise ValueError("Answer text is empty. Use skip_question() to move on without answering.")
        await self.stop_recording()
        return await self._commit(question, self._state.answer_text.strip())

    async def skip_question(self) -> Interaction:
        """
        Record the current question as skipped and move on.

        Returns:
            The stored interaction.
        """
        question = self._require_committable()
        await self.stop_recording()
        return await self._commit(question, SKIPPED_ANSWER_TEXT)

    async def _commit(self, question: str, answer: str) -> Interaction:
        interaction = Interaction(
            session_id=self.session_id,
            question_text=question,
            answer_text=answer,
            order=self._state.next_order,
        )
        self._state.in_flight = True
        self._state.phase = OrchestratorPhase.ADVANCING
        try:
            stored = await self._call(self._store.persist(interaction))
        except (StoreError, asyncio.TimeoutError) as e:
            self._state.in_flight = False
            self._state.phase = OrchestratorPhase.AWAITING_ANSWER
            self._raise_recoverable(InteractionSaveFailedError(), e)

        self._state.in_flight = False
        self._state.record_interaction(stored)
        self._state.clear_answer()
        self._fetch_generation += 1
        await self._autosaver.stop()
        await self._clear_draft()
        self._state.phase = OrchestratorPhase.AWAITING_ANSWER
        self._clear_notice(InteractionSaveFailedError.kind)
        self._logger.info(f"Saved answer {stored.order} of {MAX_QUESTIONS_PER_SESSION}")

        if self._state.cap_reached:
            await self.end_session()
            return stored

        self._autosaver.start()
        if self._auto_advance:
            try:
                await self.fetch_question()
            except QuestionFetchFailedError:
                # The answer is saved; the notice offers a retry of fetch_question().
                self._logger.warning("Next question could not be loaded after saving the answer")
        return stored

    # ------------------------------------------------------------------
    # End of session
    # ------------------------------------------------------------------

    async def end_session(self) -> SessionSummary:
        """
        Mark the session completed.

        Returns:
            Summary of the session built from locally held data.

        Raises:
            FinalizeFailedError: If the session record could not be updated.
                Saved interactions are unaffected; the error carries the
                summary and calling end_session() again retries.
        """
        return await self._finalize(SessionStatus.COMPLETED)

    async def abandon(self) -> SessionSummary:
        """Mark the session abandoned."""
        return await self._finalize(SessionStatus.ABANDONED)

    async def _finalize(self, status: SessionStatus) -> SessionSummary:
        if self._state.phase == OrchestratorPhase.COMPLETED and self._summary is not None:
            return self._summary
        self._require_answering()
        if self._state.in_flight:
            raise SessionBusyError()

        await self.stop_recording()
        self._fetch_generation += 1
        await self._autosaver.stop()

        summary = self._build_summary(status)
        update = SessionUpdate(
            status=status,
            completed_at=summary.completed_at,
            total_questions=summary.total_questions,
            final_score=summary.final_score if status == SessionStatus.COMPLETED else None,
            duration_seconds=summary.duration_seconds,
        )

        self._state.in_flight = True
        self._state.phase = OrchestratorPhase.SAVING
        try:
            session = await self._call(self._store.finalize(self.session_id, update))
        except (StoreError, asyncio.TimeoutError) as e:
            self._state.in_flight = False
            self._state.phase = OrchestratorPhase.AWAITING_ANSWER
            self._raise_recoverable(FinalizeFailedError(summary=summary), e)

        self._state.in_flight = False
        self._state.session = session
        self._summary = summary
        self._state.clear_answer()
        await self._clear_draft()
        self._state.error = None
        self._state.phase = OrchestratorPhase.COMPLETED
        self._logger.info(
            f"Session {self.session_id} {status.value}: {summary.total_questions} questions, "
            f"score {summary.final_score}, {summary.duration_seconds:.0f}s"
        )
        return summary

    def _build_summary(self, status: SessionStatus) -> SessionSummary:
        answered = self._state.question_count
        return SessionSummary(
            session_id=self.session_id,
            status=status,
            total_questions=answered,
            final_score=compute_final_score(answered),
            duration_seconds=round(time.monotonic() - self._started_monotonic, 3),
            completed_at=datetime.now(timezone.utc),
            interactions=self._state.interactions,
        )

    async def dispose(self) -> None:
        """
        Release the session's resources.

        Stops recording and the autosave task, discards any in-flight question
        and writes a last draft snapshot so a reload can recover it.
        """
        await self.stop_recording()
        self._fetch_generation += 1
        await self._autosaver.stop()
        if self._state.phase in _ANSWERING_PHASES:
            try:
                await self._autosaver.save_now()
            except OSError as e:
                self._logger.warning(f"Could not save draft on dispose: {e}")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _call(self, awaitable: Awaitable[T]) -> T:
        return await asyncio.wait_for(awaitable, timeout=self._timeout)

    def _draft_snapshot(self) -> Draft | None:
        if self._state.phase not in _ANSWERING_PHASES or not self._state.has_unsent_text:
            return None
        return Draft(
            session_id=self.session_id,
            question_order=self._state.next_order,
            text=self._state.answer_text,
            question_text=self._state.current_question,
        )

    async def _clear_draft(self) -> None:
        self._autosaver.reset()
        try:
            await self._drafts.clear(self.session_id)
        except OSError as e:
            self._logger.warning(f"Could not clear draft for session {self.session_id}: {e}")

    def _require_session(self) -> Session:
        session = self._state.session
        if session is None:
            raise RuntimeError("Session not loaded. Call load() first.")
        return session

    def _require_answering(self) -> None:
        phase = self._state.phase
        if phase == OrchestratorPhase.LOADING:
            raise RuntimeError("Session not loaded. Call load() first.")
        if phase in _TERMINAL_PHASES:
            raise RuntimeError(f"Session is {phase.value}; no further transitions are allowed.")

    def _require_committable(self) -> str:
        self._require_answering()
        if self._state.in_flight:
            raise SessionBusyError()
        if self._state.cap_reached:
            raise RuntimeError("All questions have been answered; call end_session().")
        question = self._state.current_question
        if question is None:
            raise RuntimeError("No question to answer. Call fetch_question() first.")
        return question

    def _surface_speech_error(self, error: SpeechCaptureError) -> None:
        self._logger.warning(f"Speech capture unavailable ({error.error_kind.value}); typed input remains available")
        self._state.error = error.to_notice()

    def _clear_notice(self, kind: str) -> None:
        if self._state.error is not None and self._state.error.kind == kind:
            self._state.error = None

    def _raise_recoverable(self, error: SessionEngineError, cause: BaseException) -> NoReturn:
        self._logger.warning(f"{error.kind}: {error.message} ({cause!r})")
        self._state.error = error.to_notice()
        raise error from cause

    def _fail(self, error: SessionEngineError) -> NoReturn:
        self._logger.error(f"Session {self.session_id} cannot be opened: {error.kind}")
        self._state.error = error.to_notice()
        self._state.phase = OrchestratorPhase.FAILED
        raise error
