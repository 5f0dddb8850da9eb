"""Shared fakes for session engine tests."""

import asyncio

import pytest

from interview_session_engine.config import Settings
from interview_session_engine.db.gateway import InteractionStore, InvalidStatusTransitionError, StoreError
from interview_session_engine.drafts.store import InMemoryDraftStore
from interview_session_engine.questions.provider import QuestionProvider, QuestionServiceError
from interview_session_engine.schemas import (
    Interaction,
    QuestionRequest,
    Session,
    SessionStatus,
    SessionType,
    SessionUpdate,
)
from interview_session_engine.voice.transcript import SignalListener, SpeechRecognizer


class FakeInteractionStore(InteractionStore):
    """In-memory store with switchable failures."""

    def __init__(self) -> None:
        self.sessions: dict[str, Session] = {}
        self.rows: dict[str, list[Interaction]] = {}
        self.fail_get = 0
        self.fail_persist = 0
        self.fail_after_write = 0
        self.fail_finalize = 0
        self.persist_calls = 0
        self.finalize_updates: list[SessionUpdate] = []
        self.persist_gate: asyncio.Event | None = None
        self.persist_started = asyncio.Event()

    def add_session(self, session: Session, interactions: list[Interaction] | None = None) -> None:
        self.sessions[session.id] = session
        self.rows[session.id] = list(interactions or [])

    async def get_session(self, session_id: str) -> Session | None:
        if self.fail_get:
            self.fail_get -= 1
            raise StoreError("database unavailable")
        return self.sessions.get(session_id)

    async def list_interactions(self, session_id: str) -> list[Interaction]:
        return sorted(self.rows.get(session_id, []), key=lambda item: item.order)

    async def persist(self, interaction: Interaction) -> Interaction:
        self.persist_calls += 1
        self.persist_started.set()
        if self.persist_gate is not None:
            await self.persist_gate.wait()
        if self.fail_persist:
            self.fail_persist -= 1
            raise StoreError("write failed")

        rows = self.rows.setdefault(interaction.session_id, [])
        for row in rows:
            if row.order == interaction.order:
                return row
        stored = interaction.model_copy(update={"id": f"int-{interaction.order}"})
        rows.append(stored)

        if self.fail_after_write:
            self.fail_after_write -= 1
            raise StoreError("connection dropped after commit")
        return stored

    async def finalize(self, session_id: str, update: SessionUpdate) -> Session:
        if self.fail_finalize:
            self.fail_finalize -= 1
            raise StoreError("update failed")
        session = self.sessions[session_id]
        if session.status == update.status:
            return session
        if session.status != SessionStatus.ACTIVE:
            raise InvalidStatusTransitionError("not active")
        self.finalize_updates.append(update)
        session = session.model_copy(
            update={
                "status": update.status,
                "completed_at": update.completed_at,
                "total_questions": update.total_questions,
                "final_score": update.final_score,
            }
        )
        self.sessions[session_id] = session
        return session


class FakeQuestionProvider(QuestionProvider):
    """Numbered questions, with optional failures and a gate to hold a fetch open."""

    def __init__(self) -> None:
        self.requests: list[QuestionRequest] = []
        self.fail_next = 0
        self.gate: asyncio.Event | None = None
        self.started = asyncio.Event()

    async def next_question(self, request: QuestionRequest) -> str:
        self.requests.append(request)
        self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_next:
            self.fail_next -= 1
            raise QuestionServiceError("generator down")
        return f"Question {len(request.history) + 1}: tell me about your experience?"


class FakeRecognizer(SpeechRecognizer):
    """Recognizer driven by the test through `emit`."""

    def __init__(self, supported: bool = True) -> None:
        self.supported = supported
        self.start_error: Exception | None = None
        self.sink: SignalListener | None = None
        self.start_calls = 0
        self.stop_calls = 0

    @property
    def is_supported(self) -> bool:
        return self.supported

    async def start(self, sink: SignalListener) -> None:
        self.start_calls += 1
        if self.start_error is not None:
            raise self.start_error
        self.sink = sink

    async def stop(self) -> None:
        self.stop_calls += 1

    def emit(self, signal) -> None:
        assert self.sink is not None
        self.sink(signal)


@pytest.fixture
def settings() -> Settings:
    """Settings with a long autosave interval so snapshots only happen on demand."""
    return Settings(
        network_timeout_seconds=2.0,
        draft_autosave_interval=3600.0,
        auto_advance_questions=True,
    )


@pytest.fixture
def active_session() -> Session:
    return Session(
        id="sess-1",
        user_id="user-1",
        role="Software Engineer",
        session_type=SessionType.BEHAVIORAL,
        experience_level="mid",
    )


@pytest.fixture
def store(active_session: Session) -> FakeInteractionStore:
    store = FakeInteractionStore()
    store.add_session(active_session)
    return store


@pytest.fixture
def questions() -> FakeQuestionProvider:
    return FakeQuestionProvider()


@pytest.fixture
def recognizer() -> FakeRecognizer:
    return FakeRecognizer()


@pytest.fixture
def draft_store() -> InMemoryDraftStore:
    return InMemoryDraftStore()
