"""Tests for the SQLAlchemy interaction store on SQLite."""

import pytest
import pytest_asyncio

from interview_session_engine.db import (
    InteractionConflictError,
    InvalidStatusTransitionError,
    SqlInteractionStore,
)
from interview_session_engine.schemas import Interaction, SessionStatus, SessionType, SessionUpdate

pytest.importorskip("aiosqlite")


@pytest_asyncio.fixture
async def sql_store(tmp_path):
    store = SqlInteractionStore.from_url(f"sqlite+aiosqlite:///{tmp_path / 'sessions.db'}")
    await store.create_schema()
    yield store
    await store.dispose()


def make_interaction(session_id: str, order: int, question: str = "Why this role?") -> Interaction:
    return Interaction(
        session_id=session_id,
        question_text=question,
        answer_text=f"Answer {order}",
        order=order,
    )


class TestSqlInteractionStore:
    @pytest.mark.asyncio
    async def test_create_and_get_session(self, sql_store: SqlInteractionStore) -> None:
        created = await sql_store.create_session(
            user_id="user-1",
            role="Data Scientist",
            session_type=SessionType.TECHNICAL,
            industry="Health",
        )

        loaded = await sql_store.get_session(created.id)

        assert loaded is not None
        assert loaded.user_id == "user-1"
        assert loaded.session_type == SessionType.TECHNICAL
        assert loaded.status == SessionStatus.ACTIVE
        assert await sql_store.get_session("missing") is None

    @pytest.mark.asyncio
    async def test_interactions_listed_in_order(self, sql_store: SqlInteractionStore) -> None:
        session = await sql_store.create_session("user-1", "Engineer", SessionType.BEHAVIORAL)
        for order in (2, 1, 3):
            await sql_store.persist(make_interaction(session.id, order, f"Question {order}?"))

        interactions = await sql_store.list_interactions(session.id)

        assert [item.order for item in interactions] == [1, 2, 3]
        assert all(item.id for item in interactions)

    @pytest.mark.asyncio
    async def test_persist_is_idempotent(self, sql_store: SqlInteractionStore) -> None:
        session = await sql_store.create_session("user-1", "Engineer", SessionType.BEHAVIORAL)

        first = await sql_store.persist(make_interaction(session.id, 1))
        second = await sql_store.persist(make_interaction(session.id, 1))

        assert first.id == second.id
        assert len(await sql_store.list_interactions(session.id)) == 1

    @pytest.mark.asyncio
    async def test_persist_conflicting_question(self, sql_store: SqlInteractionStore) -> None:
        session = await sql_store.create_session("user-1", "Engineer", SessionType.BEHAVIORAL)
        await sql_store.persist(make_interaction(session.id, 1, "First question?"))

        with pytest.raises(InteractionConflictError):
            await sql_store.persist(make_interaction(session.id, 1, "Another question?"))

    @pytest.mark.asyncio
    async def test_finalize_completes_once(self, sql_store: SqlInteractionStore) -> None:
        session = await sql_store.create_session("user-1", "Engineer", SessionType.BEHAVIORAL)
        update = SessionUpdate(
            status=SessionStatus.COMPLETED,
            total_questions=4,
            final_score=40,
            duration_seconds=312.5,
        )

        completed = await sql_store.finalize(session.id, update)
        again = await sql_store.finalize(session.id, update)

        assert completed.status == SessionStatus.COMPLETED
        assert completed.total_questions == 4
        assert completed.final_score == 40
        assert again.status == SessionStatus.COMPLETED

        with pytest.raises(InvalidStatusTransitionError):
            await sql_store.finalize(session.id, SessionUpdate(status=SessionStatus.ABANDONED))
