"""
Interaction store gateway.

The storage contract the session orchestrator depends on, plus its
SQLAlchemy implementation. Each call runs in its own transaction.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from interview_session_engine.db.models import Base
from interview_session_engine.db.repository import InteractionRepository, SessionRepository
from interview_session_engine.schemas import (
    Interaction,
    Session,
    SessionStatus,
    SessionType,
    SessionUpdate,
)

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Raised when the backing store fails or rejects a write."""


class InteractionConflictError(StoreError):
    """Raised when a different interaction already occupies an order value."""


class InvalidStatusTransitionError(StoreError):
    """Raised when a session status change is not allowed."""


class InteractionStore(ABC):
    """Abstract storage for sessions and their interactions."""

    @abstractmethod
    async def get_session(self, session_id: str) -> Session | None:
        """
        Get a session by id.

        Returns:
            The session, or None if it does not exist.
        """
        ...

    @abstractmethod
    async def list_interactions(self, session_id: str) -> list[Interaction]:
        """
        List a session's interactions ordered by `order`.
        """
        ...

    @abstractmethod
    async def persist(self, interaction: Interaction) -> Interaction:
        """
        Store an interaction and return the canonical record.

        Persisting the same (session, order, question) twice returns the
        first record rather than creating a duplicate.

        Raises:
            InteractionConflictError: If the order holds a different question.
            StoreError: On backend failure.
        """
        ...

    @abstractmethod
    async def finalize(self, session_id: str, update: SessionUpdate) -> Session:
        """
        Write end-of-session fields.

        Raises:
            InvalidStatusTransitionError: If the session is no longer active.
            StoreError: On backend failure.
        """
        ...


class SqlInteractionStore(InteractionStore):
    """SQLAlchemy-backed interaction store."""

    def __init__(self, engine: AsyncEngine) -> None:
        """
        Initialize the store.

        Args:
            engine: Async engine bound to the application database.
        """
        self._engine = engine
        self._session_factory = async_sessionmaker(engine, expire_on_commit=False)

    @classmethod
    def from_url(cls, database_url: str, echo: bool = False) -> SqlInteractionStore:
        """Create a store from a SQLAlchemy async URL."""
        return cls(create_async_engine(database_url, echo=echo))

    async def create_schema(self) -> None:
        """Create tables if they do not exist."""
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        """Close pooled connections."""
        await self._engine.dispose()

    async def create_session(
        self,
        user_id: str,
        role: str,
        session_type: SessionType,
        experience_level: str = "mid",
        industry: str | None = None,
    ) -> Session:
        """Create an active session record."""
        async with self._session_factory() as db, db.begin():
            model = await SessionRepository(db).create_session(
                user_id=user_id,
                role=role,
                session_type=session_type,
                experience_level=experience_level,
                industry=industry,
            )
            return SessionRepository.to_schema(model)

    async def get_session(self, session_id: str) -> Session | None:
        try:
            async with self._session_factory() as db:
                model = await SessionRepository(db).get_by_id(session_id)
                return SessionRepository.to_schema(model) if model else None
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to load session {session_id}") from e

    async def list_interactions(self, session_id: str) -> list[Interaction]:
        try:
            async with self._session_factory() as db:
                models = await InteractionRepository(db).list_by_session(session_id)
                return [InteractionRepository.to_schema(m) for m in models]
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to list interactions for session {session_id}") from e

    async def persist(self, interaction: Interaction) -> Interaction:
        try:
            existing = await self._find_existing(interaction)
            if existing is not None:
                return existing
            async with self._session_factory() as db, db.begin():
                model = await InteractionRepository(db).create_from_interaction(interaction)
                stored = InteractionRepository.to_schema(model)
        except IntegrityError:
            # A concurrent or earlier ambiguous write won the race for this order.
            existing = await self._find_existing(interaction)
            if existing is None:
                raise StoreError(
                    f"Failed to store interaction {interaction.order} for session {interaction.session_id}"
                ) from None
            return existing
        except SQLAlchemyError as e:
            raise StoreError(
                f"Failed to store interaction {interaction.order} for session {interaction.session_id}"
            ) from e

        logger.info(f"Stored interaction {stored.order} for session {stored.session_id}")
        return stored

    async def _find_existing(self, interaction: Interaction) -> Interaction | None:
        async with self._session_factory() as db:
            model = await InteractionRepository(db).get_by_order(interaction.session_id, interaction.order)
            if model is None:
                return None
            if model.question_text != interaction.question_text:
                raise InteractionConflictError(
                    f"Order {interaction.order} of session {interaction.session_id} holds a different question"
                )
            logger.info(f"Interaction {interaction.order} for session {interaction.session_id} already stored")
            return InteractionRepository.to_schema(model)

    async def finalize(self, session_id: str, update: SessionUpdate) -> Session:
        try:
            async with self._session_factory() as db, db.begin():
                repo = SessionRepository(db)
                model = await repo.get_by_id(session_id)
                if model is None:
                    raise StoreError(f"Session {session_id} not found")

                current = SessionStatus(model.status)
                if current == update.status:
                    # Retried finalize after an ambiguous outcome.
                    return SessionRepository.to_schema(model)
                if current != SessionStatus.ACTIVE or update.status == SessionStatus.ACTIVE:
                    raise InvalidStatusTransitionError(
                        f"Cannot move session {session_id} from {current.value} to {update.status.value}"
                    )

                model = await repo.apply_update(model, update)
                logger.info(f"Session {session_id} marked {update.status.value}")
                return SessionRepository.to_schema(model)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to finalize session {session_id}") from e
