"""
Repository pattern for database operations.

Provides a clean abstraction over SQLAlchemy for session and interaction
records.
"""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from interview_session_engine.db.models import Base, InteractionModel, SessionModel
from interview_session_engine.schemas import (
    Interaction,
    Session,
    SessionStatus,
    SessionType,
    SessionUpdate,
)

T = TypeVar("T", bound=Base)


class BaseRepository(ABC, Generic[T]):
    """Abstract base repository with common CRUD operations."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize the repository.

        Args:
            session: SQLAlchemy async session.
        """
        self._session = session

    @property
    @abstractmethod
    def _model_class(self) -> type[T]:
        """Get the model class for this repository."""
        ...

    async def get_by_id(self, entity_id: str) -> T | None:
        """
        Get an entity by its ID.

        Args:
            entity_id: The entity's identifier.

        Returns:
            The entity if found, None otherwise.
        """
        return await self._session.get(self._model_class, entity_id)

    async def create(self, entity: T) -> T:
        """
        Create a new entity.

        Args:
            entity: The entity to create.

        Returns:
            The created entity.
        """
        self._session.add(entity)
        await self._session.flush()
        await self._session.refresh(entity)
        return entity

    async def update(self, entity: T) -> T:
        """
        Flush pending changes to an entity.

        Args:
            entity: The entity to update.

        Returns:
            The updated entity.
        """
        await self._session.flush()
        await self._session.refresh(entity)
        return entity


class SessionRepository(BaseRepository[SessionModel]):
    """Repository for interview session records."""

    @property
    def _model_class(self) -> type[SessionModel]:
        """Get the model class."""
        return SessionModel

    async def create_session(
        self,
        user_id: str,
        role: str,
        session_type: SessionType,
        experience_level: str = "mid",
        industry: str | None = None,
    ) -> SessionModel:
        """
        Create an active session (the setup flow's job, exposed for tooling).

        Returns:
            The created session model.
        """
        model = SessionModel(
            user_id=user_id,
            role=role,
            session_type=session_type.value,
            experience_level=experience_level,
            industry=industry,
            status=SessionStatus.ACTIVE.value,
        )
        return await self.create(model)

    async def apply_update(self, model: SessionModel, update: SessionUpdate) -> SessionModel:
        """
        Write finalization fields onto a session.

        Args:
            model: Session to update.
            update: Fields to write.

        Returns:
            The updated session model.
        """
        model.status = update.status.value
        model.completed_at = update.completed_at
        model.total_questions = update.total_questions
        if update.final_score is not None:
            model.final_score = update.final_score
        if update.duration_seconds is not None:
            model.duration_seconds = update.duration_seconds
        return await self.update(model)

    @staticmethod
    def to_schema(model: SessionModel) -> Session:
        """Convert a session model to its schema."""
        return Session(
            id=model.id,
            user_id=model.user_id,
            role=model.role,
            session_type=SessionType(model.session_type),
            experience_level=model.experience_level,
            industry=model.industry,
            status=SessionStatus(model.status),
            started_at=model.started_at,
            completed_at=model.completed_at,
            final_score=model.final_score,
            total_questions=model.total_questions,
        )


class InteractionRepository(BaseRepository[InteractionModel]):
    """Repository for question/answer interactions."""

    @property
    def _model_class(self) -> type[InteractionModel]:
        """Get the model class."""
        return InteractionModel

    async def list_by_session(self, session_id: str) -> list[InteractionModel]:
        """
        List a session's interactions ordered by position.

        Args:
            session_id: Owning session.

        Returns:
            Interactions in ascending order.
        """
        stmt = (
            select(InteractionModel)
            .where(InteractionModel.session_id == session_id)
            .order_by(InteractionModel.order.asc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_order(self, session_id: str, order: int) -> InteractionModel | None:
        """
        Get the interaction stored at a position, if any.

        Args:
            session_id: Owning session.
            order: 1-based position.

        Returns:
            The interaction if found, None otherwise.
        """
        stmt = select(InteractionModel).where(
            InteractionModel.session_id == session_id,
            InteractionModel.order == order,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def create_from_interaction(self, interaction: Interaction) -> InteractionModel:
        """
        Create an interaction from its schema.

        Args:
            interaction: Interaction data (its id is ignored).

        Returns:
            The created interaction model.
        """
        model = InteractionModel(
            session_id=interaction.session_id,
            order=interaction.order,
            question_text=interaction.question_text,
            answer_text=interaction.answer_text,
            timestamp=interaction.timestamp,
        )
        return await self.create(model)

    @staticmethod
    def to_schema(model: InteractionModel) -> Interaction:
        """Convert an interaction model to its schema."""
        return Interaction(
            id=model.id,
            session_id=model.session_id,
            question_text=model.question_text,
            answer_text=model.answer_text,
            order=model.order,
            timestamp=model.timestamp,
        )
