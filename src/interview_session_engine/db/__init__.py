"""
Database module for persistence.

Provides SQLAlchemy models, repositories and the interaction store gateway
used by the session orchestrator.
"""

from interview_session_engine.db.gateway import (
    InteractionConflictError,
    InteractionStore,
    InvalidStatusTransitionError,
    SqlInteractionStore,
    StoreError,
)
from interview_session_engine.db.models import Base, InteractionModel, SessionModel
from interview_session_engine.db.repository import InteractionRepository, SessionRepository

__all__ = [
    "Base",
    "InteractionConflictError",
    "InteractionModel",
    "InteractionRepository",
    "InteractionStore",
    "InvalidStatusTransitionError",
    "SessionModel",
    "SessionRepository",
    "SqlInteractionStore",
    "StoreError",
]
