"""
Question provider interface.

Selects the next interview question for a session given its parameters and
the ordered history of prior exchanges.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import Enum

from interview_session_engine.schemas import QuestionRequest

logger = logging.getLogger(__name__)

MAX_HISTORY_ITEMS = 50


class QuestionStage(str, Enum):
    """Position of a question within the session."""

    OPENING = "opening"
    CORE = "core"
    CLOSING = "closing"


class Difficulty(str, Enum):
    """Progressive difficulty hinted to the generator."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class QuestionServiceError(Exception):
    """Raised when a question cannot be produced."""


class InvalidQuestionRequestError(QuestionServiceError):
    """Raised when the request parameters are rejected before any call."""

    def __init__(self, errors: list[str]) -> None:
        super().__init__(f"Invalid request parameters: {', '.join(errors)}")
        self.errors = errors


def calculate_difficulty(question_count: int) -> Difficulty:
    """Map the number of questions already asked to a difficulty."""
    if question_count < 3:
        return Difficulty.EASY
    if question_count < 7:
        return Difficulty.MEDIUM
    return Difficulty.HARD


def stage_for(history_length: int, max_questions: int) -> QuestionStage:
    """
    Pick the pool stage for the next question.

    Args:
        history_length: Number of questions already answered.
        max_questions: Number of questions in a full session.

    Returns:
        Opening for the first question, closing for the last, core otherwise.
    """
    if history_length <= 0:
        return QuestionStage.OPENING
    if history_length >= max_questions - 1:
        return QuestionStage.CLOSING
    return QuestionStage.CORE


def validate_request(request: QuestionRequest) -> None:
    """
    Reject requests the question backend would refuse.

    Raises:
        InvalidQuestionRequestError: If any parameter is invalid.
    """
    errors: list[str] = []
    if not request.role.strip():
        errors.append("Role is required")
    if len(request.history) > MAX_HISTORY_ITEMS:
        errors.append(f"History is too long (maximum {MAX_HISTORY_ITEMS} interactions)")
    for index, item in enumerate(request.history):
        if not item.question.strip():
            errors.append(f"History item {index} must have a question")
    if errors:
        raise InvalidQuestionRequestError(errors)


class QuestionProvider(ABC):
    """Abstract base class for question providers."""

    @abstractmethod
    async def next_question(self, request: QuestionRequest) -> str:
        """
        Produce the next question text.

        Args:
            request: Session parameters and ordered history.

        Returns:
            Question text.

        Raises:
            QuestionServiceError: If no question could be produced.
        """
        ...

    async def close(self) -> None:
        """Release any held resources."""
        return None


class ResilientQuestionProvider(QuestionProvider):
    """
    Tries a primary provider and degrades to a fallback on failure.

    A generic question keeps the interview moving when the generator is down.
    """

    def __init__(
        self,
        primary: QuestionProvider,
        fallback: QuestionProvider,
        fallback_enabled: bool = True,
    ) -> None:
        self._primary = primary
        self._fallback = fallback
        self._fallback_enabled = fallback_enabled

    async def next_question(self, request: QuestionRequest) -> str:
        try:
            return await self._primary.next_question(request)
        except InvalidQuestionRequestError:
            raise
        except QuestionServiceError as e:
            if not self._fallback_enabled:
                raise
            logger.warning(f"Question service unavailable, using fallback question: {e}")
            return await self._fallback.next_question(request)

    async def close(self) -> None:
        await self._primary.close()
        await self._fallback.close()
