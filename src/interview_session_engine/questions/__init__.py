"""
Question providers for live interview sessions.
"""

from interview_session_engine.questions.http_provider import HttpQuestionProvider
from interview_session_engine.questions.provider import (
    Difficulty,
    InvalidQuestionRequestError,
    QuestionProvider,
    QuestionServiceError,
    QuestionStage,
    ResilientQuestionProvider,
    calculate_difficulty,
)
from interview_session_engine.questions.question_bank import FALLBACK_QUESTION, QuestionBank

__all__ = [
    "Difficulty",
    "FALLBACK_QUESTION",
    "HttpQuestionProvider",
    "InvalidQuestionRequestError",
    "QuestionBank",
    "QuestionProvider",
    "QuestionServiceError",
    "QuestionStage",
    "ResilientQuestionProvider",
    "calculate_difficulty",
]
