"""
HTTP client for the question-generation service.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import httpx

from interview_session_engine.config import get_settings
from interview_session_engine.questions.provider import (
    QuestionProvider,
    QuestionServiceError,
    calculate_difficulty,
    validate_request,
)
from interview_session_engine.schemas import QuestionRequest

logger = logging.getLogger(__name__)

QUESTION_ENDPOINT = "/interview/question"
MIN_QUESTION_CHARS = 10
MAX_QUESTION_CHARS = 1000


class HttpQuestionProvider(QuestionProvider):
    """
    Requests questions from a remote generator over HTTP.

    Transport errors, timeouts, non-2xx responses and malformed payloads all
    surface as QuestionServiceError.
    """

    def __init__(
        self,
        endpoint: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize the provider.

        Args:
            endpoint: Base URL of the service (defaults to settings).
            timeout: Request timeout in seconds (defaults to settings).
            client: Pre-built client, mainly for tests.
        """
        settings = get_settings()
        self._endpoint = endpoint or settings.question_service_url or ""
        self._timeout = timeout if timeout is not None else settings.question_service_timeout
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._endpoint,
                timeout=self._timeout,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def build_payload(self, request: QuestionRequest) -> dict[str, Any]:
        """
        Build the request body sent to the generator.

        Args:
            request: Session parameters and history.

        Returns:
            JSON-serialisable payload.
        """
        return {
            "role": request.role.strip(),
            "sessionType": request.session_type.value,
            "experienceLevel": request.experience_level,
            "targetIndustry": request.industry,
            "history": [
                {"question": item.question, "answer": item.answer}
                for item in request.history
            ],
            "context": {
                "totalQuestions": len(request.history),
                "difficulty": calculate_difficulty(len(request.history)).value,
            },
            "preferences": {
                "avoidRepetition": True,
                "progressiveDifficulty": True,
                "contextAware": True,
            },
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    async def next_question(self, request: QuestionRequest) -> str:
        validate_request(request)
        client = await self._get_client()
        try:
            response = await client.post(QUESTION_ENDPOINT, json=self.build_payload(request))
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            raise QuestionServiceError(f"Question service timed out after {self._timeout}s") from e
        except httpx.HTTPStatusError as e:
            raise QuestionServiceError(
                f"Question service returned {e.response.status_code}"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise QuestionServiceError(f"Question service request failed: {e}") from e

        question = self.parse_question(data)
        logger.debug(f"Generated question ({len(question)} chars) for history of {len(request.history)}")
        return question

    @staticmethod
    def parse_question(data: Any) -> str:
        """
        Validate a generator response and extract the question text.

        Raises:
            QuestionServiceError: If the payload is malformed.
        """
        if not isinstance(data, dict):
            raise QuestionServiceError("Invalid response format from question service")
        text = data.get("questionText")
        if not isinstance(text, str):
            raise QuestionServiceError("Missing or invalid questionText in response")
        text = text.strip()
        if len(text) < MIN_QUESTION_CHARS:
            raise QuestionServiceError("Question text is too short")
        if len(text) > MAX_QUESTION_CHARS:
            raise QuestionServiceError("Question text is too long")
        return text
