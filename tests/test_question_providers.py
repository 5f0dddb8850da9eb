"""Tests for the local question bank, the HTTP client and the fallback wrapper."""

import json

import httpx
import pytest

from interview_session_engine.questions import (
    FALLBACK_QUESTION,
    Difficulty,
    HttpQuestionProvider,
    InvalidQuestionRequestError,
    QuestionBank,
    QuestionProvider,
    QuestionServiceError,
    QuestionStage,
    ResilientQuestionProvider,
    calculate_difficulty,
)
from interview_session_engine.questions.provider import stage_for
from interview_session_engine.questions.question_bank import (
    CLOSING_QUESTIONS,
    GENERIC_CORE_QUESTIONS,
    OPENING_QUESTIONS,
)
from interview_session_engine.schemas import HistoryItem, QuestionRequest, SessionType


def make_request(role="Software Engineer", session_type=SessionType.BEHAVIORAL, history=None) -> QuestionRequest:
    return QuestionRequest(
        role=role,
        session_type=session_type,
        experience_level="senior",
        industry="Fintech",
        history=history or [],
    )


class TestStaging:
    def test_difficulty_progression(self) -> None:
        assert calculate_difficulty(0) == Difficulty.EASY
        assert calculate_difficulty(3) == Difficulty.MEDIUM
        assert calculate_difficulty(7) == Difficulty.HARD

    def test_stage_for(self) -> None:
        assert stage_for(0, 10) == QuestionStage.OPENING
        assert stage_for(1, 10) == QuestionStage.CORE
        assert stage_for(8, 10) == QuestionStage.CORE
        assert stage_for(9, 10) == QuestionStage.CLOSING


class TestQuestionBank:
    @pytest.mark.asyncio
    async def test_first_question_is_opening(self) -> None:
        question = await QuestionBank().next_question(make_request(role="Nurse"))

        assert question == OPENING_QUESTIONS[SessionType.BEHAVIORAL][0].format(role="Nurse")

    @pytest.mark.asyncio
    async def test_last_question_is_closing(self) -> None:
        history = [HistoryItem(question=f"Q{i}?", answer="a") for i in range(9)]

        question = await QuestionBank().next_question(
            make_request(session_type=SessionType.TECHNICAL, history=history)
        )

        assert question in [
            template.format(role="Software Engineer") for template in CLOSING_QUESTIONS[SessionType.TECHNICAL]
        ]

    @pytest.mark.asyncio
    async def test_never_repeats_within_session(self) -> None:
        bank = QuestionBank()
        history: list[HistoryItem] = []

        for _ in range(10):
            question = await bank.next_question(make_request(history=list(history)))
            history.append(HistoryItem(question=question, answer="answer"))

        asked = [item.question for item in history]
        assert len(set(asked)) == 10

    @pytest.mark.asyncio
    async def test_unknown_role_uses_generic_pool(self) -> None:
        history = [HistoryItem(question="Opening?", answer="a")]

        question = await QuestionBank().next_question(make_request(role="Chef", history=history))

        assert question == GENERIC_CORE_QUESTIONS[SessionType.BEHAVIORAL][0]

    @pytest.mark.asyncio
    async def test_exhausted_pool_falls_back(self) -> None:
        bank = QuestionBank(max_questions=100)
        history = [HistoryItem(question="Opening?", answer="a")]
        request = make_request(role="Chef", history=history)
        history += [HistoryItem(question=q, answer="a") for q in bank.pool_for(request, QuestionStage.CORE)]

        question = await bank.next_question(make_request(role="Chef", history=history))

        assert question == FALLBACK_QUESTION

    @pytest.mark.asyncio
    async def test_rejects_blank_role(self) -> None:
        with pytest.raises(InvalidQuestionRequestError) as exc_info:
            await QuestionBank().next_question(make_request(role="  "))

        assert "Role is required" in exc_info.value.errors


class TestHttpQuestionProvider:
    @staticmethod
    def make_provider(handler) -> HttpQuestionProvider:
        client = httpx.AsyncClient(
            base_url="http://questions.test",
            transport=httpx.MockTransport(handler),
        )
        return HttpQuestionProvider(endpoint="http://questions.test", timeout=5.0, client=client)

    @pytest.mark.asyncio
    async def test_posts_history_and_returns_question(self) -> None:
        seen: dict = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"questionText": "  Describe your biggest launch.  "})

        provider = self.make_provider(handler)
        history = [HistoryItem(question=f"Q{i}?", answer=f"A{i}") for i in range(4)]
        try:
            question = await provider.next_question(make_request(history=history))
        finally:
            await provider.close()

        assert question == "Describe your biggest launch."
        assert seen["path"] == "/interview/question"
        body = seen["body"]
        assert body["sessionType"] == "Behavioral"
        assert body["experienceLevel"] == "senior"
        assert body["targetIndustry"] == "Fintech"
        assert body["history"][0] == {"question": "Q0?", "answer": "A0"}
        assert body["context"] == {"totalQuestions": 4, "difficulty": "medium"}

    @pytest.mark.asyncio
    async def test_server_error_raises(self) -> None:
        provider = self.make_provider(lambda request: httpx.Response(503, json={"error": "busy"}))
        try:
            with pytest.raises(QuestionServiceError, match="503"):
                await provider.next_question(make_request())
        finally:
            await provider.close()

    @pytest.mark.asyncio
    async def test_timeout_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        provider = self.make_provider(handler)
        try:
            with pytest.raises(QuestionServiceError, match="timed out"):
                await provider.next_question(make_request())
        finally:
            await provider.close()

    @pytest.mark.parametrize(
        "payload",
        [
            ["not", "an", "object"],
            {"question": "wrong key here"},
            {"questionText": "short"},
            {"questionText": "x" * 1001},
        ],
    )
    def test_parse_question_rejects_malformed(self, payload) -> None:
        with pytest.raises(QuestionServiceError):
            HttpQuestionProvider.parse_question(payload)

    @pytest.mark.asyncio
    async def test_invalid_request_not_sent(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={"questionText": "Never reached here?"})

        provider = self.make_provider(handler)
        try:
            with pytest.raises(InvalidQuestionRequestError):
                await provider.next_question(make_request(role=""))
        finally:
            await provider.close()
        assert calls == []


class FailingProvider(QuestionProvider):
    def __init__(self, error: Exception) -> None:
        self.error = error
        self.closed = False

    async def next_question(self, request: QuestionRequest) -> str:
        raise self.error

    async def close(self) -> None:
        self.closed = True


class TestResilientQuestionProvider:
    @pytest.mark.asyncio
    async def test_falls_back_when_service_fails(self) -> None:
        provider = ResilientQuestionProvider(
            primary=FailingProvider(QuestionServiceError("down")),
            fallback=QuestionBank(),
        )

        question = await provider.next_question(make_request(role="Nurse"))

        assert question == OPENING_QUESTIONS[SessionType.BEHAVIORAL][0].format(role="Nurse")

    @pytest.mark.asyncio
    async def test_fallback_disabled_propagates(self) -> None:
        provider = ResilientQuestionProvider(
            primary=FailingProvider(QuestionServiceError("down")),
            fallback=QuestionBank(),
            fallback_enabled=False,
        )

        with pytest.raises(QuestionServiceError):
            await provider.next_question(make_request())

    @pytest.mark.asyncio
    async def test_invalid_request_is_not_masked(self) -> None:
        provider = ResilientQuestionProvider(
            primary=FailingProvider(InvalidQuestionRequestError(["Role is required"])),
            fallback=QuestionBank(),
        )

        with pytest.raises(InvalidQuestionRequestError):
            await provider.next_question(make_request())

    @pytest.mark.asyncio
    async def test_close_closes_both(self) -> None:
        primary = FailingProvider(QuestionServiceError("down"))
        fallback = FailingProvider(QuestionServiceError("down"))

        await ResilientQuestionProvider(primary=primary, fallback=fallback).close()

        assert primary.closed and fallback.closed
