from __future__ import annotations

import json
from types import SimpleNamespace
from typing import Any

import httpx
import pytest

from aiquiz.questions.gemini_client import GeminiQuestionSource, build_question_source
from aiquiz.quiz.errors import QuestionGenerationError
from aiquiz.quiz.types import Difficulty

BASE_URL = "https://gemini.example.local/v1beta"
QUESTIONS = [
    {
        "question": "What is the capital of France?",
        "options": ["Paris", "London", "Berlin", "Madrid"],
        "answer": "Paris",
    },
    {
        "question": "What is the capital of Japan?",
        "options": ["Tokyo", "Kyoto", "Osaka", "Seoul"],
        "answer": "Tokyo",
    },
]


def _gemini_body(text: str) -> dict[str, Any]:
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]}


def _source(handler, *, api_key: str = "test-key") -> GeminiQuestionSource:  # noqa: ANN001
    return GeminiQuestionSource(
        api_key=api_key,
        model="gemini-test",
        base_url=BASE_URL,
        timeout_seconds=5.0,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_generate_posts_prompt_and_parses_questions() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=_gemini_body(json.dumps(QUESTIONS)))

    questions = await _source(handler).generate("Capitals", Difficulty.EASY, 2)

    assert [question.answer for question in questions] == ["Paris", "Tokyo"]
    assert len(requests) == 1
    request = requests[0]
    assert str(request.url) == f"{BASE_URL}/models/gemini-test:generateContent"
    assert request.headers["x-goog-api-key"] == "test-key"
    body = json.loads(request.content)
    prompt = body["contents"][0]["parts"][0]["text"]
    assert "Capitals" in prompt
    assert "exactly 2" in prompt
    assert "easy difficulty" in prompt
    assert body["generationConfig"]["responseMimeType"] == "application/json"


@pytest.mark.asyncio
async def test_generate_reports_quota_exhaustion() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, json={"error": {"status": "RESOURCE_EXHAUSTED"}})

    with pytest.raises(QuestionGenerationError, match="busy"):
        await _source(handler).generate("Capitals", Difficulty.EASY, 2)


@pytest.mark.asyncio
async def test_generate_reports_server_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="internal")

    with pytest.raises(QuestionGenerationError, match="status 500"):
        await _source(handler).generate("Capitals", Difficulty.HARD, 2)


@pytest.mark.asyncio
async def test_generate_wraps_transport_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(QuestionGenerationError, match="Could not reach"):
        await _source(handler).generate("Capitals", Difficulty.EASY, 2)


@pytest.mark.asyncio
async def test_generate_reports_blocked_prompt() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"promptFeedback": {"blockReason": "SAFETY"}})

    with pytest.raises(QuestionGenerationError, match="SAFETY"):
        await _source(handler).generate("Capitals", Difficulty.EASY, 2)


@pytest.mark.asyncio
async def test_generate_rejects_malformed_model_output() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_gemini_body("not json at all"))

    with pytest.raises(QuestionGenerationError):
        await _source(handler).generate("Capitals", Difficulty.EASY, 2)


@pytest.mark.asyncio
async def test_generate_requires_api_key() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json=_gemini_body(json.dumps(QUESTIONS)))

    with pytest.raises(QuestionGenerationError, match="not configured"):
        await _source(handler, api_key="").generate("Capitals", Difficulty.EASY, 2)
    assert calls == []


def test_build_question_source_reads_settings() -> None:
    source = build_question_source(
        SimpleNamespace(
            gemini_api_key="k",
            gemini_model="gemini-1.5-flash",
            gemini_api_base_url="https://generativelanguage.googleapis.com/v1beta/",
            gemini_timeout_seconds=12,
        )
    )

    assert source.endpoint == (
        "https://generativelanguage.googleapis.com/v1beta/models/gemini-1.5-flash:generateContent"
    )
