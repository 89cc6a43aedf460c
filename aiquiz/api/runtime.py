from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from fastapi import Request

from aiquiz.questions.gemini_client import build_question_source
from aiquiz.quiz.interfaces import QuestionSource
from aiquiz.quiz.registry import QuizSessionRegistry
from aiquiz.quiz.session import TimerFactory
from aiquiz.quiz.timer import QuestionTimer
from aiquiz.services.identity import TokenIdentityProvider
from aiquiz.services.quiz_results import SqlQuizResultStore
from aiquiz.services.session_storage import SessionStorage, build_session_storage


@dataclass(slots=True)
class QuizRuntime:
    settings: Any
    registry: QuizSessionRegistry
    session_storage: SessionStorage
    question_source: QuestionSource
    result_store: SqlQuizResultStore
    identity: TokenIdentityProvider
    timer_factory: TimerFactory = QuestionTimer

    async def aclose(self) -> None:
        self.registry.close_all()
        await self.session_storage.aclose()


def build_runtime(settings: Any) -> QuizRuntime:
    return QuizRuntime(
        settings=settings,
        registry=QuizSessionRegistry(idle_ttl_seconds=float(settings.session_storage_ttl_seconds)),
        session_storage=build_session_storage(settings),
        question_source=build_question_source(settings),
        result_store=SqlQuizResultStore(),
        identity=TokenIdentityProvider(secret=settings.auth_token_secret),
    )


def get_runtime(request: Request) -> QuizRuntime:
    return request.app.state.quiz_runtime
