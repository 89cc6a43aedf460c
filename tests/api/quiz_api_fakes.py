from __future__ import annotations

from types import SimpleNamespace

from aiquiz.api.runtime import QuizRuntime
from aiquiz.quiz.registry import QuizSessionRegistry
from aiquiz.services.identity import TokenIdentityProvider
from aiquiz.services.session_storage import InMemorySessionStorage, SessionStorage
from tests.quiz.quiz_fakes import FakeQuestionSource, FakeResultStore, manual_timer_factory

AUTH_SECRET = "test-secret"
INTERNAL_TOKEN = "internal-token"
TIME_LIMIT_SECONDS = 3


def build_test_runtime(
    *,
    question_source: FakeQuestionSource | None = None,
    result_store: FakeResultStore | None = None,
    session_storage: SessionStorage | None = None,
) -> QuizRuntime:
    return QuizRuntime(
        settings=SimpleNamespace(
            quiz_max_questions=5,
            question_time_limit_seconds=TIME_LIMIT_SECONDS,
            session_storage_ttl_seconds=3600,
            internal_api_token=INTERNAL_TOKEN,
        ),
        registry=QuizSessionRegistry(),
        session_storage=session_storage or InMemorySessionStorage(),
        question_source=question_source or FakeQuestionSource(),
        result_store=result_store or FakeResultStore(),
        identity=TokenIdentityProvider(secret=AUTH_SECRET),
        timer_factory=manual_timer_factory,
    )


def bearer(runtime: QuizRuntime, user_id: int) -> dict[str, str]:
    return {"Authorization": f"Bearer {runtime.identity.issue_token(user_id=user_id)}"}
