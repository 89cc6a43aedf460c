from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any

from aiquiz.quiz.session import QuizSessionController
from aiquiz.quiz.timer import QuestionTimer
from aiquiz.quiz.types import Difficulty, Question, QuizSetup
from aiquiz.services.quiz_results import QuizHistory
from aiquiz.services.session_storage import RESULTS_KEY, InMemorySessionStorage

UTC = timezone.utc
BROWSER_SESSION_ID = "browser-session-1"

PARIS = Question(
    question="What is the capital of France?",
    options=("Paris", "London", "Berlin", "Madrid"),
    answer="Paris",
)
TOKYO = Question(
    question="What is the capital of Japan?",
    options=("Tokyo", "Kyoto", "Osaka", "Seoul"),
    answer="Tokyo",
)
CANBERRA = Question(
    question="What is the capital of Australia?",
    options=("Sydney", "Canberra", "Melbourne", "Perth"),
    answer="Canberra",
    explanation="Canberra was purpose-built as the capital.",
)
CAPITALS_SETUP = QuizSetup(topic="Capitals", difficulty=Difficulty.EASY, number_of_questions=2)


class FakeQuestionSource:
    def __init__(self, questions: list[Question] | None = None, *, error: Exception | None = None) -> None:
        self.questions = list(questions if questions is not None else [PARIS, TOKYO])
        self.error = error
        self.calls: list[tuple[str, Difficulty, int]] = []

    async def generate(self, topic: str, difficulty: Difficulty, count: int) -> list[Question]:
        self.calls.append((topic, difficulty, count))
        if self.error is not None:
            raise self.error
        return list(self.questions[:count])


class FakeResultStore:
    def __init__(self, *, error: Exception | None = None) -> None:
        self.error = error
        self.saved: list[dict[str, Any]] = []
        self.history = QuizHistory(items=[], total_results=0)
        self.history_calls: list[dict[str, int]] = []

    async def save_quiz_result(self, **kwargs: Any) -> None:
        self.saved.append(kwargs)
        if self.error is not None:
            raise self.error

    async def get_history(self, *, user_id: int, limit: int = 20) -> QuizHistory:
        self.history_calls.append({"user_id": user_id, "limit": limit})
        return self.history


class FlakySessionStorage(InMemorySessionStorage):
    """Refuses result writes while ``fail_results`` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_results = True
        self.failed_writes = 0

    async def set_item(self, browser_session_id: str, key: str, value: str) -> None:
        if key == RESULTS_KEY and self.fail_results:
            self.failed_writes += 1
            raise ConnectionError("session storage unavailable")
        await super().set_item(browser_session_id, key, value)


class FakeClock:
    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime(2026, 3, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


async def blocking_sleep(delay: float) -> None:
    del delay
    await asyncio.Event().wait()


def manual_timer_factory(duration_seconds: int, *, on_expire) -> QuestionTimer:  # noqa: ANN001
    """Timer whose countdown task never wakes; tests drive it with ``tick()``."""
    return QuestionTimer(duration_seconds, on_expire=on_expire, sleep=blocking_sleep)


def build_controller(
    *,
    setup: QuizSetup = CAPITALS_SETUP,
    question_source: FakeQuestionSource | None = None,
    result_store: FakeResultStore | None = None,
    session_storage: InMemorySessionStorage | None = None,
    time_limit_seconds: int = 3,
    user_id: int | None = None,
    clock: FakeClock | None = None,
    timer_factory=manual_timer_factory,  # noqa: ANN001
) -> SimpleNamespace:
    deps = SimpleNamespace(
        question_source=question_source or FakeQuestionSource(),
        result_store=result_store or FakeResultStore(),
        session_storage=session_storage or InMemorySessionStorage(),
        clock=clock or FakeClock(),
    )
    deps.controller = QuizSessionController(
        browser_session_id=BROWSER_SESSION_ID,
        setup=setup,
        question_source=deps.question_source,
        result_store=deps.result_store,
        session_storage=deps.session_storage,
        time_limit_seconds=time_limit_seconds,
        user_id=user_id,
        clock=deps.clock,
        timer_factory=timer_factory,
    )
    return deps


async def expire_current_question(controller: QuizSessionController) -> None:
    for _ in range(controller.timer.remaining_seconds):
        await controller.timer.tick()
