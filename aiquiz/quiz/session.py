from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime, timezone

import structlog

from aiquiz.quiz.errors import (
    AnswerRequiredError,
    InvalidChoiceError,
    NavigationError,
    QuestionGenerationError,
    ResultsStorageError,
    SessionFinishedError,
    SessionNotActiveError,
)
from aiquiz.quiz.interfaces import QuestionSource, ResultStore
from aiquiz.quiz.scoring import build_quiz_result
from aiquiz.quiz.timer import QuestionTimer
from aiquiz.quiz.types import (
    CurrentQuestionView,
    Question,
    QuizResult,
    QuizSetup,
    SessionStatus,
    SessionView,
)
from aiquiz.services.session_storage import SessionStorage

logger = structlog.get_logger(__name__)

RESULT_VIEW_PATH = "/quiz/result"
ANSWER_REQUIRED_PROMPT = "Please select an answer before continuing."
GENERATION_FAILED_MESSAGE = "Failed to generate questions"
RESULTS_WRITE_FAILED_MESSAGE = "Could not save your results, please try again."

TimerFactory = Callable[..., QuestionTimer]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class QuizSessionController:
    """Drives one quiz: question loop, answer capture, timer, scoring hand-off.

    States: LOADING -> ACTIVE -> FINISHED, LOADING -> ERROR, ERROR -> LOADING
    on retry. Nothing leaves FINISHED.
    """

    def __init__(
        self,
        *,
        browser_session_id: str,
        setup: QuizSetup,
        question_source: QuestionSource,
        result_store: ResultStore,
        session_storage: SessionStorage,
        time_limit_seconds: int,
        user_id: int | None = None,
        clock: Callable[[], datetime] = _utc_now,
        timer_factory: TimerFactory = QuestionTimer,
    ) -> None:
        self._browser_session_id = browser_session_id
        self._setup = setup
        self._question_source = question_source
        self._result_store = result_store
        self._session_storage = session_storage
        self._user_id = user_id
        self._clock = clock
        self._timer = timer_factory(time_limit_seconds, on_expire=self.on_timer_expire)

        self._status = SessionStatus.LOADING
        self._error: str | None = None
        self._questions: tuple[Question, ...] = ()
        self._answers: list[str] = []
        self._current_index = 0
        self._selected_answer: str | None = None
        self._start_time: datetime | None = None
        self._finishing = False
        self._result: QuizResult | None = None

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def setup(self) -> QuizSetup:
        return self._setup

    @property
    def questions(self) -> tuple[Question, ...]:
        return self._questions

    @property
    def answers(self) -> list[str]:
        return list(self._answers)

    @property
    def current_index(self) -> int:
        return self._current_index

    @property
    def selected_answer(self) -> str | None:
        return self._selected_answer

    @property
    def start_time(self) -> datetime | None:
        return self._start_time

    @property
    def timer(self) -> QuestionTimer:
        return self._timer

    @property
    def timer_active(self) -> bool:
        return self._timer.is_active

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def result(self) -> QuizResult | None:
        return self._result

    def bind_user(self, user_id: int | None) -> None:
        self._user_id = user_id

    async def initialize(self) -> None:
        if self._status is SessionStatus.FINISHED:
            raise SessionFinishedError
        if self._status is SessionStatus.ACTIVE:
            raise SessionNotActiveError("session already started")

        self._status = SessionStatus.LOADING
        self._error = None
        setup = self._setup
        try:
            questions = await self._question_source.generate(
                setup.topic,
                setup.difficulty,
                setup.number_of_questions,
            )
        except QuestionGenerationError as exc:
            self._fail(str(exc) or GENERATION_FAILED_MESSAGE)
            return
        except Exception:
            logger.exception(
                "quiz_question_generation_crashed",
                browser_session_id=self._browser_session_id,
            )
            self._fail(GENERATION_FAILED_MESSAGE)
            return

        if not questions:
            self._fail(GENERATION_FAILED_MESSAGE)
            return

        self._questions = tuple(questions)
        self._answers = [""] * len(self._questions)
        self._current_index = 0
        self._selected_answer = None
        self._start_time = self._clock()
        self._status = SessionStatus.ACTIVE
        self._timer.start()
        logger.info(
            "quiz_session_started",
            browser_session_id=self._browser_session_id,
            topic=setup.topic,
            difficulty=setup.difficulty.value,
            total_questions=len(self._questions),
        )

    async def retry(self) -> None:
        if self._status is not SessionStatus.ERROR:
            raise SessionNotActiveError
        await self.initialize()

    def select_answer(self, choice: str) -> None:
        self._require_active()
        if choice not in self._questions[self._current_index].options:
            raise InvalidChoiceError(choice)
        self._selected_answer = choice

    async def advance(self) -> None:
        self._require_active()
        if self._selected_answer is None:
            raise AnswerRequiredError(ANSWER_REQUIRED_PROMPT)
        await self._record_and_move(self._selected_answer)

    def go_back(self) -> None:
        self._require_active()
        if self._current_index <= 0:
            raise NavigationError("already at the first question")
        self._current_index -= 1
        self._selected_answer = self._answers[self._current_index] or None
        self._timer.start()

    async def on_timer_expire(self) -> None:
        if self._status is not SessionStatus.ACTIVE or self._finishing:
            return

        self._timer.stop()
        logger.info(
            "quiz_timer_expired",
            browser_session_id=self._browser_session_id,
            question_number=self._current_index + 1,
            had_selection=self._selected_answer is not None,
        )
        try:
            await self._record_and_move(self._selected_answer or "")
        except ResultsStorageError:
            return

    async def finish(self, final_answers: Sequence[str]) -> QuizResult:
        self._require_active()
        started_at = self._start_time
        if started_at is None:
            raise SessionNotActiveError
        self._finishing = True
        self._timer.stop()

        result = build_quiz_result(
            self._questions,
            final_answers,
            started_at=started_at,
            finished_at=self._clock(),
        )
        self._answers = [item.user_answer for item in result.questions]

        try:
            await self._session_storage.write_results(self._browser_session_id, result)
        except Exception as exc:
            logger.exception(
                "quiz_results_write_failed",
                browser_session_id=self._browser_session_id,
            )
            self._finishing = False
            self._error = RESULTS_WRITE_FAILED_MESSAGE
            self._timer.start()
            raise ResultsStorageError(RESULTS_WRITE_FAILED_MESSAGE) from exc

        if self._user_id is not None:
            await self._save_result(result, user_id=self._user_id)

        self._result = result
        self._error = None
        self._status = SessionStatus.FINISHED
        logger.info(
            "quiz_session_finished",
            browser_session_id=self._browser_session_id,
            score=result.score,
            total=result.total,
            time_taken=result.time_taken,
            saved_for_user=self._user_id is not None,
        )
        return result

    def close(self) -> None:
        self._timer.stop()

    def view(self) -> SessionView:
        view = SessionView(
            status=self._status,
            topic=self._setup.topic,
            difficulty=self._setup.difficulty.value,
            total_questions=len(self._questions),
            current_index=self._current_index,
            selected_answer=self._selected_answer,
            answers=list(self._answers),
            timer_active=self._timer.is_active,
            error=self._error,
        )
        if self._status is SessionStatus.ACTIVE:
            question = self._questions[self._current_index]
            view.current_question = CurrentQuestionView(
                number=self._current_index + 1,
                total=len(self._questions),
                question=question.question,
                options=question.options,
            )
            view.is_last_question = self._current_index == len(self._questions) - 1
            view.remaining_seconds = self._timer.remaining_seconds
            view.timer_display = self._timer.format_remaining()
            view.timer_urgency = self._timer.urgency()
        elif self._status is SessionStatus.FINISHED:
            view.redirect_to = RESULT_VIEW_PATH
        return view

    async def _record_and_move(self, answer: str) -> None:
        self._answers[self._current_index] = answer
        if self._current_index >= len(self._questions) - 1:
            await self.finish(list(self._answers))
            return

        self._current_index += 1
        self._selected_answer = self._answers[self._current_index] or None
        self._timer.start()

    async def _save_result(self, result: QuizResult, *, user_id: int) -> None:
        try:
            await self._result_store.save_quiz_result(
                user_id=user_id,
                topic=self._setup.topic,
                difficulty=self._setup.difficulty,
                questions=result.questions,
                score=result.score,
                total_questions=result.total,
                time_taken=result.time_taken,
            )
        except Exception:
            logger.exception(
                "quiz_result_save_failed",
                browser_session_id=self._browser_session_id,
                user_id=user_id,
            )

    def _fail(self, message: str) -> None:
        self._status = SessionStatus.ERROR
        self._error = message
        self._questions = ()
        self._answers = []
        self._current_index = 0
        self._selected_answer = None
        self._start_time = None
        logger.warning(
            "quiz_question_generation_failed",
            browser_session_id=self._browser_session_id,
            topic=self._setup.topic,
            error=message,
        )

    def _require_active(self) -> None:
        if self._status is SessionStatus.FINISHED or self._finishing:
            raise SessionFinishedError
        if self._status is not SessionStatus.ACTIVE:
            raise SessionNotActiveError
