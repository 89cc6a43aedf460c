from __future__ import annotations

import secrets
from datetime import datetime
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import BaseModel, ConfigDict, Field, field_validator

from aiquiz.api.runtime import QuizRuntime, get_runtime
from aiquiz.quiz.errors import (
    AnswerRequiredError,
    InvalidChoiceError,
    NavigationError,
    QuizSessionError,
    ResultsMissingError,
    ResultsStorageError,
    SessionFinishedError,
    SessionNotActiveError,
    SessionNotFoundError,
    SetupMissingError,
)
from aiquiz.quiz.scoring import summarize_result
from aiquiz.quiz.session import QuizSessionController
from aiquiz.quiz.types import Difficulty, QuizSetup, SessionStatus, SessionView

router = APIRouter(prefix="/quiz", tags=["quiz"])
logger = structlog.get_logger(__name__)

BROWSER_SESSION_COOKIE = "quiz_session_id"
SETUP_PATH = "/quiz/setup"
SESSION_PATH = "/quiz/session"
HOME_PATH = "/"
HTTP_UNPROCESSABLE = 422
ERROR_RESPONSES: dict[type[QuizSessionError], tuple[int, str]] = {
    AnswerRequiredError: (HTTP_UNPROCESSABLE, "E_ANSWER_REQUIRED"),
    InvalidChoiceError: (HTTP_UNPROCESSABLE, "E_INVALID_CHOICE"),
    NavigationError: (status.HTTP_409_CONFLICT, "E_NAVIGATION"),
    SessionFinishedError: (status.HTTP_409_CONFLICT, "E_SESSION_FINISHED"),
    SessionNotActiveError: (status.HTTP_409_CONFLICT, "E_SESSION_NOT_ACTIVE"),
    SessionNotFoundError: (status.HTTP_404_NOT_FOUND, "E_SESSION_NOT_FOUND"),
    SetupMissingError: (status.HTTP_409_CONFLICT, "E_SETUP_MISSING"),
    ResultsMissingError: (status.HTTP_404_NOT_FOUND, "E_RESULTS_MISSING"),
    ResultsStorageError: (status.HTTP_503_SERVICE_UNAVAILABLE, "E_RESULTS_UNAVAILABLE"),
}
ERROR_REDIRECTS: dict[type[QuizSessionError], str] = {
    SetupMissingError: SETUP_PATH,
    ResultsMissingError: HOME_PATH,
}


class QuizSetupRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    topic: str = Field(min_length=1, max_length=200)
    difficulty: Difficulty
    number_of_questions: int = Field(ge=1, alias="numberOfQuestions")

    @field_validator("topic")
    @classmethod
    def _strip_topic(cls, value: str) -> str:
        topic = value.strip()
        if not topic:
            raise ValueError("topic must not be blank")
        return topic


class QuizSetupResponse(BaseModel):
    topic: str
    difficulty: Difficulty
    number_of_questions: int
    redirect_to: str


class SelectAnswerRequest(BaseModel):
    answer: str


class CurrentQuestionResponse(BaseModel):
    number: int
    total: int
    question: str
    options: list[str]


class SessionViewResponse(BaseModel):
    status: str
    topic: str
    difficulty: str
    total_questions: int
    current_index: int
    current_question: CurrentQuestionResponse | None = None
    selected_answer: str | None = None
    answers: list[str]
    remaining_seconds: int | None = None
    timer_display: str | None = None
    timer_urgency: str | None = None
    timer_active: bool
    is_last_question: bool
    error: str | None = None
    redirect_to: str | None = None


class ReviewQuestionResponse(BaseModel):
    number: int
    question: str
    options: list[str]
    answer: str
    user_answer: str
    is_correct: bool
    explanation: str | None = None


class QuizResultResponse(BaseModel):
    score: int = Field(ge=0)
    total: int = Field(ge=1)
    time_taken: int = Field(ge=0)
    time_taken_minutes: int = Field(ge=0)
    percentage: int = Field(ge=0, le=100)
    passed: bool
    score_band: str
    message: str
    questions: list[ReviewQuestionResponse]


class QuizHistoryItemResponse(BaseModel):
    result_id: UUID
    topic: str
    difficulty: str
    score: int
    total_questions: int
    time_taken: int
    created_at: datetime


class QuizHistoryResponse(BaseModel):
    items: list[QuizHistoryItemResponse]
    total_results: int


def _http_error(exc: QuizSessionError) -> HTTPException:
    status_code, code = ERROR_RESPONSES.get(type(exc), (status.HTTP_409_CONFLICT, "E_QUIZ_SESSION"))
    detail: dict[str, str] = {"code": code}
    if isinstance(exc, (AnswerRequiredError, ResultsStorageError)) and exc.args:
        detail["message"] = str(exc.args[0])
    redirect_to = ERROR_REDIRECTS.get(type(exc))
    if redirect_to is not None:
        detail["redirect_to"] = redirect_to
    return HTTPException(status_code=status_code, detail=detail)


def _view_response(view: SessionView) -> SessionViewResponse:
    current = view.current_question
    return SessionViewResponse(
        status=view.status.value,
        topic=view.topic,
        difficulty=view.difficulty,
        total_questions=view.total_questions,
        current_index=view.current_index,
        current_question=(
            CurrentQuestionResponse(
                number=current.number,
                total=current.total,
                question=current.question,
                options=list(current.options),
            )
            if current is not None
            else None
        ),
        selected_answer=view.selected_answer,
        answers=view.answers,
        remaining_seconds=view.remaining_seconds,
        timer_display=view.timer_display,
        timer_urgency=view.timer_urgency,
        timer_active=view.timer_active,
        is_last_question=view.is_last_question,
        error=view.error,
        redirect_to=view.redirect_to,
    )


def _browser_session_id(request: Request) -> str | None:
    value = request.cookies.get(BROWSER_SESSION_COOKIE)
    return value.strip() if value and value.strip() else None


def _current_user_id(request: Request, runtime: QuizRuntime) -> int | None:
    user = runtime.identity.current_user(request)
    return user.user_id if user is not None else None


def _require_controller(request: Request, runtime: QuizRuntime) -> tuple[str, QuizSessionController]:
    browser_session_id = _browser_session_id(request)
    controller = runtime.registry.get(browser_session_id) if browser_session_id else None
    if browser_session_id is None or controller is None:
        raise _http_error(SessionNotFoundError())
    controller.bind_user(_current_user_id(request, runtime))
    return browser_session_id, controller


def _session_response(
    runtime: QuizRuntime,
    browser_session_id: str,
    controller: QuizSessionController,
) -> SessionViewResponse:
    view = controller.view()
    # A finished session lives on in session storage only.
    if view.status is SessionStatus.FINISHED:
        runtime.registry.discard(browser_session_id, reason="finished")
    return _view_response(view)


@router.post("/setup", response_model=QuizSetupResponse)
async def submit_setup(
    payload: QuizSetupRequest,
    request: Request,
    response: Response,
    runtime: QuizRuntime = Depends(get_runtime),
) -> QuizSetupResponse:
    max_questions = int(runtime.settings.quiz_max_questions)
    if payload.number_of_questions > max_questions:
        raise HTTPException(
            status_code=HTTP_UNPROCESSABLE,
            detail={"code": "E_TOO_MANY_QUESTIONS", "max_questions": max_questions},
        )

    browser_session_id = _browser_session_id(request) or secrets.token_urlsafe(24)
    setup = QuizSetup(
        topic=payload.topic,
        difficulty=payload.difficulty,
        number_of_questions=payload.number_of_questions,
    )
    await runtime.session_storage.write_setup(browser_session_id, setup)
    response.set_cookie(
        BROWSER_SESSION_COOKIE,
        browser_session_id,
        max_age=int(runtime.settings.session_storage_ttl_seconds),
        httponly=True,
        samesite="lax",
    )
    return QuizSetupResponse(
        topic=setup.topic,
        difficulty=setup.difficulty,
        number_of_questions=setup.number_of_questions,
        redirect_to=SESSION_PATH,
    )


@router.post("/session", response_model=SessionViewResponse)
async def start_session(
    request: Request,
    runtime: QuizRuntime = Depends(get_runtime),
) -> SessionViewResponse:
    browser_session_id = _browser_session_id(request)
    setup = await runtime.session_storage.read_setup(browser_session_id) if browser_session_id else None
    if browser_session_id is None or setup is None:
        raise _http_error(SetupMissingError())

    controller = QuizSessionController(
        browser_session_id=browser_session_id,
        setup=setup,
        question_source=runtime.question_source,
        result_store=runtime.result_store,
        session_storage=runtime.session_storage,
        time_limit_seconds=int(runtime.settings.question_time_limit_seconds),
        user_id=_current_user_id(request, runtime),
        timer_factory=runtime.timer_factory,
    )
    runtime.registry.install(browser_session_id, controller)
    await controller.initialize()
    return _session_response(runtime, browser_session_id, controller)


@router.get("/session", response_model=SessionViewResponse)
async def get_session(
    request: Request,
    runtime: QuizRuntime = Depends(get_runtime),
) -> SessionViewResponse:
    browser_session_id, controller = _require_controller(request, runtime)
    return _session_response(runtime, browser_session_id, controller)


@router.post("/session/answer", response_model=SessionViewResponse)
async def select_answer(
    payload: SelectAnswerRequest,
    request: Request,
    runtime: QuizRuntime = Depends(get_runtime),
) -> SessionViewResponse:
    browser_session_id, controller = _require_controller(request, runtime)
    try:
        controller.select_answer(payload.answer)
    except QuizSessionError as exc:
        raise _http_error(exc) from exc
    return _session_response(runtime, browser_session_id, controller)


@router.post("/session/next", response_model=SessionViewResponse)
async def next_question(
    request: Request,
    runtime: QuizRuntime = Depends(get_runtime),
) -> SessionViewResponse:
    browser_session_id, controller = _require_controller(request, runtime)
    try:
        await controller.advance()
    except QuizSessionError as exc:
        raise _http_error(exc) from exc
    return _session_response(runtime, browser_session_id, controller)


@router.post("/session/back", response_model=SessionViewResponse)
async def previous_question(
    request: Request,
    runtime: QuizRuntime = Depends(get_runtime),
) -> SessionViewResponse:
    browser_session_id, controller = _require_controller(request, runtime)
    try:
        controller.go_back()
    except QuizSessionError as exc:
        raise _http_error(exc) from exc
    return _session_response(runtime, browser_session_id, controller)


@router.post("/session/retry", response_model=SessionViewResponse)
async def retry_session(
    request: Request,
    runtime: QuizRuntime = Depends(get_runtime),
) -> SessionViewResponse:
    browser_session_id, controller = _require_controller(request, runtime)
    try:
        await controller.retry()
    except QuizSessionError as exc:
        raise _http_error(exc) from exc
    return _session_response(runtime, browser_session_id, controller)


@router.delete("/session", status_code=status.HTTP_204_NO_CONTENT)
async def abandon_session(
    request: Request,
    runtime: QuizRuntime = Depends(get_runtime),
) -> Response:
    browser_session_id = _browser_session_id(request)
    if browser_session_id is None or not runtime.registry.discard(browser_session_id):
        raise _http_error(SessionNotFoundError())
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/result", response_model=QuizResultResponse)
async def get_result(
    request: Request,
    runtime: QuizRuntime = Depends(get_runtime),
) -> QuizResultResponse:
    browser_session_id = _browser_session_id(request)
    result = await runtime.session_storage.read_results(browser_session_id) if browser_session_id else None
    if result is None:
        raise _http_error(ResultsMissingError())

    summary = summarize_result(result)
    return QuizResultResponse(
        score=result.score,
        total=result.total,
        time_taken=result.time_taken,
        time_taken_minutes=summary.time_taken_minutes,
        percentage=summary.percentage,
        passed=summary.passed,
        score_band=summary.score_band,
        message=summary.message,
        questions=[
            ReviewQuestionResponse(
                number=index + 1,
                question=item.question.question,
                options=list(item.question.options),
                answer=item.question.answer,
                user_answer=item.user_answer,
                is_correct=item.is_correct,
                explanation=item.question.explanation,
            )
            for index, item in enumerate(result.questions)
        ],
    )


@router.get("/history", response_model=QuizHistoryResponse)
async def get_history(
    request: Request,
    limit: int = 20,
    runtime: QuizRuntime = Depends(get_runtime),
) -> QuizHistoryResponse:
    user_id = _current_user_id(request, runtime)
    if user_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail={"code": "E_UNAUTHORIZED"})
    if limit < 1 or limit > 100:
        raise HTTPException(status_code=HTTP_UNPROCESSABLE, detail={"code": "E_INVALID_LIMIT"})

    history = await runtime.result_store.get_history(user_id=user_id, limit=limit)
    return QuizHistoryResponse(
        items=[
            QuizHistoryItemResponse(
                result_id=item.result_id,
                topic=item.topic,
                difficulty=item.difficulty,
                score=item.score,
                total_questions=item.total_questions,
                time_taken=item.time_taken,
                created_at=item.created_at,
            )
            for item in history.items
        ],
        total_results=history.total_results,
    )
