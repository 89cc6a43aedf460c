from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class SessionStatus(str, Enum):
    LOADING = "LOADING"
    ACTIVE = "ACTIVE"
    FINISHED = "FINISHED"
    ERROR = "ERROR"


@dataclass(frozen=True, slots=True)
class QuizSetup:
    topic: str
    difficulty: Difficulty
    number_of_questions: int

    def to_record(self) -> dict[str, Any]:
        return {
            "topic": self.topic,
            "difficulty": self.difficulty.value,
            "numberOfQuestions": self.number_of_questions,
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> QuizSetup:
        return cls(
            topic=str(record["topic"]),
            difficulty=Difficulty(record["difficulty"]),
            number_of_questions=int(record["numberOfQuestions"]),
        )


@dataclass(frozen=True, slots=True)
class Question:
    question: str
    options: tuple[str, ...]
    answer: str
    explanation: str | None = None

    def to_record(self) -> dict[str, Any]:
        record: dict[str, Any] = {
            "question": self.question,
            "options": list(self.options),
            "answer": self.answer,
        }
        if self.explanation is not None:
            record["explanation"] = self.explanation
        return record


@dataclass(frozen=True, slots=True)
class AnsweredQuestion:
    question: Question
    user_answer: str

    @property
    def is_correct(self) -> bool:
        return self.user_answer == self.question.answer

    def to_record(self) -> dict[str, Any]:
        record = self.question.to_record()
        record["userAnswer"] = self.user_answer
        return record

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> AnsweredQuestion:
        explanation = record.get("explanation")
        return cls(
            question=Question(
                question=str(record["question"]),
                options=tuple(str(option) for option in record["options"]),
                answer=str(record["answer"]),
                explanation=str(explanation) if explanation is not None else None,
            ),
            user_answer=str(record.get("userAnswer") or ""),
        )


@dataclass(frozen=True, slots=True)
class QuizResult:
    score: int
    total: int
    questions: tuple[AnsweredQuestion, ...]
    time_taken: int

    def to_record(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "total": self.total,
            "questions": [item.to_record() for item in self.questions],
            "timeTaken": self.time_taken,
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> QuizResult:
        return cls(
            score=int(record["score"]),
            total=int(record["total"]),
            questions=tuple(AnsweredQuestion.from_record(item) for item in record["questions"]),
            time_taken=int(record.get("timeTaken") or 0),
        )


@dataclass(slots=True)
class CurrentQuestionView:
    number: int
    total: int
    question: str
    options: tuple[str, ...]


@dataclass(slots=True)
class SessionView:
    status: SessionStatus
    topic: str
    difficulty: str
    total_questions: int = 0
    current_index: int = 0
    current_question: CurrentQuestionView | None = None
    selected_answer: str | None = None
    answers: list[str] = field(default_factory=list)
    remaining_seconds: int | None = None
    timer_display: str | None = None
    timer_urgency: str | None = None
    timer_active: bool = False
    is_last_question: bool = False
    error: str | None = None
    redirect_to: str | None = None
