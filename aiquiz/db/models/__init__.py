from aiquiz.db.models.quiz_results import QuizResult

__all__ = [
    "QuizResult",
]
