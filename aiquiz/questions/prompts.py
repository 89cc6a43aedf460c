from __future__ import annotations

from aiquiz.quiz.types import Difficulty

DIFFICULTY_GUIDANCE = {
    Difficulty.EASY: "basic facts a casual learner would know",
    Difficulty.MEDIUM: "solid understanding beyond the basics",
    Difficulty.HARD: "detailed knowledge an expert would have",
}


def build_question_prompt(*, topic: str, difficulty: Difficulty, count: int) -> str:
    return (
        f"Generate exactly {count} multiple-choice quiz questions about \"{topic}\" "
        f"at {difficulty.value} difficulty ({DIFFICULTY_GUIDANCE[difficulty]}).\n"
        "Respond with a JSON array only. Each item must have:\n"
        '- "question": the question text\n'
        '- "options": an array of exactly 4 distinct answer strings\n'
        '- "answer": the correct answer, copied exactly from "options"\n'
        '- "explanation": one sentence explaining the correct answer\n'
        "Do not repeat questions and make sure every question has exactly one correct answer."
    )
