# ecole_study/engine/scoring.py
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Optional

from ecole_study.domain.enums import Outcome
from ecole_study.domain.models import Exercise, ReviewItem


@dataclass(frozen=True)
class ScoreResult:
    outcome: Outcome
    delta: int


def answers_match(user_answer: Optional[str], correct_answer: str) -> bool:
    """
    Case-insensitive exact comparison. Whitespace and accents are compared
    as typed: "Paris " or "Pâris" do not match "paris".
    """
    if user_answer is None:
        return False
    return user_answer.lower() == correct_answer.lower()


def evaluate_answer(exercise: Exercise, user_answer: Optional[str]) -> ScoreResult:
    """
    No partial credit: a match earns the exercise's points, anything else 0.
    """
    if user_answer is None:
        return ScoreResult(outcome=Outcome.OMITTED, delta=0)
    if answers_match(user_answer, exercise.correct_answer):
        return ScoreResult(outcome=Outcome.CORRECT, delta=exercise.points)
    return ScoreResult(outcome=Outcome.WRONG, delta=0)


def total_points(exercises: List[Exercise]) -> int:
    return sum(ex.points for ex in exercises)


def score_answers(exercises: List[Exercise], answers: Dict[int, str]) -> int:
    return sum(evaluate_answer(ex, answers.get(i)).delta for i, ex in enumerate(exercises))


def percentage(score: int, total: int) -> int:
    """round(score / total * 100), halves rounded up. A zero total gives 0."""
    if total <= 0:
        return 0
    return int(math.floor(score * 100 / total + 0.5))


def build_review(exercises: List[Exercise], answers: Dict[int, str]) -> List[ReviewItem]:
    review = []
    for i, ex in enumerate(exercises):
        ans = answers.get(i)
        res = evaluate_answer(ex, ans)
        review.append(ReviewItem(
            question=ex.question,
            answer=ans,
            correct_answer=ex.correct_answer,
            explanation=ex.explanation,
            is_correct=res.outcome == Outcome.CORRECT,
            points=res.delta,
        ))
    return review
