# ecole_study/domain/parsing.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from ecole_study.domain.enums import ExerciseType
from ecole_study.domain.errors import LessonParseError
from ecole_study.domain.models import ContentSection, Exercise, Lesson, LessonSummary


def parse_lesson_row(data: Dict[str, Any]) -> Lesson:
    """
    Builds a Lesson from a `lessons` row (or the same shape read from JSON).
    `exercises` stays None when the row does not carry the column, so the
    quiz engine can tell "missing" apart from "empty".
    """
    if not isinstance(data, dict):
        raise LessonParseError("Ligne de leçon invalide")

    raw_exercises = data.get("exercises")
    exercises: Optional[List[Exercise]] = None
    if raw_exercises is not None:
        if not isinstance(raw_exercises, list):
            raise LessonParseError("exercises doit être une liste")
        exercises = [parse_exercise(x, i) for i, x in enumerate(raw_exercises)]

    return Lesson(
        id=str(_require(data, "id")),
        title=_require_str(data, "title"),
        description=_optional_str(data, "description"),
        content=_parse_content(data.get("content")),
        exercises=exercises,
        subject=_optional_str(data, "subject"),
        level=_optional_str(data, "level"),
        duration=_optional_int(data, "duration"),
        is_published=bool(data.get("is_published", False)),
        tutor_id=_optional_str(data, "tutor_id"),
        created_at=_optional_str(data, "created_at"),
    )


def parse_summary_row(data: Dict[str, Any], is_completed: bool = False) -> LessonSummary:
    return LessonSummary(
        id=str(_require(data, "id")),
        title=_require_str(data, "title"),
        description=_optional_str(data, "description"),
        subject=_optional_str(data, "subject"),
        level=_optional_str(data, "level"),
        duration=_optional_int(data, "duration"),
        is_published=bool(data.get("is_published", False)),
        created_at=_optional_str(data, "created_at"),
        is_completed=is_completed,
    )


def parse_exercise(data: Dict[str, Any], position: int = 0) -> Exercise:
    if not isinstance(data, dict):
        raise LessonParseError(f"Exercice {position + 1}: format invalide")

    raw_type = _require_str(data, "type")
    try:
        ex_type = ExerciseType(raw_type)
    except ValueError:
        raise LessonParseError(f"Exercice {position + 1}: type inconnu {raw_type!r}") from None

    options = _str_list(data, "options")
    if ex_type == ExerciseType.MULTIPLE_CHOICE and not options:
        raise LessonParseError(f"Exercice {position + 1}: options manquantes")

    points = _optional_int(data, "points")
    if points < 0:
        raise LessonParseError(f"Exercice {position + 1}: points négatifs")

    return Exercise(
        question=_require_str(data, "question"),
        type=ex_type,
        options=options if ex_type == ExerciseType.MULTIPLE_CHOICE else [],
        correct_answer=str(_require(data, "correct_answer")),
        explanation=_optional_str(data, "explanation"),
        points=points,
    )


def _parse_content(raw) -> List[ContentSection]:
    if not raw:
        return []
    if not isinstance(raw, list):
        raise LessonParseError("content doit être une liste")
    sections = []
    for item in raw:
        if not isinstance(item, dict):
            raise LessonParseError("Section de contenu invalide")
        sections.append(ContentSection(title=_optional_str(item, "title"), text=_optional_str(item, "text")))
    return sections


# --- Helpers ---
def _require(data, key):
    if data.get(key) is None: raise LessonParseError(f"Manque {key}")
    return data[key]


def _require_str(data, key):
    v = data.get(key)
    if not isinstance(v, str): raise LessonParseError(f"Manque {key}")
    return v.strip()


def _optional_str(data, key):
    v = data.get(key)
    return "" if v is None else str(v)


def _optional_int(data, key):
    v = data.get(key)
    if v is None: return 0
    try:
        return int(v)
    except (TypeError, ValueError):
        raise LessonParseError(f"{key} doit être un entier") from None


def _str_list(data, key):
    v = data.get(key) or []
    if not isinstance(v, list): return []
    return [str(x) for x in v]
