# ecole_study/engine/quiz_engine.py
import logging
import threading
from typing import Callable, Optional

from ecole_study.domain.errors import (
    AlreadySubmitted,
    EmptyQuiz,
    IncompleteAnswers,
    LessonParseError,
    NotFound,
    StoreError,
)
from ecole_study.domain.models import AttemptRecord, Exercise, Lesson, QuizResult, QuizSession
from ecole_study.engine.scoring import build_review, percentage, score_answers, total_points

logger = logging.getLogger(__name__)


class QuizEngine:
    """
    Drives one QuizSession at a time: navigation, answers, grading.

    lesson_store needs `get_lesson(lesson_id)`, attempt_store needs
    `record_attempt(record)`. The attempt write runs on a daemon thread after
    the local score is committed; its failure only reaches the log and
    `on_warning`.
    """

    def __init__(
        self,
        lesson_store,
        attempt_store=None,
        user_id: Optional[str] = None,
        on_warning: Optional[Callable[[str], None]] = None,
    ):
        self.lesson_store = lesson_store
        self.attempt_store = attempt_store if attempt_store is not None else lesson_store
        self.user_id = user_id
        self.on_warning = on_warning
        self._writer: Optional[threading.Thread] = None

    # --- LOAD ---
    def load(self, lesson_id: str) -> QuizSession:
        try:
            lesson = self.lesson_store.get_lesson(lesson_id)
        except (StoreError, LessonParseError) as e:
            logger.warning(f"[QUIZ] Leçon {lesson_id} illisible: {e}")
            raise NotFound(f"Quiz introuvable: {lesson_id}") from e
        return self.start(lesson)

    def start(self, lesson: Optional[Lesson]) -> QuizSession:
        if lesson is None or lesson.exercises is None:
            raise NotFound("Quiz introuvable")
        if not lesson.exercises:
            raise EmptyQuiz(f"La leçon {lesson.id} n'a aucun exercice")
        return QuizSession(
            lesson_id=lesson.id,
            exercises=list(lesson.exercises),
            lesson_title=lesson.title,
        )

    # --- NAVIGATION ---
    def next(self, session: QuizSession) -> bool:
        if session.current_index < len(session.exercises) - 1:
            session.current_index += 1
            return True
        return False

    def previous(self, session: QuizSession) -> bool:
        if session.current_index > 0:
            session.current_index -= 1
            return True
        return False

    def current_exercise(self, session: QuizSession) -> Exercise:
        return session.exercises[session.current_index]

    def progress_fraction(self, session: QuizSession) -> float:
        return (session.current_index + 1) / len(session.exercises)

    # --- ANSWERS ---
    def record_answer(self, session: QuizSession, index: int, answer: str):
        if session.submitted:
            raise AlreadySubmitted("Quiz déjà soumis")
        if not 0 <= index < len(session.exercises):
            raise IndexError(f"Question {index} hors limites")
        session.answers[index] = answer

    def missing_answers(self, session: QuizSession):
        return [i for i in range(len(session.exercises)) if i not in session.answers]

    def can_submit(self, session: QuizSession) -> bool:
        return not session.submitted and not self.missing_answers(session)

    # --- SUBMIT ---
    def submit(self, session: QuizSession) -> QuizResult:
        if session.submitted:
            raise AlreadySubmitted("Quiz déjà soumis")
        missing = self.missing_answers(session)
        if missing:
            raise IncompleteAnswers(missing)

        session.score = score_answers(session.exercises, session.answers)
        session.submitted = True
        total = total_points(session.exercises)
        logger.info(f"[QUIZ] Leçon {session.lesson_id}: {session.score}/{total}")

        self._persist_in_background(session, total)
        return self.result(session)

    def result(self, session: QuizSession) -> QuizResult:
        total = total_points(session.exercises)
        return QuizResult(
            score=session.score,
            total_points=total,
            percentage=percentage(session.score, total),
            review=build_review(session.exercises, session.answers),
        )

    def wait_for_persistence(self, timeout: Optional[float] = None) -> bool:
        """Joins the last attempt write. True when nothing is still running."""
        writer = self._writer
        if writer is None:
            return True
        writer.join(timeout)
        return not writer.is_alive()

    def _persist_in_background(self, session: QuizSession, total: int):
        if self.attempt_store is None or not self.user_id:
            logger.info("[QUIZ] Aucun utilisateur connecté: tentative non enregistrée.")
            return
        record = AttemptRecord(
            user_id=self.user_id,
            lesson_id=session.lesson_id,
            score=session.score,
            total_points=total,
            answers=dict(session.answers),
        )
        self._writer = threading.Thread(target=self._persist_worker, args=(record,), daemon=True)
        self._writer.start()

    def _persist_worker(self, record: AttemptRecord):
        try:
            self.attempt_store.record_attempt(record)
        except Exception as e:
            msg = f"Résultat non enregistré ({e})"
            logger.warning(f"[QUIZ] {msg}")
            if self.on_warning:
                self.on_warning(msg)
