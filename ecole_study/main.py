# ecole_study/main.py
from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from ecole_study.domain.errors import (
    AlreadySubmitted,
    EmptyQuiz,
    IncompleteAnswers,
    LessonParseError,
    NotFound,
    QuizError,
    StoreError,
)
from ecole_study.domain.enums import ExerciseType
from ecole_study.domain.models import QuizResult, QuizSession
from ecole_study.domain.subjects import SUBJECT_NAMES, subject_name
from ecole_study.engine.narration import NarrationConfig, NarrationController
from ecole_study.engine.quiz_engine import QuizEngine
from ecole_study.store.json_store import JsonLessonStore
from ecole_study.store.supabase_client import SupabaseClient, SupabaseConfig
from ecole_study.voice_narrator import GoogleTTSNarrator

logger = logging.getLogger(__name__)

QUIZ_HELP = (
    "Commandes: /s suivant | /p précédent | /lire | /pause | /reprendre | /stop | "
    "/soumettre | /q quitter. Toute autre saisie est votre réponse."
)


def _project_root() -> str:
    return str(Path(__file__).resolve().parent.parent)


def _get_env(name: str, default: str = "") -> str:
    return os.environ.get(name, default).strip()


def build_store():
    if _get_env("SUPABASE_URL"):
        return SupabaseClient(SupabaseConfig.from_env())
    data_dir = Path(_project_root()) / "data"
    return JsonLessonStore(
        lessons_path=_get_env("ECOLE_LESSONS_FILE", str(data_dir / "sample_lessons.json")),
        attempts_path=_get_env("ECOLE_ATTEMPTS_FILE", str(data_dir / "attempts.json")),
        user_id=_get_env("ECOLE_USER_ID") or None,
    )


def _print_exercise(engine: QuizEngine, session: QuizSession):
    ex = engine.current_exercise(session)
    n = len(session.exercises)
    pct = int(engine.progress_fraction(session) * 100)
    print("\n" + "=" * 80)
    print(f"Quiz: {session.lesson_title} | Question {session.current_index + 1} / {n} ({pct}%)")
    print("-" * 80)
    print(ex.question)
    print("-" * 80)
    choices = ex.choices
    if choices:
        for i, opt in enumerate(choices, start=1):
            label = {"true": "Vrai", "false": "Faux"}.get(opt, opt) if ex.type == ExerciseType.TRUE_FALSE else opt
            mark = "*" if session.answers.get(session.current_index) == opt else " "
            print(f"{mark} {i}) {label}")
    else:
        current = session.answers.get(session.current_index)
        print(f"Votre réponse: {current if current is not None else '(pas de réponse)'}")
    print("=" * 80)


def _answer_from_input(engine: QuizEngine, session: QuizSession, raw: str) -> str:
    choices = engine.current_exercise(session).choices
    if choices and raw.isdigit() and 1 <= int(raw) <= len(choices):
        return choices[int(raw) - 1]
    return raw


def print_result(result: QuizResult):
    print("\n--- RÉSULTATS DU QUIZ ---")
    print(f"{result.score}/{result.total_points} | {result.percentage}% de réussite\n")
    for i, item in enumerate(result.review, start=1):
        icon = "✅" if item.is_correct else "❌"
        print(f"{icon} Question {i}: {item.question}")
        print(f"   Votre réponse: {item.answer or '(pas de réponse)'}")
        print(f"   Bonne réponse: {item.correct_answer}")
        if item.explanation:
            print(f"   Explication: {item.explanation}")


def run_quiz(engine: QuizEngine, narration: NarrationController, lesson_id: str, read=input) -> Optional[QuizResult]:
    try:
        session = engine.load(lesson_id)
    except NotFound:
        print("Quiz introuvable.")
        return None
    except EmptyQuiz:
        print("Cette leçon n'a pas de quiz.")
        return None

    print(QUIZ_HELP)
    while True:
        _print_exercise(engine, session)
        raw = read("> ").strip()
        if not raw:
            continue
        cmd = raw.lower()
        if cmd == "/q":
            return None
        if cmd == "/s":
            engine.next(session)
        elif cmd == "/p":
            engine.previous(session)
        elif cmd == "/lire":
            narration.toggle(engine.current_exercise(session).question)
        elif cmd == "/pause":
            narration.pause()
        elif cmd == "/reprendre":
            narration.resume()
        elif cmd == "/stop":
            narration.stop()
        elif cmd == "/soumettre":
            try:
                result = engine.submit(session)
            except IncompleteAnswers as e:
                print(f"Impossible de soumettre. {e}")
                continue
            except AlreadySubmitted:
                return engine.result(session)
            narration.stop()
            print_result(result)
            return result
        else:
            engine.record_answer(session, session.current_index, _answer_from_input(engine, session, raw))
            engine.next(session)


def lesson_view(store, engine: QuizEngine, narrator, config: NarrationConfig, lesson_id: str, read=input):
    try:
        lesson = store.get_lesson(lesson_id)
    except (NotFound, StoreError, LessonParseError) as e:
        logger.info(f"[QUIZ] {e}")
        print("Leçon introuvable.")
        return

    with NarrationController(narrator, config) as narration:
        while True:
            print("\n" + "=" * 80)
            print(lesson.title)
            print(lesson.description)
            for i, section in enumerate(lesson.content, start=1):
                print(f"\n{i}. {section.title}\n{section.text}")
            print("=" * 80)
            n_ex = len(lesson.exercises or [])
            quiz_hint = f" | /quiz ({n_ex} questions)" if n_ex else ""
            cmd = read(f"Numéro de section à écouter | /pause | /reprendre | /stop{quiz_hint} | /q retour > ").strip().lower()
            if cmd == "/q":
                return
            if cmd == "/pause":
                narration.pause()
            elif cmd == "/reprendre":
                narration.resume()
            elif cmd == "/stop":
                narration.stop()
            elif cmd == "/quiz" and n_ex:
                narration.stop()
                with NarrationController(narrator, config) as quiz_narration:
                    run_quiz(engine, quiz_narration, lesson.id, read)
            elif cmd.isdigit() and 1 <= int(cmd) <= len(lesson.content):
                section = lesson.content[int(cmd) - 1]
                narration.speak(f"{section.title}. {section.text}")


def tutor_view(store, tutor_id: str, read=input):
    """A tutor's lessons, newest first: publish toggle and deletion."""
    while True:
        try:
            lessons = store.list_tutor_lessons(tutor_id)
        except (StoreError, LessonParseError) as e:
            print(f"Erreur de chargement: {e}")
            return
        print("\nMes leçons:")
        if not lessons:
            print("Aucune leçon créée.")
            return
        for i, l in enumerate(lessons, start=1):
            state = "Publiée" if l.is_published else "Brouillon"
            print(f"{i}) {l.title} [{subject_name(l.subject)}, {l.level}] - {state}")
        cmd = read("p<n> publier/dépublier | d<n> supprimer | Entrée=retour > ").strip().lower()
        if not cmd:
            return
        action, num = cmd[:1], cmd[1:]
        if action not in ("p", "d") or not num.isdigit() or not 1 <= int(num) <= len(lessons):
            continue
        lesson = lessons[int(num) - 1]
        try:
            if action == "p":
                store.set_published(lesson.id, not lesson.is_published)
            elif read(f"Supprimer « {lesson.title} » ? (o/N) ").strip().lower() == "o":
                store.delete_lesson(lesson.id)
        except (StoreError, NotFound) as e:
            print(f"Erreur: {e}")


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(
        level=logging.INFO if _get_env("ECOLE_DEBUG") else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    argv = sys.argv[1:] if argv is None else argv

    try:
        store = build_store()
    except ValueError as e:
        print(f"ERREUR: {e}")
        return 2

    user_id = store.current_user_id()
    engine = QuizEngine(store, user_id=user_id, on_warning=lambda msg: print(f"⚠️  {msg}"))
    narrator = GoogleTTSNarrator()
    config = NarrationConfig.from_env()

    print("ÉCOLE STUDY")
    if user_id:
        try:
            name = store.get_profile_name(user_id)
        except StoreError:
            name = None
        print(f"Bonjour {name or user_id}")
    if not narrator.available:
        print("(Lecture audio indisponible)")

    try:
        if argv:
            lesson_view(store, engine, narrator, config, argv[0], input)
            return 0

        subjects = list(SUBJECT_NAMES)
        while True:
            print("\nMatières:")
            for i, s in enumerate(subjects, start=1):
                print(f"{i}) {subject_name(s)}")
            tutor_hint = ", T=mes leçons" if user_id else ""
            choice = input(f"Matière (Q=quitter{tutor_hint}): ").strip()
            if choice.lower() in ("q", "quit"):
                return 0
            if choice.lower() == "t" and user_id:
                tutor_view(store, user_id, input)
                continue
            if not choice.isdigit() or not 1 <= int(choice) <= len(subjects):
                continue
            subject = subjects[int(choice) - 1]
            try:
                lessons = store.list_subject_lessons(subject, user_id)
            except (StoreError, LessonParseError) as e:
                print(f"Erreur de chargement: {e}")
                continue
            if not lessons:
                print("Aucune leçon disponible pour le moment.")
                continue
            for i, l in enumerate(lessons, start=1):
                done = "✅" if l.is_completed else "  "
                print(f"{done} {i}) {l.title} [{l.level}, {l.duration} min]")
            pick = input("Leçon (Entrée=retour): ").strip()
            if pick.isdigit() and 1 <= int(pick) <= len(lessons):
                lesson_view(store, engine, narrator, config, lessons[int(pick) - 1].id, input)
    except (KeyboardInterrupt, EOFError):
        print("\nAu revoir.")
        return 0
    except QuizError as e:
        print(f"Erreur: {e}")
        return 1
    finally:
        engine.wait_for_persistence(timeout=5.0)
        narrator.shutdown()


if __name__ == "__main__":
    raise SystemExit(main())
