import pytest

from ecole_study.domain.errors import AlreadySubmitted, EmptyQuiz, IncompleteAnswers, NotFound, QuizError
from ecole_study.engine.quiz_engine import QuizEngine
from tests.conftest import InMemoryStore, make_exercise, make_lesson


def _engine(lessons, user_id="u1", **kwargs):
    store = InMemoryStore(lessons, **kwargs)
    return QuizEngine(store, user_id=user_id), store


@pytest.mark.parametrize("n", [1, 3, 7])
def test_load_starts_at_first_question(n):
    engine, _ = _engine([make_lesson([make_exercise(str(i)) for i in range(n)])])
    session = engine.load("l1")
    assert session.current_index == 0
    assert session.answers == {}
    assert not session.submitted
    assert engine.progress_fraction(session) == pytest.approx(1 / n)


def test_load_unknown_lesson():
    engine, _ = _engine([])
    with pytest.raises(NotFound):
        engine.load("nope")


def test_load_store_failure_is_not_found():
    engine, store = _engine([make_lesson([make_exercise("a")])])
    store.fail_reads = True
    with pytest.raises(NotFound):
        engine.load("l1")


def test_load_without_exercise_list():
    engine, _ = _engine([make_lesson(None)])
    with pytest.raises(NotFound):
        engine.load("l1")


def test_load_empty_quiz():
    engine, _ = _engine([make_lesson([])])
    with pytest.raises(EmptyQuiz):
        engine.load("l1")


def test_errors_share_a_base():
    assert issubclass(EmptyQuiz, QuizError)
    assert issubclass(IncompleteAnswers, QuizError)
    assert issubclass(NotFound, QuizError)


def test_navigation_stays_in_bounds():
    engine, _ = _engine([make_lesson([make_exercise("a"), make_exercise("b"), make_exercise("c")])])
    session = engine.load("l1")

    assert not engine.previous(session)
    assert session.current_index == 0

    assert engine.next(session)
    assert engine.next(session)
    assert not engine.next(session)
    assert not engine.next(session)
    assert session.current_index == 2
    assert engine.progress_fraction(session) == 1.0
    assert engine.current_exercise(session).correct_answer == "c"

    engine.previous(session)
    assert session.current_index == 1


def test_record_answer_overwrites_any_index():
    engine, _ = _engine([make_lesson([make_exercise("a"), make_exercise("b")])])
    session = engine.load("l1")
    engine.record_answer(session, 1, "x")
    engine.record_answer(session, 1, "y")
    assert session.answers == {1: "y"}
    assert session.current_index == 0


def test_record_answer_out_of_range():
    engine, _ = _engine([make_lesson([make_exercise("a")])])
    session = engine.load("l1")
    with pytest.raises(IndexError):
        engine.record_answer(session, 1, "x")


def test_submit_requires_every_answer():
    engine, store = _engine([make_lesson([make_exercise("a"), make_exercise("b"), make_exercise("c")])])
    session = engine.load("l1")
    engine.record_answer(session, 0, "a")
    engine.record_answer(session, 2, "c")

    assert not engine.can_submit(session)
    with pytest.raises(IncompleteAnswers) as exc:
        engine.submit(session)
    assert exc.value.missing == [1]
    assert not session.submitted
    assert store.attempts == []


def test_submit_scores_and_persists(capitals_lesson):
    engine, store = _engine([capitals_lesson])
    session = engine.load("capitales")
    engine.record_answer(session, 0, "paris")
    engine.record_answer(session, 1, "TRUE")

    result = engine.submit(session)
    assert engine.wait_for_persistence(timeout=2)

    assert result.score == 15
    assert result.total_points == 15
    assert result.percentage == 100
    assert session.submitted and session.score == 15

    [record] = store.attempts
    assert record.user_id == "u1"
    assert record.lesson_id == "capitales"
    assert record.score == 15
    assert record.total_points == 15
    assert record.answers == {0: "paris", 1: "TRUE"}


def test_wrong_answer_scores_zero_for_that_exercise(capitals_lesson):
    engine, _ = _engine([capitals_lesson])
    session = engine.load("capitales")
    engine.record_answer(session, 0, "Pariss")
    engine.record_answer(session, 1, "true")
    result = engine.submit(session)
    assert result.score == 5
    assert result.percentage == 33
    assert [r.is_correct for r in result.review] == [False, True]


def test_submitted_session_is_frozen(capitals_lesson):
    engine, _ = _engine([capitals_lesson])
    session = engine.load("capitales")
    engine.record_answer(session, 0, "Paris")
    engine.record_answer(session, 1, "true")
    engine.submit(session)

    with pytest.raises(AlreadySubmitted):
        engine.record_answer(session, 0, "Lyon")
    with pytest.raises(AlreadySubmitted):
        engine.submit(session)
    assert session.answers[0] == "Paris"
    assert session.score == 15


def test_persistence_failure_keeps_local_score(capitals_lesson):
    warnings = []
    store = InMemoryStore([capitals_lesson], fail_writes=True)
    engine = QuizEngine(store, user_id="u1", on_warning=warnings.append)
    session = engine.load("capitales")
    engine.record_answer(session, 0, "Paris")
    engine.record_answer(session, 1, "false")

    result = engine.submit(session)
    assert engine.wait_for_persistence(timeout=2)

    assert result.score == 10
    assert session.submitted
    assert len(warnings) == 1
    assert "écriture refusée" in warnings[0]


def test_no_user_skips_persistence(capitals_lesson):
    engine, store = _engine([capitals_lesson], user_id=None)
    session = engine.load("capitales")
    engine.record_answer(session, 0, "Paris")
    engine.record_answer(session, 1, "true")
    engine.submit(session)
    assert engine.wait_for_persistence(timeout=2)
    assert store.attempts == []


def test_exercises_are_copied_at_load(capitals_lesson):
    engine, _ = _engine([capitals_lesson])
    session = engine.load("capitales")
    capitals_lesson.exercises.append(make_exercise("extra"))
    assert len(session.exercises) == 2
