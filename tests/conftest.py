import pytest

from ecole_study.domain.enums import ExerciseType
from ecole_study.domain.errors import NotFound, StoreError
from ecole_study.domain.models import ContentSection, Exercise, Lesson


class FakeNarrator:
    """Records calls; cancel interrupts the pending utterance like a browser does."""

    def __init__(self, available=True):
        self.available = available
        self.calls = []
        self.configs = []
        self.current = None

    def speak(self, text, config, on_end, on_error):
        self.calls.append(("speak", text))
        self.configs.append(config)
        self.current = (text, on_end, on_error)

    def pause(self):
        self.calls.append(("pause",))

    def resume(self):
        self.calls.append(("resume",))

    def cancel(self):
        self.calls.append(("cancel",))
        if self.current:
            _, _, on_error = self.current
            self.current = None
            on_error("interrupted")

    def shutdown(self):
        self.calls.append(("shutdown",))

    def finish(self):
        _, on_end, _ = self.current
        self.current = None
        on_end()

    def fail(self, err="synthesis-failed"):
        _, _, on_error = self.current
        self.current = None
        on_error(err)

    @property
    def playing_text(self):
        return self.current[0] if self.current else None


class InMemoryStore:
    def __init__(self, lessons=None, fail_writes=False):
        self.lessons = {l.id: l for l in (lessons or [])}
        self.attempts = []
        self.fail_writes = fail_writes
        self.fail_reads = False

    def get_lesson(self, lesson_id):
        if self.fail_reads:
            raise StoreError("connexion perdue")
        if lesson_id not in self.lessons:
            raise NotFound(lesson_id)
        return self.lessons[lesson_id]

    def record_attempt(self, record):
        if self.fail_writes:
            raise StoreError("écriture refusée")
        self.attempts.append(record)


def make_exercise(correct, points=1, type=ExerciseType.SHORT_ANSWER, options=None, question="?"):
    return Exercise(
        question=question,
        type=type,
        correct_answer=correct,
        explanation="",
        points=points,
        options=options or [],
    )


def make_lesson(exercises, lesson_id="l1"):
    return Lesson(
        id=lesson_id,
        title="Leçon test",
        description="",
        content=[ContentSection(title="Intro", text="Bonjour")],
        exercises=exercises,
    )


@pytest.fixture
def narrator():
    return FakeNarrator()


@pytest.fixture
def capitals_lesson():
    return make_lesson([
        make_exercise("Paris", 10, ExerciseType.MULTIPLE_CHOICE, ["Lyon", "Paris"], "Capitale de la France ?"),
        make_exercise("true", 5, ExerciseType.TRUE_FALSE, question="Rome est en Italie."),
    ], lesson_id="capitales")
