# ecole_study/domain/errors.py
from __future__ import annotations


class QuizError(Exception):
    """Base of the failures the quiz engine hands back to its caller."""


class NotFound(QuizError):
    pass


class EmptyQuiz(QuizError):
    pass


class IncompleteAnswers(QuizError):
    def __init__(self, missing):
        self.missing = list(missing)
        super().__init__(f"Questions sans réponse: {[i + 1 for i in self.missing]}")


class AlreadySubmitted(QuizError):
    pass


class StoreError(Exception):
    """A remote or file store call failed."""


class LessonParseError(Exception):
    pass
