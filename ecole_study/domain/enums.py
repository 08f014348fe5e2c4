# ecole_study/domain/enums.py
from __future__ import annotations

from enum import Enum


class ExerciseType(str, Enum):
    MULTIPLE_CHOICE = "multiple_choice"
    TRUE_FALSE = "true_false"
    SHORT_ANSWER = "short_answer"


class Outcome(str, Enum):
    CORRECT = "correct"
    WRONG = "wrong"
    OMITTED = "omitted"


class NarrationStatus(str, Enum):
    IDLE = "idle"
    SPEAKING = "speaking"
    PAUSED = "paused"


class NarrationEvent(str, Enum):
    SPEAK = "speak"
    PAUSE = "pause"
    RESUME = "resume"
    STOP = "stop"
    END = "end"
    ERROR = "error"
