# ecole_study/domain/models.py
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ecole_study.domain.enums import ExerciseType, NarrationStatus

TRUE_FALSE_CHOICES = ["true", "false"]


@dataclass(frozen=True)
class Exercise:
    question: str
    type: ExerciseType
    correct_answer: str
    explanation: str = ""
    points: int = 0
    options: List[str] = field(default_factory=list)

    @property
    def choices(self) -> Optional[List[str]]:
        """Answers a UI offers as buttons; None means free text."""
        if self.type == ExerciseType.MULTIPLE_CHOICE:
            return list(self.options)
        if self.type == ExerciseType.TRUE_FALSE:
            return list(TRUE_FALSE_CHOICES)
        return None


@dataclass(frozen=True)
class ContentSection:
    title: str
    text: str


@dataclass
class Lesson:
    id: str
    title: str
    description: str = ""
    content: List[ContentSection] = field(default_factory=list)
    exercises: Optional[List[Exercise]] = field(default_factory=list)

    # listing metadata from the lessons table
    subject: str = ""
    level: str = ""
    duration: int = 0
    is_published: bool = False
    tutor_id: str = ""
    created_at: str = ""


@dataclass
class LessonSummary:
    id: str
    title: str
    description: str = ""
    subject: str = ""
    level: str = ""
    duration: int = 0
    is_published: bool = False
    created_at: str = ""
    is_completed: bool = False


@dataclass
class QuizSession:
    lesson_id: str
    exercises: List[Exercise]
    answers: Dict[int, str] = field(default_factory=dict)
    current_index: int = 0
    submitted: bool = False
    score: int = 0
    lesson_title: str = ""


@dataclass(frozen=True)
class AttemptRecord:
    user_id: str
    lesson_id: str
    score: int
    total_points: int
    answers: Dict[int, str]

    def to_row(self) -> Dict:
        # JSON object keys must be strings
        return {
            "user_id": self.user_id,
            "lesson_id": self.lesson_id,
            "score": self.score,
            "total_points": self.total_points,
            "answers": {str(k): v for k, v in sorted(self.answers.items())},
        }


@dataclass(frozen=True)
class ReviewItem:
    question: str
    answer: Optional[str]
    correct_answer: str
    explanation: str
    is_correct: bool
    points: int


@dataclass(frozen=True)
class QuizResult:
    score: int
    total_points: int
    percentage: int
    review: List[ReviewItem] = field(default_factory=list)


@dataclass
class NarrationState:
    status: NarrationStatus = NarrationStatus.IDLE
    active_text: Optional[str] = None
