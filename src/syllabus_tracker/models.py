"""Data classes for the tracker domain model."""
from dataclasses import dataclass, field
from typing import Optional

DIFFICULTIES = ("easy", "medium", "hard")


@dataclass(frozen=True)
class Topic:
    id: str
    title: str
    day: int
    subtopics: tuple = ()


@dataclass(frozen=True)
class Unit:
    id: str
    name: str
    topics: tuple = ()


@dataclass(frozen=True)
class Subject:
    id: str
    name: str
    short_name: str = ""
    color: str = ""
    priority: str = ""
    total_hours: int = 0
    units: tuple = ()


@dataclass(frozen=True)
class Question:
    id: str
    difficulty: str
    text: str
    options: tuple
    correct_option_index: int


@dataclass
class PresentedQuestion:
    """A question as shown in one session, with options in shuffled order."""
    question: Question
    options: list
    correct_index: int

    @property
    def correct_text(self) -> str:
        return self.options[self.correct_index]


@dataclass
class AnswerRecord:
    question_text: str
    selected_text: str
    correct_text: str
    difficulty: str
    is_correct: bool


@dataclass
class IncorrectAnswer:
    question_text: str
    chosen_text: str
    correct_text: str

    def to_dict(self) -> dict:
        return {
            "questionText": self.question_text,
            "chosenText": self.chosen_text,
            "correctText": self.correct_text,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "IncorrectAnswer":
        return cls(
            question_text=data["questionText"],
            chosen_text=data["chosenText"],
            correct_text=data["correctText"],
        )


@dataclass
class QuizAttempt:
    date: str  # ISO-8601 timestamp
    score: int
    passed: bool
    incorrect_answers: list = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "score": self.score,
            "passed": self.passed,
            "incorrectAnswers": [a.to_dict() for a in self.incorrect_answers],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "QuizAttempt":
        return cls(
            date=data["date"],
            score=int(data["score"]),
            passed=bool(data["passed"]),
            incorrect_answers=[IncorrectAnswer.from_dict(a) for a in data.get("incorrectAnswers", [])],
        )


def _zero_by_difficulty() -> dict:
    return {d: 0 for d in DIFFICULTIES}


@dataclass
class AnalyticsAccumulator:
    quizzes_taken: int = 0
    questions_answered: int = 0
    correct_by_difficulty: dict = field(default_factory=_zero_by_difficulty)
    total_by_difficulty: dict = field(default_factory=_zero_by_difficulty)

    def to_dict(self) -> dict:
        return {
            "quizzesTaken": self.quizzes_taken,
            "questionsAnswered": self.questions_answered,
            "correctByDifficulty": dict(self.correct_by_difficulty),
            "totalByDifficulty": dict(self.total_by_difficulty),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AnalyticsAccumulator":
        acc = cls(
            quizzes_taken=int(data.get("quizzesTaken", 0)),
            questions_answered=int(data.get("questionsAnswered", 0)),
        )
        acc.correct_by_difficulty.update(data.get("correctByDifficulty", {}))
        acc.total_by_difficulty.update(data.get("totalByDifficulty", {}))
        return acc


@dataclass(frozen=True)
class User:
    id: str
    display_name: str
    icon: str = ""
    curriculum_file: str = "curriculum.json"
    question_file: str = "questions.json"
    total_days: int = 100


@dataclass
class SyncConfig:
    remote_handle: Optional[str] = None
    last_sync_timestamp: Optional[str] = None
    auto_sync_enabled: bool = True

    def to_dict(self) -> dict:
        return {
            "remoteHandle": self.remote_handle,
            "lastSync": self.last_sync_timestamp,
            "autoSync": self.auto_sync_enabled,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SyncConfig":
        return cls(
            remote_handle=data.get("remoteHandle"),
            last_sync_timestamp=data.get("lastSync"),
            auto_sync_enabled=bool(data.get("autoSync", True)),
        )


@dataclass(frozen=True)
class Stats:
    total: int
    completed: int
    percentage: int
