"""Quiz engine: session construction, answering and scoring."""
import enum
import random
from datetime import datetime, timezone

from syllabus_tracker.errors import InsufficientQuestionsError, QuizStateError
from syllabus_tracker.models import (
    AnswerRecord, IncorrectAnswer, PresentedQuestion, QuizAttempt,
)

QUIZ_LENGTH = 10
PASS_THRESHOLD = 8
DIFFICULTY_QUOTAS = (("easy", 3), ("medium", 4), ("hard", 3))


class QuizStatus(enum.Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"
    ABANDONED = "abandoned"


def select_questions(pool, rng: random.Random, length: int = QUIZ_LENGTH) -> list:
    """Pick ``length`` questions from ``pool`` honouring the difficulty quotas.

    Selection works on pool indices so duplicate-valued questions are still
    counted once each.
    """
    buckets = {difficulty: [] for difficulty, _ in DIFFICULTY_QUOTAS}
    for i, q in enumerate(pool):
        if q.difficulty in buckets:
            buckets[q.difficulty].append(i)

    selected = []
    for difficulty, quota in DIFFICULTY_QUOTAS:
        bucket = buckets[difficulty][:]
        rng.shuffle(bucket)
        selected.extend(bucket[:quota])

    if len(selected) < length:
        taken = set(selected)
        rest = [i for i in range(len(pool)) if i not in taken]
        rng.shuffle(rest)
        selected.extend(rest[:length - len(selected)])

    rng.shuffle(selected)
    return [pool[i] for i in selected]


def present(question, rng: random.Random) -> PresentedQuestion:
    """Shuffle a question's options and track where the correct one landed."""
    order = list(range(len(question.options)))
    rng.shuffle(order)
    return PresentedQuestion(
        question=question,
        options=[question.options[i] for i in order],
        correct_index=order.index(question.correct_option_index),
    )


def build_session(topic_id: str, pool, rng: random.Random | None = None) -> "QuizSession":
    if len(pool) < QUIZ_LENGTH:
        raise InsufficientQuestionsError(topic_id, len(pool), QUIZ_LENGTH)
    rng = rng or random.Random()
    questions = [present(q, rng) for q in select_questions(pool, rng)]
    return QuizSession(topic_id, questions)


def is_passing(score: int) -> bool:
    return score >= PASS_THRESHOLD


class QuizSession:
    """One 10-question attempt. Answers are final once submitted."""

    def __init__(self, topic_id: str, questions: list):
        self.topic_id = topic_id
        self.questions = questions
        self.status = QuizStatus.NOT_STARTED
        self.current_index = 0
        self.correct_count = 0
        self.incorrect_count = 0
        self.answers: list[AnswerRecord] = []
        self.recorded = False

    def start(self) -> PresentedQuestion:
        if self.status is not QuizStatus.NOT_STARTED:
            raise QuizStateError(f"Session already {self.status.value}")
        self.status = QuizStatus.IN_PROGRESS
        return self.current_question

    @property
    def current_question(self) -> PresentedQuestion:
        return self.questions[self.current_index]

    @property
    def current_answered(self) -> bool:
        return len(self.answers) > self.current_index

    @property
    def is_last_question(self) -> bool:
        return self.current_index == len(self.questions) - 1

    def answer(self, option_index: int) -> AnswerRecord:
        if self.status is not QuizStatus.IN_PROGRESS:
            raise QuizStateError(f"Cannot answer a session that is {self.status.value}")
        if self.current_answered:
            raise QuizStateError(f"Question {self.current_index + 1} was already answered")
        pq = self.current_question
        if not 0 <= option_index < len(pq.options):
            raise QuizStateError(f"Option {option_index} out of range")
        is_correct = option_index == pq.correct_index
        if is_correct:
            self.correct_count += 1
        else:
            self.incorrect_count += 1
        record = AnswerRecord(
            question_text=pq.question.text,
            selected_text=pq.options[option_index],
            correct_text=pq.correct_text,
            difficulty=pq.question.difficulty,
            is_correct=is_correct,
        )
        self.answers.append(record)
        return record

    def advance(self) -> PresentedQuestion | None:
        """Move past the answered current question; returns None once finished."""
        if self.status is not QuizStatus.IN_PROGRESS:
            raise QuizStateError(f"Cannot advance a session that is {self.status.value}")
        if not self.current_answered:
            raise QuizStateError(f"Question {self.current_index + 1} has not been answered")
        if self.is_last_question:
            self.status = QuizStatus.FINISHED
            return None
        self.current_index += 1
        return self.current_question

    def abandon(self) -> None:
        if self.status is QuizStatus.FINISHED:
            raise QuizStateError("Cannot abandon a finished session")
        self.status = QuizStatus.ABANDONED

    @property
    def score(self) -> int:
        return self.correct_count

    @property
    def passed(self) -> bool:
        return is_passing(self.correct_count)

    def to_attempt(self, when: datetime | None = None) -> QuizAttempt:
        if self.status is not QuizStatus.FINISHED:
            raise QuizStateError(f"Session is {self.status.value}, not finished")
        when = when or datetime.now(timezone.utc)
        return QuizAttempt(
            date=when.isoformat(),
            score=self.score,
            passed=self.passed,
            incorrect_answers=[
                IncorrectAnswer(a.question_text, a.selected_text, a.correct_text)
                for a in self.answers if not a.is_correct
            ],
        )
