"""Per-user completion flags, quiz history and analytics with write-through persistence."""
import logging

from syllabus_tracker.db import (
    ANALYTICS_KEY, COMPLETION_KEY, QUIZ_ATTEMPTS_KEY,
    load_json, namespaced_key, save_json,
)
from syllabus_tracker.models import AnalyticsAccumulator, QuizAttempt

logger = logging.getLogger(__name__)


class ProgressStore:
    """Completion record, quiz attempt history and analytics for one user.

    Every mutator writes to the database before returning, so a fresh store
    opened on the same ``db_path`` and ``user_id`` sees the same state.
    """

    def __init__(self, db_path: str, user_id: str):
        self.db_path = db_path
        self.user_id = user_id
        self._completion: dict[str, bool] = {}
        self._attempts: dict[str, list[QuizAttempt]] = {}
        self._analytics = AnalyticsAccumulator()
        self.load()

    def _key(self, logical_key: str) -> str:
        return namespaced_key(self.user_id, logical_key)

    def load(self) -> None:
        self._completion = {
            str(k): bool(v) for k, v in load_json(self.db_path, self._key(COMPLETION_KEY), {}).items()
        }
        raw_attempts = load_json(self.db_path, self._key(QUIZ_ATTEMPTS_KEY), {})
        self._attempts = {
            topic_id: [QuizAttempt.from_dict(a) for a in attempts]
            for topic_id, attempts in raw_attempts.items()
        }
        self._analytics = AnalyticsAccumulator.from_dict(
            load_json(self.db_path, self._key(ANALYTICS_KEY), {})
        )

    def _save_completion(self) -> None:
        save_json(self.db_path, self._key(COMPLETION_KEY), self._completion)

    def _save_attempts(self) -> None:
        save_json(self.db_path, self._key(QUIZ_ATTEMPTS_KEY), self.attempts_as_dict())

    def _save_analytics(self) -> None:
        save_json(self.db_path, self._key(ANALYTICS_KEY), self._analytics.to_dict())

    # Reads

    def is_complete(self, topic_id: str) -> bool:
        return self._completion.get(topic_id, False)

    def completion(self) -> dict[str, bool]:
        return dict(self._completion)

    def completed_count(self) -> int:
        return sum(1 for done in self._completion.values() if done)

    def attempts(self, topic_id: str) -> list[QuizAttempt]:
        return list(self._attempts.get(topic_id, []))

    def last_attempt(self, topic_id: str) -> QuizAttempt | None:
        attempts = self._attempts.get(topic_id)
        return attempts[-1] if attempts else None

    def attempts_as_dict(self) -> dict:
        return {
            topic_id: [a.to_dict() for a in attempts]
            for topic_id, attempts in self._attempts.items()
        }

    @property
    def analytics(self) -> AnalyticsAccumulator:
        return self._analytics

    # Mutators

    def set_complete(self, topic_id: str, done: bool = True) -> bool:
        """Set a topic's flag. Returns True when the stored value changed."""
        changed = self.is_complete(topic_id) != done
        self._completion[topic_id] = done
        self._save_completion()
        if changed:
            logger.debug("user=%s topic=%s complete=%s", self.user_id, topic_id, done)
        return changed

    def toggle(self, topic_id: str) -> bool:
        """Flip a topic's flag and return the new value."""
        new_value = not self.is_complete(topic_id)
        self.set_complete(topic_id, new_value)
        return new_value

    def record_attempt(self, topic_id: str, attempt: QuizAttempt) -> None:
        self._attempts.setdefault(topic_id, []).append(attempt)
        self._save_attempts()

    def record_answers(self, answers) -> None:
        """Fold one finished session's answer log into the analytics counters."""
        self._analytics.quizzes_taken += 1
        for a in answers:
            self._analytics.questions_answered += 1
            self._analytics.total_by_difficulty[a.difficulty] = (
                self._analytics.total_by_difficulty.get(a.difficulty, 0) + 1
            )
            if a.is_correct:
                self._analytics.correct_by_difficulty[a.difficulty] = (
                    self._analytics.correct_by_difficulty.get(a.difficulty, 0) + 1
                )
        self._save_analytics()

    def reset(self) -> None:
        """Clear completion, attempt history and analytics."""
        self._completion = {}
        self._attempts = {}
        self._analytics = AnalyticsAccumulator()
        self._save_completion()
        self._save_attempts()
        self._save_analytics()
        logger.info("user=%s progress reset", self.user_id)

    def replace(self, completion: dict, attempts: dict | None = None) -> None:
        """Overwrite completion (and attempt history when given) wholesale."""
        self._completion = {str(k): bool(v) for k, v in completion.items()}
        self._save_completion()
        if attempts is not None:
            self._attempts = {
                str(topic_id): [a if isinstance(a, QuizAttempt) else QuizAttempt.from_dict(a) for a in items]
                for topic_id, items in attempts.items()
            }
            self._save_attempts()
