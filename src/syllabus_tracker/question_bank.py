"""Per-topic question pools with a default fallback pool."""
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from syllabus_tracker.errors import LoadError
from syllabus_tracker.models import DIFFICULTIES, Question

logger = logging.getLogger(__name__)

MIN_POOL_SIZE = 10


@dataclass
class QuestionBank:
    topic_pools: dict = field(default_factory=dict)
    default_pool: tuple = ()

    def pool_for(self, topic_id: str) -> tuple:
        """Topic pool when it can fill a session on its own, else the default pool."""
        pool = self.topic_pools.get(topic_id, ())
        if len(pool) >= MIN_POOL_SIZE:
            return pool
        return self.default_pool


def _parse_question(raw: dict, fallback_id: str) -> Question:
    options = tuple(str(o) for o in raw["options"])
    correct = int(raw.get("correctOptionIndex", raw.get("correct", -1)))
    if not 0 <= correct < len(options):
        raise ValueError(f"correct option {correct} out of range for question {fallback_id}")
    difficulty = raw.get("difficulty", "medium")
    if difficulty not in DIFFICULTIES:
        raise ValueError(f"unknown difficulty {difficulty!r} for question {fallback_id}")
    return Question(
        id=str(raw.get("id", fallback_id)),
        difficulty=difficulty,
        text=raw.get("text") or raw["question"],
        options=options,
        correct_option_index=correct,
    )


def _parse_pool(raw: dict, prefix: str) -> tuple:
    return tuple(
        _parse_question(q, f"{prefix}-{i}") for i, q in enumerate(raw.get("questions", []))
    )


def parse_question_bank(data: dict) -> QuestionBank:
    try:
        topic_pools = {
            str(topic_id): _parse_pool(pool, str(topic_id))
            for topic_id, pool in data.get("topicQuestions", {}).items()
        }
        default_pool = _parse_pool(data.get("defaultQuestions", {}), "default")
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise LoadError(f"Malformed question bank: {e!r}") from e
    return QuestionBank(topic_pools=topic_pools, default_pool=default_pool)


def load_question_bank(path) -> QuestionBank:
    """Load a question document, falling back to an empty bank when it is unreadable."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Question bank %s unavailable, quizzes will use an empty pool: %s", path, e)
        return QuestionBank()
    try:
        bank = parse_question_bank(data)
    except LoadError as e:
        logger.warning("Question bank %s is malformed, quizzes will use an empty pool: %s", path, e)
        return QuestionBank()
    logger.info(
        "Loaded question bank %s: %d topic pools, %d default questions",
        path, len(bank.topic_pools), len(bank.default_pool),
    )
    return bank
