"""Curriculum index and user roster loading."""
import json
import logging
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path

from syllabus_tracker.errors import LoadError, UnknownTopicError
from syllabus_tracker.models import Subject, Topic, Unit, User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TopicEntry:
    """A topic together with the subject and unit that own it."""
    subject: Subject
    unit: Unit
    topic: Topic


@dataclass
class CurriculumIndex:
    start_date: date
    subjects: tuple
    total_days: int = 100
    buffer_days: frozenset = frozenset()
    _entries: dict = field(default_factory=dict, repr=False)

    def __post_init__(self):
        for subject in self.subjects:
            for unit in subject.units:
                for topic in unit.topics:
                    if topic.id in self._entries:
                        raise LoadError(f"Duplicate topic id {topic.id!r} in curriculum")
                    self._entries[topic.id] = TopicEntry(subject, unit, topic)

    def entries(self) -> list[TopicEntry]:
        """Every topic in curriculum order."""
        return list(self._entries.values())

    def topic_ids(self) -> list[str]:
        return list(self._entries)

    def has_topic(self, topic_id: str) -> bool:
        return topic_id in self._entries

    def entry(self, topic_id: str) -> TopicEntry:
        try:
            return self._entries[topic_id]
        except KeyError:
            raise UnknownTopicError(f"Unknown topic {topic_id!r}") from None

    def topics_for_day(self, day: int) -> list[TopicEntry]:
        return [e for e in self._entries.values() if e.topic.day == day]

    def subject(self, subject_id: str) -> Subject:
        for s in self.subjects:
            if s.id == subject_id:
                return s
        raise LoadError(f"Unknown subject {subject_id!r}")


def _read_json(path: Path, what: str) -> dict:
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as e:
        raise LoadError(f"Cannot read {what} {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise LoadError(f"Malformed {what} {path}: {e}") from e
    if not isinstance(data, dict):
        raise LoadError(f"Malformed {what} {path}: expected an object")
    return data


def _parse_topic(raw: dict, total_days: int) -> Topic:
    day = int(raw["day"])
    if not 1 <= day <= total_days:
        raise LoadError(f"Topic {raw['id']!r} scheduled on day {day}, outside 1..{total_days}")
    return Topic(
        id=str(raw["id"]),
        title=raw.get("title") or raw["name"],
        day=day,
        subtopics=tuple(raw.get("subtopics", [])),
    )


def parse_curriculum(data: dict, total_days: int = 100) -> CurriculumIndex:
    try:
        start = date.fromisoformat(data["metadata"]["startDate"][:10])
        subjects = []
        for s in data["subjects"]:
            units = tuple(
                Unit(
                    id=str(u["id"]),
                    name=u["name"],
                    topics=tuple(_parse_topic(t, total_days) for t in u["topics"]),
                )
                for u in s["units"]
            )
            subjects.append(Subject(
                id=str(s["id"]),
                name=s["name"],
                short_name=s.get("shortName", s["name"]),
                color=s.get("color", ""),
                priority=s.get("priority", ""),
                total_hours=int(s.get("totalHours", 0)),
                units=units,
            ))
        buffer_days = frozenset(int(d) for d in data.get("schedule", {}).get("bufferDays", []))
    except (KeyError, TypeError, ValueError) as e:
        raise LoadError(f"Malformed curriculum: {e!r}") from e
    return CurriculumIndex(
        start_date=start,
        subjects=tuple(subjects),
        total_days=total_days,
        buffer_days=buffer_days,
    )


def load_curriculum(path, total_days: int = 100) -> CurriculumIndex:
    """Load a curriculum document. Failures are fatal for the user."""
    index = parse_curriculum(_read_json(path, "curriculum"), total_days)
    logger.info("Loaded curriculum %s: %d topics", path, len(index.topic_ids()))
    return index


def load_roster(path) -> list[User]:
    data = _read_json(path, "user roster")
    try:
        users = [
            User(
                id=str(u["id"]),
                display_name=u.get("displayName", u["id"]),
                icon=u.get("icon", ""),
                curriculum_file=u.get("curriculumFile", "curriculum.json"),
                question_file=u.get("questionFile", "questions.json"),
                total_days=int(u.get("totalDays", 100)),
            )
            for u in data["users"]
        ]
    except (KeyError, TypeError, ValueError) as e:
        raise LoadError(f"Malformed user roster {path}: {e!r}") from e
    if not users:
        raise LoadError(f"User roster {path} lists no users")
    return users


def find_user(users: list[User], user_id: str) -> User:
    for u in users:
        if u.id == user_id:
            return u
    raise LoadError(f"Unknown user {user_id!r}")
