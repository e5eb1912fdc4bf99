import json
import pytest

from syllabus_tracker.config import Settings
from syllabus_tracker.db import init_db
from syllabus_tracker.errors import RemoteStoreError
from syllabus_tracker.models import Question


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_tracker.db")
    init_db(db_path)
    return db_path


def _questions(prefix, easy, medium, hard):
    items = []
    for difficulty, count in (("easy", easy), ("medium", medium), ("hard", hard)):
        for i in range(count):
            items.append({
                "id": f"{prefix}-{difficulty}-{i}",
                "difficulty": difficulty,
                "text": f"{prefix} {difficulty} question {i}?",
                "options": [f"right {i}", f"wrong a{i}", f"wrong b{i}", f"wrong c{i}"],
                "correctOptionIndex": 0,
            })
    return items


CURRICULUM = {
    "metadata": {"startDate": "2026-01-01"},
    "schedule": {"bufferDays": [7, 10]},
    "subjects": [
        {
            "id": "math", "name": "Mathematics", "shortName": "MATH",
            "color": "#4f8ef7", "priority": "high",
            "units": [
                {"id": "calc", "name": "Calculus", "topics": [
                    {"id": "t1", "title": "Limits", "day": 1, "subtopics": ["epsilon-delta"]},
                    {"id": "t2", "title": "Derivatives", "day": 2},
                    {"id": "t3", "title": "Integrals", "day": 3},
                ]},
                {"id": "alg", "name": "Algebra", "topics": [
                    {"id": "t4", "title": "Matrices", "day": 4},
                ]},
            ],
        },
        {
            "id": "phys", "name": "Physics", "shortName": "PHYS",
            "color": "#f7a14f", "priority": "low",
            "units": [
                {"id": "mech", "name": "Mechanics", "topics": [
                    {"id": "t5", "title": "Kinematics", "day": 5},
                    {"id": "t6", "title": "Forces", "day": 5},
                    {"id": "t7", "title": "Energy", "day": 8},
                ]},
            ],
        },
    ],
}

QUESTIONS = {
    "topicQuestions": {
        "t1": {"questions": _questions("t1", 3, 4, 3)},
        "t2": {"questions": _questions("t2", 2, 4, 3)},
    },
    "defaultQuestions": {"questions": _questions("default", 4, 4, 4)},
}

USERS = {
    "users": [
        {"id": "alice", "displayName": "Alice", "icon": "A",
         "curriculumFile": "curriculum.json", "questionFile": "questions.json", "totalDays": 10},
        {"id": "bob", "displayName": "Bob", "icon": "B",
         "curriculumFile": "curriculum.json", "questionFile": "questions.json", "totalDays": 10},
    ]
}


@pytest.fixture
def curriculum_data():
    return json.loads(json.dumps(CURRICULUM))


@pytest.fixture
def question_data():
    return json.loads(json.dumps(QUESTIONS))


@pytest.fixture
def content_dir(tmp_path):
    """Write a small roster, curriculum and question bank to disk."""
    directory = tmp_path / "content"
    directory.mkdir()
    (directory / "users.json").write_text(json.dumps(USERS))
    (directory / "curriculum.json").write_text(json.dumps(CURRICULUM))
    (directory / "questions.json").write_text(json.dumps(QUESTIONS))
    return directory


@pytest.fixture
def settings(tmp_db, content_dir):
    return Settings(db_path=tmp_db, roster_path=str(content_dir / "users.json"))


@pytest.fixture
def make_pool():
    """Build a list of Question objects with the given difficulty counts."""
    def _make(easy=0, medium=0, hard=0, prefix="q"):
        return [
            Question(
                id=q["id"], difficulty=q["difficulty"], text=q["text"],
                options=tuple(q["options"]), correct_option_index=q["correctOptionIndex"],
            )
            for q in _questions(prefix, easy, medium, hard)
        ]
    return _make


class FakeRemoteStore:
    """In-memory stand-in for the remote document store."""

    def __init__(self):
        self.documents = {}
        self.fail = False
        self.puts = 0
        self._next = 1

    def _check(self):
        if self.fail:
            raise RemoteStoreError("network down")

    def create(self, payload):
        self._check()
        handle = f"bin-{self._next}"
        self._next += 1
        self.documents[handle] = json.loads(json.dumps(payload))
        return handle

    def get(self, handle):
        self._check()
        doc = self.documents.get(handle)
        return json.loads(json.dumps(doc)) if doc is not None else None

    def put(self, handle, payload):
        self._check()
        self.puts += 1
        self.documents[handle] = json.loads(json.dumps(payload))


class ManualTimer:
    """threading.Timer lookalike that only fires when told to."""

    instances = []

    def __init__(self, delay, function):
        self.delay = delay
        self.function = function
        self.daemon = False
        self.started = False
        self.cancelled = False
        ManualTimer.instances.append(self)

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.function()


@pytest.fixture
def remote():
    return FakeRemoteStore()


@pytest.fixture
def manual_timer():
    ManualTimer.instances = []
    return ManualTimer
