"""Tests for data model classes."""
from syllabus_tracker.models import (
    AnalyticsAccumulator, IncorrectAnswer, PresentedQuestion, Question,
    QuizAttempt, SyncConfig, User,
)


def test_quiz_attempt_to_dict_uses_document_keys():
    attempt = QuizAttempt(
        date="2026-01-02T10:00:00+00:00", score=7, passed=False,
        incorrect_answers=[IncorrectAnswer("Q?", "B", "A")],
    )
    data = attempt.to_dict()
    assert data["incorrectAnswers"] == [{"questionText": "Q?", "chosenText": "B", "correctText": "A"}]
    assert QuizAttempt.from_dict(data) == attempt


def test_quiz_attempt_from_dict_without_incorrect_answers():
    attempt = QuizAttempt.from_dict({"date": "2026-01-02", "score": 10, "passed": True})
    assert attempt.incorrect_answers == []


def test_analytics_defaults():
    acc = AnalyticsAccumulator()
    assert acc.quizzes_taken == 0
    assert acc.correct_by_difficulty == {"easy": 0, "medium": 0, "hard": 0}
    assert acc.total_by_difficulty == {"easy": 0, "medium": 0, "hard": 0}


def test_analytics_defaults_are_not_shared():
    a = AnalyticsAccumulator()
    b = AnalyticsAccumulator()
    a.correct_by_difficulty["easy"] = 5
    assert b.correct_by_difficulty["easy"] == 0


def test_analytics_from_partial_dict():
    acc = AnalyticsAccumulator.from_dict({"quizzesTaken": 2, "correctByDifficulty": {"hard": 3}})
    assert acc.quizzes_taken == 2
    assert acc.correct_by_difficulty == {"easy": 0, "medium": 0, "hard": 3}


def test_sync_config_defaults():
    cfg = SyncConfig()
    assert cfg.remote_handle is None
    assert cfg.last_sync_timestamp is None
    assert cfg.auto_sync_enabled is True
    assert SyncConfig.from_dict({}) == cfg


def test_user_defaults():
    u = User(id="u1", display_name="U")
    assert u.total_days == 100
    assert u.curriculum_file == "curriculum.json"


def test_presented_question_correct_text():
    q = Question(id="q", difficulty="easy", text="?", options=("a", "b", "c", "d"), correct_option_index=0)
    pq = PresentedQuestion(question=q, options=["c", "a", "d", "b"], correct_index=1)
    assert pq.correct_text == "a"
