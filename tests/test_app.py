import random
from datetime import date
from unittest.mock import patch

import pytest
from rich.table import Table

from syllabus_tracker.app import (
    LETTERS, SessionExitRequested, cmd_dashboard, cmd_plan, cmd_quiz, cmd_review, cmd_sync,
    cmd_topics, run_quiz_session, session_prompt,
)
from syllabus_tracker.sync import DebounceTimer
from syllabus_tracker.tracker import Tracker


@pytest.fixture
def tracker(settings, remote, manual_timer):
    return Tracker.open(settings, store=remote, timer=DebounceTimer(timer_factory=manual_timer),
                        today=lambda: date(2026, 1, 5), rng=random.Random(4))


def _correct_letters(session):
    return [LETTERS[pq.correct_index] for pq in session.questions]


def _letters_with_mistakes(session, wrong):
    """Correct letters except for the first ``wrong`` questions."""
    letters = []
    for i, pq in enumerate(session.questions):
        index = (pq.correct_index + 1) % len(pq.options) if i < wrong else pq.correct_index
        letters.append(LETTERS[index])
    return letters


def _finished_session(tracker, topic_id):
    session = tracker.start_quiz(topic_id)
    pq = session.current_question
    while pq is not None:
        session.answer(pq.correct_index)
        pq = session.advance()
    return session


def test_session_exit_requested_is_exception():
    with pytest.raises(SessionExitRequested):
        raise SessionExitRequested()


def test_session_prompt_raises_on_q():
    with patch("syllabus_tracker.app.Prompt.ask", return_value="q"):
        with pytest.raises(SessionExitRequested):
            session_prompt("test prompt")


def test_session_prompt_raises_on_menu():
    with patch("syllabus_tracker.app.Prompt.ask", return_value="menu"):
        with pytest.raises(SessionExitRequested):
            session_prompt("test prompt", choices=["a", "b"])


def test_session_prompt_returns_normal_input():
    with patch("syllabus_tracker.app.Prompt.ask", return_value=" B "):
        assert session_prompt("test prompt", choices=["a", "b"]) == "b"


def test_session_prompt_reprompts_on_invalid_choice():
    with patch("syllabus_tracker.app.Prompt.ask", side_effect=["z", "c"]) as ask:
        assert session_prompt("answer", choices=["a", "b", "c", "d"]) == "c"
    assert ask.call_count == 2


def test_run_quiz_session_records_pass(tracker):
    session = tracker.start_quiz("t1")
    with patch("syllabus_tracker.app.Prompt.ask", side_effect=_correct_letters(session)):
        run_quiz_session(tracker, session)
    assert tracker.progress.is_complete("t1")
    assert tracker.progress.last_attempt("t1").score == 10


def test_run_quiz_session_exits_on_q(tracker):
    """User answers the first question then types 'q' on the second."""
    session = tracker.start_quiz("t1")
    with patch("syllabus_tracker.app.Prompt.ask", side_effect=["a", "q"]):
        with pytest.raises(SessionExitRequested):
            run_quiz_session(tracker, session)
    assert len(session.answers) == 1
    assert tracker.progress.attempts("t1") == []


def test_cmd_quiz_abandon_records_nothing(tracker):
    with patch("syllabus_tracker.app.Prompt.ask", side_effect=["t1", "a", "b", "q"]):
        cmd_quiz(tracker)
    assert tracker.progress.attempts("t1") == []
    assert not tracker.progress.is_complete("t1")


def test_cmd_quiz_insufficient_questions(settings, content_dir, remote, manual_timer):
    (content_dir / "questions.json").write_text('{"defaultQuestions": {"questions": []}}')
    tracker = Tracker.open(settings, store=remote, timer=DebounceTimer(timer_factory=manual_timer))
    with patch("syllabus_tracker.app.Prompt.ask", return_value="t3"):
        cmd_quiz(tracker)  # should not raise
    assert tracker.progress.attempts("t3") == []


def test_views_render_without_error(tracker):
    cmd_topics(tracker, "today")
    cmd_topics(tracker, "pending")
    cmd_dashboard(tracker)
    with patch("syllabus_tracker.app.Prompt.ask", return_value="5"):
        cmd_plan(tracker)


def test_cmd_review_shows_last_attempt_mistakes(tracker):
    session = tracker.start_quiz("t1")
    with patch("syllabus_tracker.app.Prompt.ask", side_effect=_letters_with_mistakes(session, 3)):
        run_quiz_session(tracker, session)
    with patch("syllabus_tracker.app.Prompt.ask", return_value="t1"), \
            patch("syllabus_tracker.app.console") as console:
        cmd_review(tracker)
    table = console.print.call_args.args[0]
    assert isinstance(table, Table)
    assert table.row_count == 3
    assert table.title.startswith("Review: 7/10")


def test_cmd_review_without_attempts(tracker):
    with patch("syllabus_tracker.app.Prompt.ask", return_value="t2"), \
            patch("syllabus_tracker.app.console") as console:
        cmd_review(tracker)
    assert "No quiz taken" in console.print.call_args.args[0]


def test_cmd_sync_now_pushes_immediately(tracker, remote):
    handle = tracker.sync.create_remote()
    tracker.finish_quiz(_finished_session(tracker, "t1"))
    assert tracker.sync.timer.pending
    with patch("syllabus_tracker.app.Prompt.ask", return_value="now"):
        cmd_sync(tracker)
    assert remote.documents[handle]["completion"] == {"t1": True}
    assert not tracker.sync.timer.pending
