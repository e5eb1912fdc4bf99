"""Derived statistics: completion, streak, pace and schedule views."""
import math
from datetime import date

from syllabus_tracker.models import DIFFICULTIES, Stats

FILTER_VIEWS = ("today", "week", "pending", "completed")


def current_day(start_date: date, total_days: int, today: date | None = None) -> int:
    """Plan day for ``today``, clamped to 1..total_days.

    Both ends are calendar dates, so the result only changes at local midnight.
    """
    today = today or date.today()
    elapsed = (today - start_date).days + 1
    return max(1, min(elapsed, total_days))


def days_left(day: int, total_days: int) -> int:
    return max(0, total_days - day)


def _stats(topics, completion: dict) -> Stats:
    total = 0
    completed = 0
    for topic in topics:
        total += 1
        if completion.get(topic.id):
            completed += 1
    # halves round up
    percentage = math.floor(completed / total * 100 + 0.5) if total else 0
    return Stats(total=total, completed=completed, percentage=percentage)


def overall_stats(curriculum, completion: dict) -> Stats:
    return _stats((e.topic for e in curriculum.entries()), completion)


def subject_stats(subject, completion: dict) -> Stats:
    return _stats((t for u in subject.units for t in u.topics), completion)


def unit_stats(unit, completion: dict) -> Stats:
    return _stats(unit.topics, completion)


def completed_days(curriculum, completion: dict) -> set[int]:
    return {e.topic.day for e in curriculum.entries() if completion.get(e.topic.id)}


def streak(curriculum, completion: dict, day: int) -> int:
    """Consecutive days ending at ``day`` that have at least one completed topic."""
    done_days = completed_days(curriculum, completion)
    count = 0
    d = day
    while d >= 1 and d in done_days:
        count += 1
        d -= 1
    return count


def estimated_days_remaining(curriculum, completion: dict, day: int) -> int | None:
    stats = overall_stats(curriculum, completion)
    if stats.completed == 0:
        return None
    avg_per_day = stats.completed / max(1, day)
    remaining = stats.total - stats.completed
    return math.ceil(remaining / max(0.1, avg_per_day))


def pace_estimate(curriculum, completion: dict, day: int) -> str | None:
    days = estimated_days_remaining(curriculum, completion, day)
    if days is None:
        return None
    return f"{days}d remaining at current pace"


def difficulty_accuracy(analytics) -> dict:
    """Percentage correct per difficulty, None where nothing was answered."""
    result = {}
    for d in DIFFICULTIES:
        total = analytics.total_by_difficulty.get(d, 0)
        correct = analytics.correct_by_difficulty.get(d, 0)
        result[d] = math.floor(correct / total * 1000 + 0.5) / 10 if total else None
    return result


def filter_topics(curriculum, completion: dict, view: str, day: int,
                  subject_id: str | None = None) -> list:
    if view == "today":
        entries = curriculum.topics_for_day(day)
    elif view == "week":
        entries = []
        for d in range(day, min(day + 6, curriculum.total_days) + 1):
            entries.extend(curriculum.topics_for_day(d))
    elif view == "pending":
        entries = [e for e in curriculum.entries() if not completion.get(e.topic.id)]
    elif view == "completed":
        entries = [e for e in curriculum.entries() if completion.get(e.topic.id)]
    else:
        raise ValueError(f"Unknown view {view!r}, expected one of {FILTER_VIEWS}")
    if subject_id is not None:
        entries = [e for e in entries if e.subject.id == subject_id]
    return entries


def subjects_by(curriculum, priority: str | None = None, subject_id: str | None = None) -> list:
    subjects = list(curriculum.subjects)
    if subject_id is not None:
        subjects = [s for s in subjects if s.id == subject_id]
    if priority is not None:
        subjects = [s for s in subjects if s.priority == priority]
    return subjects


def schedule_grid(curriculum, completion: dict, day: int) -> list[dict]:
    """One cell per plan day with a status of current/buffer/completed/partial or ''."""
    cells = []
    for d in range(1, curriculum.total_days + 1):
        entries = curriculum.topics_for_day(d)
        done = sum(1 for e in entries if completion.get(e.topic.id))
        if d == day:
            status = "current"
        elif d in curriculum.buffer_days and not entries:
            status = "buffer"
        elif entries and done == len(entries):
            status = "completed"
        elif done:
            status = "partial"
        else:
            status = ""
        cells.append({"day": d, "status": status, "topics": len(entries), "completed": done})
    return cells
