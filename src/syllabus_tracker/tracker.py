"""The tracker service: one object holding the active user's context."""
import logging
import random
from datetime import date
from pathlib import Path

from syllabus_tracker import dashboard
from syllabus_tracker.config import Settings
from syllabus_tracker.curriculum import find_user, load_curriculum, load_roster
from syllabus_tracker.db import get_current_user_id, init_db, set_current_user_id
from syllabus_tracker.errors import LoadError, ManualToggleDisabled, QuizStateError
from syllabus_tracker.importer import import_file, write_export
from syllabus_tracker.progress import ProgressStore
from syllabus_tracker.question_bank import load_question_bank
from syllabus_tracker.quiz import QuizSession, QuizStatus, build_session
from syllabus_tracker.sync import JsonBinStore, SyncReconciler

logger = logging.getLogger(__name__)


class Tracker:
    """Active user, their content, progress store and sync reconciler.

    ``on_topic_completed`` is called with the topic id whenever a passing quiz
    newly completes a topic.
    """

    def __init__(self, settings: Settings, user, users, curriculum, bank, progress, sync,
                 on_topic_completed=None, rng: random.Random | None = None, today=date.today):
        self.settings = settings
        self.user = user
        self.users = users
        self.curriculum = curriculum
        self.bank = bank
        self.progress = progress
        self.sync = sync
        self.on_topic_completed = on_topic_completed
        self.rng = rng or random.Random()
        self._today = today

    @classmethod
    def open(cls, settings: Settings, user_id: str | None = None, store=None, timer=None,
             reconcile: bool = True, **kwargs) -> "Tracker":
        """Load the roster and the selected user's content, then hydrate progress.

        The user is ``user_id`` if given, else the last active user, else the
        first user in the roster.
        """
        init_db(settings.db_path)
        users = load_roster(settings.roster_path)
        user_id = user_id or get_current_user_id(settings.db_path) or users[0].id
        try:
            user = find_user(users, user_id)
        except LoadError:
            logger.warning("Stored user %r is not in the roster, using %r", user_id, users[0].id)
            user = users[0]
        content_dir = Path(settings.roster_path).parent
        curriculum = load_curriculum(content_dir / user.curriculum_file, user.total_days)
        bank = load_question_bank(content_dir / user.question_file)
        set_current_user_id(settings.db_path, user.id)

        progress = ProgressStore(settings.db_path, user.id)
        if store is None:
            store = JsonBinStore(
                settings.remote_url,
                access_key=settings.remote_access_key,
                master_key=settings.remote_master_key,
                timeout=settings.remote_timeout,
            )
        sync = SyncReconciler(settings.db_path, user.id, progress, store=store,
                              debounce_seconds=settings.sync_debounce, timer=timer)
        tracker = cls(settings, user, users, curriculum, bank, progress, sync, **kwargs)
        if reconcile and sync.enabled:
            sync.reconcile()
        logger.info("Opened tracker for user %s", user.id)
        return tracker

    def switch_user(self, user_id: str, **kwargs) -> "Tracker":
        """Flush pending sync for the current user and open another."""
        self.sync.flush()
        kwargs.setdefault("on_topic_completed", self.on_topic_completed)
        return Tracker.open(self.settings, user_id, store=self.sync.store, **kwargs)

    def close(self) -> None:
        self.sync.flush()

    def run_pending_sync(self) -> bool:
        """Run a debounced push whose delay has elapsed. Called between UI commands."""
        return self.sync.run_due_push()

    # Schedule

    @property
    def current_day(self) -> int:
        return dashboard.current_day(self.curriculum.start_date, self.user.total_days, self._today())

    @property
    def days_left(self) -> int:
        return dashboard.days_left(self.current_day, self.user.total_days)

    def topics(self, view: str = "today", subject_id: str | None = None) -> list:
        return dashboard.filter_topics(
            self.curriculum, self.progress.completion(), view, self.current_day, subject_id
        )

    def schedule_grid(self) -> list[dict]:
        return dashboard.schedule_grid(self.curriculum, self.progress.completion(), self.current_day)

    # Statistics

    def overall_stats(self):
        return dashboard.overall_stats(self.curriculum, self.progress.completion())

    def subject_stats(self, subject):
        return dashboard.subject_stats(subject, self.progress.completion())

    def unit_stats(self, unit):
        return dashboard.unit_stats(unit, self.progress.completion())

    def streak(self) -> int:
        return dashboard.streak(self.curriculum, self.progress.completion(), self.current_day)

    def pace_estimate(self) -> str | None:
        return dashboard.pace_estimate(self.curriculum, self.progress.completion(), self.current_day)

    # Quiz

    def start_quiz(self, topic_id: str) -> QuizSession:
        """Build and start a session. Raises InsufficientQuestionsError when no pool can fill it."""
        self.curriculum.entry(topic_id)
        session = build_session(topic_id, self.bank.pool_for(topic_id), self.rng)
        session.start()
        return session

    def finish_quiz(self, session: QuizSession):
        """Record a finished session once; completes the topic on a pass."""
        if session.status is not QuizStatus.FINISHED:
            raise QuizStateError(f"Session is {session.status.value}, not finished")
        if session.recorded:
            raise QuizStateError("Session result was already recorded")
        attempt = session.to_attempt()
        session.recorded = True
        self.progress.record_attempt(session.topic_id, attempt)
        self.progress.record_answers(session.answers)
        if attempt.passed and self.progress.set_complete(session.topic_id, True):
            logger.info("user=%s completed %s with %d/10", self.user.id, session.topic_id, attempt.score)
            self.sync.schedule_push()
            if self.on_topic_completed is not None:
                self.on_topic_completed(session.topic_id)
        return attempt

    def abandon_quiz(self, session: QuizSession) -> None:
        session.abandon()

    # Manual edits

    def toggle_topic(self, topic_id: str) -> bool:
        if not self.settings.allow_manual_toggle:
            raise ManualToggleDisabled("Topics can only be completed by passing their quiz")
        self.curriculum.entry(topic_id)
        done = self.progress.toggle(topic_id)
        self.sync.schedule_push()
        return done

    def reset_progress(self) -> None:
        self.progress.reset()
        if self.sync.enabled:
            self.sync.sync_now()

    def export_progress(self, directory=".") -> Path:
        return write_export(self.progress, directory)

    def import_progress(self, file_path: str) -> int:
        count = import_file(self.progress, file_path)
        if self.sync.enabled:
            self.sync.sync_now()
        return count
