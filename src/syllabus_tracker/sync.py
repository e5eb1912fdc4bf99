"""Best-effort remote synchronization of progress snapshots.

Reconciliation is deliberately coarse: the remote snapshot is adopted
wholesale when it has strictly more completed topics, or when it was updated
after our last successful sync. Concurrent edits on two devices can lose
data; there is no field-level merge.
"""
import enum
import logging
import threading
import time
from datetime import datetime, timezone

import requests

from syllabus_tracker.db import SYNC_CONFIG_KEY, load_json, namespaced_key, save_json
from syllabus_tracker.errors import ImportValidationError, RemoteStoreError
from syllabus_tracker.importer import validate_attempts, validate_completion
from syllabus_tracker.models import SyncConfig

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class SyncStatus(enum.Enum):
    LOCAL = "local"
    SYNCING = "syncing"
    SYNCED = "synced"
    ERROR = "error"


def parse_timestamp(value: str | None) -> datetime:
    """Parse an ISO-8601 timestamp; missing or unparseable values are the epoch."""
    if not value:
        return EPOCH
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (TypeError, ValueError):
        logger.warning("Ignoring unparseable timestamp %r", value)
        return EPOCH
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class JsonBinStore:
    """Remote document store speaking the JSONBin v3 REST dialect."""

    def __init__(self, base_url: str, access_key: str = "", master_key: str = "",
                 timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.access_key = access_key
        self.master_key = master_key
        self.timeout = timeout

    def _headers(self, **extra) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.access_key:
            headers["X-Access-Key"] = self.access_key
        headers.update(extra)
        return headers

    def create(self, payload: dict) -> str:
        headers = self._headers(**{
            "X-Bin-Private": "false",
            "X-Bin-Name": f"syllabus-{int(time.time() * 1000)}",
        })
        if self.master_key:
            headers["X-Master-Key"] = self.master_key
        try:
            response = requests.post(f"{self.base_url}/b", json=payload, headers=headers,
                                     timeout=self.timeout)
            response.raise_for_status()
            return response.json()["metadata"]["id"]
        except (requests.RequestException, ValueError, KeyError) as e:
            raise RemoteStoreError(f"Create document failed: {e}") from e

    def get(self, handle: str) -> dict | None:
        """Fetch a document; None when the remote reports it does not exist."""
        try:
            response = requests.get(f"{self.base_url}/b/{handle}/latest",
                                    headers=self._headers(), timeout=self.timeout)
            if response.status_code == 404:
                return None
            response.raise_for_status()
            return response.json().get("record")
        except (requests.RequestException, ValueError, AttributeError) as e:
            raise RemoteStoreError(f"Get document {handle} failed: {e}") from e

    def put(self, handle: str, payload: dict) -> None:
        try:
            response = requests.put(f"{self.base_url}/b/{handle}", json=payload,
                                    headers=self._headers(), timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise RemoteStoreError(f"Put document {handle} failed: {e}") from e


class DebounceTimer:
    """Trailing-edge debounce with at most one pending callback.

    The timer thread never runs the callback. When the delay elapses it only
    marks the callback as due, and the owner runs it on its own thread with
    ``run_due()`` (or ``flush()`` to run it early).
    """

    def __init__(self, timer_factory=threading.Timer):
        self._timer_factory = timer_factory
        self._timer = None
        self._callback = None
        self._due = False
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def pending(self) -> bool:
        return self._callback is not None

    @property
    def due(self) -> bool:
        return self._due

    def schedule(self, delay: float, callback) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            generation = self._generation
            self._callback = callback
            self._due = False
            self._timer = self._timer_factory(delay, lambda: self._mark_due(generation))
            self._timer.daemon = True
            self._timer.start()

    def _mark_due(self, generation: int) -> None:
        with self._lock:
            # a timer that was replaced before it fired is stale
            if generation == self._generation and self._callback is not None:
                self._timer = None
                self._due = True

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            self._timer = None
            self._callback = None
            self._due = False

    def _take(self, only_due: bool):
        with self._lock:
            if only_due and not self._due:
                return None
            if self._timer is not None:
                self._timer.cancel()
            callback = self._callback
            self._generation += 1
            self._timer = None
            self._callback = None
            self._due = False
            return callback

    def run_due(self) -> bool:
        """Run the callback if its delay has elapsed. Returns True if one ran."""
        callback = self._take(only_due=True)
        if callback is None:
            return False
        callback()
        return True

    def flush(self) -> bool:
        """Run the pending callback now instead of waiting. Returns True if one ran."""
        callback = self._take(only_due=False)
        if callback is None:
            return False
        callback()
        return True


class SyncReconciler:
    """Pulls, pushes and reconciles one user's progress against a remote store."""

    def __init__(self, db_path: str, user_id: str, progress, store=None,
                 debounce_seconds: float = 2.0, timer: DebounceTimer | None = None,
                 clock=utc_now):
        self.db_path = db_path
        self.user_id = user_id
        self.progress = progress
        self.store = store
        self.debounce_seconds = debounce_seconds
        self.timer = timer or DebounceTimer()
        self.clock = clock
        self.config = SyncConfig.from_dict(load_json(db_path, self._config_key(), {}))
        self.status = SyncStatus.SYNCED if self.enabled else SyncStatus.LOCAL

    def _config_key(self) -> str:
        return namespaced_key(self.user_id, SYNC_CONFIG_KEY)

    def save_config(self) -> None:
        save_json(self.db_path, self._config_key(), self.config.to_dict())

    @property
    def enabled(self) -> bool:
        return bool(self.store is not None and self.config.remote_handle)

    def snapshot(self) -> dict:
        return {
            "completion": self.progress.completion(),
            "quizAttempts": self.progress.attempts_as_dict(),
            "lastUpdated": self.clock().isoformat(),
        }

    def _fail(self, action: str, error: Exception) -> None:
        logger.warning("user=%s %s failed: %s", self.user_id, action, error)
        self.status = SyncStatus.ERROR

    def pull(self) -> dict | None:
        if not self.enabled:
            return None
        self.status = SyncStatus.SYNCING
        try:
            snapshot = self.store.get(self.config.remote_handle)
        except RemoteStoreError as e:
            self._fail("pull", e)
            return None
        if snapshot is None:
            self._fail("pull", RemoteStoreError(f"document {self.config.remote_handle} not found"))
            return None
        self.status = SyncStatus.SYNCED
        return snapshot

    def push(self) -> bool:
        if not self.enabled:
            return False
        self.status = SyncStatus.SYNCING
        try:
            self.store.put(self.config.remote_handle, self.snapshot())
        except RemoteStoreError as e:
            self._fail("push", e)
            return False
        self.config.last_sync_timestamp = self.clock().isoformat()
        self.save_config()
        self.status = SyncStatus.SYNCED
        logger.info("user=%s pushed progress to %s", self.user_id, self.config.remote_handle)
        return True

    def reconcile(self) -> bool:
        """Adopt the remote snapshot when it is fuller or newer. Returns True if adopted."""
        snapshot = self.pull()
        if snapshot is None:
            return False
        if not isinstance(snapshot, dict):
            self._fail("reconcile", RemoteStoreError("remote record is not an object"))
            return False
        raw_completion = snapshot.get("completion")
        raw_attempts = snapshot.get("quizAttempts")
        try:
            remote_completion = validate_completion({} if raw_completion is None else raw_completion)
            attempts = None if raw_attempts is None else validate_attempts(raw_attempts)
        except ImportValidationError as e:
            self._fail("reconcile", RemoteStoreError(f"malformed remote snapshot: {e}"))
            return False
        local_count = self.progress.completed_count()
        remote_count = sum(1 for done in remote_completion.values() if done)
        remote_time = parse_timestamp(snapshot.get("lastUpdated"))
        local_time = parse_timestamp(self.config.last_sync_timestamp)
        if remote_count > local_count or remote_time > local_time:
            self.progress.replace(remote_completion, attempts)
            logger.info(
                "user=%s adopted remote snapshot (%d remote vs %d local completed)",
                self.user_id, remote_count, local_count,
            )
            return True
        return False

    def create_remote(self) -> str | None:
        """Create a remote document from local state and start syncing to it."""
        if self.store is None:
            return None
        self.status = SyncStatus.SYNCING
        try:
            handle = self.store.create(self.snapshot())
        except RemoteStoreError as e:
            self._fail("create", e)
            return None
        self.config.remote_handle = handle
        self.config.last_sync_timestamp = self.clock().isoformat()
        self.save_config()
        self.status = SyncStatus.SYNCED
        return handle

    def connect_remote(self, handle: str) -> bool:
        """Start syncing to an existing document, adopting it if it wins reconciliation."""
        self.config.remote_handle = handle.strip() or None
        self.save_config()
        if not self.enabled:
            self.status = SyncStatus.LOCAL
            return False
        return self.reconcile()

    def sync_now(self) -> bool:
        """Push immediately, replacing any debounced push still waiting."""
        self.timer.cancel()
        return self.push()

    def disconnect(self) -> None:
        self.timer.cancel()
        self.config.remote_handle = None
        self.save_config()
        self.status = SyncStatus.LOCAL

    def schedule_push(self) -> bool:
        if not (self.enabled and self.config.auto_sync_enabled):
            return False
        self.timer.schedule(self.debounce_seconds, self.push)
        return True

    def flush(self) -> bool:
        return self.timer.flush()

    def run_due_push(self) -> bool:
        """Run a debounced push whose delay has elapsed, on the calling thread."""
        return self.timer.run_due()
