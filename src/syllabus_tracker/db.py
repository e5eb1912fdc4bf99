"""Local key/value storage on SQLite, namespaced per user."""
import json
import sqlite3
from pathlib import Path

from syllabus_tracker.config import DEFAULT_DB_PATH

CURRENT_USER_KEY = "current_user"

COMPLETION_KEY = "completion"
QUIZ_ATTEMPTS_KEY = "quiz_attempts"
ANALYTICS_KEY = "analytics"
SYNC_CONFIG_KEY = "sync_config"

SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Return a SQLite connection with row factory enabled."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database, creating the store table if it doesn't exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()


def namespaced_key(user_id: str, logical_key: str) -> str:
    return f"{user_id}_{logical_key}"


def get_value(db_path: str, key: str, default: str | None = None) -> str | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
    conn.close()
    return row["value"] if row else default


def set_value(db_path: str, key: str, value: str) -> None:
    conn = get_connection(db_path)
    conn.execute(
        "INSERT INTO kv_store (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value=?",
        (key, value, value),
    )
    conn.commit()
    conn.close()


def delete_value(db_path: str, key: str) -> None:
    conn = get_connection(db_path)
    conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
    conn.commit()
    conn.close()


def load_json(db_path: str, key: str, default=None):
    raw = get_value(db_path, key)
    if raw is None:
        return default
    return json.loads(raw)


def save_json(db_path: str, key: str, data) -> None:
    set_value(db_path, key, json.dumps(data))


def get_current_user_id(db_path: str) -> str | None:
    return get_value(db_path, CURRENT_USER_KEY)


def set_current_user_id(db_path: str, user_id: str) -> None:
    set_value(db_path, CURRENT_USER_KEY, user_id)
