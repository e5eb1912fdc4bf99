"""Export and import of progress backups."""
import json
from datetime import datetime, timezone
from pathlib import Path

from syllabus_tracker.errors import ImportValidationError
from syllabus_tracker.models import QuizAttempt


def export_document(progress, when: datetime | None = None) -> dict:
    when = when or datetime.now(timezone.utc)
    return {
        "completion": progress.completion(),
        "quizAttempts": progress.attempts_as_dict(),
        "exportDate": when.isoformat(),
    }


def export_filename(when: datetime | None = None) -> str:
    when = when or datetime.now(timezone.utc)
    return f"syllabus_backup_{when.date().isoformat()}.json"


def write_export(progress, directory, when: datetime | None = None) -> Path:
    path = Path(directory) / export_filename(when)
    path.write_text(json.dumps(export_document(progress, when), indent=2), encoding="utf-8")
    return path


def validate_completion(completion) -> dict:
    if not isinstance(completion, dict):
        raise ImportValidationError("'completion' must be an object of topic id to boolean")
    for topic_id, done in completion.items():
        if not isinstance(done, bool):
            raise ImportValidationError(f"Completion flag for {topic_id!r} is not a boolean")
    return dict(completion)


def validate_attempts(raw) -> dict:
    if not isinstance(raw, dict):
        raise ImportValidationError("'quizAttempts' must be an object of topic id to attempt list")
    attempts = {}
    for topic_id, items in raw.items():
        if not isinstance(items, list):
            raise ImportValidationError(f"Attempts for {topic_id!r} must be a list")
        try:
            attempts[topic_id] = [QuizAttempt.from_dict(a) for a in items]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ImportValidationError(f"Malformed attempt for {topic_id!r}: {e!r}") from e
    return attempts


def parse_import(text: str) -> tuple[dict, dict | None]:
    """Validate a backup document.

    Accepts ``{completion, quizAttempts?, exportDate?}`` or a bare completion
    mapping. Returns ``(completion, attempts)`` where attempts is None when the
    document carries no history.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ImportValidationError(f"Invalid file format: {e}") from e
    if not isinstance(data, dict):
        raise ImportValidationError("Invalid file format: expected a JSON object")
    if "completion" in data:
        completion = validate_completion(data["completion"])
        attempts = validate_attempts(data["quizAttempts"]) if "quizAttempts" in data else None
    else:
        completion = validate_completion(data)
        attempts = None
    return completion, attempts


def import_document(progress, text: str) -> int:
    """Replace local progress with a validated backup. Returns completed topic count."""
    completion, attempts = parse_import(text)
    progress.replace(completion, attempts)
    return progress.completed_count()


def import_file(progress, file_path: str) -> int:
    try:
        text = Path(file_path).read_text(encoding="utf-8")
    except OSError as e:
        raise ImportValidationError(f"Cannot read {file_path}: {e}") from e
    return import_document(progress, text)
