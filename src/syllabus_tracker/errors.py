"""Exception types raised by the tracker core."""


class TrackerError(Exception):
    """Base class for all tracker errors."""


class ConfigError(TrackerError):
    pass


class LoadError(TrackerError):
    """Curriculum, question or roster source is unreachable or malformed."""


class UnknownTopicError(TrackerError):
    pass


class InsufficientQuestionsError(TrackerError):
    """Fewer questions are available than a quiz session needs."""

    def __init__(self, topic_id: str, available: int, required: int):
        super().__init__(
            f"Topic {topic_id!r} has {available} questions available, {required} required"
        )
        self.topic_id = topic_id
        self.available = available
        self.required = required


class QuizStateError(TrackerError):
    """Illegal transition in a quiz session."""


class ManualToggleDisabled(TrackerError):
    pass


class RemoteStoreError(TrackerError):
    """Network or service failure talking to the remote store."""


class ImportValidationError(TrackerError):
    pass
