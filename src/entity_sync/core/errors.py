"""Custom exception hierarchy for the synchronization engine."""


class SyncError(Exception):
    """Base exception for all entity-sync errors."""


# --- Configuration ---
class ConfigError(SyncError):
    """Invalid or missing configuration."""


# --- Entity runtime ---
class EntityError(SyncError):
    """Entity registry or lifecycle error."""


class DuplicateEntityError(EntityError):
    """An entity with the same id is already registered."""


class EntityNotFoundError(EntityError):
    """The entity is not registered in its repository."""


class DeserializationError(SyncError):
    """A raw shape failed validation against the entity model."""

    def __init__(self, model: str, errors: list[dict] | None = None, message: str = ""):
        self.model = model
        self.errors = errors or []
        super().__init__(message or f"Cannot deserialize {model}: {self.errors}")


# --- Bulk load ---
class FillError(SyncError):
    """Repository hydration cannot proceed."""


# --- Task queue ---
class TaskError(SyncError):
    """A queued persistence operation failed."""


class QueueHaltedError(TaskError):
    """The task queue stopped draining after a task failure."""

    def __init__(self, pending: int, cause: BaseException | None = None):
        self.pending = pending
        self.cause = cause
        super().__init__(
            f"Task queue halted with {pending} pending task(s): {cause!r}"
        )


class QueueStoppedError(TaskError):
    """The task queue was stopped while tasks were still pending."""

    def __init__(self, pending: int):
        self.pending = pending
        super().__init__(f"Task queue stopped with {pending} pending task(s)")
