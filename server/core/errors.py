"""Error taxonomy shared by the task store and its adapters."""

from __future__ import annotations


class TaskTrackerError(Exception):
    """Base class for every failure an operation reports to its caller."""

    kind = "error"


class NotFound(TaskTrackerError):
    """A document, date or task does not exist."""

    kind = "not_found"


class TaskNotFound(NotFound):
    def __init__(self, task_id: str):
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id


class InvalidOperation(TaskTrackerError):
    """The request is well-formed I/O-wise but not allowed (read-only date, bad role)."""

    kind = "invalid_operation"


class IOFailure(TaskTrackerError):
    """Reading or writing a document failed."""

    kind = "io_failure"

    def __init__(self, message: str, path=None):
        super().__init__(message)
        self.path = path
