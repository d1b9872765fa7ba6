class TaskStoreError(Exception):
    """Base exception for task store operations."""


class TaskValidationError(TaskStoreError):
    """Raised when a task create/update payload is invalid."""

    def __init__(self, message: str, errors: list[str] | None = None):
        super().__init__(message)
        self.errors = list(errors or [message])


class TaskNotFoundError(TaskStoreError):
    """Raised when a task id is unknown to the store."""

    def __init__(self, task_id: int):
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id


class TaskStoreUnavailableError(TaskStoreError):
    """Raised when the task store cannot be reached."""
