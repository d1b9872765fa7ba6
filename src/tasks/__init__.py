from .errors import (
    TaskNotFoundError,
    TaskStoreError,
    TaskStoreUnavailableError,
    TaskValidationError,
)
from .http_store import HttpTaskStore
from .models import BREAK_DISPLAY_NAME, Task, tasks_from_json, tasks_to_json
from .store import (
    DEFAULT_BREAK_DURATION_MINUTES,
    InMemoryTaskStore,
    TaskStoreLike,
    create_with_break,
)
from .validation import (
    DEFAULT_TASK_DURATION_MINUTES,
    parse_create_payload,
    parse_update_payload,
)

__all__ = [
    "BREAK_DISPLAY_NAME",
    "DEFAULT_BREAK_DURATION_MINUTES",
    "DEFAULT_TASK_DURATION_MINUTES",
    "HttpTaskStore",
    "InMemoryTaskStore",
    "Task",
    "TaskNotFoundError",
    "TaskStoreError",
    "TaskStoreLike",
    "TaskStoreUnavailableError",
    "TaskValidationError",
    "create_with_break",
    "parse_create_payload",
    "parse_update_payload",
    "tasks_from_json",
    "tasks_to_json",
]
