"""Validation of task create/update payloads coming from REST and UI clients."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from .errors import TaskValidationError

DEFAULT_TASK_DURATION_MINUTES = 25
MAX_TASK_NAME_LENGTH = 200

_UPDATE_FIELDS = {
    "name": "name",
    "duration": "duration",
    "isInterval": "is_interval",
    "parentTaskId": "parent_task_id",
}


def validate_name(value: Any) -> str:
    if not isinstance(value, str):
        raise TaskValidationError("name must be a string.")
    name = " ".join(value.split())
    if not name:
        raise TaskValidationError("name cannot be empty.")
    if len(name) > MAX_TASK_NAME_LENGTH:
        raise TaskValidationError(
            f"name must be at most {MAX_TASK_NAME_LENGTH} characters."
        )
    return name


def validate_duration(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TaskValidationError("duration must be an integer number of minutes.")
    if value <= 0:
        raise TaskValidationError(f"duration must be greater than zero, got: {value}")
    return value


def _optional_task_id(value: Any, field: str) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise TaskValidationError(f"{field} must be an integer or null.")
    return value


def _as_bool(value: Any, field: str) -> bool:
    if isinstance(value, bool):
        return value
    raise TaskValidationError(f"{field} must be a boolean.")


def parse_create_payload(
    raw: Any,
    *,
    default_duration: int = DEFAULT_TASK_DURATION_MINUTES,
) -> dict[str, Any]:
    """Return store keyword arguments for a create request body."""
    if not isinstance(raw, Mapping):
        raise TaskValidationError("Task payload must be a JSON object.")

    errors: list[str] = []
    fields: dict[str, Any] = {}

    try:
        fields["name"] = validate_name(raw.get("name"))
    except TaskValidationError as error:
        errors.append(str(error))

    duration = raw.get("duration")
    if duration is None or duration == 0:
        # Omitted or zero durations fall back to the default session length.
        fields["duration"] = default_duration
    else:
        try:
            fields["duration"] = validate_duration(duration)
        except TaskValidationError as error:
            errors.append(str(error))

    try:
        fields["is_interval"] = _as_bool(raw.get("isInterval", False), "isInterval")
    except TaskValidationError as error:
        errors.append(str(error))

    try:
        fields["parent_task_id"] = _optional_task_id(
            raw.get("parentTaskId"),
            "parentTaskId",
        )
    except TaskValidationError as error:
        errors.append(str(error))

    if errors:
        raise TaskValidationError("Invalid task data", errors)
    return fields


def parse_update_payload(raw: Any) -> dict[str, Any]:
    """Return store keyword arguments for a partial update request body."""
    if not isinstance(raw, Mapping):
        raise TaskValidationError("Update payload must be a JSON object.")

    errors: list[str] = []
    fields: dict[str, Any] = {}
    for key, value in raw.items():
        target = _UPDATE_FIELDS.get(key)
        if target is None:
            # Unknown keys are ignored, matching a partial schema parse.
            continue
        try:
            fields[target] = normalize_field(target, value)
        except TaskValidationError as error:
            errors.append(str(error))

    if errors:
        raise TaskValidationError("Invalid update data", errors)
    return fields


def normalize_field(field: str, value: Any) -> Any:
    if field == "name":
        return validate_name(value)
    if field == "duration":
        return validate_duration(value)
    if field == "is_interval":
        return _as_bool(value, "isInterval")
    if field == "parent_task_id":
        return _optional_task_id(value, "parentTaskId")
    raise TaskValidationError(f"Unsupported task field: {field}")
