"""
Runtime execution context for a workflow run.

The orchestrator owns a WorkflowExecutionContext while a run is active and
hands it to the resume subsystem at each checkpoint. Two variables are
reserved: "workflow_file" and "workflow_hash" carry the source document path
and content hash, and become snapshot metadata when the context is saved.
"""

from __future__ import annotations

import os
from datetime import UTC, datetime
from typing import Any, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")

WORKFLOW_FILE_VARIABLE = "workflow_file"
WORKFLOW_HASH_VARIABLE = "workflow_hash"

_TRUE_STRINGS = frozenset({"true", "1", "yes", "on"})
_FALSE_STRINGS = frozenset({"false", "0", "no", "off"})


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


def as_aware(value: datetime) -> datetime:
    """Attach the local timezone to naive datetimes so they compare with aware ones."""
    return value if value.tzinfo is not None else value.astimezone()


class StepExecutionHistory(BaseModel):
    """Record of one executed step."""

    step_name: str
    step_type: str = "unknown"
    start_time: datetime = Field(default_factory=utc_now)
    end_time: datetime | None = None
    success: bool = True
    error_message: str | None = None
    output_variable: str | None = None


class StepProgress(BaseModel):
    """
    Report of a completed step, passed to track_step_completion().

    Attributes:
        step_name: Name of the step
        step_type: Kind of step (e.g. "prompt", "file_read")
        success: Whether the step succeeded
        error_message: Failure description, if any
        completed_at: When the step finished
        duration: Seconds the step took, if measured
    """

    step_name: str
    step_type: str = "unknown"
    success: bool = True
    error_message: str | None = None
    completed_at: datetime = Field(default_factory=utc_now)
    duration: float | None = Field(default=None, ge=0)


class WorkflowExecutionContext(BaseModel):
    """
    Mutable variables and history of a running workflow.

    Example:
        context = WorkflowExecutionContext()
        context.set_variable("project_path", "./src")
        context.set_variable(WORKFLOW_HASH_VARIABLE, workflow.content_hash)
        depth = context.get_variable("depth", 1, int)
    """

    variables: dict[str, Any] = Field(default_factory=dict)
    execution_history: list[StepExecutionHistory] = Field(default_factory=list)
    current_step: int = Field(default=0, ge=0)
    start_time: datetime = Field(default_factory=utc_now)
    working_directory: str = Field(default_factory=os.getcwd)

    def get_variable(
        self, name: str, default: T | None = None, value_type: type[T] | None = None
    ) -> T | Any | None:
        """
        Get a variable, optionally converted to value_type.

        String values are converted when value_type is not str; a failed
        conversion returns default. Values of any other mismatched type
        return default.
        """
        if name not in self.variables:
            return default

        value = self.variables[name]
        if value_type is None or isinstance(value, value_type):
            return value

        if isinstance(value, str) and value_type is not str:
            if value_type is bool:
                lowered = value.strip().lower()
                if lowered in _TRUE_STRINGS:
                    return True
                if lowered in _FALSE_STRINGS:
                    return False
                return default
            try:
                return value_type(value)  # type: ignore[call-arg]
            except (TypeError, ValueError):
                return default

        return default

    def set_variable(self, name: str, value: Any) -> None:
        """Set a variable. None is stored as an empty string."""
        self.variables[name] = "" if value is None else value

    def clone(self) -> WorkflowExecutionContext:
        """Copy with independent variable and history containers."""
        return self.model_copy(
            update={
                "variables": dict(self.variables),
                "execution_history": list(self.execution_history),
            }
        )

    @property
    def workflow_file(self) -> str | None:
        value = self.variables.get(WORKFLOW_FILE_VARIABLE)
        return str(value) if value else None

    @property
    def workflow_hash(self) -> str | None:
        value = self.variables.get(WORKFLOW_HASH_VARIABLE)
        return str(value) if value else None


__all__ = [
    "WORKFLOW_FILE_VARIABLE",
    "WORKFLOW_HASH_VARIABLE",
    "StepExecutionHistory",
    "StepProgress",
    "WorkflowExecutionContext",
    "as_aware",
    "utc_now",
]
