"""Resume snapshot models.

A ResumeState is the persisted form of one run: run metadata, the
conversation transcript, and the execution context. It is replaced
wholesale on every checkpoint.

Serialized layout (file backend, by_alias=True):

    {
      "workflow_metadata": {"id", "file_path", "workflow_hash",
                            "started_at", "last_checkpoint", "status"},
      "chat_history": [{"role", "content", "timestamp"}],
      "execution_context": {"current_step", "variables", "execution_history"}
    }
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .execution_context import (
    WORKFLOW_FILE_VARIABLE,
    WORKFLOW_HASH_VARIABLE,
    StepExecutionHistory,
    WorkflowExecutionContext,
    utc_now,
)

ResumeStatus = Literal["in_progress", "completed", "failed", "cancelled"]
MessageRole = Literal["user", "assistant", "system", "tool"]

_KNOWN_ROLES = ("user", "assistant", "system", "tool")


class ConversationMessage(BaseModel):
    """One transcript entry. Unrecognized roles are read as assistant."""

    role: MessageRole = "assistant"
    content: str = ""
    timestamp: datetime = Field(default_factory=utc_now)

    @field_validator("role", mode="before")
    @classmethod
    def _normalize_role(cls, value: Any) -> str:
        role = str(value).strip().lower() if value is not None else ""
        return role if role in _KNOWN_ROLES else "assistant"

    @field_validator("content", mode="before")
    @classmethod
    def _content_not_null(cls, value: Any) -> Any:
        return "" if value is None else value


class RunMetadata(BaseModel):
    """Identity and lifecycle of a run."""

    id: str
    file_path: str = ""
    workflow_hash: str = ""
    started_at: datetime = Field(default_factory=utc_now)
    last_checkpoint: datetime = Field(default_factory=utc_now)
    status: ResumeStatus = "in_progress"


class ExecutionContextSnapshot(BaseModel):
    """Serializable part of a WorkflowExecutionContext."""

    current_step: int = 0
    variables: dict[str, Any] = Field(default_factory=dict)
    execution_history: list[StepExecutionHistory] = Field(default_factory=list)


def restore_variable(value: Any) -> Any:
    """
    Convert a deserialized JSON value back to a context variable.

    Scalars keep their JSON type (int, float, bool, str); null becomes an
    empty string; objects and arrays become their compact JSON text.
    """
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return value


class ResumeState(BaseModel):
    """
    Persisted snapshot of one run.

    Example:
        snapshot = ResumeState.from_runtime("run-1", context, conversation)
        context, conversation = snapshot.to_runtime()
    """

    model_config = ConfigDict(populate_by_name=True)

    workflow_metadata: RunMetadata
    messages: list[ConversationMessage] = Field(default_factory=list, alias="chat_history")
    execution_context: ExecutionContextSnapshot = Field(default_factory=ExecutionContextSnapshot)

    @property
    def workflow_id(self) -> str:
        return self.workflow_metadata.id

    @property
    def workflow_hash(self) -> str:
        return self.workflow_metadata.workflow_hash

    @property
    def file_path(self) -> str:
        return self.workflow_metadata.file_path

    @property
    def status(self) -> ResumeStatus:
        return self.workflow_metadata.status

    @property
    def started_at(self) -> datetime:
        return self.workflow_metadata.started_at

    @property
    def last_checkpoint(self) -> datetime:
        return self.workflow_metadata.last_checkpoint

    @classmethod
    def from_runtime(
        cls,
        run_id: str,
        context: WorkflowExecutionContext,
        conversation: list[ConversationMessage],
        status: ResumeStatus = "in_progress",
    ) -> ResumeState:
        """
        Build a snapshot from live state.

        The reserved workflow_file / workflow_hash variables become run
        metadata; last_checkpoint is set to now.
        """
        return cls(
            workflow_metadata=RunMetadata(
                id=run_id,
                file_path=context.workflow_file or "",
                workflow_hash=context.workflow_hash or "",
                started_at=context.start_time,
                last_checkpoint=utc_now(),
                status=status,
            ),
            messages=[message.model_copy() for message in conversation],
            execution_context=ExecutionContextSnapshot(
                current_step=context.current_step,
                variables=dict(context.variables),
                execution_history=list(context.execution_history),
            ),
        )

    def to_runtime(self) -> tuple[WorkflowExecutionContext, list[ConversationMessage]]:
        """Rebuild live state, restoring the workflow_file / workflow_hash variables."""
        variables = {
            name: restore_variable(value)
            for name, value in self.execution_context.variables.items()
        }
        context = WorkflowExecutionContext(
            variables=variables,
            execution_history=list(self.execution_context.execution_history),
            current_step=self.execution_context.current_step,
            start_time=self.workflow_metadata.started_at,
        )
        context.set_variable(WORKFLOW_FILE_VARIABLE, self.workflow_metadata.file_path)
        context.set_variable(WORKFLOW_HASH_VARIABLE, self.workflow_metadata.workflow_hash)
        return context, [message.model_copy() for message in self.messages]

    def to_json(self) -> str:
        """Serialize to the on-disk JSON layout."""
        return json.dumps(self.model_dump(mode="json", by_alias=True), indent=2, ensure_ascii=False)

    @classmethod
    def from_json(cls, text: str) -> ResumeState:
        """Parse the on-disk JSON layout."""
        return cls.model_validate_json(text)


__all__ = [
    "ResumeStatus",
    "MessageRole",
    "ConversationMessage",
    "RunMetadata",
    "ExecutionContextSnapshot",
    "ResumeState",
    "restore_variable",
]
