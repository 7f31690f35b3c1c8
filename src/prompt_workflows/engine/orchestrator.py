"""Workflow orchestration boundary.

The engine parses, validates and checkpoints workflows; executing them
(model calls, tool invocation, streaming) belongs to an Orchestrator
implementation outside this package.

ResumableOrchestrator is a partial implementation that wires an
orchestrator to the resume subsystem:

1. Validation through WorkflowValidator
2. resume_workflow() gated by ResumeGate (missing vs incompatible snapshot)
3. checkpoint() honoring the configured checkpoint frequency
4. Snapshot status updated when a run completes or fails

Subclasses implement execute_workflow() and _continue_run().
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from .compatibility import ResumeGate
from .execution_context import (
    WORKFLOW_FILE_VARIABLE,
    WORKFLOW_HASH_VARIABLE,
    WorkflowExecutionContext,
)
from .resume_state import ConversationMessage
from .resume_store import ResumeStateManager
from .schema import Workflow
from .validation import ValidationResult, WorkflowValidator

logger = logging.getLogger(__name__)


@dataclass
class ExecutionResult:
    """
    Outcome of executing or resuming a workflow.

    Attributes:
        success: Whether the run finished successfully
        output: Final output text, if any
        error: Failure description, if any
        duration: Wall-clock seconds spent in this call
        metadata: Implementation-specific details
    """

    success: bool
    output: str | None = None
    error: str | None = None
    duration: float = 0.0
    metadata: dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def succeeded(output: str | None = None, duration: float = 0.0) -> ExecutionResult:
        """Create a successful result."""
        return ExecutionResult(success=True, output=output, duration=duration)

    @staticmethod
    def failed(error: str, duration: float = 0.0) -> ExecutionResult:
        """Create a failed result."""
        return ExecutionResult(success=False, error=error, duration=duration)


class Orchestrator(ABC):
    """Abstract workflow orchestrator."""

    @abstractmethod
    async def execute_workflow(
        self, workflow: Workflow, context: WorkflowExecutionContext
    ) -> ExecutionResult:
        """Execute a workflow from the start."""
        ...

    @abstractmethod
    async def validate_workflow(
        self, workflow: Workflow, context: WorkflowExecutionContext
    ) -> ValidationResult:
        """Validate a workflow before execution."""
        ...

    @abstractmethod
    async def resume_workflow(self, run_id: str, workflow: Workflow) -> ExecutionResult:
        """Continue an interrupted run of a workflow."""
        ...


class ResumableOrchestrator(Orchestrator):
    """
    Orchestrator base with checkpointing and gated resume.

    Example:
        class MyOrchestrator(ResumableOrchestrator):
            async def execute_workflow(self, workflow, context):
                self.bind_workflow(workflow, context)
                ...
                await self.checkpoint(run_id, context, conversation)

            async def _continue_run(self, run_id, workflow, context, conversation):
                ...
    """

    def __init__(
        self,
        resume_manager: ResumeStateManager,
        validator: WorkflowValidator | None = None,
        checkpoint_frequency: int = 1,
        force_resume: bool = False,
    ) -> None:
        if checkpoint_frequency < 1:
            raise ValueError("checkpoint_frequency must be at least 1")
        self.resume_manager = resume_manager
        self.validator = validator or WorkflowValidator()
        self.checkpoint_frequency = checkpoint_frequency
        self.force_resume = force_resume
        self.gate = ResumeGate(resume_manager)

    @staticmethod
    def bind_workflow(workflow: Workflow, context: WorkflowExecutionContext) -> None:
        """Record the document path and hash on the context so checkpoints carry them."""
        context.set_variable(WORKFLOW_FILE_VARIABLE, workflow.source_path or "")
        context.set_variable(WORKFLOW_HASH_VARIABLE, workflow.content_hash)

    async def validate_workflow(
        self, workflow: Workflow, context: WorkflowExecutionContext
    ) -> ValidationResult:
        return self.validator.validate(workflow)

    async def checkpoint(
        self,
        run_id: str,
        context: WorkflowExecutionContext,
        conversation: list[ConversationMessage],
    ) -> bool:
        """
        Save state if the current step falls on the checkpoint frequency.

        Returns:
            True if a snapshot was written
        """
        if context.current_step % self.checkpoint_frequency != 0:
            logger.debug(f"Skipping checkpoint for run {run_id} at step {context.current_step}")
            return False
        await self.resume_manager.save_state(run_id, context, conversation)
        return True

    async def resume_workflow(self, run_id: str, workflow: Workflow) -> ExecutionResult:
        """
        Resume a run after the compatibility gate.

        Missing or incompatible snapshots propagate as ResumeError
        subclasses. A result from _continue_run() marks the snapshot
        completed or failed.
        """
        started = time.monotonic()
        candidate = await self.gate.prepare_for_workflow(
            run_id, workflow, force=self.force_resume
        )
        self.bind_workflow(workflow, candidate.context)

        logger.info(
            f"Resuming run {run_id} at step {candidate.context.current_step} "
            f"with {len(candidate.conversation)} message(s)"
        )
        result = await self._continue_run(
            run_id, workflow, candidate.context, candidate.conversation
        )
        result.duration = time.monotonic() - started

        await self.resume_manager.mark_status(run_id, "completed" if result.success else "failed")
        return result

    @abstractmethod
    async def _continue_run(
        self,
        run_id: str,
        workflow: Workflow,
        context: WorkflowExecutionContext,
        conversation: list[ConversationMessage],
    ) -> ExecutionResult:
        """Continue execution from restored state."""
        ...


__all__ = ["ExecutionResult", "Orchestrator", "ResumableOrchestrator"]
