"""Resume state storage.

ResumeStateManager is the contract between the orchestrator and the
checkpoint backends. Persistence primitives are abstract; the operations
built on them (save/load, step tracking, compatibility) are shared so both
backends behave identically.

Backends:
- InMemoryResumeStateManager: process-local, for tests and ephemeral runs
- FileResumeStateManager (resume_file_store.py): one JSON file per run

Concurrency: a run has a single writer. Within one process this is
enforced by a per-run asyncio.Lock held for every load-modify-save cycle.
Across processes it is assumed, not enforced.
"""

import asyncio
import logging
import re
from abc import ABC, abstractmethod
from datetime import datetime, timedelta

from .compatibility import compute_content_hash, hashes_match
from .execution_context import (
    StepExecutionHistory,
    StepProgress,
    WorkflowExecutionContext,
    as_aware,
)
from .resume_state import ConversationMessage, ResumeState, ResumeStatus

logger = logging.getLogger(__name__)

_RUN_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


def validate_run_id(run_id: str) -> str:
    """
    Check that a run id is usable as a storage key and file name.

    Raises:
        ValueError: If the run id is empty or contains path characters
    """
    if not run_id or not _RUN_ID_PATTERN.match(run_id) or len(run_id) > 200:
        raise ValueError(
            f"Invalid run id '{run_id}': use letters, digits, '.', '_' and '-' "
            f"(must start with a letter or digit)"
        )
    return run_id


def format_step_message(step: StepProgress) -> str:
    """Transcript line recorded for a completed or failed step."""
    completed_at = step.completed_at.isoformat()
    if step.success:
        return f"Step '{step.step_name}' completed successfully at {completed_at}"
    return f"Step '{step.step_name}' failed at {completed_at}: {step.error_message}"


class ResumeStateManager(ABC):
    """Abstract base class for resume state storage."""

    def __init__(self) -> None:
        self._run_locks: dict[str, asyncio.Lock] = {}

    # Persistence primitives

    @abstractmethod
    async def load_snapshot(self, run_id: str) -> ResumeState | None:
        """Load the stored snapshot for a run, None if there is none."""
        ...

    @abstractmethod
    async def _write_snapshot(self, snapshot: ResumeState) -> None:
        """Persist a snapshot, replacing any previous one for the same run."""
        ...

    @abstractmethod
    async def list_available(self) -> list[str]:
        """Run ids of snapshots whose status is in_progress."""
        ...

    @abstractmethod
    async def delete_state(self, run_id: str) -> bool:
        """Delete a run's snapshot, return True if one existed."""
        ...

    @abstractmethod
    async def cleanup(self, older_than: datetime) -> int:
        """Delete snapshots last written before older_than, return count deleted."""
        ...

    # Shared operations

    def _lock_for(self, run_id: str) -> asyncio.Lock:
        lock = self._run_locks.get(run_id)
        if lock is None:
            lock = asyncio.Lock()
            self._run_locks[run_id] = lock
        return lock

    def _forget_lock(self, run_id: str) -> None:
        """Drop a deleted run's lock unless a writer still holds it."""
        lock = self._run_locks.get(run_id)
        if lock is not None and not lock.locked():
            del self._run_locks[run_id]

    async def save_state(
        self,
        run_id: str,
        context: WorkflowExecutionContext,
        conversation: list[ConversationMessage],
    ) -> ResumeState:
        """
        Checkpoint a run.

        Args:
            run_id: Run identifier
            context: Current execution context (workflow_file and
                workflow_hash variables become snapshot metadata)
            conversation: Transcript so far

        Returns:
            The snapshot that was written
        """
        validate_run_id(run_id)
        async with self._lock_for(run_id):
            return await self._save(run_id, context, conversation)

    async def _save(
        self,
        run_id: str,
        context: WorkflowExecutionContext,
        conversation: list[ConversationMessage],
        status: ResumeStatus = "in_progress",
    ) -> ResumeState:
        snapshot = ResumeState.from_runtime(run_id, context, conversation, status=status)
        try:
            await self._write_snapshot(snapshot)
        except Exception:
            logger.exception(f"Failed to save resume state for run {run_id}")
            raise
        logger.info(
            f"Resume state saved for run {run_id} "
            f"(step {context.current_step}, {len(conversation)} message(s))"
        )
        return snapshot

    async def load_state(
        self, run_id: str
    ) -> tuple[WorkflowExecutionContext, list[ConversationMessage]] | None:
        """
        Restore a run's context and transcript.

        Returns:
            (context, conversation), or None if no snapshot exists
        """
        validate_run_id(run_id)
        snapshot = await self.load_snapshot(run_id)
        if snapshot is None:
            logger.debug(f"No resume state found for run {run_id}")
            return None

        logger.info(f"Resume state loaded for run {run_id}")
        return snapshot.to_runtime()

    async def track_step_completion(self, run_id: str, step: StepProgress) -> None:
        """
        Record a finished step: append a transcript line and a history entry,
        then re-save. A run without a snapshot is left alone with a warning.
        """
        validate_run_id(run_id)
        async with self._lock_for(run_id):
            snapshot = await self.load_snapshot(run_id)
            if snapshot is None:
                logger.warning(
                    f"Cannot track step '{step.step_name}': no resume state for run {run_id}"
                )
                return

            context, conversation = snapshot.to_runtime()
            conversation.append(
                ConversationMessage(role="assistant", content=format_step_message(step))
            )
            start_time = step.completed_at
            if step.duration is not None:
                start_time = step.completed_at - timedelta(seconds=step.duration)
            context.execution_history.append(
                StepExecutionHistory(
                    step_name=step.step_name,
                    step_type=step.step_type,
                    start_time=start_time,
                    end_time=step.completed_at,
                    success=step.success,
                    error_message=step.error_message,
                )
            )
            await self._save(run_id, context, conversation, status=snapshot.status)

        logger.info(
            f"Step '{step.step_name}' tracked for run {run_id} (success: {step.success})"
        )

    async def track_step_failure(
        self, run_id: str, step_name: str, error: BaseException | str
    ) -> None:
        """Record a failed step with step type "unknown"."""
        await self.track_step_completion(
            run_id,
            StepProgress(
                step_name=step_name,
                step_type="unknown",
                success=False,
                error_message=str(error),
            ),
        )

    async def validate_compatibility(self, run_id: str, current_text: str) -> bool:
        """
        Check whether a run may resume against the current document text.

        True when no snapshot exists, when the snapshot has no stored hash,
        or when the hashes match ignoring case.
        """
        validate_run_id(run_id)
        snapshot = await self.load_snapshot(run_id)
        if snapshot is None:
            logger.debug(f"No resume state for run {run_id}; compatible for a first run")
            return True

        if not snapshot.workflow_hash:
            logger.warning(f"Run {run_id} has no stored workflow hash, assuming compatible")
            return True

        compatible = hashes_match(snapshot.workflow_hash, compute_content_hash(current_text))
        logger.info(f"Workflow compatibility for run {run_id}: {compatible}")
        return compatible

    async def mark_status(self, run_id: str, status: ResumeStatus) -> bool:
        """
        Set a run's lifecycle status (e.g. completed) without touching its state.

        Returns:
            True if the run existed
        """
        validate_run_id(run_id)
        async with self._lock_for(run_id):
            snapshot = await self.load_snapshot(run_id)
            if snapshot is None:
                return False
            context, conversation = snapshot.to_runtime()
            await self._save(run_id, context, conversation, status=status)
        return True


class InMemoryResumeStateManager(ResumeStateManager):
    """In-memory resume state storage for development and testing.

    Thread-safe implementation using asyncio.Lock. Snapshots are copied on
    the way in and out so callers never share mutable state with the store.
    """

    def __init__(self) -> None:
        super().__init__()
        self._snapshots: dict[str, ResumeState] = {}
        self._lock = asyncio.Lock()

    async def load_snapshot(self, run_id: str) -> ResumeState | None:
        async with self._lock:
            snapshot = self._snapshots.get(run_id)
            return snapshot.model_copy(deep=True) if snapshot is not None else None

    async def _write_snapshot(self, snapshot: ResumeState) -> None:
        async with self._lock:
            self._snapshots[snapshot.workflow_id] = snapshot.model_copy(deep=True)

    async def list_available(self) -> list[str]:
        async with self._lock:
            return sorted(
                run_id
                for run_id, snapshot in self._snapshots.items()
                if snapshot.status == "in_progress"
            )

    async def delete_state(self, run_id: str) -> bool:
        async with self._lock:
            if run_id not in self._snapshots:
                return False
            del self._snapshots[run_id]
        self._forget_lock(run_id)
        return True

    async def cleanup(self, older_than: datetime) -> int:
        """Remove snapshots whose last checkpoint is before older_than."""
        cutoff = as_aware(older_than)
        async with self._lock:
            expired_ids = [
                run_id
                for run_id, snapshot in self._snapshots.items()
                if as_aware(snapshot.last_checkpoint) < cutoff
            ]

            for run_id in expired_ids:
                del self._snapshots[run_id]
                self._forget_lock(run_id)

        logger.info(f"Cleaned up {len(expired_ids)} resume state(s)")
        return len(expired_ids)


__all__ = [
    "ResumeStateManager",
    "InMemoryResumeStateManager",
    "format_step_message",
    "validate_run_id",
]
