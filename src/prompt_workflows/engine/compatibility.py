"""
Compatibility checking between workflow documents and resume snapshots.

A snapshot records the content hash of the document it was created from.
Resuming is allowed only when the current document hashes to the same
value, unless the caller forces it. The same hashing function is used by
the parser (Workflow.content_hash) and the resume subsystem, so the two can
never disagree on what "unchanged" means.

ResumeGate packages the lookup, compatibility check and run selection that
a resume entry point needs:

    gate = ResumeGate(manager)
    run_id = await gate.select_run_id(requested_run_id)
    candidate = await gate.prepare(run_id, document_text, force=args.force)
    context, conversation = candidate.context, candidate.conversation
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .exceptions import (
    AmbiguousResumeStateError,
    IncompatibleResumeStateError,
    ResumeStateNotFoundError,
)

if TYPE_CHECKING:
    from .execution_context import WorkflowExecutionContext
    from .resume_state import ConversationMessage, ResumeState
    from .resume_store import ResumeStateManager
    from .schema import Workflow

logger = logging.getLogger(__name__)


def compute_content_hash(text: str) -> str:
    """SHA-256 of the UTF-8 encoded text, as lowercase hex."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def hashes_match(first: str, second: str) -> bool:
    """Compare two hex digests, ignoring case."""
    return first.lower() == second.lower()


@dataclass
class ResumeCandidate:
    """Everything needed to continue a run, returned by ResumeGate.prepare()."""

    run_id: str
    snapshot: ResumeState
    context: WorkflowExecutionContext
    conversation: list[ConversationMessage]
    forced: bool = False


class ResumeGate:
    """Decides whether a stored run may be resumed against the current document."""

    def __init__(self, manager: ResumeStateManager) -> None:
        self.manager = manager

    async def select_run_id(self, run_id: str | None = None) -> str:
        """
        Resolve which run to resume.

        An explicit run id is returned unchanged. Without one, the only
        in-progress run is selected.

        Raises:
            ResumeStateNotFoundError: No run id given and nothing is resumable
            AmbiguousResumeStateError: No run id given and several runs are
                resumable
        """
        if run_id:
            return run_id

        available = await self.manager.list_available()
        if not available:
            raise ResumeStateNotFoundError(None)
        if len(available) > 1:
            raise AmbiguousResumeStateError(available)

        logger.info(f"Selected the only resumable run: {available[0]}")
        return available[0]

    async def prepare(
        self, run_id: str, document_text: str, force: bool = False
    ) -> ResumeCandidate:
        """
        Load a run for resumption after checking compatibility.

        Args:
            run_id: Run to resume
            document_text: Current full text of the workflow document
            force: Skip the hash comparison

        Returns:
            ResumeCandidate with the restored context and conversation

        Raises:
            ResumeStateNotFoundError: No snapshot for run_id
            IncompatibleResumeStateError: Document changed and force is False
        """
        return await self.prepare_for_hash(
            run_id, compute_content_hash(document_text), force=force
        )

    async def prepare_for_workflow(
        self, run_id: str, workflow: Workflow, force: bool = False
    ) -> ResumeCandidate:
        """Same as prepare(), using the hash recorded on a parsed Workflow."""
        return await self.prepare_for_hash(run_id, workflow.content_hash, force=force)

    async def prepare_for_hash(
        self, run_id: str, current_hash: str, force: bool = False
    ) -> ResumeCandidate:
        snapshot = await self.manager.load_snapshot(run_id)
        if snapshot is None:
            raise ResumeStateNotFoundError(run_id)

        stored_hash = snapshot.workflow_hash
        if stored_hash and not hashes_match(stored_hash, current_hash):
            if not force:
                raise IncompatibleResumeStateError(run_id, stored_hash, current_hash)
            logger.warning(
                f"Resuming run '{run_id}' against a changed workflow "
                f"(stored {stored_hash[:12]}, current {current_hash[:12]})"
            )

        context, conversation = snapshot.to_runtime()
        return ResumeCandidate(
            run_id=run_id,
            snapshot=snapshot,
            context=context,
            conversation=conversation,
            forced=force,
        )


__all__ = [
    "compute_content_hash",
    "hashes_match",
    "ResumeCandidate",
    "ResumeGate",
]
