"""Resume state configuration and backend selection.

Resume storage defaults to a directory inside the current project:

    ./.prompt-workflows/
      resume/
        run-20240101-abc.json     # one snapshot per run
        run-20240102-def.json

Environment variables:
    PROMPT_WORKFLOWS_RESUME_BACKEND          "file" (default) or "memory"
    PROMPT_WORKFLOWS_RESUME_DIR              storage directory (~ expanded)
    PROMPT_WORKFLOWS_RESUME_RETENTION_DAYS   days to keep snapshots (default 7)
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timedelta
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

from .execution_context import utc_now
from .resume_file_store import FileResumeStateManager
from .resume_store import InMemoryResumeStateManager, ResumeStateManager
from .schema import ResumePolicy

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_LOCATION = Path(".prompt-workflows") / "resume"
DEFAULT_RETENTION_DAYS = 7

BACKEND_ENV = "PROMPT_WORKFLOWS_RESUME_BACKEND"
STORAGE_DIR_ENV = "PROMPT_WORKFLOWS_RESUME_DIR"
RETENTION_DAYS_ENV = "PROMPT_WORKFLOWS_RESUME_RETENTION_DAYS"


def get_retention_days() -> int:
    """Get snapshot retention from environment.

    Reads PROMPT_WORKFLOWS_RESUME_RETENTION_DAYS.
    Default: 7, Valid range: 0-3650 (clamped automatically)

    Returns:
        Retention in days (0-3650)
    """
    try:
        days = int(os.getenv(RETENTION_DAYS_ENV, str(DEFAULT_RETENTION_DAYS)))
        return max(0, min(3650, days))
    except ValueError:
        return DEFAULT_RETENTION_DAYS


class ResumeConfig(BaseModel):
    """
    Resume subsystem configuration.

    Attributes:
        backend: Storage backend ("file" or "memory")
        storage_location: Directory for snapshot files (file backend)
        retention_days: Snapshots older than this are removed by cleanup
        checkpoint_frequency: Checkpoint after every N steps
        atomic_writes: Write through a temp file and rename (file backend)

    Example:
        config = ResumeConfig.from_env()
        manager = create_resume_state_manager(config)
        await manager.cleanup(config.retention_cutoff())
    """

    backend: Literal["file", "memory"] = "file"
    storage_location: Path = Field(default_factory=lambda: DEFAULT_STORAGE_LOCATION)
    retention_days: int = Field(default=DEFAULT_RETENTION_DAYS, ge=0)
    checkpoint_frequency: int = Field(default=1, ge=1)
    atomic_writes: bool = True

    @classmethod
    def from_env(cls) -> ResumeConfig:
        """Build configuration from PROMPT_WORKFLOWS_RESUME_* environment variables."""
        backend = os.getenv(BACKEND_ENV, "file").strip().lower()
        if backend not in ("file", "memory"):
            logger.warning(f"Unknown resume backend '{backend}' in {BACKEND_ENV}, using 'file'")
            backend = "file"

        storage_dir = os.getenv(STORAGE_DIR_ENV)
        storage_location = (
            Path(storage_dir).expanduser() if storage_dir else DEFAULT_STORAGE_LOCATION
        )

        return cls(
            backend=backend,
            storage_location=storage_location,
            retention_days=get_retention_days(),
        )

    def with_policy(self, policy: ResumePolicy | None) -> ResumeConfig:
        """Apply a workflow's prompt-workflows.resume policy on top of this config."""
        if policy is None:
            return self

        update: dict[str, int] = {"checkpoint_frequency": policy.checkpoint_frequency}
        if policy.retention_days is not None:
            update["retention_days"] = policy.retention_days
        return self.model_copy(update=update)

    def retention_cutoff(self, now: datetime | None = None) -> datetime:
        """Oldest last-write time that survives cleanup."""
        return (now or utc_now()) - timedelta(days=self.retention_days)


def create_resume_state_manager(config: ResumeConfig | None = None) -> ResumeStateManager:
    """
    Create the resume state manager selected by config.

    Args:
        config: Resume configuration (default: ResumeConfig.from_env())

    Returns:
        FileResumeStateManager or InMemoryResumeStateManager
    """
    config = config or ResumeConfig.from_env()

    if config.backend == "memory":
        logger.info("Using in-memory resume state storage")
        return InMemoryResumeStateManager()

    logger.info(f"Using file resume state storage at {config.storage_location}")
    return FileResumeStateManager(config.storage_location, atomic_writes=config.atomic_writes)


__all__ = [
    "DEFAULT_STORAGE_LOCATION",
    "DEFAULT_RETENTION_DAYS",
    "ResumeConfig",
    "create_resume_state_manager",
    "get_retention_days",
]
