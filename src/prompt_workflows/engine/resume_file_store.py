"""File-based resume state storage.

One JSON file per run, named <run_id>.json, in a storage directory.

Atomic write pattern: the snapshot is written to <run_id>.json.tmp and then
moved over <run_id>.json with os.replace, so a reader never sees a partial
file. A failed write removes the temp file. Blocking file I/O runs in the
default thread pool executor.
"""

import asyncio
import logging
import os
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import TypeVar

from pydantic import ValidationError

from .execution_context import as_aware
from .resume_state import ResumeState
from .resume_store import ResumeStateManager, validate_run_id

logger = logging.getLogger(__name__)

T = TypeVar("T")

SNAPSHOT_SUFFIX = ".json"
TEMP_SUFFIX = ".json.tmp"


class FileResumeStateManager(ResumeStateManager):
    """
    Resume state manager backed by JSON files.

    Example:
        manager = FileResumeStateManager(Path(".prompt-workflows/resume"))
        await manager.save_state("run-1", context, conversation)
        restored = await manager.load_state("run-1")
    """

    def __init__(self, storage_dir: Path | str, atomic_writes: bool = True) -> None:
        super().__init__()
        self.storage_dir = Path(storage_dir)
        self.atomic_writes = atomic_writes

    def _snapshot_path(self, run_id: str) -> Path:
        return self.storage_dir / f"{validate_run_id(run_id)}{SNAPSHOT_SUFFIX}"

    async def _write_snapshot(self, snapshot: ResumeState) -> None:
        """Write snapshot JSON (atomic via temp file unless disabled)."""
        target = self._snapshot_path(snapshot.workflow_id)
        payload = snapshot.to_json()

        def _write() -> None:
            self.storage_dir.mkdir(parents=True, exist_ok=True)

            if not self.atomic_writes:
                target.write_text(payload, encoding="utf-8")
                return

            temp_file = target.with_name(f"{snapshot.workflow_id}{TEMP_SUFFIX}")
            try:
                temp_file.write_text(payload, encoding="utf-8")
                os.replace(temp_file, target)
            except BaseException:
                temp_file.unlink(missing_ok=True)
                raise

        await self._run_in_executor(_write)
        logger.debug(f"Wrote resume state file {target}")

    async def load_snapshot(self, run_id: str) -> ResumeState | None:
        """Read a run's snapshot file, None if it does not exist."""
        path = self._snapshot_path(run_id)

        def _read() -> str | None:
            try:
                return path.read_text(encoding="utf-8")
            except FileNotFoundError:
                return None

        text = await self._run_in_executor(_read)
        if text is None:
            return None

        try:
            return ResumeState.from_json(text)
        except ValidationError:
            logger.error(f"Resume state file {path} is corrupt")
            raise

    async def list_available(self) -> list[str]:
        """Run ids of in-progress snapshots. Unreadable files are skipped."""

        def _scan() -> list[str]:
            if not self.storage_dir.is_dir():
                logger.debug(f"Resume directory {self.storage_dir} does not exist")
                return []

            run_ids: list[str] = []
            for path in sorted(self.storage_dir.glob(f"*{SNAPSHOT_SUFFIX}")):
                try:
                    snapshot = ResumeState.from_json(path.read_text(encoding="utf-8"))
                except (OSError, UnicodeDecodeError, ValidationError) as e:
                    logger.warning(f"Skipping invalid resume state file {path}: {e}")
                    continue
                if snapshot.status == "in_progress":
                    run_ids.append(path.name[: -len(SNAPSHOT_SUFFIX)])
            return run_ids

        run_ids = await self._run_in_executor(_scan)
        logger.info(f"Found {len(run_ids)} resumable run(s) in {self.storage_dir}")
        return run_ids

    async def delete_state(self, run_id: str) -> bool:
        path = self._snapshot_path(run_id)

        def _delete() -> bool:
            try:
                path.unlink()
            except FileNotFoundError:
                return False
            return True

        deleted = await self._run_in_executor(_delete)
        if deleted:
            self._forget_lock(run_id)
            logger.info(f"Deleted resume state for run {run_id}")
        return deleted

    async def cleanup(self, older_than: datetime) -> int:
        """
        Delete snapshot files last modified before older_than.

        Leftover temp files from interrupted writes are removed by the same
        rule but not counted. Files that cannot be deleted are skipped with
        a warning.
        """
        cutoff = as_aware(older_than)

        def _cleanup() -> list[str]:
            if not self.storage_dir.is_dir():
                return []

            deleted_ids: list[str] = []
            for path in self.storage_dir.iterdir():
                is_snapshot = path.name.endswith(SNAPSHOT_SUFFIX)
                if not (is_snapshot or path.name.endswith(TEMP_SUFFIX)):
                    continue
                try:
                    modified = datetime.fromtimestamp(path.stat().st_mtime, tz=UTC)
                    if modified < cutoff:
                        path.unlink()
                        if is_snapshot:
                            deleted_ids.append(path.name[: -len(SNAPSHOT_SUFFIX)])
                        logger.debug(f"Deleted old resume state file {path}")
                except OSError as e:
                    logger.warning(f"Failed to delete resume state file {path}: {e}")
            return deleted_ids

        deleted_ids = await self._run_in_executor(_cleanup)
        for run_id in deleted_ids:
            self._forget_lock(run_id)
        logger.info(f"Cleaned up {len(deleted_ids)} old resume state file(s)")
        return len(deleted_ids)

    async def _run_in_executor(self, func: Callable[[], T]) -> T:
        """Run blocking function in thread pool executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func)


__all__ = ["FileResumeStateManager", "SNAPSHOT_SUFFIX", "TEMP_SUFFIX"]
