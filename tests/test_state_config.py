"""Tests for resume configuration and backend selection."""

from datetime import UTC, datetime
from pathlib import Path

import pytest

from prompt_workflows.engine.resume_file_store import FileResumeStateManager
from prompt_workflows.engine.resume_store import InMemoryResumeStateManager
from prompt_workflows.engine.schema import ResumePolicy
from prompt_workflows.engine.state_config import (
    BACKEND_ENV,
    DEFAULT_STORAGE_LOCATION,
    RETENTION_DAYS_ENV,
    STORAGE_DIR_ENV,
    ResumeConfig,
    create_resume_state_manager,
    get_retention_days,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (BACKEND_ENV, STORAGE_DIR_ENV, RETENTION_DAYS_ENV):
        monkeypatch.delenv(name, raising=False)


class TestRetentionDays:
    def test_default(self) -> None:
        assert get_retention_days() == 7

    @pytest.mark.parametrize(("raw", "expected"), [("30", 30), ("-5", 0), ("99999", 3650)])
    def test_clamped(self, monkeypatch: pytest.MonkeyPatch, raw: str, expected: int) -> None:
        monkeypatch.setenv(RETENTION_DAYS_ENV, raw)

        assert get_retention_days() == expected

    def test_invalid_value_falls_back(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(RETENTION_DAYS_ENV, "a week")

        assert get_retention_days() == 7


class TestResumeConfig:
    def test_defaults(self) -> None:
        config = ResumeConfig.from_env()

        assert config.backend == "file"
        assert config.storage_location == DEFAULT_STORAGE_LOCATION
        assert config.retention_days == 7
        assert config.checkpoint_frequency == 1
        assert config.atomic_writes is True

    def test_from_env(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv(BACKEND_ENV, "Memory")
        monkeypatch.setenv(STORAGE_DIR_ENV, str(tmp_path / "state"))
        monkeypatch.setenv(RETENTION_DAYS_ENV, "14")

        config = ResumeConfig.from_env()

        assert config.backend == "memory"
        assert config.storage_location == tmp_path / "state"
        assert config.retention_days == 14

    def test_unknown_backend_falls_back_to_file(
        self, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
    ) -> None:
        monkeypatch.setenv(BACKEND_ENV, "sqlite")

        assert ResumeConfig.from_env().backend == "file"
        assert "sqlite" in caplog.text

    def test_with_policy(self) -> None:
        config = ResumeConfig(retention_days=7)

        updated = config.with_policy(ResumePolicy(checkpoint_frequency=3, retention_days=2))

        assert updated.checkpoint_frequency == 3
        assert updated.retention_days == 2
        assert config.checkpoint_frequency == 1

    def test_with_policy_keeps_retention_when_unset(self) -> None:
        updated = ResumeConfig(retention_days=9).with_policy(ResumePolicy(checkpoint_frequency=2))

        assert updated.retention_days == 9

    def test_with_no_policy(self) -> None:
        config = ResumeConfig()

        assert config.with_policy(None) is config

    def test_retention_cutoff(self) -> None:
        now = datetime(2024, 3, 10, tzinfo=UTC)

        assert ResumeConfig(retention_days=7).retention_cutoff(now) == datetime(
            2024, 3, 3, tzinfo=UTC
        )


class TestFactory:
    def test_memory_backend(self) -> None:
        manager = create_resume_state_manager(ResumeConfig(backend="memory"))

        assert isinstance(manager, InMemoryResumeStateManager)

    def test_file_backend(self, tmp_path: Path) -> None:
        manager = create_resume_state_manager(
            ResumeConfig(storage_location=tmp_path, atomic_writes=False)
        )

        assert isinstance(manager, FileResumeStateManager)
        assert manager.storage_dir == tmp_path
        assert manager.atomic_writes is False

    def test_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(BACKEND_ENV, "memory")

        assert isinstance(create_resume_state_manager(), InMemoryResumeStateManager)
