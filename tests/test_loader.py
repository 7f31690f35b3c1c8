"""Tests for the non-raising loader API."""

import logging
from pathlib import Path

import pytest

from prompt_workflows.engine.load_result import LoadResult, LoadStatus
from prompt_workflows.engine.loader import (
    discover_workflows,
    load_workflow_from_file,
    load_workflow_from_text,
)


class TestLoadWorkflowFromFile:
    def test_success(self, workflow_file: Path) -> None:
        result = load_workflow_from_file(workflow_file)

        assert result.is_success
        assert result.unwrap().name == "code-review"

    def test_missing_file(self, tmp_path: Path) -> None:
        result = load_workflow_from_file(tmp_path / "missing.prompt.md")

        assert result.is_failure
        assert result.metadata["code"] == "FILE_NOT_FOUND"

    def test_wrong_extension(self, tmp_path: Path) -> None:
        path = tmp_path / "notes.md"
        path.write_text("body", encoding="utf-8")

        result = load_workflow_from_file(path)

        assert result.metadata["code"] == "INVALID_EXTENSION"

    def test_parse_error_carries_location(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.prompt.md"
        path.write_text("---\nname: x\n  model: y\n bad: z\n---\nbody", encoding="utf-8")

        result = load_workflow_from_file(path)

        assert result.is_failure
        assert result.metadata["code"] == "YAML_PARSE_ERROR"
        assert result.metadata["file_path"] == str(path)
        assert result.metadata["line"] is not None


class TestLoadWorkflowFromText:
    def test_success(self, full_document: str) -> None:
        result = load_workflow_from_text(full_document, source="inline")

        assert result
        assert result.unwrap().source_path == "inline"

    def test_empty_text(self) -> None:
        result = load_workflow_from_text("")

        assert not result
        assert result.metadata["code"] == "EMPTY_CONTENT"


class TestDiscoverWorkflows:
    def test_discovers_sorted_and_skips_invalid(
        self, tmp_path: Path, full_document: str, caplog: pytest.LogCaptureFixture
    ) -> None:
        (tmp_path / "b.prompt.md").write_text("---\nname: b\n---\nbody", encoding="utf-8")
        (tmp_path / "a.prompt.md").write_text(full_document, encoding="utf-8")
        (tmp_path / "broken.prompt.md").write_text("---\n- x\n---\nbody", encoding="utf-8")
        (tmp_path / "ignored.md").write_text("body", encoding="utf-8")

        with caplog.at_level(logging.WARNING):
            result = discover_workflows(tmp_path)

        assert result.is_success
        assert [workflow.name for workflow in result.unwrap()] == ["code-review", "b"]
        assert "broken.prompt.md" in caplog.text

    def test_empty_directory(self, tmp_path: Path) -> None:
        result = discover_workflows(tmp_path)

        assert result.is_success
        assert result.value == []

    def test_missing_directory(self, tmp_path: Path) -> None:
        result = discover_workflows(tmp_path / "nope")

        assert result.is_failure
        assert "Directory not found" in (result.error or "")

    def test_path_is_a_file(self, workflow_file: Path) -> None:
        result = discover_workflows(workflow_file)

        assert result.is_failure


class TestLoadResult:
    def test_success_requires_value(self) -> None:
        with pytest.raises(ValueError):
            LoadResult(status=LoadStatus.SUCCESS)

    def test_failure_requires_error(self) -> None:
        with pytest.raises(ValueError):
            LoadResult(status=LoadStatus.FAILED)

    def test_unwrap_failure_raises(self) -> None:
        with pytest.raises(ValueError, match="Cannot unwrap"):
            LoadResult.failure("nope").unwrap()

    def test_unwrap_or(self) -> None:
        assert LoadResult.failure("nope").unwrap_or("fallback") == "fallback"
        assert LoadResult.success("value").unwrap_or("fallback") == "value"
