"""Exceptions for workflow parsing, validation, and resume.

Two failure tiers are kept apart:

- Parse failures (WorkflowParseError) are fatal. They are raised before a
  Workflow object can exist at all: empty documents, unreadable files, wrong
  file suffix, malformed YAML headers, header values that do not fit their
  typed section.
- Validation outcomes are never raised by the validator itself. They are
  returned as a ValidationResult. WorkflowValidationError exists only for
  callers that explicitly ask for "parse and fail if invalid".

Resume failures distinguish a missing snapshot from an incompatible one so
that callers can decide whether to force a resume.

Exception Hierarchy:
    WorkflowParseError
    WorkflowValidationError
    ResumeError
    ├── ResumeStateNotFoundError
    ├── IncompatibleResumeStateError
    └── AmbiguousResumeStateError
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .validation import ValidationIssue


class WorkflowParseError(Exception):
    """
    Workflow document could not be parsed.

    Attributes:
        message: Human-readable description of the failure
        file_path: Source file, when the document was read from disk
        line: 1-based line number reported by the YAML parser (if any)
        column: 1-based column number reported by the YAML parser (if any)
        code: Machine-readable error code (e.g. YAML_PARSE_ERROR)
        severity: Always "critical" unless a caller overrides it

    Example:
        >>> raise WorkflowParseError(
        ...     "Invalid YAML header: mapping values are not allowed here",
        ...     file_path="review.prompt.md",
        ...     line=3,
        ...     column=9,
        ...     code="YAML_PARSE_ERROR",
        ... )
    """

    def __init__(
        self,
        message: str,
        file_path: str | None = None,
        line: int | None = None,
        column: int | None = None,
        code: str | None = None,
        severity: str = "critical",
    ) -> None:
        self.message = message
        self.file_path = file_path
        self.line = line
        self.column = column
        self.code = code
        self.severity = severity

        location = ""
        if file_path:
            location = f" in {file_path}"
        if line is not None:
            location += f" (line {line}"
            location += f", column {column})" if column is not None else ")"

        super().__init__(f"{message}{location}")

    def __repr__(self) -> str:
        """Developer-friendly representation."""
        return (
            f"WorkflowParseError(code={self.code!r}, file_path={self.file_path!r}, "
            f"line={self.line}, column={self.column})"
        )


class WorkflowValidationError(Exception):
    """
    Workflow parsed but failed semantic validation.

    Raised by WorkflowParser.parse_and_validate() only. The validator
    itself always returns a ValidationResult.

    Attributes:
        errors: Validation errors that made the workflow invalid
    """

    def __init__(self, message: str, errors: list[ValidationIssue]) -> None:
        self.errors = errors
        details = "; ".join(error.message for error in errors)
        super().__init__(f"{message}: {details}" if details else message)

    def __repr__(self) -> str:
        """Developer-friendly representation."""
        return f"WorkflowValidationError(errors={len(self.errors)})"


class ResumeError(Exception):
    """Base exception for resume failures."""

    pass


class ResumeStateNotFoundError(ResumeError):
    """
    No snapshot exists for the requested run identifier.

    Attributes:
        run_id: Run identifier that was requested (None when no run id was
            given and no resumable runs exist at all)
    """

    def __init__(self, run_id: str | None) -> None:
        self.run_id = run_id
        if run_id is None:
            message = "No resumable workflow states found. Start a new workflow execution instead."
        else:
            message = f"No resume state found for run '{run_id}'"
        super().__init__(message)


class IncompatibleResumeStateError(ResumeError):
    """
    Snapshot was created against a different version of the document.

    Attributes:
        run_id: Run identifier of the snapshot
        stored_hash: Content hash recorded in the snapshot
        current_hash: Content hash of the document on disk now
    """

    def __init__(self, run_id: str, stored_hash: str, current_hash: str) -> None:
        self.run_id = run_id
        self.stored_hash = stored_hash
        self.current_hash = current_hash
        super().__init__(
            f"Workflow has changed since run '{run_id}' was checkpointed "
            f"(stored hash {stored_hash[:12]}, current hash {current_hash[:12]}). "
            f"Use force=True to resume anyway, or start a new workflow execution."
        )

    def __repr__(self) -> str:
        """Developer-friendly representation."""
        return (
            f"IncompatibleResumeStateError(run_id={self.run_id!r}, "
            f"stored_hash={self.stored_hash[:12]!r}, current_hash={self.current_hash[:12]!r})"
        )


class AmbiguousResumeStateError(ResumeError):
    """
    Several resumable runs exist and none was selected.

    Attributes:
        run_ids: Run identifiers that are currently resumable
    """

    def __init__(self, run_ids: list[str]) -> None:
        self.run_ids = run_ids
        listing = ", ".join(sorted(run_ids))
        super().__init__(f"Multiple resumable states found, specify a run id: {listing}")


__all__ = [
    "WorkflowParseError",
    "WorkflowValidationError",
    "ResumeError",
    "ResumeStateNotFoundError",
    "IncompatibleResumeStateError",
    "AmbiguousResumeStateError",
]
