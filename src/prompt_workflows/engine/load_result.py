"""LoadResult for non-raising workflow loading.

The parser raises WorkflowParseError on fatal failures. The loader layer wraps
those calls in LoadResult so that discovery and batch loading can collect
failures without exception handling at every call site.

For validation outcomes, see ValidationResult (validation.py).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

from .exceptions import WorkflowParseError

T = TypeVar("T")


class LoadStatus(str, Enum):
    """Status of a loading operation."""

    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class LoadResult(Generic[T]):  # noqa: UP046
    """
    Result of a loading operation (loader layer only).

    Uses a discriminated union pattern with LoadStatus to prevent invalid
    state combinations: a success always carries a value, a failure always
    carries an error message.

    Usage:
        load_result = load_workflow_from_file(path)
        if load_result.is_success:
            workflow = load_result.value
        else:
            print(f"Load error: {load_result.error}")
    """

    status: LoadStatus
    value: T | None = None
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate state consistency after initialization."""
        if self.status == LoadStatus.SUCCESS and self.value is None:
            raise ValueError("Success result must have a value")
        if self.status == LoadStatus.FAILED and not self.error:
            raise ValueError("Failed result must have an error message")

    @property
    def is_success(self) -> bool:
        """Check if load operation was successful."""
        return self.status == LoadStatus.SUCCESS

    @property
    def is_failure(self) -> bool:
        """Check if load operation failed."""
        return self.status == LoadStatus.FAILED

    @classmethod
    def success(cls, value: T, metadata: dict[str, Any] | None = None) -> "LoadResult[T]":
        """Create a successful load result."""
        return cls(
            status=LoadStatus.SUCCESS,
            value=value,
            metadata=metadata or {},
        )

    @classmethod
    def failure(cls, error: str, metadata: dict[str, Any] | None = None) -> "LoadResult[T]":
        """
        Create a failed load result.

        Args:
            error: Error message describing the failure
            metadata: Optional details, e.g. {"code": "YAML_PARSE_ERROR", "line": 3}

        Returns:
            LoadResult with FAILED status and the error message
        """
        return cls(
            status=LoadStatus.FAILED,
            error=error,
            metadata=metadata or {},
        )

    @classmethod
    def from_parse_error(cls, exc: WorkflowParseError) -> "LoadResult[T]":
        """Create a failed load result carrying the parse error's location and code."""
        return cls.failure(
            str(exc),
            metadata={
                "code": exc.code,
                "file_path": exc.file_path,
                "line": exc.line,
                "column": exc.column,
            },
        )

    def __bool__(self) -> bool:
        """Allow using result in if statements."""
        return self.is_success

    def unwrap(self) -> T:
        """Get value or raise exception if failed."""
        if not self.is_success:
            raise ValueError(f"Cannot unwrap failed result: {self.error}")
        if self.value is None:
            raise ValueError("Cannot unwrap result: value is None")
        return self.value

    def unwrap_or(self, default: T) -> T:
        """Get value or return default if failed."""
        if self.is_success and self.value is not None:
            return self.value
        return default
