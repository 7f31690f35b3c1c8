"""
Workflow document parser.

Runs the full pipeline on one document:

    text -> split_header -> deserialize_header + BodyProcessor -> Workflow

and exposes validation on top of it. Parse failures are raised as
WorkflowParseError; validation outcomes are returned as ValidationResult.
"""

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path
from typing import TypeVar

from .body import BodyProcessor
from .compatibility import compute_content_hash
from .deserializer import deserialize_header
from .exceptions import WorkflowParseError, WorkflowValidationError
from .frontmatter import split_header
from .schema import Workflow
from .tool_registry import ToolRegistry, create_default_tool_registry
from .validation import ValidationResult, WorkflowValidator

logger = logging.getLogger(__name__)

T = TypeVar("T")

WORKFLOW_FILE_SUFFIX = ".prompt.md"


def is_workflow_file(path: str | Path) -> bool:
    """Check whether a path carries the workflow file suffix (case-insensitive)."""
    return Path(path).name.lower().endswith(WORKFLOW_FILE_SUFFIX)


def read_document_text(path: str | Path) -> str:
    """
    Read a workflow document exactly as stored.

    Line endings are preserved so that the content hash covers the bytes on
    disk. A UTF-8 byte order mark is dropped.
    """
    return Path(path).read_bytes().decode("utf-8-sig")


def _with_source(error: WorkflowParseError, source_path: str) -> WorkflowParseError:
    """Copy a parse error raised below the file layer, adding the file path."""
    return WorkflowParseError(
        error.message,
        file_path=source_path,
        line=error.line,
        column=error.column,
        code=error.code,
        severity=error.severity,
    )


class WorkflowParser:
    """
    Parses and validates workflow documents.

    Example:
        parser = WorkflowParser()
        workflow = parser.parse_content(text)
        result = parser.validate(workflow)

        workflow = await parser.parse_file("review.prompt.md")
        result = await parser.validate_file("review.prompt.md")
    """

    def __init__(self, tool_registry: ToolRegistry | None = None) -> None:
        self.tool_registry = tool_registry or create_default_tool_registry()
        self.body_processor = BodyProcessor(self.tool_registry)
        self.validator = WorkflowValidator(self.tool_registry)

    def parse_content(self, text: str, source_path: str | None = None) -> Workflow:
        """
        Parse document text into a Workflow.

        Args:
            text: Full document text
            source_path: File the text was read from (used in errors and
                stored on the Workflow)

        Returns:
            Immutable Workflow with content_hash computed over text

        Raises:
            WorkflowParseError: EMPTY_CONTENT, YAML_PARSE_ERROR,
                HEADER_NOT_MAPPING, DESERIALIZATION_ERROR or
                BODY_PROCESSING_ERROR
        """
        if not text or not text.strip():
            raise WorkflowParseError(
                "Workflow content cannot be empty", file_path=source_path, code="EMPTY_CONTENT"
            )

        split = split_header(text)
        line_offset = text[: len(text) - len(split.body)].count("\n")

        try:
            header = deserialize_header(split.header)
            content = self.body_processor.process(split.body, line_offset=line_offset)
        except WorkflowParseError as e:
            if source_path is None or e.file_path is not None:
                raise
            raise _with_source(e, source_path) from e

        workflow = Workflow(
            name=header.name,
            model=header.model,
            tools=header.tools,
            config=header.config,
            input=header.input,
            output=header.output,
            metadata=header.metadata,
            extensions=header.extensions,
            extension_fields=header.extension_fields,
            header_fields=header.fields,
            raw_header=split.header,
            has_header=split.has_header,
            content_hash=compute_content_hash(text),
            source_path=source_path,
            content=content,
        )
        logger.debug(f"Parsed workflow '{workflow.name}' from {source_path or '<string>'}")
        return workflow

    async def parse_file(self, file_path: str | Path) -> Workflow:
        """
        Read and parse a workflow file.

        Raises:
            WorkflowParseError: FILE_NOT_FOUND, INVALID_EXTENSION,
                FILE_READ_ERROR, or any parse_content() error
        """
        path = Path(file_path)
        source = str(file_path)

        if not path.is_file():
            raise WorkflowParseError(
                f"Workflow file not found: {source}", file_path=source, code="FILE_NOT_FOUND"
            )
        if not is_workflow_file(path):
            raise WorkflowParseError(
                f"Workflow files must use the '{WORKFLOW_FILE_SUFFIX}' extension",
                file_path=source,
                code="INVALID_EXTENSION",
            )

        try:
            text = await self._run_in_executor(lambda: read_document_text(path))
        except (OSError, UnicodeDecodeError) as e:
            raise WorkflowParseError(
                f"Failed to read workflow file: {e}", file_path=source, code="FILE_READ_ERROR"
            ) from e

        return self.parse_content(text, source_path=source)

    def validate(self, workflow: Workflow) -> ValidationResult:
        """Validate a parsed workflow."""
        return self.validator.validate(workflow)

    async def validate_file(self, file_path: str | Path) -> ValidationResult:
        """
        Parse and validate a file, reporting parse failures as validation errors.

        A parse failure becomes a ValidationResult with one critical error
        carrying the parse error's code (PARSE_ERROR when it has none) and
        location.
        """
        try:
            workflow = await self.parse_file(file_path)
        except WorkflowParseError as e:
            logger.debug(f"Validation of {file_path} stopped at parse: {e}")
            return ValidationResult.critical(
                str(e), e.code or "PARSE_ERROR", line=e.line, column=e.column
            )
        return self.validate(workflow)

    def parse_and_validate(self, text: str, source_path: str | None = None) -> Workflow:
        """
        Parse text and fail if the result is not valid.

        Raises:
            WorkflowParseError: Document could not be parsed
            WorkflowValidationError: Document parsed but has validation errors
        """
        workflow = self.parse_content(text, source_path=source_path)
        result = self.validate(workflow)
        if not result.is_valid:
            raise WorkflowValidationError(
                f"Workflow '{workflow.name or source_path or '<string>'}' is invalid",
                result.errors,
            )
        return workflow

    async def _run_in_executor(self, func: Callable[[], T]) -> T:
        """Run blocking function in thread pool executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func)


__all__ = [
    "WORKFLOW_FILE_SUFFIX",
    "WorkflowParser",
    "is_workflow_file",
    "read_document_text",
]
