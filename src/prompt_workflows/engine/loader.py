"""
Workflow loader with a non-raising API.

Wraps WorkflowParser in LoadResult so that tools which load many documents
(discovery, linting) can collect failures instead of handling exceptions at
every call site.

Features:
- Load workflows from files or strings
- Parse failures reported with code and location in LoadResult.metadata
- Directory discovery of *.prompt.md files
"""

import logging
from pathlib import Path

from .exceptions import WorkflowParseError
from .load_result import LoadResult
from .parser import WORKFLOW_FILE_SUFFIX, WorkflowParser, is_workflow_file, read_document_text
from .schema import Workflow

logger = logging.getLogger(__name__)


def load_workflow_from_file(
    file_path: str | Path, parser: WorkflowParser | None = None
) -> LoadResult[Workflow]:
    """
    Load and parse a workflow from a file.

    Args:
        file_path: Path to a *.prompt.md file
        parser: Parser to use (default: a new WorkflowParser)

    Returns:
        LoadResult.success(Workflow) if the document parsed
        LoadResult.failure(error_message) otherwise, with the parse error's
        code, file_path, line and column in metadata

    Example:
        result = load_workflow_from_file("workflows/review.prompt.md")
        if result.is_success:
            print(result.value.name)
        else:
            print(f"Failed to load: {result.error} ({result.metadata['code']})")
    """
    path = Path(file_path)
    source = str(file_path)

    if not path.is_file():
        return LoadResult.failure(
            f"Workflow file not found: {source}",
            metadata={"code": "FILE_NOT_FOUND", "file_path": source},
        )

    if not is_workflow_file(path):
        return LoadResult.failure(
            f"Workflow files must use the '{WORKFLOW_FILE_SUFFIX}' extension: {source}",
            metadata={"code": "INVALID_EXTENSION", "file_path": source},
        )

    try:
        text = read_document_text(path)
    except (OSError, UnicodeDecodeError) as e:
        return LoadResult.failure(
            f"Failed to read file '{source}': {e}",
            metadata={"code": "FILE_READ_ERROR", "file_path": source},
        )

    return load_workflow_from_text(text, source=source, parser=parser)


def load_workflow_from_text(
    text: str, source: str | None = None, parser: WorkflowParser | None = None
) -> LoadResult[Workflow]:
    """
    Parse a workflow from document text.

    Args:
        text: Full document text
        source: Source path stored on the Workflow and used in messages
        parser: Parser to use (default: a new WorkflowParser)

    Returns:
        LoadResult.success(Workflow) or LoadResult.failure with parse details
    """
    parser = parser or WorkflowParser()
    try:
        workflow = parser.parse_content(text, source_path=source)
    except WorkflowParseError as e:
        return LoadResult.from_parse_error(e)

    return LoadResult.success(workflow)


def discover_workflows(
    directory: str | Path, parser: WorkflowParser | None = None
) -> LoadResult[list[Workflow]]:
    """
    Discover and load all workflow documents in a directory.

    Searches for *.prompt.md files (non-recursive, sorted by name). Invalid
    documents are skipped with warnings and do not fail the operation.

    Args:
        directory: Directory to search

    Returns:
        LoadResult.success(list[Workflow]) with the documents that parsed
        LoadResult.failure(error_message) if the directory doesn't exist

    Example:
        result = discover_workflows("workflows/")
        if result.is_success:
            for workflow in result.value:
                print(workflow.name)
    """
    dir_path = Path(directory)

    if not dir_path.exists():
        return LoadResult.failure(f"Directory not found: {directory}")

    if not dir_path.is_dir():
        return LoadResult.failure(f"Path is not a directory: {directory}")

    parser = parser or WorkflowParser()
    workflows: list[Workflow] = []
    errors: list[str] = []

    for workflow_file in sorted(dir_path.glob(f"*{WORKFLOW_FILE_SUFFIX}")):
        result = load_workflow_from_file(workflow_file, parser=parser)
        if result.is_success and result.value is not None:
            workflows.append(result.value)
        else:
            errors.append(f"{workflow_file.name}: {result.error}")

    if errors:
        logger.warning(f"{len(errors)} workflow(s) failed to load:")
        for error in errors:
            logger.warning(f"  - {error}")

    return LoadResult.success(workflows)


__all__ = ["load_workflow_from_file", "load_workflow_from_text", "discover_workflows"]
