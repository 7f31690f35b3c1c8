"""
Body processing for workflow documents.

Extracts three kinds of references from the Markdown body:

- Parameter references: {{identifier}} tokens (dotted paths allowed)
- Sub-workflow references: blockquote invocation blocks

      > Execute: ./analyze.prompt.md
      > Parameters:
      > - project_path: "{{project_path}}"
      > - depth: 3

- Tool references: prose mentions of built-in tools, detected through the
  shared ToolRegistry

The body is also parsed into a CommonMark tree (markdown-it-py) kept as an
opaque structure on WorkflowContent. No substitution is performed here.
"""

import logging
import re
from enum import Enum

from markdown_it import MarkdownIt
from markdown_it.tree import SyntaxTreeNode

from .exceptions import WorkflowParseError
from .schema import SubWorkflowReference, WorkflowContent
from .tool_registry import ToolRegistry, create_default_tool_registry

logger = logging.getLogger(__name__)

PARAMETER_PATTERN = re.compile(r"\{\{([A-Za-z_][A-Za-z0-9_.\-]*)\}\}")

_EXECUTE_LINE = re.compile(r"^\s*>\s*Execute:\s*(?P<path>.*?)\s*$")
_PARAMETERS_HEADER = re.compile(r"^\s*>\s*Parameters:")
_PARAMETER_LINE = re.compile(r"^\s*>\s*-\s*(?P<key>[^:]+?)\s*:\s*(?P<value>.*?)\s*$")
_BLOCKQUOTE_LINE = re.compile(r"^\s*>")


class _ScanState(Enum):
    SCANNING = "scanning"
    AWAITING_PARAMETERS = "awaiting_parameters"
    IN_PARAMETERS = "in_parameters"


def _unquote(value: str) -> str:
    """Remove one layer of matching single or double quotes."""
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


class BodyProcessor:
    """
    Extracts references from workflow bodies.

    Example:
        processor = BodyProcessor()
        content = processor.process("Analyze {{project}} with file_system access")
        content.parameter_references  # frozenset({"project"})
        content.tool_references       # frozenset({"file-system"})
    """

    def __init__(self, tool_registry: ToolRegistry | None = None) -> None:
        self.tool_registry = tool_registry or create_default_tool_registry()
        self._markdown = MarkdownIt("commonmark")

    def process(self, body: str, line_offset: int = 0) -> WorkflowContent:
        """
        Process body text into WorkflowContent.

        Args:
            body: Body text (everything after the header)
            line_offset: Number of document lines preceding the body, added
                to sub-workflow line numbers so they point into the document

        Returns:
            WorkflowContent with references and the parsed Markdown tree

        Raises:
            WorkflowParseError: BODY_PROCESSING_ERROR if the body cannot be
                processed
        """
        try:
            document = SyntaxTreeNode(self._markdown.parse(body))
            content = WorkflowContent(
                raw_markdown=body,
                document=document,
                parameter_references=self.extract_parameter_references(body),
                sub_workflow_references=self.extract_sub_workflow_references(body, line_offset),
                tool_references=frozenset(self.tool_registry.detect(body)),
            )
        except Exception as e:
            raise WorkflowParseError(
                f"Failed to process workflow body: {e}", code="BODY_PROCESSING_ERROR"
            ) from e

        logger.debug(
            f"Processed body: {len(content.parameter_references)} parameter(s), "
            f"{len(content.sub_workflow_references)} sub-workflow(s), "
            f"{len(content.tool_references)} tool(s)"
        )
        return content

    @staticmethod
    def extract_parameter_references(body: str) -> frozenset[str]:
        """Collect {{name}} identifiers. Malformed tokens are skipped."""
        return frozenset(PARAMETER_PATTERN.findall(body))

    @staticmethod
    def extract_sub_workflow_references(
        body: str, line_offset: int = 0
    ) -> list[SubWorkflowReference]:
        """
        Collect "> Execute:" blocks in document order.

        After an Execute line, blank and other blockquote lines are skipped
        until a "> Parameters:" line; any other line ends the reference with
        no parameters. Parameter lines "> - key: value" follow until the
        first blank or non-blockquote line. A new Execute line always ends
        the current reference.
        """
        references: list[SubWorkflowReference] = []
        state = _ScanState.SCANNING
        path = ""
        start_line = 0
        parameters: dict[str, str] = {}

        def finish() -> None:
            references.append(
                SubWorkflowReference(
                    path=path, parameters=dict(parameters), line_number=start_line + line_offset
                )
            )

        # Lines split on "\n" only, matching the line_offset count.
        for line_number, raw_line in enumerate(body.split("\n"), start=1):
            line = raw_line.removesuffix("\r")
            execute = _EXECUTE_LINE.match(line)
            if execute and execute.group("path"):
                if state is not _ScanState.SCANNING:
                    finish()
                path = execute.group("path")
                start_line = line_number
                parameters = {}
                state = _ScanState.AWAITING_PARAMETERS
                continue

            if state is _ScanState.AWAITING_PARAMETERS:
                if not line.strip():
                    continue
                if _PARAMETERS_HEADER.match(line):
                    state = _ScanState.IN_PARAMETERS
                    continue
                if _BLOCKQUOTE_LINE.match(line):
                    continue
                finish()
                state = _ScanState.SCANNING

            elif state is _ScanState.IN_PARAMETERS:
                if not line.strip() or not _BLOCKQUOTE_LINE.match(line):
                    finish()
                    state = _ScanState.SCANNING
                    continue
                parameter = _PARAMETER_LINE.match(line)
                if parameter:
                    parameters[parameter.group("key")] = _unquote(parameter.group("value"))

        if state is not _ScanState.SCANNING:
            finish()

        return references


__all__ = ["PARAMETER_PATTERN", "BodyProcessor"]
