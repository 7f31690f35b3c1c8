"""
Structured deserialization of workflow headers.

The header is read twice with two strategies because the document format
mixes a known schema with forward-compatible data:

1. Generic pass: YAML -> dict[str, Any], every key preserved (including
   keys this engine does not know, and keys under the extension prefix).
2. Typed pass: known top-level keys (name, model, tools, config, input,
   output, metadata) converted into their Pydantic section models.
3. Extension pass: every "prompt-workflows.*" key copied into the raw
   extension map; recognized keys converted into WorkflowExtensions.

Any failure here is fatal and raised as WorkflowParseError, since no
Workflow can exist without a readable header.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, TypeVar

import yaml
from pydantic import BaseModel, TypeAdapter, ValidationError

from .exceptions import WorkflowParseError
from .schema import (
    ERROR_HANDLING_EXTENSION_KEY,
    EXTENSION_PREFIX,
    MCP_EXTENSION_KEY,
    RESUME_EXTENSION_KEY,
    SUB_WORKFLOWS_EXTENSION_KEY,
    ErrorHandlingConfig,
    McpServerConfig,
    ResumePolicy,
    SubWorkflowConfig,
    WorkflowConfig,
    WorkflowExtensions,
    WorkflowInput,
    WorkflowMetadata,
    WorkflowOutput,
)

logger = logging.getLogger(__name__)

_MCP_LIST = TypeAdapter(list[McpServerConfig])
_SUB_WORKFLOW_LIST = TypeAdapter(list[SubWorkflowConfig])

_SCALAR_TYPES = (str, int, float, bool)

M = TypeVar("M", bound=BaseModel)


@dataclass
class DeserializedHeader:
    """Typed and generic views of one header block."""

    fields: dict[str, Any] = field(default_factory=dict)
    name: str | None = None
    model: str | None = None
    tools: list[str] = field(default_factory=list)
    config: WorkflowConfig | None = None
    input: WorkflowInput | None = None
    output: WorkflowOutput | None = None
    metadata: WorkflowMetadata | None = None
    extensions: WorkflowExtensions = field(default_factory=WorkflowExtensions)
    extension_fields: dict[str, Any] = field(default_factory=dict)


def deserialize_header(header_text: str | None) -> DeserializedHeader:
    """
    Deserialize header text into generic and typed fields.

    Args:
        header_text: Text between the header delimiters (None or empty
            yields an empty header)

    Returns:
        DeserializedHeader with all three passes applied

    Raises:
        WorkflowParseError: YAML_PARSE_ERROR for malformed YAML (with
            1-based line/column relative to the header text),
            HEADER_NOT_MAPPING when the top level is not a mapping,
            DESERIALIZATION_ERROR when a value does not fit its typed section
    """
    fields = _load_generic(header_text)

    result = DeserializedHeader(fields=fields)
    result.name = _coerce_string(fields.get("name"), "name")
    result.model = _coerce_string(fields.get("model"), "model")
    result.tools = _coerce_tools(fields.get("tools"))
    result.config = _convert_section(WorkflowConfig, fields.get("config"), "config")
    result.input = _convert_section(WorkflowInput, fields.get("input"), "input")
    result.output = _convert_section(WorkflowOutput, fields.get("output"), "output")
    result.metadata = _convert_section(WorkflowMetadata, fields.get("metadata"), "metadata")

    result.extension_fields = {
        key: value for key, value in fields.items() if key.startswith(EXTENSION_PREFIX)
    }
    result.extensions = _convert_extensions(result.extension_fields)

    logger.debug(
        f"Deserialized header: {len(fields)} field(s), "
        f"{len(result.extension_fields)} extension field(s)"
    )
    return result


def _load_generic(header_text: str | None) -> dict[str, Any]:
    """Generic pass: YAML mapping with every key preserved as a string key."""
    if header_text is None or not header_text.strip():
        return {}

    try:
        data = yaml.safe_load(header_text)
    except yaml.MarkedYAMLError as e:
        mark = e.problem_mark or e.context_mark
        problem = e.problem or str(e)
        raise WorkflowParseError(
            f"Invalid YAML header: {problem}",
            line=mark.line + 1 if mark is not None else None,
            column=mark.column + 1 if mark is not None else None,
            code="YAML_PARSE_ERROR",
        ) from e
    except yaml.YAMLError as e:
        raise WorkflowParseError(f"Invalid YAML header: {e}", code="YAML_PARSE_ERROR") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise WorkflowParseError(
            f"Workflow header must be a YAML mapping, got {type(data).__name__}",
            code="HEADER_NOT_MAPPING",
        )

    return {str(key): value for key, value in data.items()}


def _coerce_string(value: Any, key: str) -> str | None:
    if value is None:
        return None
    if isinstance(value, _SCALAR_TYPES):
        return str(value)
    raise WorkflowParseError(
        f"Cannot deserialize '{key}' into str: got {type(value).__name__}",
        code="DESERIALIZATION_ERROR",
    )


def _coerce_tools(value: Any) -> list[str]:
    """Tools list: order preserved, scalar entries stringified, blanks dropped."""
    if value is None:
        return []
    if not isinstance(value, list):
        raise WorkflowParseError(
            f"Cannot deserialize 'tools' into list[str]: got {type(value).__name__}",
            code="DESERIALIZATION_ERROR",
        )

    tools: list[str] = []
    for entry in value:
        if entry is None:
            continue
        if not isinstance(entry, _SCALAR_TYPES):
            raise WorkflowParseError(
                f"Cannot deserialize 'tools' into list[str]: entry is {type(entry).__name__}",
                code="DESERIALIZATION_ERROR",
            )
        text = str(entry).strip()
        if text:
            tools.append(text)
    return tools


def _convert_section(model_cls: type[M], value: Any, key: str) -> M | None:
    if value is None:
        return None
    try:
        return model_cls.model_validate(value)
    except ValidationError as e:
        raise WorkflowParseError(
            f"Cannot deserialize '{key}' into {model_cls.__name__}: {_first_error(e)}",
            code="DESERIALIZATION_ERROR",
        ) from e


def _convert_extensions(extension_fields: dict[str, Any]) -> WorkflowExtensions:
    """Extension pass: recognized prefixed keys into typed sub-models."""
    extensions = WorkflowExtensions()

    raw_mcp = extension_fields.get(MCP_EXTENSION_KEY)
    if raw_mcp is not None:
        extensions.mcp = _convert_list(_MCP_LIST, raw_mcp, MCP_EXTENSION_KEY, "McpServerConfig")

    raw_sub_workflows = extension_fields.get(SUB_WORKFLOWS_EXTENSION_KEY)
    if raw_sub_workflows is not None:
        extensions.sub_workflows = _convert_list(
            _SUB_WORKFLOW_LIST, raw_sub_workflows, SUB_WORKFLOWS_EXTENSION_KEY, "SubWorkflowConfig"
        )

    extensions.resume = _convert_section(
        ResumePolicy, extension_fields.get(RESUME_EXTENSION_KEY), RESUME_EXTENSION_KEY
    )
    extensions.error_handling = _convert_section(
        ErrorHandlingConfig,
        extension_fields.get(ERROR_HANDLING_EXTENSION_KEY),
        ERROR_HANDLING_EXTENSION_KEY,
    )
    return extensions


def _convert_list(adapter: TypeAdapter[Any], value: Any, key: str, item_type: str) -> Any:
    try:
        return adapter.validate_python(value)
    except ValidationError as e:
        raise WorkflowParseError(
            f"Cannot deserialize '{key}' into list[{item_type}]: {_first_error(e)}",
            code="DESERIALIZATION_ERROR",
        ) from e


def _first_error(error: ValidationError) -> str:
    """Format the first pydantic error as 'loc: msg'."""
    details = error.errors()
    if not details:
        return str(error)
    first = details[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "invalid value")
    return f"{location}: {message}" if location else message


__all__ = ["DeserializedHeader", "deserialize_header"]
