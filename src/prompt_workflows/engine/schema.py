"""
Workflow document schema with Pydantic v2 models.

A workflow document is a Markdown file with an optional YAML header:

    ---
    name: code-review
    model: openai/gpt-4o
    tools: [project-analysis, file-system]
    config:
      temperature: 0.7
      maxOutputTokens: 4000
    input:
      schema:
        project_path:
          type: string
          description: Project to review
    prompt-workflows.sub-workflows:
      - name: analyze
        path: ./analyze.prompt.md
    ---
    Review the project at {{project_path}}.

This module defines:
- Typed sections of the header (config, input, output, metadata)
- Typed extension sections under the reserved "prompt-workflows." prefix
- The body processing result (WorkflowContent)
- The immutable parse result (Workflow)

Header sections use the camelCase keys of the base document format
(maxOutputTokens, topP, ...); extension sections use snake_case keys
(retry_attempts, depends_on, ...). Unknown keys inside a section are
ignored so that newer documents still load. Range checks are not done
here; they belong to the validator, which reports them as errors instead
of failing the parse.
"""

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

EXTENSION_PREFIX = "prompt-workflows."
"""Reserved header key prefix for fields owned by this engine."""

MCP_EXTENSION_KEY = f"{EXTENSION_PREFIX}mcp"
SUB_WORKFLOWS_EXTENSION_KEY = f"{EXTENSION_PREFIX}sub-workflows"
RESUME_EXTENSION_KEY = f"{EXTENSION_PREFIX}resume"
ERROR_HANDLING_EXTENSION_KEY = f"{EXTENSION_PREFIX}error-handling"

KNOWN_EXTENSION_KEYS = frozenset(
    {
        MCP_EXTENSION_KEY,
        SUB_WORKFLOWS_EXTENSION_KEY,
        RESUME_EXTENSION_KEY,
        ERROR_HANDLING_EXTENSION_KEY,
    }
)

# Shared config for header sections: accept both alias and field name and
# ignore keys this version does not know about.
# YAML numbers in string fields (version: 1.0, tags: [2024]) are kept as text.
_SECTION_CONFIG = ConfigDict(populate_by_name=True, extra="ignore", coerce_numbers_to_str=True)


# =============================================================================
# Standard header sections
# =============================================================================


class WorkflowConfig(BaseModel):
    """
    Model configuration parameters (header key: config).

    Example:
        config:
          temperature: 0.7
          maxOutputTokens: 4000
          topP: 0.9
          stopSequences: ["END"]
    """

    model_config = _SECTION_CONFIG

    temperature: float | None = Field(default=None, description="Sampling temperature")
    max_output_tokens: int | None = Field(
        default=None, alias="maxOutputTokens", description="Maximum tokens to generate"
    )
    top_p: float | None = Field(default=None, alias="topP", description="Nucleus sampling")
    top_k: int | None = Field(default=None, alias="topK", description="Top-k sampling")
    stop_sequences: list[str] | None = Field(default=None, alias="stopSequences")
    candidate_count: int | None = Field(default=None, alias="candidateCount")
    max_retries: int | None = Field(default=None, alias="maxRetries")
    timeout: str | int | None = Field(default=None, description="Timeout, e.g. '5m' or seconds")


class InputParameterSchema(BaseModel):
    """Schema definition for one input parameter."""

    model_config = _SECTION_CONFIG

    type: str | None = None
    description: str | None = None
    required: bool | None = None
    default: Any | None = None
    enum: list[str] | None = None
    min_length: int | None = Field(default=None, alias="minLength")
    max_length: int | None = Field(default=None, alias="maxLength")
    pattern: str | None = None


class WorkflowInput(BaseModel):
    """
    Input parameter configuration (header key: input).

    Attributes:
        default: Parameter name -> default value
        schema_: Parameter name -> schema (header key "schema")
    """

    model_config = _SECTION_CONFIG

    default: dict[str, Any] | None = None
    schema_: dict[str, InputParameterSchema] | None = Field(default=None, alias="schema")


class OutputFieldSchema(BaseModel):
    """Schema definition for an output field (recursive)."""

    model_config = _SECTION_CONFIG

    type: str | None = None
    description: str | None = None
    properties: dict[str, "OutputFieldSchema"] | None = None
    items: "OutputFieldSchema | None" = None


class WorkflowOutput(BaseModel):
    """Output format specification (header key: output)."""

    model_config = _SECTION_CONFIG

    format: str | None = None
    schema_: dict[str, OutputFieldSchema] | None = Field(default=None, alias="schema")


class WorkflowMetadata(BaseModel):
    """
    Free-form descriptive fields (header key: metadata).

    Extra keys are kept so descriptive data is never lost.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow", coerce_numbers_to_str=True)

    description: str | None = None
    author: str | None = None
    version: str | None = None
    tags: list[str] | None = None
    created: datetime | date | None = None
    modified: datetime | date | None = None


# =============================================================================
# Extension sections (prompt-workflows.*)
# =============================================================================


class McpServerConfig(BaseModel):
    """MCP server declaration (prompt-workflows.mcp entry)."""

    model_config = _SECTION_CONFIG

    server: str | None = None
    version: str | None = None
    config: dict[str, Any] | None = None


class SubWorkflowConfig(BaseModel):
    """
    Sub-workflow declaration (prompt-workflows.sub-workflows entry).

    depends_on is declarative only; the engine validates it but does not
    schedule sub-workflows.
    """

    model_config = _SECTION_CONFIG

    name: str | None = None
    path: str | None = None
    parameters: dict[str, Any] | None = None
    depends_on: list[str] | None = None


class ResumePolicy(BaseModel):
    """Per-workflow resume policy (prompt-workflows.resume)."""

    model_config = _SECTION_CONFIG

    enabled: bool = True
    checkpoint_frequency: int = Field(default=1, ge=1)
    retention_days: int | None = Field(default=None, ge=0)


class ErrorHandlingConfig(BaseModel):
    """Error handling policy (prompt-workflows.error-handling)."""

    model_config = _SECTION_CONFIG

    retry_attempts: int | None = None
    backoff_strategy: str | None = None
    timeout_seconds: int | None = None


class WorkflowExtensions(BaseModel):
    """Typed view of the recognized extension fields."""

    mcp: list[McpServerConfig] | None = None
    sub_workflows: list[SubWorkflowConfig] | None = None
    resume: ResumePolicy | None = None
    error_handling: ErrorHandlingConfig | None = None


# =============================================================================
# Body processing result
# =============================================================================


class SubWorkflowReference(BaseModel):
    """
    Sub-workflow invocation found in the body.

    Example body:
        > Execute: ./analyze.prompt.md
        > Parameters:
        > - project_path: "{{project_path}}"
        > - depth: 3
    """

    model_config = ConfigDict(frozen=True)

    path: str
    parameters: dict[str, str] = Field(default_factory=dict)
    line_number: int = Field(ge=1, description="1-based line of the Execute line")


class WorkflowContent(BaseModel):
    """
    Body processing result.

    Attributes:
        raw_markdown: Body text exactly as it appeared after the header
        document: Parsed Markdown tree (markdown-it SyntaxTreeNode); opaque,
            used only for structural checks, never serialized
        parameter_references: Variable names referenced as {{name}}
        sub_workflow_references: Execute blocks, in document order
        tool_references: Built-in tool names mentioned in prose
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    raw_markdown: str = ""
    document: Any = Field(default=None, exclude=True, repr=False)
    parameter_references: frozenset[str] = frozenset()
    sub_workflow_references: list[SubWorkflowReference] = Field(default_factory=list)
    tool_references: frozenset[str] = frozenset()


# =============================================================================
# Parse result
# =============================================================================


class Workflow(BaseModel):
    """
    Immutable parse result of one workflow document.

    Created by a single parse call. Re-parsing the same text produces a new
    instance with an identical content_hash.

    Attributes:
        name: Display name (required by validation when a header is present)
        model: Model identifier
        tools: Declared tools, order preserved
        config: Model configuration
        input: Input defaults and schema
        output: Output format
        metadata: Descriptive fields
        extensions: Typed recognized extension fields
        extension_fields: Every raw "prompt-workflows.*" header value, keyed
            by full key name
        header_fields: Every raw header value (generic pass)
        raw_header: Header text between the delimiters
        has_header: Whether the document had a header block
        content_hash: SHA-256 of the full document text (lowercase hex)
        source_path: File the document was read from, if any
        content: Body processing result
    """

    model_config = ConfigDict(frozen=True)

    name: str | None = None
    model: str | None = None
    tools: list[str] = Field(default_factory=list)
    config: WorkflowConfig | None = None
    input: WorkflowInput | None = None
    output: WorkflowOutput | None = None
    metadata: WorkflowMetadata | None = None
    extensions: WorkflowExtensions = Field(default_factory=WorkflowExtensions)
    extension_fields: dict[str, Any] = Field(default_factory=dict)
    header_fields: dict[str, Any] = Field(default_factory=dict)
    raw_header: str | None = None
    has_header: bool = False
    content_hash: str
    source_path: str | None = None
    content: WorkflowContent = Field(default_factory=WorkflowContent)

    @property
    def body(self) -> str:
        """Body text of the document."""
        return self.content.raw_markdown

    @property
    def unknown_extension_keys(self) -> list[str]:
        """Extension keys present in the header that this engine does not recognize."""
        return sorted(key for key in self.extension_fields if key not in KNOWN_EXTENSION_KEYS)


__all__ = [
    "EXTENSION_PREFIX",
    "KNOWN_EXTENSION_KEYS",
    "MCP_EXTENSION_KEY",
    "SUB_WORKFLOWS_EXTENSION_KEY",
    "RESUME_EXTENSION_KEY",
    "ERROR_HANDLING_EXTENSION_KEY",
    "WorkflowConfig",
    "InputParameterSchema",
    "WorkflowInput",
    "OutputFieldSchema",
    "WorkflowOutput",
    "WorkflowMetadata",
    "McpServerConfig",
    "SubWorkflowConfig",
    "ResumePolicy",
    "ErrorHandlingConfig",
    "WorkflowExtensions",
    "SubWorkflowReference",
    "WorkflowContent",
    "Workflow",
]
