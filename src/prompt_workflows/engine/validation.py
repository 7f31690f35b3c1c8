"""Semantic validation of parsed workflows.

The validator is pure: it inspects a Workflow and returns a
ValidationResult. It never raises; an unexpected exception while checking
becomes a single critical VALIDATION_EXCEPTION error.

Errors make a workflow invalid. Warnings are advisory and never affect
is_valid.

Error codes:
    MISSING_NAME, INVALID_TEMPERATURE, INVALID_MAX_OUTPUT_TOKENS,
    INVALID_TOP_P, INVALID_TOP_K, MISSING_CONTENT, MISSING_MCP_SERVER,
    MISSING_SUBWORKFLOW_PATH, VALIDATION_EXCEPTION

Warning codes:
    MISSING_INPUT_SCHEMA, UNDEFINED_PARAMETER, UNKNOWN_TOOL,
    DEFAULTS_WITHOUT_SCHEMA, CONFLICTING_DEFAULTS, REDUNDANT_DEFAULTS,
    UNKNOWN_SUBWORKFLOW_DEPENDENCY, UNKNOWN_EXTENSION_FIELD
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from .schema import (
    MCP_EXTENSION_KEY,
    SUB_WORKFLOWS_EXTENSION_KEY,
    Workflow,
    WorkflowConfig,
)
from .tool_registry import ToolRegistry, create_default_tool_registry

logger = logging.getLogger(__name__)

TEMPERATURE_RANGE = (0.0, 2.0)
TOP_P_RANGE = (0.0, 1.0)


class ValidationSeverity(str, Enum):
    """Severity of a validation issue."""

    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass(frozen=True)
class ValidationIssue:
    """
    One validation finding.

    Attributes:
        message: Human-readable description
        code: Machine-readable code (e.g. INVALID_TEMPERATURE)
        field: Dotted path of the offending field, if any
        line: 1-based line, if known
        column: 1-based column, if known
        severity: warning, error or critical
    """

    message: str
    code: str
    field: str | None = None
    line: int | None = None
    column: int | None = None
    severity: ValidationSeverity = ValidationSeverity.ERROR


@dataclass
class ValidationResult:
    """
    Outcome of validating one workflow.

    Usage:
        result = WorkflowValidator().validate(workflow)
        if not result.is_valid:
            for error in result.errors:
                print(f"{error.code}: {error.message}")
    """

    errors: list[ValidationIssue] = field(default_factory=list)
    warnings: list[ValidationIssue] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        """True iff there are no errors."""
        return not self.errors

    def add_error(
        self,
        message: str,
        code: str,
        field: str | None = None,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> None:
        self.errors.append(ValidationIssue(message, code, field=field, severity=severity))

    def add_warning(self, message: str, code: str, field: str | None = None) -> None:
        self.warnings.append(
            ValidationIssue(message, code, field=field, severity=ValidationSeverity.WARNING)
        )

    @classmethod
    def critical(
        cls,
        message: str,
        code: str,
        line: int | None = None,
        column: int | None = None,
    ) -> ValidationResult:
        """Result holding a single critical error (used for parse failures)."""
        return cls(
            errors=[
                ValidationIssue(
                    message,
                    code,
                    line=line,
                    column=column,
                    severity=ValidationSeverity.CRITICAL,
                )
            ]
        )


class WorkflowValidator:
    """
    Checks a parsed Workflow against the semantic rules of the format.

    The tool registry is shared with the body processor so that the set of
    known tools has a single definition.
    """

    def __init__(self, tool_registry: ToolRegistry | None = None) -> None:
        self.tool_registry = tool_registry or create_default_tool_registry()

    def validate(self, workflow: Workflow) -> ValidationResult:
        """Validate a workflow. Never raises."""
        result = ValidationResult()
        try:
            self._check_header(workflow, result)
            if workflow.config is not None:
                self._check_config(workflow.config, result)
            self._check_content(workflow, result)
            self._check_parameters(workflow, result)
            self._check_defaults(workflow, result)
            self._check_tools(workflow, result)
            self._check_extensions(workflow, result)
        except Exception as e:
            logger.exception("Unexpected error while validating workflow")
            result.add_error(
                f"Validation failed with exception: {e}",
                "VALIDATION_EXCEPTION",
                severity=ValidationSeverity.CRITICAL,
            )

        if result.errors:
            logger.debug(
                f"Workflow '{workflow.name}' invalid: {len(result.errors)} error(s), "
                f"{len(result.warnings)} warning(s)"
            )
        return result

    def _check_header(self, workflow: Workflow, result: ValidationResult) -> None:
        if workflow.has_header and not (workflow.name and workflow.name.strip()):
            result.add_error(
                "Workflow name is required when a header is present", "MISSING_NAME", "name"
            )

    def _check_config(self, config: WorkflowConfig, result: ValidationResult) -> None:
        if config.temperature is not None:
            low, high = TEMPERATURE_RANGE
            if not low <= config.temperature <= high:
                result.add_error(
                    f"Temperature must be between {low} and {high}",
                    "INVALID_TEMPERATURE",
                    "config.temperature",
                )

        if config.max_output_tokens is not None and config.max_output_tokens <= 0:
            result.add_error(
                "MaxOutputTokens must be greater than 0",
                "INVALID_MAX_OUTPUT_TOKENS",
                "config.maxOutputTokens",
            )

        if config.top_p is not None:
            low, high = TOP_P_RANGE
            if not low <= config.top_p <= high:
                result.add_error(
                    f"TopP must be between {low} and {high}", "INVALID_TOP_P", "config.topP"
                )

        if config.top_k is not None and config.top_k <= 0:
            result.add_error("TopK must be greater than 0", "INVALID_TOP_K", "config.topK")

    def _check_content(self, workflow: Workflow, result: ValidationResult) -> None:
        if not workflow.body.strip():
            result.add_error("Workflow must contain markdown content", "MISSING_CONTENT", "content")

    def _check_parameters(self, workflow: Workflow, result: ValidationResult) -> None:
        references = workflow.content.parameter_references
        schema = workflow.input.schema_ if workflow.input else None

        if references and schema is None:
            result.add_warning(
                "Workflow references parameters but has no input schema defined",
                "MISSING_INPUT_SCHEMA",
            )
            return

        for name in sorted(references):
            if schema is not None and name not in schema:
                result.add_warning(
                    f"Parameter '{name}' is referenced in content but not defined in input schema",
                    "UNDEFINED_PARAMETER",
                    name,
                )

    def _check_defaults(self, workflow: Workflow, result: ValidationResult) -> None:
        if workflow.input is None or not workflow.input.default:
            return

        schema = workflow.input.schema_
        if schema is None:
            result.add_warning(
                "Input schema should be defined when default values are provided",
                "DEFAULTS_WITHOUT_SCHEMA",
                "input.schema",
            )
            return

        for name, value in workflow.input.default.items():
            parameter = schema.get(name)
            if parameter is None or parameter.default is None:
                continue
            if value != parameter.default:
                result.add_warning(
                    f"Parameter '{name}' has conflicting defaults: input.default = '{value}', "
                    f"input.schema.{name}.default = '{parameter.default}'. "
                    f"The schema-level default takes precedence.",
                    "CONFLICTING_DEFAULTS",
                    name,
                )
            else:
                result.add_warning(
                    f"Parameter '{name}' has redundant defaults in both input.default and "
                    f"input.schema.{name}.default",
                    "REDUNDANT_DEFAULTS",
                    name,
                )

    def _check_tools(self, workflow: Workflow, result: ValidationResult) -> None:
        for tool in workflow.tools:
            if not self.tool_registry.has(tool):
                result.add_warning(f"Unknown tool '{tool}' referenced", "UNKNOWN_TOOL", "tools")

    def _check_extensions(self, workflow: Workflow, result: ValidationResult) -> None:
        extensions = workflow.extensions

        for server in extensions.mcp or []:
            if not server.server:
                result.add_error(
                    "MCP server configuration must specify a server name",
                    "MISSING_MCP_SERVER",
                    f"{MCP_EXTENSION_KEY}.server",
                )

        sub_workflows = extensions.sub_workflows or []
        for sub_workflow in sub_workflows:
            if not sub_workflow.path:
                result.add_error(
                    "Sub-workflow configuration must specify a path",
                    "MISSING_SUBWORKFLOW_PATH",
                    f"{SUB_WORKFLOWS_EXTENSION_KEY}.path",
                )

        declared = {sub_workflow.name for sub_workflow in sub_workflows if sub_workflow.name}
        for sub_workflow in sub_workflows:
            for dependency in sub_workflow.depends_on or []:
                if dependency not in declared:
                    result.add_warning(
                        f"Sub-workflow '{sub_workflow.name}' depends on unknown "
                        f"sub-workflow '{dependency}'",
                        "UNKNOWN_SUBWORKFLOW_DEPENDENCY",
                        f"{SUB_WORKFLOWS_EXTENSION_KEY}.depends_on",
                    )

        for key in workflow.unknown_extension_keys:
            result.add_warning(
                f"Unrecognized extension field '{key}' is preserved but not interpreted",
                "UNKNOWN_EXTENSION_FIELD",
                key,
            )


__all__ = [
    "ValidationSeverity",
    "ValidationIssue",
    "ValidationResult",
    "WorkflowValidator",
]
