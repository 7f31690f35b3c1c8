"""Tests for WorkflowValidator."""

from unittest.mock import patch

import pytest

from prompt_workflows.engine.parser import WorkflowParser
from prompt_workflows.engine.validation import (
    ValidationResult,
    ValidationSeverity,
    WorkflowValidator,
)


def _validate(parser: WorkflowParser, text: str) -> ValidationResult:
    return parser.validate(parser.parse_content(text))


def _codes(issues: list) -> list[str]:
    return [issue.code for issue in issues]


class TestFullDocument:
    def test_full_document_is_valid(self, parser: WorkflowParser, full_document: str) -> None:
        result = _validate(parser, full_document)

        assert result.is_valid
        assert result.errors == []

    def test_body_only_document_is_valid(self, parser: WorkflowParser) -> None:
        result = _validate(parser, "just body text")

        assert result.is_valid
        assert result.warnings == []


class TestHeaderRules:
    def test_missing_name_with_header(self, parser: WorkflowParser) -> None:
        result = _validate(parser, "---\nmodel: gpt-4o\n---\nbody")

        assert not result.is_valid
        assert _codes(result.errors) == ["MISSING_NAME"]
        assert result.errors[0].field == "name"

    def test_blank_name_with_header(self, parser: WorkflowParser) -> None:
        result = _validate(parser, '---\nname: "  "\n---\nbody')

        assert _codes(result.errors) == ["MISSING_NAME"]

    def test_missing_content(self, parser: WorkflowParser) -> None:
        result = _validate(parser, "---\nname: x\n---\n   \n")

        assert _codes(result.errors) == ["MISSING_CONTENT"]


class TestConfigRanges:
    def test_temperature_out_of_range(self, parser: WorkflowParser) -> None:
        result = _validate(parser, "---\nname: x\nconfig:\n  temperature: 5.0\n---\nbody")

        assert len(result.errors) == 1
        assert "Temperature" in result.errors[0].message
        assert result.errors[0].code == "INVALID_TEMPERATURE"
        assert result.errors[0].field == "config.temperature"

    @pytest.mark.parametrize("temperature", ["0.0", "2.0", "1"])
    def test_temperature_bounds_inclusive(self, parser: WorkflowParser, temperature: str) -> None:
        result = _validate(
            parser, f"---\nname: x\nconfig:\n  temperature: {temperature}\n---\nbody"
        )

        assert result.is_valid

    @pytest.mark.parametrize(
        ("config", "code"),
        [
            ("maxOutputTokens: 0", "INVALID_MAX_OUTPUT_TOKENS"),
            ("topP: 1.5", "INVALID_TOP_P"),
            ("topP: -0.1", "INVALID_TOP_P"),
            ("topK: 0", "INVALID_TOP_K"),
        ],
    )
    def test_other_ranges(self, parser: WorkflowParser, config: str, code: str) -> None:
        result = _validate(parser, f"---\nname: x\nconfig:\n  {config}\n---\nbody")

        assert _codes(result.errors) == [code]

    def test_multiple_config_errors_reported_together(self, parser: WorkflowParser) -> None:
        result = _validate(
            parser, "---\nname: x\nconfig:\n  temperature: 3\n  topK: -1\n---\nbody"
        )

        assert _codes(result.errors) == ["INVALID_TEMPERATURE", "INVALID_TOP_K"]


class TestParameterRules:
    def test_references_without_schema(self, parser: WorkflowParser) -> None:
        result = _validate(parser, "---\nname: x\n---\nHello {{who}}")

        assert result.is_valid
        assert _codes(result.warnings) == ["MISSING_INPUT_SCHEMA"]

    def test_undefined_parameter_sorted(self, parser: WorkflowParser) -> None:
        text = (
            "---\nname: x\ninput:\n  schema:\n    known:\n      type: string\n---\n"
            "{{zeta}} {{known}} {{alpha}}"
        )
        result = _validate(parser, text)

        assert result.is_valid
        assert _codes(result.warnings) == ["UNDEFINED_PARAMETER", "UNDEFINED_PARAMETER"]
        assert [warning.field for warning in result.warnings] == ["alpha", "zeta"]

    def test_defaults_without_schema(self, parser: WorkflowParser) -> None:
        result = _validate(parser, "---\nname: x\ninput:\n  default:\n    a: 1\n---\nbody")

        assert result.is_valid
        assert _codes(result.warnings) == ["DEFAULTS_WITHOUT_SCHEMA"]

    def test_conflicting_and_redundant_defaults(self, parser: WorkflowParser) -> None:
        text = (
            "---\nname: x\ninput:\n"
            "  default:\n    a: 1\n    b: same\n"
            "  schema:\n"
            "    a:\n      type: integer\n      default: 2\n"
            "    b:\n      type: string\n      default: same\n"
            "---\n{{a}} {{b}}"
        )
        result = _validate(parser, text)

        assert result.is_valid
        assert _codes(result.warnings) == ["CONFLICTING_DEFAULTS", "REDUNDANT_DEFAULTS"]
        assert "schema-level default takes precedence" in result.warnings[0].message


class TestToolRules:
    def test_unknown_tool_warning(self, parser: WorkflowParser) -> None:
        result = _validate(parser, "---\nname: x\ntools: [file-system, web-search]\n---\nbody")

        assert result.is_valid
        assert _codes(result.warnings) == ["UNKNOWN_TOOL"]
        assert "web-search" in result.warnings[0].message

    def test_body_mentions_do_not_warn(self, parser: WorkflowParser) -> None:
        result = _validate(parser, "---\nname: x\n---\nUse the file_system tool")

        assert result.warnings == []


class TestExtensionRules:
    def test_mcp_server_required(self, parser: WorkflowParser) -> None:
        text = "---\nname: x\nprompt-workflows.mcp:\n  - version: '1'\n---\nbody"
        result = _validate(parser, text)

        assert _codes(result.errors) == ["MISSING_MCP_SERVER"]

    def test_sub_workflow_path_required(self, parser: WorkflowParser) -> None:
        text = "---\nname: x\nprompt-workflows.sub-workflows:\n  - name: a\n---\nbody"
        result = _validate(parser, text)

        assert _codes(result.errors) == ["MISSING_SUBWORKFLOW_PATH"]

    def test_unknown_dependency_warning(self, parser: WorkflowParser) -> None:
        text = (
            "---\nname: x\nprompt-workflows.sub-workflows:\n"
            "  - name: a\n    path: ./a.prompt.md\n    depends_on: [missing]\n"
            "---\nbody"
        )
        result = _validate(parser, text)

        assert result.is_valid
        assert _codes(result.warnings) == ["UNKNOWN_SUBWORKFLOW_DEPENDENCY"]

    def test_unknown_extension_field_warning(self, parser: WorkflowParser) -> None:
        text = "---\nname: x\nprompt-workflows.telemetry: true\n---\nbody"
        result = _validate(parser, text)

        assert result.is_valid
        assert _codes(result.warnings) == ["UNKNOWN_EXTENSION_FIELD"]
        assert result.warnings[0].field == "prompt-workflows.telemetry"


class TestValidatorNeverRaises:
    def test_unexpected_exception_becomes_critical_error(
        self, parser: WorkflowParser, full_document: str
    ) -> None:
        workflow = parser.parse_content(full_document)
        validator = WorkflowValidator()

        with patch.object(validator, "_check_tools", side_effect=RuntimeError("boom")):
            result = validator.validate(workflow)

        assert not result.is_valid
        assert result.errors[-1].code == "VALIDATION_EXCEPTION"
        assert result.errors[-1].severity is ValidationSeverity.CRITICAL
        assert "boom" in result.errors[-1].message


class TestValidationResult:
    def test_warnings_do_not_affect_validity(self) -> None:
        result = ValidationResult()
        result.add_warning("advice", "SOME_WARNING")

        assert result.is_valid

    def test_critical_factory(self) -> None:
        result = ValidationResult.critical("broken", "YAML_PARSE_ERROR", line=2, column=5)

        assert not result.is_valid
        error = result.errors[0]
        assert (error.code, error.line, error.column) == ("YAML_PARSE_ERROR", 2, 5)
        assert error.severity is ValidationSeverity.CRITICAL
