"""Tests for body reference extraction."""

import pytest

from prompt_workflows.engine.body import BodyProcessor
from prompt_workflows.engine.exceptions import WorkflowParseError


@pytest.fixture
def processor() -> BodyProcessor:
    return BodyProcessor()


class TestParameterReferences:
    """{{identifier}} detection."""

    def test_valid_and_malformed_tokens(self, processor: BodyProcessor) -> None:
        content = processor.process("{{a}} {{b.c}} {invalid} {{}} {{1bad}}")

        assert content.parameter_references == frozenset({"a", "b.c"})

    def test_duplicates_collapse(self, processor: BodyProcessor) -> None:
        content = processor.process("{{name}} and again {{name}}")

        assert content.parameter_references == frozenset({"name"})

    def test_hyphen_and_underscore_names(self, processor: BodyProcessor) -> None:
        content = processor.process("{{_private}} {{project-path}} {{step_1.output}}")

        assert content.parameter_references == frozenset(
            {"_private", "project-path", "step_1.output"}
        )

    def test_spaces_inside_braces_not_matched(self, processor: BodyProcessor) -> None:
        content = processor.process("{{ spaced }}")

        assert content.parameter_references == frozenset()


class TestSubWorkflowReferences:
    """> Execute: blocks."""

    def test_execute_with_parameters(self, processor: BodyProcessor) -> None:
        body = '> Execute: ./x.md\n> Parameters:\n> - k: "v"\n> - n: 3'
        content = processor.process(body)

        assert len(content.sub_workflow_references) == 1
        reference = content.sub_workflow_references[0]
        assert reference.path == "./x.md"
        assert reference.parameters == {"k": "v", "n": "3"}
        assert reference.line_number == 1

    def test_execute_without_parameters(self, processor: BodyProcessor) -> None:
        content = processor.process("Intro\n\n> Execute: ./x.prompt.md\n\nAfter")

        reference = content.sub_workflow_references[0]
        assert reference.path == "./x.prompt.md"
        assert reference.parameters == {}
        assert reference.line_number == 3

    def test_multiple_references_in_order(self, processor: BodyProcessor) -> None:
        body = (
            "> Execute: ./first.prompt.md\n"
            "> Parameters:\n"
            "> - a: 1\n"
            "\n"
            "Middle text\n"
            "\n"
            "> Execute: ./second.prompt.md\n"
            "> Execute: ./third.prompt.md\n"
        )
        content = processor.process(body)

        paths = [reference.path for reference in content.sub_workflow_references]
        assert paths == ["./first.prompt.md", "./second.prompt.md", "./third.prompt.md"]
        assert content.sub_workflow_references[0].parameters == {"a": "1"}
        assert content.sub_workflow_references[1].parameters == {}

    def test_blank_line_ends_parameters(self, processor: BodyProcessor) -> None:
        body = "> Execute: ./x.md\n> Parameters:\n> - a: 1\n\n> - b: 2\n"
        content = processor.process(body)

        assert content.sub_workflow_references[0].parameters == {"a": "1"}

    def test_single_quotes_removed(self, processor: BodyProcessor) -> None:
        body = "> Execute: ./x.md\n> Parameters:\n> - mode: 'fast'\n> - raw: \"unbalanced'\n"
        content = processor.process(body)

        assert content.sub_workflow_references[0].parameters == {
            "mode": "fast",
            "raw": "\"unbalanced'",
        }

    def test_line_offset_applied(self, processor: BodyProcessor) -> None:
        content = processor.process("\n> Execute: ./x.md\n", line_offset=10)

        assert content.sub_workflow_references[0].line_number == 12

    @pytest.mark.parametrize("separator", ["\x0b", "\x0c", "\x1c", "\u2028"])
    def test_only_newlines_count_as_line_breaks(
        self, processor: BodyProcessor, separator: str
    ) -> None:
        content = processor.process(f"Intro{separator}more\n> Execute: ./x.md\n")

        assert content.sub_workflow_references[0].line_number == 2

    def test_crlf_body(self, processor: BodyProcessor) -> None:
        body = "Intro\r\n> Execute: ./x.md\r\n> Parameters:\r\n> - a: 1\r\n"
        content = processor.process(body)

        reference = content.sub_workflow_references[0]
        assert reference.line_number == 2
        assert reference.parameters == {"a": "1"}

    def test_execute_without_path_ignored(self, processor: BodyProcessor) -> None:
        content = processor.process("> Execute:\n")

        assert content.sub_workflow_references == []


class TestToolReferences:
    """Tool mentions normalized through the registry."""

    def test_separator_variants_normalized(self, processor: BodyProcessor) -> None:
        content = processor.process("Use File_System, then build-test, then GitOperations.")

        assert content.tool_references == frozenset({"file-system", "build-test", "git-operations"})

    def test_sub_workflow_not_detected_in_prose(self, processor: BodyProcessor) -> None:
        content = processor.process("This sub-workflow runs the sub_workflow step.")

        assert content.tool_references == frozenset()

    def test_no_tools(self, processor: BodyProcessor) -> None:
        assert processor.process("Plain prose.").tool_references == frozenset()


class TestProcess:
    """WorkflowContent assembly."""

    def test_raw_markdown_preserved(self, processor: BodyProcessor) -> None:
        body = "# Title\n\nSome *text*.\n"
        content = processor.process(body)

        assert content.raw_markdown == body

    def test_document_tree_built(self, processor: BodyProcessor) -> None:
        content = processor.process("# Title\n\nParagraph\n")

        node_types = [child.type for child in content.document.children]
        assert node_types == ["heading", "paragraph"]

    def test_document_not_serialized(self, processor: BodyProcessor) -> None:
        content = processor.process("# Title\n")

        assert "document" not in content.model_dump()

    def test_processing_failure_is_parse_error(self, processor: BodyProcessor) -> None:
        with pytest.raises(WorkflowParseError) as exc_info:
            processor.process(None)  # type: ignore[arg-type]

        assert exc_info.value.code == "BODY_PROCESSING_ERROR"
