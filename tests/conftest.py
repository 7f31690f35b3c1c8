"""Shared test configuration for prompt-workflows tests.

Provides:
- Sample workflow documents (full header, body-only, broken YAML)
- Parser and validator instances
- Resume state managers for both backends (parametrized)
- Execution context factory bound to a sample document
"""

from collections.abc import Callable
from pathlib import Path

import pytest

from prompt_workflows.engine.compatibility import compute_content_hash
from prompt_workflows.engine.execution_context import (
    WORKFLOW_FILE_VARIABLE,
    WORKFLOW_HASH_VARIABLE,
    WorkflowExecutionContext,
)
from prompt_workflows.engine.parser import WorkflowParser
from prompt_workflows.engine.resume_file_store import FileResumeStateManager
from prompt_workflows.engine.resume_state import ConversationMessage
from prompt_workflows.engine.resume_store import InMemoryResumeStateManager, ResumeStateManager

FULL_DOCUMENT = """---
name: code-review
model: openai/gpt-4o
tools: [project-analysis, file-system]
config:
  temperature: 0.7
  maxOutputTokens: 4000
  topP: 0.9
  stopSequences: ["END"]
input:
  schema:
    project_path:
      type: string
      description: Project to review
    depth:
      type: integer
      default: 2
metadata:
  description: Review a project
  author: platform-team
  version: "1.0"
  tags: [review, quality]
prompt-workflows.mcp:
  - server: filesystem-mcp
    version: "1.0.0"
    config:
      root: ./src
prompt-workflows.sub-workflows:
  - name: analyze
    path: ./analyze.prompt.md
    parameters:
      project_path: "{{project_path}}"
  - name: report
    path: ./report.prompt.md
    depends_on: [analyze]
prompt-workflows.resume:
  checkpoint_frequency: 2
  retention_days: 3
prompt-workflows.error-handling:
  retry_attempts: 3
  backoff_strategy: exponential
---
# Code review

Review the project at {{project_path}} up to depth {{depth}}.
Use the file_system tool to read sources.

> Execute: ./analyze.prompt.md
> Parameters:
> - project_path: "{{project_path}}"
> - depth: 3

Summarize the findings.
"""

BODY_ONLY_DOCUMENT = "just body text"


@pytest.fixture
def full_document() -> str:
    """Workflow document exercising every header section."""
    return FULL_DOCUMENT


@pytest.fixture
def parser() -> WorkflowParser:
    """Parser with the default tool registry."""
    return WorkflowParser()


@pytest.fixture
def workflow_file(tmp_path: Path) -> Path:
    """FULL_DOCUMENT written to a *.prompt.md file."""
    path = tmp_path / "code-review.prompt.md"
    path.write_text(FULL_DOCUMENT, encoding="utf-8")
    return path


@pytest.fixture
def resume_dir(tmp_path: Path) -> Path:
    """Directory for file-backed resume state."""
    return tmp_path / "resume"


@pytest.fixture(params=["memory", "file"])
def manager(request: pytest.FixtureRequest, resume_dir: Path) -> ResumeStateManager:
    """Resume state manager, run once per backend."""
    if request.param == "memory":
        return InMemoryResumeStateManager()
    return FileResumeStateManager(resume_dir)


@pytest.fixture
def make_context() -> Callable[..., WorkflowExecutionContext]:
    """Factory for execution contexts bound to FULL_DOCUMENT."""

    def _make(current_step: int = 0, **variables: object) -> WorkflowExecutionContext:
        context = WorkflowExecutionContext(current_step=current_step)
        context.set_variable(WORKFLOW_FILE_VARIABLE, "code-review.prompt.md")
        context.set_variable(WORKFLOW_HASH_VARIABLE, compute_content_hash(FULL_DOCUMENT))
        for name, value in variables.items():
            context.set_variable(name, value)
        return context

    return _make


@pytest.fixture
def conversation() -> list[ConversationMessage]:
    """Short transcript with every standard role."""
    return [
        ConversationMessage(role="system", content="You review code."),
        ConversationMessage(role="user", content="Review ./src"),
        ConversationMessage(role="assistant", content="Starting analysis."),
    ]
