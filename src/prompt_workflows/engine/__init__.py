"""Workflow document engine: parsing, validation and resumable execution state.

Key Components:

- WorkflowParser: Full pipeline from document text to an immutable Workflow
- split_header: Header/body splitting of workflow documents
- deserialize_header: Generic, typed and extension passes over the YAML header
- BodyProcessor: Parameter, sub-workflow and tool references in the body
- ToolRegistry: Single source of known tool names (body detection + validation)
- WorkflowValidator: Semantic checks returning ValidationResult (never raises)
- LoadResult: Error monad for the non-raising loader API
- ResumeStateManager: Checkpoint contract with in-memory and file backends
- ResumeGate: Compatibility gate and run selection for resumption
- ResumeConfig: Resume configuration and backend factory
- Orchestrator: Boundary for executing workflows (implemented elsewhere)

Architecture:
- Parse failures raise WorkflowParseError; validation outcomes are returned
- Workflow.content_hash and the resume subsystem share compute_content_hash
- Resume operations are async; file I/O runs in the thread pool executor
- One writer per run id, enforced in-process by per-run asyncio.Lock
"""

from .body import PARAMETER_PATTERN, BodyProcessor
from .compatibility import ResumeCandidate, ResumeGate, compute_content_hash, hashes_match
from .deserializer import DeserializedHeader, deserialize_header
from .exceptions import (
    AmbiguousResumeStateError,
    IncompatibleResumeStateError,
    ResumeError,
    ResumeStateNotFoundError,
    WorkflowParseError,
    WorkflowValidationError,
)
from .execution_context import (
    WORKFLOW_FILE_VARIABLE,
    WORKFLOW_HASH_VARIABLE,
    StepExecutionHistory,
    StepProgress,
    WorkflowExecutionContext,
)
from .frontmatter import HeaderSplit, split_header
from .load_result import LoadResult, LoadStatus
from .loader import discover_workflows, load_workflow_from_file, load_workflow_from_text
from .orchestrator import ExecutionResult, Orchestrator, ResumableOrchestrator
from .parser import WORKFLOW_FILE_SUFFIX, WorkflowParser, is_workflow_file, read_document_text
from .resume_file_store import FileResumeStateManager
from .resume_state import (
    ConversationMessage,
    ExecutionContextSnapshot,
    ResumeState,
    ResumeStatus,
    RunMetadata,
)
from .resume_store import InMemoryResumeStateManager, ResumeStateManager
from .schema import (
    EXTENSION_PREFIX,
    ErrorHandlingConfig,
    InputParameterSchema,
    McpServerConfig,
    OutputFieldSchema,
    ResumePolicy,
    SubWorkflowConfig,
    SubWorkflowReference,
    Workflow,
    WorkflowConfig,
    WorkflowContent,
    WorkflowExtensions,
    WorkflowInput,
    WorkflowMetadata,
    WorkflowOutput,
)
from .state_config import ResumeConfig, create_resume_state_manager
from .tool_registry import ToolDefinition, ToolRegistry, create_default_tool_registry
from .validation import (
    ValidationIssue,
    ValidationResult,
    ValidationSeverity,
    WorkflowValidator,
)

__all__ = [
    # Parsing
    "WorkflowParser",
    "WORKFLOW_FILE_SUFFIX",
    "is_workflow_file",
    "read_document_text",
    "HeaderSplit",
    "split_header",
    "DeserializedHeader",
    "deserialize_header",
    "PARAMETER_PATTERN",
    "BodyProcessor",
    "ToolDefinition",
    "ToolRegistry",
    "create_default_tool_registry",
    # Model
    "EXTENSION_PREFIX",
    "Workflow",
    "WorkflowConfig",
    "WorkflowInput",
    "InputParameterSchema",
    "WorkflowOutput",
    "OutputFieldSchema",
    "WorkflowMetadata",
    "WorkflowExtensions",
    "McpServerConfig",
    "SubWorkflowConfig",
    "ResumePolicy",
    "ErrorHandlingConfig",
    "WorkflowContent",
    "SubWorkflowReference",
    # Validation
    "WorkflowValidator",
    "ValidationResult",
    "ValidationIssue",
    "ValidationSeverity",
    # Loading
    "LoadResult",
    "LoadStatus",
    "load_workflow_from_file",
    "load_workflow_from_text",
    "discover_workflows",
    # Execution state
    "WorkflowExecutionContext",
    "StepExecutionHistory",
    "StepProgress",
    "WORKFLOW_FILE_VARIABLE",
    "WORKFLOW_HASH_VARIABLE",
    # Resume
    "ResumeState",
    "ResumeStatus",
    "RunMetadata",
    "ConversationMessage",
    "ExecutionContextSnapshot",
    "ResumeStateManager",
    "InMemoryResumeStateManager",
    "FileResumeStateManager",
    "ResumeGate",
    "ResumeCandidate",
    "compute_content_hash",
    "hashes_match",
    "ResumeConfig",
    "create_resume_state_manager",
    # Orchestration
    "Orchestrator",
    "ResumableOrchestrator",
    "ExecutionResult",
    # Exceptions
    "WorkflowParseError",
    "WorkflowValidationError",
    "ResumeError",
    "ResumeStateNotFoundError",
    "IncompatibleResumeStateError",
    "AmbiguousResumeStateError",
]
