"""
Registry of built-in tool identifiers.

One registry instance is shared by the body processor (which detects tool
mentions in prose) and the validator (which warns about unknown tools), so
the set of known tool names has exactly one definition.

Tool names are hyphen-case (e.g. "file-system"). Detection in prose is
case-insensitive and treats "_", "-" and no separator as interchangeable
between name parts, so "File_System", "file-system" and "filesystem" all
resolve to "file-system".
"""

import re

from pydantic import BaseModel, Field, PrivateAttr


class ToolDefinition(BaseModel):
    """
    Built-in tool known to the engine.

    Attributes:
        name: Canonical hyphen-case tool name
        description: Short human-readable description
        detect_in_body: Whether mentions of this tool in body prose are
            collected as tool references
    """

    name: str = Field(pattern=r"^[a-z0-9]+(-[a-z0-9]+)*$", min_length=1, max_length=100)
    description: str = ""
    detect_in_body: bool = True

    model_config = {"extra": "forbid", "frozen": True}

    def keyword_pattern(self) -> re.Pattern[str]:
        """Compile the prose pattern for this tool (separator-insensitive)."""
        parts = [re.escape(part) for part in self.name.split("-")]
        return re.compile(r"[_-]?".join(parts), re.IGNORECASE)


class ToolRegistry(BaseModel):
    """
    Registry of built-in tools.

    Example:
        registry = create_default_tool_registry()
        registry.has("file-system")               # True
        registry.detect("Use the File_System tool")  # {"file-system"}
    """

    _tools: dict[str, ToolDefinition] = PrivateAttr(default_factory=dict)
    _patterns: dict[str, re.Pattern[str]] = PrivateAttr(default_factory=dict)

    def register(self, tool: ToolDefinition) -> None:
        """Register a tool definition under its canonical name."""
        if tool.name in self._tools:
            raise ValueError(f"Tool already registered: {tool.name}")
        self._tools[tool.name] = tool
        if tool.detect_in_body:
            self._patterns[tool.name] = tool.keyword_pattern()

    def get(self, name: str) -> ToolDefinition:
        """Get tool definition by canonical name."""
        if name not in self._tools:
            available = sorted(self._tools.keys())
            raise KeyError(f"Unknown tool: {name}. Available: {available}")
        return self._tools[name]

    def has(self, name: str) -> bool:
        """Check if a tool name is known."""
        return name in self._tools

    def list_names(self) -> list[str]:
        """List known tool names, sorted."""
        return sorted(self._tools.keys())

    def detect(self, text: str) -> set[str]:
        """
        Find tool mentions in free-form text.

        Every match is normalized to the canonical hyphen-case name. This is
        a heuristic signal only; the header's tools list stays authoritative.

        Args:
            text: Body text to scan

        Returns:
            Set of canonical tool names mentioned in the text
        """
        return {name for name, pattern in self._patterns.items() if pattern.search(text)}


def create_default_tool_registry() -> ToolRegistry:
    """Create a ToolRegistry with all built-in tools registered."""
    registry = ToolRegistry()
    for tool in (
        ToolDefinition(name="project-analysis", description="Analyze project structure"),
        ToolDefinition(name="build-test", description="Build projects and run tests"),
        ToolDefinition(name="file-system", description="Read and write files"),
        ToolDefinition(name="git-operations", description="Inspect and modify git state"),
        ToolDefinition(name="document-generation", description="Generate documentation"),
        # Sub-workflows are declared with "> Execute:" blocks, not prose mentions
        ToolDefinition(
            name="sub-workflow",
            description="Execute another workflow document",
            detect_in_body=False,
        ),
    ):
        registry.register(tool)
    return registry


__all__ = ["ToolDefinition", "ToolRegistry", "create_default_tool_registry"]
