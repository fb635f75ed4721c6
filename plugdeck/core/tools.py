"""
Static registry of supported CLI tools.

Adding a tool means declaring its ToolDescriptor here and its schema
variant in plugdeck.core.schemas; the canonical model never changes.
"""

from pathlib import Path
from typing import Optional

from plugdeck.lib.typed_errors import UnknownToolError
from plugdeck.models.tool import Dialect, ToolDescriptor

TOOLS: tuple[ToolDescriptor, ...] = (
    ToolDescriptor("Claude", "~/.claude.json", Dialect.OBJECT_TREE, "claude"),
    ToolDescriptor("Gemini", "~/.gemini/settings.json", Dialect.OBJECT_TREE, "gemini"),
    ToolDescriptor("OpenCode", "~/.config/opencode/opencode.json", Dialect.OBJECT_TREE, "opencode"),
    ToolDescriptor("Qoder", "~/.qoder.json", Dialect.OBJECT_TREE, "qoder"),
    ToolDescriptor("CodeBuddy", "~/.codebuddy/settings.json", Dialect.OBJECT_TREE, "codebuddy"),
    ToolDescriptor("Copilot", "~/.copilot/config.json", Dialect.OBJECT_TREE, "copilot"),
    ToolDescriptor("Codex", "~/.codex/config.toml", Dialect.TABLE_TREE, "codex"),
)

DEFAULT_SKILL_SCOPE = "agents"

# Skill roots relative to the home directory, keyed by scope
SKILL_SCOPE_ROOTS: dict[str, tuple[str, ...]] = {
    "agents": (".agents", "skills"),
    "claude": (".claude", "skills"),
    "gemini": (".gemini", "skills"),
    "google": (".gemini", "skills"),
    "opencode": (".config", "opencode", "skills"),
    "qoder": (".qoder", "skills"),
    "codebuddy": (".codebuddy", "skills"),
    "copilot": (".copilot", "skills"),
    "codex": (".codex", "skills"),
}


def find_tool(tool_id: str) -> Optional[ToolDescriptor]:
    """Look up a tool by id, case-insensitively."""
    wanted = tool_id.lower()
    for tool in TOOLS:
        if tool.tool_id.lower() == wanted:
            return tool
    return None


def get_tool(tool_id: str) -> ToolDescriptor:
    """Look up a tool by id. Raises UnknownToolError if it is not declared."""
    tool = find_tool(tool_id)
    if tool is None:
        raise UnknownToolError(tool_id)
    return tool


def expand_home(path: str, home_dir: Path) -> Path:
    """Expand a leading '~' against home_dir."""
    if path == "~":
        return home_dir
    if path.startswith("~/") or path.startswith("~\\"):
        return home_dir / path[2:]
    return Path(path)


def skill_root(scope: str, home_dir: Path) -> Path:
    """Directory holding the skills of a scope; unknown scopes use the default."""
    parts = SKILL_SCOPE_ROOTS.get(scope.lower(), SKILL_SCOPE_ROOTS[DEFAULT_SKILL_SCOPE])
    return home_dir.joinpath(*parts)


def skill_scopes(tools: tuple[ToolDescriptor, ...] | list[ToolDescriptor] = TOOLS) -> list[str]:
    """The default scope followed by each tool's own scope, without duplicates."""
    scopes = [DEFAULT_SKILL_SCOPE]
    for tool in tools:
        if tool.skill_scope not in scopes:
            scopes.append(tool.skill_scope)
    return scopes
