"""
Tool descriptor models.

One ToolDescriptor per supported CLI tool, declared once in
plugdeck.core.tools and never persisted.
"""

from dataclasses import dataclass
from enum import Enum


class Dialect(str, Enum):
    """Serialization dialect of a tool's config file."""

    OBJECT_TREE = "object_tree"  # JSON
    TABLE_TREE = "table_tree"  # TOML


@dataclass(frozen=True)
class ToolDescriptor:
    """Where a CLI tool keeps its config and skills.

    Attributes:
        tool_id: Display name and lookup key (e.g. "Claude").
        config_path: Config file path; a leading "~" is the home directory.
        dialect: Serialization dialect of the config file.
        skill_scope: Scope key of the tool's skill directory.
    """

    tool_id: str
    config_path: str
    dialect: Dialect
    skill_scope: str
