"""
Canonical extension models.

Every tool's MCP server declaration is normalized into an ExtensionRecord,
whatever its on-disk shape. Skills are directories described by SkillRecord.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ExtensionSpec(BaseModel):
    """How to launch an MCP server."""

    command: str
    args: list[str] = Field(default_factory=list)
    env: Optional[dict[str, str]] = None


class ExtensionRecord(BaseModel):
    """An MCP server declared in one tool's config file."""

    tool_id: str
    key: str
    command: str
    args: list[str] = Field(default_factory=list)
    env: Optional[dict[str, str]] = None


class SkillRecord(BaseModel):
    """An installed skill directory with its resolved metadata."""

    path: str  # Absolute install directory
    name: str
    description: Optional[str] = None
    version: Optional[str] = None
    author: Optional[str] = None


class InstalledSkill(BaseModel):
    """A skill directory as reported by the skill lister."""

    path: str
    name: str


class ToolCapability(BaseModel):
    """One capability listed by a probed MCP server."""

    name: str
    description: Optional[str] = None
