"""
Catalog models.

A CatalogEntry is either a curated (built-in) plugin or a custom entry
authored by the user. Custom entries are persisted with camelCase keys.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from plugdeck.models.extension import ExtensionSpec


class PluginKind(str, Enum):
    MCP = "mcp"
    SKILL = "skill"
    WORKFLOW = "workflow"


class CatalogEntry(BaseModel):
    """A known plugin, curated or custom."""

    key: str
    kind: PluginKind = Field(default=PluginKind.MCP, alias="type")
    name: Optional[str] = None
    desc: Optional[str] = None
    repo: Optional[str] = None  # "owner/name" on GitHub
    url: Optional[str] = None  # Clone URL, or an "npx <package>" command line
    docs_url: Optional[str] = Field(default=None, alias="docsUrl")
    recommended_tool: Optional[str] = Field(default=None, alias="recommendedTool")
    spec: Optional[ExtensionSpec] = None
    is_custom: bool = Field(default=False, alias="isCustom")

    model_config = {"populate_by_name": True}

    def display_name(self) -> str:
        return self.name or self.key

    def repo_basename(self) -> Optional[str]:
        """Last path segment of the repo, used as the on-disk skill name fallback."""
        if not self.repo:
            return None
        return self.repo.rstrip("/").split("/")[-1] or None

    def clone_url(self) -> str:
        """Git URL for skill installs: the explicit url, else the GitHub repo."""
        if self.url:
            return self.url
        if self.repo:
            return f"https://github.com/{self.repo}.git"
        return ""

    def docs_link(self) -> Optional[str]:
        """Documentation URL: explicit docs, then url, then the GitHub page."""
        if self.docs_url:
            return self.docs_url
        if self.url:
            return self.url
        if self.repo:
            return f"https://github.com/{self.repo}"
        return None

    def to_store(self) -> dict:
        """Serialize for the custom catalog store, skipping unset fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True, exclude_unset=True)
