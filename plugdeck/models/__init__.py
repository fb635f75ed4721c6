"""
Pydantic models and descriptors for plugdeck.
"""

from plugdeck.models.catalog import CatalogEntry, PluginKind
from plugdeck.models.extension import (
    ExtensionRecord,
    ExtensionSpec,
    InstalledSkill,
    SkillRecord,
    ToolCapability,
)
from plugdeck.models.tool import Dialect, ToolDescriptor

__all__ = [
    # Catalog
    "CatalogEntry",
    "PluginKind",
    # Extensions
    "ExtensionRecord",
    "ExtensionSpec",
    "InstalledSkill",
    "SkillRecord",
    "ToolCapability",
    # Tools
    "Dialect",
    "ToolDescriptor",
]
