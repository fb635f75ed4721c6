"""
Plugin manager: the engine's entry point for the CLI.

Holds the merged catalog, resolves target tools, refuses re-entrant
operations on a key that is still busy, and rescans installed state after
every successful mutation.
"""

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Optional

from plugdeck.config import Settings
from plugdeck.core import skills
from plugdeck.core.catalog import (
    CURATED_CATALOG,
    CustomCatalogStore,
    filter_catalog,
    find_entry,
    is_installed,
    merge,
)
from plugdeck.core.host import Host, LocalHost
from plugdeck.core.mutations import MutationEngine
from plugdeck.core.scanner import collect_servers, scan
from plugdeck.core.tools import TOOLS, find_tool
from plugdeck.lib.typed_errors import (
    InstallError,
    InstallErrorReason,
    OperationInProgressError,
    UninstallError,
    UninstallErrorReason,
    UnknownPluginError,
)
from plugdeck.models.catalog import CatalogEntry, PluginKind
from plugdeck.models.extension import ExtensionRecord, SkillRecord, ToolCapability
from plugdeck.models.tool import ToolDescriptor

logger = logging.getLogger(__name__)


@dataclass
class OperationResult:
    """Outcome of an install or uninstall, with the fresh installed set."""

    key: str
    tool_id: str
    installed: set[str] = field(default_factory=set)
    record: Optional[ExtensionRecord] = None


class PluginManager:
    def __init__(
        self,
        host: Host,
        store: CustomCatalogStore,
        default_tool: str = "Claude",
        skill_scope: str = "agents",
        tools: Sequence[ToolDescriptor] = TOOLS,
        curated: Sequence[CatalogEntry] = CURATED_CATALOG,
    ):
        self.host = host
        self.store = store
        self.default_tool = default_tool
        self.skill_scope = skill_scope
        self.tools = tuple(tools)
        self.curated = tuple(curated)
        self.engine = MutationEngine(host, skill_scope)
        self._busy: set[str] = set()

    @classmethod
    def from_settings(cls, settings: Settings) -> "PluginManager":
        """Build a manager on the local filesystem with the stored custom catalog."""
        store = CustomCatalogStore.in_dir(settings.store_dir)
        store.load()
        host = LocalHost(settings.home_dir, git_timeout=settings.git_timeout)
        return cls(
            host,
            store,
            default_tool=settings.default_tool,
            skill_scope=settings.skill_scope,
        )

    # --- Catalog ---

    def catalog(self) -> list[CatalogEntry]:
        return merge(self.curated, self.store.entries)

    def get_entry(self, key: str) -> CatalogEntry:
        entry = find_entry(self.catalog(), key)
        if entry is None:
            raise UnknownPluginError(key)
        return entry

    async def catalog_view(self, category: str = "all") -> list[tuple[CatalogEntry, bool]]:
        """Catalog entries of a category paired with their installed state."""
        installed = await self.installed()
        return [
            (entry, is_installed(entry, installed))
            for entry in filter_catalog(self.catalog(), installed, category)
        ]

    def save_custom(self, values: dict[str, Any], editing_key: Optional[str] = None) -> CatalogEntry:
        return self.store.save_entry(values, editing_key)

    def remove_custom(self, key: str) -> bool:
        return self.store.remove(key)

    def docs_url(self, key: str) -> Optional[str]:
        return self.get_entry(key).docs_link()

    def open_docs(self, key: str) -> Optional[str]:
        """Open an entry's documentation in the browser; returns the URL opened."""
        url = self.docs_url(key)
        if url:
            self.host.open_external_url(url)
        return url

    # --- Installed state ---

    async def installed(self) -> set[str]:
        return await scan(self.host, self.tools)

    async def list_servers(self) -> list[ExtensionRecord]:
        return await collect_servers(self.host, self.tools)

    async def find_server(self, tool_id: str, key: str) -> Optional[ExtensionRecord]:
        for record in await self.list_servers():
            if record.tool_id.lower() == tool_id.lower() and record.key == key:
                return record
        return None

    async def inspect_server(self, record: ExtensionRecord) -> list[ToolCapability]:
        """Probe a declared server. ProbeError propagates with its message unchanged."""
        logger.info(f"Inspecting MCP server '{record.key}' from {record.tool_id}")
        return await self.host.probe_server_liveness(record.command, record.args, record.env)

    async def list_skills(self, scope: Optional[str] = None) -> list[SkillRecord]:
        return await skills.list_skills(self.host, scope or self.skill_scope)

    # --- Mutations ---

    def resolve_tool(self, entry: CatalogEntry, tool_id: Optional[str] = None) -> Optional[ToolDescriptor]:
        """Explicit tool, else the entry's recommended tool, else the default tool."""
        wanted = tool_id or entry.recommended_tool or self.default_tool
        tool = find_tool(wanted)
        if tool is None or tool not in self.tools:
            return None
        return tool

    @contextmanager
    def _busy_guard(self, key: str) -> Iterator[None]:
        if key in self._busy:
            raise OperationInProgressError(key)
        self._busy.add(key)
        try:
            yield
        finally:
            self._busy.discard(key)

    def is_busy(self, key: str) -> bool:
        return key in self._busy

    def _target(self, entry: CatalogEntry, tool_id: Optional[str]) -> Optional[ToolDescriptor]:
        tool = self.resolve_tool(entry, tool_id)
        if tool is None and entry.kind != PluginKind.MCP and tool_id is None:
            # Skills do not live in a tool's config file
            tool = find_tool(self.default_tool) or self.tools[0]
        return tool

    async def install(
        self, key: str, tool_id: Optional[str] = None, verify: bool = False
    ) -> OperationResult:
        """
        Install a catalog entry and rescan.

        Raises:
            UnknownPluginError: If no entry has this key
            OperationInProgressError: If the key is busy
            InstallError: If the install fails. A PROBE_UNAVAILABLE error
                carries the rescanned installed set in `installed`.
        """
        entry = self.get_entry(key)
        tool = self._target(entry, tool_id)
        if tool is None:
            raise InstallError(
                InstallErrorReason.TOOL_NOT_FOUND, entry.key,
                tool_id or entry.recommended_tool or self.default_tool,
            )

        with self._busy_guard(entry.key):
            try:
                record = await self.engine.install(entry, tool, verify=verify)
            except InstallError as e:
                if e.reason == InstallErrorReason.PROBE_UNAVAILABLE:
                    # The config was written before the probe failed
                    e.installed = await self.installed()
                raise
            installed = await self.installed()

        return OperationResult(entry.key, tool.tool_id, installed, record)

    async def uninstall(self, key: str, tool_id: Optional[str] = None) -> OperationResult:
        """
        Uninstall a catalog entry and rescan.

        Raises:
            UnknownPluginError: If no entry has this key
            OperationInProgressError: If the key is busy
            UninstallError: If the uninstall fails
        """
        entry = self.get_entry(key)
        tool = self._target(entry, tool_id)
        if tool is None:
            raise UninstallError(
                UninstallErrorReason.NOT_FOUND, entry.key,
                tool_id or entry.recommended_tool or self.default_tool,
                "unknown tool",
            )

        with self._busy_guard(entry.key):
            await self.engine.uninstall(entry, tool)
            installed = await self.installed()

        return OperationResult(entry.key, tool.tool_id, installed)
