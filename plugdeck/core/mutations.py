"""
Mutation engine: install and uninstall catalog entries.

Each call is one sequential read-modify-write of a single target file.
There is no rollback journal and no file lock: if the final write fails
the previous content stays on disk, and a concurrent out-of-process edit
between read and write is lost (last writer wins).
"""

import logging
from typing import Optional

from plugdeck.core import formats, schemas
from plugdeck.core.host import Host
from plugdeck.core.tools import DEFAULT_SKILL_SCOPE
from plugdeck.lib.typed_errors import (
    InstallError,
    InstallErrorReason,
    ParseError,
    ProbeError,
    UninstallError,
    UninstallErrorReason,
)
from plugdeck.models.catalog import CatalogEntry, PluginKind
from plugdeck.models.extension import ExtensionRecord
from plugdeck.models.tool import ToolDescriptor

logger = logging.getLogger(__name__)


def derive_record(entry: CatalogEntry, tool: ToolDescriptor) -> ExtensionRecord:
    """
    Build the record an MCP entry installs as.

    The launch spec wins. Without one, an "npx <package> ..." url is split
    on whitespace; any other url is used as the bare command.

    Raises:
        InstallError: MISSING_COMMAND if there is neither spec nor url
    """
    if entry.spec and entry.spec.command:
        return ExtensionRecord(
            tool_id=tool.tool_id,
            key=entry.key,
            command=entry.spec.command,
            args=list(entry.spec.args),
            env=dict(entry.spec.env) if entry.spec.env else None,
        )

    url = (entry.url or "").strip()
    parts = url.split()
    if parts and parts[0] == "npx":
        return ExtensionRecord(tool_id=tool.tool_id, key=entry.key, command="npx", args=parts[1:])
    if url:
        return ExtensionRecord(tool_id=tool.tool_id, key=entry.key, command=url, args=[])

    raise InstallError(InstallErrorReason.MISSING_COMMAND, entry.key, tool.tool_id)


class MutationEngine:
    """Applies install/uninstall of catalog entries through a Host."""

    def __init__(self, host: Host, skill_scope: str = DEFAULT_SKILL_SCOPE):
        self.host = host
        self.skill_scope = skill_scope

    async def install(
        self, entry: CatalogEntry, tool: ToolDescriptor, verify: bool = False
    ) -> Optional[ExtensionRecord]:
        """
        Install a catalog entry.

        MCP entries are written into the tool's config file and the written
        record is returned. Skill entries are cloned into the skill scope
        and None is returned.

        Args:
            entry: Catalog entry to install
            tool: Target tool for MCP entries
            verify: Probe the server after writing it

        Raises:
            InstallError: With the reason, the entry key and the tool id
        """
        if entry.kind == PluginKind.SKILL:
            await self._install_skill(entry, tool)
            return None
        if entry.kind != PluginKind.MCP:
            raise InstallError(
                InstallErrorReason.UNSUPPORTED_KIND, entry.key, tool.tool_id,
                f"{entry.kind.value} plugins are not installable",
            )

        record = derive_record(entry, tool)

        try:
            content = await self.host.read_config_file(tool.config_path)
            tree = formats.parse(content, tool.dialect, tool.config_path)
            schemas.inject_server(tree, tool.tool_id, record)
        except (ParseError, OSError, ValueError) as e:
            raise InstallError(
                InstallErrorReason.INVALID_CONFIG, entry.key, tool.tool_id, str(e)
            ) from e

        await self._write(
            entry, tool, formats.serialize(tree, tool.dialect),
            InstallError, InstallErrorReason.WRITE_FAILED,
        )
        logger.info(f"Installed MCP server '{record.key}' into {tool.tool_id} ({tool.config_path})")

        if verify:
            try:
                capabilities = await self.host.probe_server_liveness(
                    record.command, record.args, record.env
                )
            except ProbeError as e:
                raise InstallError(
                    InstallErrorReason.PROBE_UNAVAILABLE, entry.key, tool.tool_id, str(e)
                ) from e
            logger.info(f"MCP server '{record.key}' answered with {len(capabilities)} tools")

        return record

    async def uninstall(self, entry: CatalogEntry, tool: ToolDescriptor) -> None:
        """
        Uninstall a catalog entry.

        Removing an MCP server that is not declared (or whose config file
        does not exist) succeeds without writing anything.

        Raises:
            UninstallError: With the reason, the entry key and the tool id
        """
        if entry.kind == PluginKind.SKILL:
            await self._uninstall_skill(entry, tool)
            return
        if entry.kind != PluginKind.MCP:
            logger.debug(f"Nothing to uninstall for {entry.kind.value} plugin '{entry.key}'")
            return

        try:
            content = await self.host.read_config_file(tool.config_path)
            if not content.strip():
                logger.debug(f"{tool.config_path} does not exist, nothing to remove")
                return
            tree = formats.parse(content, tool.dialect, tool.config_path)
            if not schemas.has_server(tree, tool.tool_id, entry.key):
                logger.debug(f"'{entry.key}' is not declared in {tool.tool_id}, nothing to remove")
                return
            schemas.remove_server(tree, tool.tool_id, entry.key)
        except (ParseError, OSError, ValueError) as e:
            raise UninstallError(
                UninstallErrorReason.INVALID_CONFIG, entry.key, tool.tool_id, str(e)
            ) from e

        await self._write(
            entry, tool, formats.serialize(tree, tool.dialect),
            UninstallError, UninstallErrorReason.WRITE_FAILED,
        )
        logger.info(f"Removed MCP server '{entry.key}' from {tool.tool_id} ({tool.config_path})")

    async def _write(self, entry, tool, content, error_cls, reason) -> None:
        try:
            await self.host.write_config_file(tool.config_path, content)
        except Exception as e:
            raise error_cls(reason, entry.key, tool.tool_id, str(e)) from e

    async def _install_skill(self, entry: CatalogEntry, tool: ToolDescriptor) -> None:
        url = entry.clone_url()
        if not url:
            raise InstallError(
                InstallErrorReason.MISSING_COMMAND, entry.key, tool.tool_id,
                "skill has neither url nor repo",
            )
        try:
            path = await self.host.install_skill_from_source(url, entry.key, self.skill_scope)
        except Exception as e:
            raise InstallError(
                InstallErrorReason.WRITE_FAILED, entry.key, tool.tool_id, str(e)
            ) from e
        logger.info(f"Installed skill '{entry.key}' at {path}")

    async def _uninstall_skill(self, entry: CatalogEntry, tool: ToolDescriptor) -> None:
        try:
            skills = await self.host.list_installed_skills(self.skill_scope)
        except Exception as e:
            raise UninstallError(
                UninstallErrorReason.NOT_FOUND, entry.key, tool.tool_id, str(e)
            ) from e

        candidates = [entry.key]
        basename = entry.repo_basename()
        if basename and basename != entry.key:
            candidates.append(basename)

        target = next(
            (skill for name in candidates for skill in skills if skill.name == name), None
        )
        if target is None:
            raise UninstallError(UninstallErrorReason.NOT_FOUND, entry.key, tool.tool_id)

        try:
            await self.host.remove_directory(target.path)
        except Exception as e:
            raise UninstallError(
                UninstallErrorReason.WRITE_FAILED, entry.key, tool.tool_id, str(e)
            ) from e
        logger.info(f"Uninstalled skill '{entry.key}' from {target.path}")
