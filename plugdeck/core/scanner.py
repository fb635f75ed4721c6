"""
Installed-state scanner.

Installed state is never cached: every scan re-reads each tool's config
file and lists the skill directories. One tool failing (unreadable file,
malformed syntax) is logged and contributes nothing; the scan always
completes.
"""

import asyncio
import logging
from collections.abc import Sequence
from typing import Optional

from plugdeck.core import formats, schemas
from plugdeck.core.host import Host
from plugdeck.core.tools import TOOLS, skill_scopes
from plugdeck.models.extension import ExtensionRecord
from plugdeck.models.tool import ToolDescriptor

logger = logging.getLogger(__name__)


async def read_servers(host: Host, tool: ToolDescriptor) -> list[ExtensionRecord]:
    """
    Read and normalize one tool's MCP servers.

    Raises:
        ParseError: If the tool's config file is malformed
    """
    content = await host.read_config_file(tool.config_path)
    tree = formats.parse(content, tool.dialect, tool.config_path)
    return schemas.extract_servers(tree, tool.tool_id)


async def _read_servers_isolated(host: Host, tool: ToolDescriptor) -> list[ExtensionRecord]:
    try:
        return await read_servers(host, tool)
    except Exception as e:
        logger.warning(f"Failed to parse config for {tool.tool_id} ({tool.config_path}): {e}")
        return []


async def collect_servers(
    host: Host, tools: Sequence[ToolDescriptor] = TOOLS
) -> list[ExtensionRecord]:
    """All MCP servers across tools, in tool order. Failing tools are skipped."""
    results = await asyncio.gather(*(_read_servers_isolated(host, tool) for tool in tools))
    return [record for records in results for record in records]


async def _skill_names(host: Host, scope: str) -> set[str]:
    try:
        return {skill.name for skill in await host.list_installed_skills(scope)}
    except Exception as e:
        logger.warning(f"Failed to list skills for scope '{scope}': {e}")
        return set()


async def scan(
    host: Host,
    tools: Sequence[ToolDescriptor] = TOOLS,
    scopes: Optional[Sequence[str]] = None,
) -> set[str]:
    """
    Compute the installed set: every server key declared by any tool plus
    every installed skill name.

    Args:
        host: Collaborator used for all reads
        tools: Tools whose config files are scanned
        scopes: Skill scopes to list (default scope plus each tool's scope)
    """
    if scopes is None:
        scopes = skill_scopes(tools)

    server_task = collect_servers(host, tools)
    skill_tasks = [_skill_names(host, scope) for scope in scopes]
    records, *skill_sets = await asyncio.gather(server_task, *skill_tasks)

    installed = {record.key for record in records}
    for names in skill_sets:
        installed |= names

    logger.debug(f"Scan found {len(installed)} installed keys across {len(tools)} tools")
    return installed
