"""
Schema normalizer: per-tool MCP server declarations <-> ExtensionRecord.

Tools differ in two ways only:
1. The key of the server collection ("mcpServers", "mcp" or the TOML
   table "mcp_servers").
2. The shape of one server. Most tools use
   {command: str, args: [str], env: {}}; OpenCode uses
   {type: "local", command: [executable, *args], environment: {}}.

Each tool maps to one named SchemaVariant; the functions below dispatch on
the variant, never on the tool.
"""

import logging
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

import tomlkit
from tomlkit.items import InlineTable

from plugdeck.lib.typed_errors import ParseError, UnknownToolError
from plugdeck.models.extension import ExtensionRecord

logger = logging.getLogger(__name__)


class ServerShape(str, Enum):
    COMMAND_ARGS = "command_args"
    COMMAND_ARRAY = "command_array"


@dataclass(frozen=True)
class SchemaVariant:
    name: str
    container_key: str
    shape: ServerShape


MCP_SERVERS = SchemaVariant("mcp_servers_object", "mcpServers", ServerShape.COMMAND_ARGS)
MCP_OBJECT = SchemaVariant("mcp_object", "mcp", ServerShape.COMMAND_ARGS)
MCP_LOCAL_ARRAY = SchemaVariant("mcp_local_array", "mcp", ServerShape.COMMAND_ARRAY)
MCP_SERVERS_TABLE = SchemaVariant("mcp_servers_table", "mcp_servers", ServerShape.COMMAND_ARGS)

TOOL_SCHEMAS: dict[str, SchemaVariant] = {
    "Claude": MCP_SERVERS,
    "Gemini": MCP_SERVERS,
    "OpenCode": MCP_LOCAL_ARRAY,
    "Qoder": MCP_OBJECT,
    "CodeBuddy": MCP_SERVERS,
    "Copilot": MCP_SERVERS,
    "Codex": MCP_SERVERS_TABLE,
}


def schema_for(tool_id: str) -> SchemaVariant:
    """Get the schema variant of a tool. Raises UnknownToolError if undeclared."""
    variant = TOOL_SCHEMAS.get(tool_id)
    if variant is None:
        raise UnknownToolError(tool_id)
    return variant


def _plain(value: Any) -> Any:
    """Strip tomlkit wrappers so values compare and copy like builtins."""
    unwrap = getattr(value, "unwrap", None)
    return unwrap() if callable(unwrap) else value


def _env_map(value: Any) -> Optional[dict[str, str]]:
    if not isinstance(value, Mapping):
        return None
    return {str(k): str(v) for k, v in value.items()}


def _to_record(
    variant: SchemaVariant, tool_id: str, key: str, raw: Any
) -> Optional[ExtensionRecord]:
    """Normalize one raw server entry, or None if it has no usable command."""
    if not isinstance(raw, Mapping):
        return None

    if variant.shape == ServerShape.COMMAND_ARRAY:
        command = raw.get("command")
        if not isinstance(command, list) or not command or not command[0]:
            return None
        return ExtensionRecord(
            tool_id=tool_id,
            key=key,
            command=str(command[0]),
            args=[str(a) for a in command[1:]],
            env=_env_map(raw.get("environment")),
        )

    command = raw.get("command")
    if not isinstance(command, str) or not command:
        return None
    args = raw.get("args")
    return ExtensionRecord(
        tool_id=tool_id,
        key=key,
        command=command,
        args=[str(a) for a in args] if isinstance(args, list) else [],
        env=_env_map(raw.get("env")),
    )


def extract_servers(tree: Mapping[str, Any], tool_id: str) -> list[ExtensionRecord]:
    """
    Extract the MCP servers declared in a tool's parsed config.

    Entries without a usable command (empty string, empty array, not a
    mapping) are placeholders or disabled servers; they are skipped.
    """
    variant = schema_for(tool_id)
    container = tree.get(variant.container_key)
    if container is None:
        return []
    if not isinstance(container, Mapping):
        logger.debug(f"{tool_id}: '{variant.container_key}' is not a mapping, ignoring")
        return []

    records = []
    for key, raw in container.items():
        record = _to_record(variant, tool_id, str(key), _plain(raw))
        if record is None:
            logger.debug(f"{tool_id}: skipping MCP server '{key}' without a command")
            continue
        records.append(record)
    return records


def _server_body(
    variant: SchemaVariant, record: ExtensionRecord, toml: bool, inline: bool = False
) -> Any:
    """Render a record in the tool's native shape. Inline TOML containers get inline bodies."""
    env = dict(record.env or {})

    if variant.shape == ServerShape.COMMAND_ARRAY:
        return {
            "type": "local",
            "command": [record.command, *record.args],
            "environment": env,
        }

    if toml:
        body = tomlkit.inline_table() if inline else tomlkit.table()
        body.add("command", record.command)
        body.add("args", list(record.args))
        if env:
            env_table = tomlkit.inline_table()
            env_table.update(env)
            body.add("env", env_table)
        return body

    return {"command": record.command, "args": list(record.args), "env": env}


def inject_server(
    tree: MutableMapping[str, Any], tool_id: str, record: ExtensionRecord
) -> MutableMapping[str, Any]:
    """
    Insert or overwrite one server entry keyed by record.key.

    The container is created when absent. The tree is modified in place and
    returned; every other key keeps its value and position.

    Raises:
        ParseError: If the container key holds something other than a mapping
    """
    variant = schema_for(tool_id)
    toml = isinstance(tree, tomlkit.TOMLDocument)

    container = tree.get(variant.container_key)
    if container is None:
        container = tomlkit.table(is_super_table=True) if toml else {}
        tree[variant.container_key] = container
        container = tree[variant.container_key]
    elif not isinstance(container, MutableMapping):
        raise ParseError(
            f"'{variant.container_key}' is a {type(_plain(container)).__name__}, expected a mapping"
        )

    container[record.key] = _server_body(
        variant, record, toml, inline=isinstance(container, InlineTable)
    )
    return tree


def remove_server(
    tree: MutableMapping[str, Any], tool_id: str, key: str
) -> MutableMapping[str, Any]:
    """Remove one server entry. Absent entries are not an error."""
    variant = schema_for(tool_id)
    container = tree.get(variant.container_key)
    if isinstance(container, MutableMapping) and key in container:
        del container[key]
    return tree


def has_server(tree: Mapping[str, Any], tool_id: str, key: str) -> bool:
    """Whether the raw container holds an entry under key, usable or not."""
    variant = schema_for(tool_id)
    container = tree.get(variant.container_key)
    return isinstance(container, Mapping) and key in container
