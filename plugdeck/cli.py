"""
plugdeck CLI.

Usage:
    plugdeck catalog                         # All catalog entries with state
    plugdeck catalog --installed             # Installed entries only
    plugdeck install KEY [--tool T]          # Install an entry
    plugdeck install KEY --verify            # Install and probe the server
    plugdeck uninstall KEY [--tool T]        # Uninstall an entry
    plugdeck servers                         # MCP servers across all tools
    plugdeck inspect TOOL KEY                # Probe a server and list its tools
    plugdeck skills [--scope S]              # Installed skills with metadata
    plugdeck skill-show PATH                 # Print a skill's metadata file
    plugdeck custom add --name N --url U     # Add a custom entry
    plugdeck custom edit KEY [--name ...]    # Edit or override an entry
    plugdeck custom remove KEY               # Drop a custom entry / override
    plugdeck docs KEY                        # Open an entry's documentation
    plugdeck config show                     # Show current config
    plugdeck config set KEY VALUE            # Set a config value
    plugdeck config get KEY                  # Get a config value
"""

import argparse
import asyncio
import os
import sys
from typing import Any

from pydantic import ValidationError

from plugdeck.config import (
    CONFIG_KEYS,
    ENV_PREFIX,
    get_config_path,
    get_settings,
    load_yaml_config,
    save_yaml_config,
)
from plugdeck.core.manager import PluginManager
from plugdeck.core.skills import read_skill_document
from plugdeck.core.tools import TOOLS
from plugdeck.lib.logger import setup_logging
from plugdeck.lib.typed_errors import PlugdeckError, to_typed_error

TOOL_CHOICES = [tool.tool_id for tool in TOOLS]
KIND_CHOICES = ["mcp", "skill", "workflow"]


# --- Helpers ---


def _get_manager() -> PluginManager:
    return PluginManager.from_settings(get_settings())


def _fail(error: Exception) -> None:
    """Print a scoped one-line error and exit."""
    typed = to_typed_error(error)
    scope = ""
    if typed.plugin_key:
        scope = f" [{typed.plugin_key}" + (f" @ {typed.tool}]" if typed.tool else "]")
    print(f"Error{scope}: {typed.title}. {error}", file=sys.stderr)
    sys.exit(1)


def _run(coro: Any) -> Any:
    try:
        return asyncio.run(coro)
    except PlugdeckError as e:
        _fail(e)


def _custom_values(args: argparse.Namespace) -> dict[str, Any]:
    values: dict[str, Any] = {
        "name": args.name,
        "desc": args.desc,
        "url": args.url,
        "docsUrl": args.docs_url,
        "type": args.kind,
        "recommendedTool": args.tool,
        "repo": args.repo,
    }
    if args.command_line and args.command_line.split():
        command, *rest = args.command_line.split()
        values["spec"] = {"command": command, "args": rest}
    return values


# --- Catalog commands ---


def cmd_catalog(args: argparse.Namespace) -> None:
    """List catalog entries with their installed state."""
    manager = _get_manager()
    category = "installed" if args.installed else "all"
    rows = _run(manager.catalog_view(category))

    if not rows:
        print("  (no installed plugins)" if args.installed else "  (catalog is empty)")
        return

    print()
    for entry, installed in rows:
        mark = "*" if installed else " "
        badge = "Manual" if entry.is_custom else (entry.recommended_tool or "-")
        print(f" {mark} {entry.key:<16} {entry.kind.value:<9} {badge:<10} {entry.display_name()}")
        if entry.desc:
            print(f"     {entry.desc}")
    print("\n  * installed")


def cmd_install(args: argparse.Namespace) -> None:
    manager = _get_manager()
    result = _run(manager.install(args.key, tool_id=args.tool, verify=args.verify))
    if result.record:
        command = " ".join([result.record.command, *result.record.args])
        print(f"Installed {result.key} into {result.tool_id}: {command}")
    else:
        print(f"Installed {result.key}")


def cmd_uninstall(args: argparse.Namespace) -> None:
    manager = _get_manager()
    result = _run(manager.uninstall(args.key, tool_id=args.tool))
    print(f"Uninstalled {result.key}")


def cmd_docs(args: argparse.Namespace) -> None:
    manager = _get_manager()
    try:
        url = manager.open_docs(args.key)
    except PlugdeckError as e:
        _fail(e)
    if url:
        print(url)
    else:
        print(f"No documentation link for '{args.key}'")
        sys.exit(1)


# --- Server and skill commands ---


def cmd_servers(args: argparse.Namespace) -> None:
    """List every MCP server declared by any tool."""
    manager = _get_manager()
    records = _run(manager.list_servers())

    if not records:
        print("  (no MCP servers configured)")
        return

    print()
    for record in records:
        command = " ".join([record.command, *record.args])
        print(f"  {record.tool_id:<10} {record.key:<20} {command}")
        if record.env:
            print(f"  {'':<10} {'':<20} env: {', '.join(sorted(record.env))}")


def cmd_inspect(args: argparse.Namespace) -> None:
    """Probe one server and list the tools it exposes."""
    manager = _get_manager()

    async def _inspect():
        record = await manager.find_server(args.tool, args.key)
        if record is None:
            return None, []
        return record, await manager.inspect_server(record)

    record, capabilities = _run(_inspect())
    if record is None:
        print(f"No MCP server '{args.key}' configured for {args.tool}")
        sys.exit(1)

    print(f"\n{record.key} ({record.tool_id}) is online with {len(capabilities)} tools")
    for capability in capabilities:
        print(f"  - {capability.name}")
        if capability.description:
            print(f"      {capability.description}")


def cmd_skills(args: argparse.Namespace) -> None:
    manager = _get_manager()
    records = _run(manager.list_skills(args.scope))

    if not records:
        print("  (no skills installed)")
        return

    print()
    for record in records:
        version = f" v{record.version}" if record.version else ""
        print(f"  {record.name}{version}  {record.path}")
        if record.description:
            print(f"      {record.description}")


def cmd_skill_show(args: argparse.Namespace) -> None:
    document = read_skill_document(args.path)
    if document is None:
        print("No metadata file found (SKILL.md, AGENTS.md, README.md, package.json)")
        sys.exit(1)
    file_name, content = document
    print(f"--- {file_name} ---")
    print(content)


# --- Custom catalog commands ---


def cmd_custom(args: argparse.Namespace) -> None:
    """Custom catalog management: add, edit, remove."""
    action = getattr(args, "action", None)
    manager = _get_manager()

    if action == "add":
        if not args.name or not args.url:
            print("Error: --name and --url are required")
            sys.exit(1)
        _custom_save(manager, _custom_values(args), None)
    elif action == "edit":
        try:
            manager.get_entry(args.key)
        except PlugdeckError as e:
            _fail(e)
        _custom_save(manager, _custom_values(args), args.key)
    elif action == "remove":
        if manager.remove_custom(args.key):
            print(f"Removed custom entry {args.key}")
        else:
            print(f"No custom entry '{args.key}'")
            sys.exit(1)
    else:
        print("Usage: plugdeck custom {add|edit|remove}")


def _custom_save(manager: PluginManager, values: dict[str, Any], editing_key: str | None) -> None:
    try:
        entry = manager.save_custom(values, editing_key)
    except ValidationError as e:
        print(f"Error: invalid plugin definition: {e}")
        sys.exit(1)
    print(f"Saved {entry.key}")


# --- Config commands ---


def cmd_config(args: argparse.Namespace) -> None:
    """Config management: show, set, get."""
    action = getattr(args, "action", None)

    if action == "show":
        _config_show()
    elif action == "set":
        _config_set(args.key, args.value)
    elif action == "get":
        _config_get(args.key)
    else:
        print("Usage: plugdeck config {show|set|get}")


def _config_show() -> None:
    """Show the config file and effective values."""
    settings = get_settings()
    config = load_yaml_config(settings.home_dir)

    print(f"\nConfig: {get_config_path(settings.home_dir)}")
    print("-" * 40)

    if not config:
        print("  (empty, using defaults)")

    for key, value in config.items():
        env_name = f"{ENV_PREFIX}{key.upper()}"
        override = f" (overridden by env: {env_name})" if os.environ.get(env_name) else ""
        print(f"  {key}: {value}{override}")

    print("\nEffective:")
    for key in sorted(CONFIG_KEYS):
        print(f"  {key}: {getattr(settings, key)}")


def _config_set(key: str, value: str) -> None:
    """Set a config value."""
    if key not in CONFIG_KEYS:
        print(f"Unknown key: {key}")
        print(f"Valid keys: {', '.join(sorted(CONFIG_KEYS))}")
        sys.exit(1)

    settings = get_settings()
    config = load_yaml_config(settings.home_dir)

    if key == "git_timeout":
        try:
            value = int(value)
        except ValueError:
            print(f"Error: git_timeout must be an integer, got '{value}'")
            sys.exit(1)
    elif key == "default_tool" and value not in TOOL_CHOICES:
        print(f"Error: default_tool must be one of {', '.join(TOOL_CHOICES)}")
        sys.exit(1)

    config[key] = value
    save_yaml_config(settings.home_dir, config)
    print(f"Set {key} = {value}")


def _config_get(key: str) -> None:
    """Get a single config value."""
    env_val = os.environ.get(f"{ENV_PREFIX}{key.upper()}")
    if env_val:
        print(env_val)
        return

    config = load_yaml_config(get_settings().home_dir)
    if key in config:
        print(config[key])
    else:
        print(f"Key '{key}' not set in config.yaml")
        sys.exit(1)


# --- CLI entry point ---


def _add_custom_fields(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--name", help="Display name")
    parser.add_argument("--desc", help="Description")
    parser.add_argument("--url", help="Clone URL or 'npx <package>' command line")
    parser.add_argument("--docs-url", dest="docs_url", help="Documentation URL")
    parser.add_argument("--repo", help="GitHub repo as owner/name")
    parser.add_argument("--type", dest="kind", choices=KIND_CHOICES, help="Plugin type")
    parser.add_argument("--tool", choices=TOOL_CHOICES, help="Recommended tool")
    parser.add_argument(
        "--command", dest="command_line",
        help="Launch command line for MCP servers, e.g. 'npx -y pkg'",
    )


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="plugdeck",
        description="plugdeck: MCP servers and skills across AI CLI tools",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command")

    # catalog
    catalog_parser = subparsers.add_parser("catalog", help="List catalog entries")
    catalog_parser.add_argument(
        "--installed", action="store_true", help="Only installed entries",
    )

    # install / uninstall
    install_parser = subparsers.add_parser("install", help="Install a catalog entry")
    install_parser.add_argument("key", help="Catalog key")
    install_parser.add_argument("--tool", choices=TOOL_CHOICES, help="Target tool")
    install_parser.add_argument(
        "--verify", action="store_true", help="Probe the server after installing",
    )
    uninstall_parser = subparsers.add_parser("uninstall", help="Uninstall a catalog entry")
    uninstall_parser.add_argument("key", help="Catalog key")
    uninstall_parser.add_argument("--tool", choices=TOOL_CHOICES, help="Target tool")

    # servers / inspect
    subparsers.add_parser("servers", help="List MCP servers across tools")
    inspect_parser = subparsers.add_parser("inspect", help="Probe an MCP server")
    inspect_parser.add_argument("tool", choices=TOOL_CHOICES)
    inspect_parser.add_argument("key", help="Server key")

    # skills
    skills_parser = subparsers.add_parser("skills", help="List installed skills")
    skills_parser.add_argument("--scope", help="Skill scope (default: configured scope)")
    skill_show_parser = subparsers.add_parser("skill-show", help="Print a skill's metadata file")
    skill_show_parser.add_argument("path", help="Skill directory")

    # custom subcommand
    custom_parser = subparsers.add_parser("custom", help="Custom catalog entries")
    custom_sub = custom_parser.add_subparsers(dest="action")
    custom_add_parser = custom_sub.add_parser("add", help="Add a custom entry")
    _add_custom_fields(custom_add_parser)
    custom_edit_parser = custom_sub.add_parser("edit", help="Edit or override an entry")
    custom_edit_parser.add_argument("key", help="Catalog key")
    _add_custom_fields(custom_edit_parser)
    custom_remove_parser = custom_sub.add_parser("remove", help="Remove a custom entry")
    custom_remove_parser.add_argument("key", help="Catalog key")

    # docs
    docs_parser = subparsers.add_parser("docs", help="Open an entry's documentation")
    docs_parser.add_argument("key", help="Catalog key")

    # config subcommand
    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_sub = config_parser.add_subparsers(dest="action")
    config_sub.add_parser("show", help="Show current config")
    config_set_parser = config_sub.add_parser("set", help="Set a config value")
    config_set_parser.add_argument("key", help="Config key")
    config_set_parser.add_argument("value", help="Config value")
    config_get_parser = config_sub.add_parser("get", help="Get a config value")
    config_get_parser.add_argument("key", help="Config key")

    args = parser.parse_args()
    setup_logging(level="DEBUG" if args.verbose else None)

    if args.command == "catalog":
        cmd_catalog(args)
    elif args.command == "install":
        cmd_install(args)
    elif args.command == "uninstall":
        cmd_uninstall(args)
    elif args.command == "servers":
        cmd_servers(args)
    elif args.command == "inspect":
        cmd_inspect(args)
    elif args.command == "skills":
        cmd_skills(args)
    elif args.command == "skill-show":
        cmd_skill_show(args)
    elif args.command == "custom":
        cmd_custom(args)
    elif args.command == "docs":
        cmd_docs(args)
    elif args.command == "config":
        cmd_config(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
