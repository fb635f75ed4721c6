"""Tests for per-tool MCP server schemas."""

import json

import pytest

from plugdeck.core.formats import parse, serialize
from plugdeck.core.schemas import (
    MCP_LOCAL_ARRAY,
    MCP_SERVERS,
    MCP_SERVERS_TABLE,
    extract_servers,
    has_server,
    inject_server,
    remove_server,
    schema_for,
)
from plugdeck.lib.typed_errors import ParseError, UnknownToolError
from plugdeck.models.extension import ExtensionRecord
from plugdeck.models.tool import Dialect


def _record(tool_id: str, key: str = "mem", **kwargs) -> ExtensionRecord:
    values = {"command": "npx", "args": ["-y", "@claudemem/mcp-server"]}
    values.update(kwargs)
    return ExtensionRecord(tool_id=tool_id, key=key, **values)


class TestSchemaRegistry:
    def test_known_variants(self):
        assert schema_for("Claude") is MCP_SERVERS
        assert schema_for("OpenCode") is MCP_LOCAL_ARRAY
        assert schema_for("Codex") is MCP_SERVERS_TABLE
        assert schema_for("Qoder").container_key == "mcp"

    def test_unknown_tool(self):
        with pytest.raises(UnknownToolError):
            schema_for("Cursor")

    def test_unknown_tool_is_key_error(self):
        with pytest.raises(KeyError):
            schema_for("Cursor")


class TestExtract:
    def test_standard_shape(self):
        tree = {
            "mcpServers": {
                "mem": {"command": "npx", "args": ["-y", "pkg"], "env": {"TOKEN": "abc"}},
            }
        }
        records = extract_servers(tree, "Claude")
        assert len(records) == 1
        assert records[0].key == "mem"
        assert records[0].tool_id == "Claude"
        assert records[0].command == "npx"
        assert records[0].args == ["-y", "pkg"]
        assert records[0].env == {"TOKEN": "abc"}

    def test_missing_args_and_env(self):
        records = extract_servers({"mcpServers": {"bare": {"command": "server"}}}, "Gemini")
        assert records[0].args == []
        assert records[0].env is None

    def test_array_shape_is_split(self):
        tree = {
            "mcp": {
                "fs": {
                    "type": "local",
                    "command": ["npx", "-y", "@modelcontextprotocol/server-filesystem"],
                    "environment": {"ROOT": "/tmp"},
                }
            }
        }
        record = extract_servers(tree, "OpenCode")[0]
        assert record.command == "npx"
        assert record.args == ["-y", "@modelcontextprotocol/server-filesystem"]
        assert record.env == {"ROOT": "/tmp"}

    def test_entries_without_command_are_skipped(self):
        tree = {
            "mcpServers": {
                "good": {"command": "npx"},
                "empty": {"command": ""},
                "nocommand": {"args": ["x"]},
                "scalar": "disabled",
            }
        }
        assert [r.key for r in extract_servers(tree, "Claude")] == ["good"]

    def test_empty_array_command_is_skipped(self):
        tree = {"mcp": {"a": {"command": []}, "b": {"command": ["uvx", "b"]}}}
        assert [r.key for r in extract_servers(tree, "OpenCode")] == ["b"]

    def test_no_container(self):
        assert extract_servers({"theme": "dark"}, "Claude") == []

    def test_non_mapping_container(self):
        assert extract_servers({"mcpServers": ["a", "b"]}, "Claude") == []

    def test_other_tools_container_is_ignored(self):
        # Qoder reads "mcp", not "mcpServers"
        assert extract_servers({"mcpServers": {"a": {"command": "x"}}}, "Qoder") == []


class TestInject:
    def test_creates_container_and_keeps_other_keys(self):
        tree = {"theme": "dark", "numStartups": 3}
        inject_server(tree, "Claude", _record("Claude"))
        assert list(tree.keys()) == ["theme", "numStartups", "mcpServers"]
        assert tree["mcpServers"]["mem"] == {
            "command": "npx",
            "args": ["-y", "@claudemem/mcp-server"],
            "env": {},
        }

    def test_overwrites_existing_key(self):
        tree = {"mcpServers": {"mem": {"command": "old"}, "other": {"command": "x"}}}
        inject_server(tree, "Claude", _record("Claude"))
        assert list(tree["mcpServers"].keys()) == ["mem", "other"]
        assert tree["mcpServers"]["mem"]["command"] == "npx"

    def test_array_shape_is_joined(self):
        tree = {}
        inject_server(tree, "OpenCode", _record("OpenCode", env={"K": "v"}))
        assert tree["mcp"]["mem"] == {
            "type": "local",
            "command": ["npx", "-y", "@claudemem/mcp-server"],
            "environment": {"K": "v"},
        }

    def test_array_shape_round_trip(self):
        record = _record("OpenCode", env={"K": "v"})
        tree = inject_server({}, "OpenCode", record)
        extracted = extract_servers(tree, "OpenCode")[0]
        assert extracted.command == record.command
        assert extracted.args == record.args
        assert extracted.env == record.env

    def test_non_mapping_container_raises(self):
        with pytest.raises(ParseError):
            inject_server({"mcpServers": "nope"}, "Claude", _record("Claude"))

    def test_codex_toml(self):
        text = '# keep me\nmodel = "o4-mini"\n\n[mcp_servers.lsp]\ncommand = "npx"\nargs = ["lsp"]\n'
        tree = parse(text, Dialect.TABLE_TREE)
        inject_server(tree, "Codex", _record("Codex", env={"API_KEY": "k"}))
        out = serialize(tree, Dialect.TABLE_TREE)

        assert out.startswith('# keep me\nmodel = "o4-mini"\n')
        records = {r.key: r for r in extract_servers(parse(out, Dialect.TABLE_TREE), "Codex")}
        assert set(records) == {"lsp", "mem"}
        assert records["mem"].args == ["-y", "@claudemem/mcp-server"]
        assert records["mem"].env == {"API_KEY": "k"}

    def test_codex_toml_empty_document(self):
        tree = parse("", Dialect.TABLE_TREE)
        inject_server(tree, "Codex", _record("Codex"))
        out = serialize(tree, Dialect.TABLE_TREE)
        records = extract_servers(parse(out, Dialect.TABLE_TREE), "Codex")
        assert [r.key for r in records] == ["mem"]
        assert records[0].env is None

    def test_codex_inline_container(self):
        tree = parse('model = "x"\nmcp_servers = {}\n', Dialect.TABLE_TREE)
        inject_server(tree, "Codex", _record("Codex", env={"API_KEY": "k"}))
        out = serialize(tree, Dialect.TABLE_TREE)

        assert out.startswith('model = "x"\n')
        records = extract_servers(parse(out, Dialect.TABLE_TREE), "Codex")
        assert [r.key for r in records] == ["mem"]
        assert records[0].args == ["-y", "@claudemem/mcp-server"]
        assert records[0].env == {"API_KEY": "k"}


class TestRemove:
    def test_removes_only_that_key(self):
        tree = {"theme": "dark", "mcpServers": {"a": {"command": "x"}, "mem": {"command": "y"}}}
        remove_server(tree, "Claude", "mem")
        assert tree == {"theme": "dark", "mcpServers": {"a": {"command": "x"}}}

    def test_absent_key_is_noop(self):
        tree = {"mcpServers": {"a": {"command": "x"}}}
        before = json.dumps(tree)
        remove_server(tree, "Claude", "mem")
        assert json.dumps(tree) == before

    def test_absent_container_is_noop(self):
        tree = {"theme": "dark"}
        remove_server(tree, "Claude", "mem")
        assert tree == {"theme": "dark"}

    def test_has_server_includes_unusable_entries(self):
        tree = {"mcpServers": {"placeholder": {"command": ""}}}
        assert has_server(tree, "Claude", "placeholder")
        assert not has_server(tree, "Claude", "mem")

    def test_codex_toml_remove(self):
        text = '[mcp_servers.a]\ncommand = "x"\n\n[mcp_servers.b]\ncommand = "y"\n'
        tree = parse(text, Dialect.TABLE_TREE)
        remove_server(tree, "Codex", "a")
        out = serialize(tree, Dialect.TABLE_TREE)
        assert [r.key for r in extract_servers(parse(out, Dialect.TABLE_TREE), "Codex")] == ["b"]
