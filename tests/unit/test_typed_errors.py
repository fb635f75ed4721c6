"""Tests for typed error conversion."""

from plugdeck.lib.typed_errors import (
    ErrorCode,
    InstallError,
    InstallErrorReason,
    ParseError,
    UninstallError,
    UninstallErrorReason,
    UnknownToolError,
    to_typed_error,
)


def test_install_error_is_scoped():
    error = InstallError(InstallErrorReason.WRITE_FAILED, "mem", "Codex", "disk full")
    assert str(error) == "Failed to install 'mem' into Codex: write_failed (disk full)"

    typed = to_typed_error(error)
    assert typed.code == ErrorCode.WRITE_FAILED
    assert typed.plugin_key == "mem"
    assert typed.tool == "Codex"
    assert typed.original_error.startswith("InstallError:")


def test_uninstall_error_code_follows_reason():
    error = UninstallError(UninstallErrorReason.NOT_FOUND, "superpowers", "Claude")
    assert error.code == ErrorCode.NOT_FOUND
    assert to_typed_error(error).title == "Not Installed"


def test_parse_error_mentions_path():
    error = ParseError("Expecting value", "~/.gemini/settings.json")
    assert "~/.gemini/settings.json" in str(error)
    assert to_typed_error(error).code == ErrorCode.PARSE_FAILED


def test_unknown_tool_message():
    assert str(UnknownToolError("Cursor")) == "Unknown tool: Cursor"


def test_foreign_exception_is_unknown():
    typed = to_typed_error(ValueError("boom"))
    assert typed.code == ErrorCode.UNKNOWN_ERROR
    assert typed.plugin_key is None
    assert typed.actions


def test_serialized_with_aliases():
    typed = to_typed_error(InstallError(InstallErrorReason.TOOL_NOT_FOUND, "mem", "Cursor"))
    data = typed.model_dump(by_alias=True)
    assert data["pluginKey"] == "mem"
    assert data["originalError"].endswith("tool_not_found")
