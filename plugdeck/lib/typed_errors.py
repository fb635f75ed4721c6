"""
Typed errors for the reconciliation engine.

Exceptions carry the plugin key and tool name of the operation that failed
so the CLI can render a scoped notification. Every exception maps to a
TypedError with user-friendly info for display.
"""

from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


class ErrorCode(str, Enum):
    """Error codes for programmatic handling."""

    # Config file errors
    PARSE_FAILED = "parse_failed"
    UNKNOWN_TOOL = "unknown_tool"

    # Install errors
    TOOL_NOT_FOUND = "tool_not_found"
    WRITE_FAILED = "write_failed"
    PROBE_UNAVAILABLE = "probe_unavailable"
    INVALID_CONFIG = "invalid_config"
    MISSING_COMMAND = "missing_command"
    UNSUPPORTED_KIND = "unsupported_kind"

    # Uninstall errors
    NOT_FOUND = "not_found"

    # Probe errors
    PROBE_FAILED = "probe_failed"

    # Catalog
    UNKNOWN_PLUGIN = "unknown_plugin"

    # Concurrency
    OPERATION_IN_PROGRESS = "operation_in_progress"

    # Generic
    UNKNOWN_ERROR = "unknown_error"


class InstallErrorReason(str, Enum):
    TOOL_NOT_FOUND = "tool_not_found"
    WRITE_FAILED = "write_failed"
    PROBE_UNAVAILABLE = "probe_unavailable"
    INVALID_CONFIG = "invalid_config"
    MISSING_COMMAND = "missing_command"
    UNSUPPORTED_KIND = "unsupported_kind"


class UninstallErrorReason(str, Enum):
    NOT_FOUND = "not_found"
    WRITE_FAILED = "write_failed"
    INVALID_CONFIG = "invalid_config"


class PlugdeckError(Exception):
    """Base class for all engine errors."""

    code: ErrorCode = ErrorCode.UNKNOWN_ERROR


class ParseError(PlugdeckError):
    """A config file is present but its content is malformed."""

    code = ErrorCode.PARSE_FAILED

    def __init__(self, detail: str, path: Optional[str] = None):
        self.detail = detail
        self.path = path
        where = f" in {path}" if path else ""
        super().__init__(f"Malformed config{where}: {detail}")


class UnknownToolError(PlugdeckError, KeyError):
    """No ToolDescriptor or schema variant is declared for a tool id."""

    code = ErrorCode.UNKNOWN_TOOL

    def __init__(self, tool_id: str):
        self.tool_id = tool_id
        super().__init__(f"Unknown tool: {tool_id}")

    def __str__(self) -> str:
        return f"Unknown tool: {self.tool_id}"


class UnknownPluginError(PlugdeckError, KeyError):
    """No catalog entry exists under a key."""

    code = ErrorCode.UNKNOWN_PLUGIN

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Unknown plugin: {key}")

    def __str__(self) -> str:
        return f"Unknown plugin: {self.key}"


class InstallError(PlugdeckError):
    """Installing a catalog entry into a tool failed."""

    def __init__(
        self,
        reason: InstallErrorReason,
        key: str,
        tool: Optional[str] = None,
        detail: str = "",
    ):
        self.reason = reason
        self.key = key
        self.tool = tool
        self.detail = detail
        self.installed: Optional[set[str]] = None
        self.code = ErrorCode(reason.value)
        target = f" into {tool}" if tool else ""
        message = f"Failed to install '{key}'{target}: {reason.value}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


class UninstallError(PlugdeckError):
    """Removing a catalog entry from a tool failed."""

    def __init__(
        self,
        reason: UninstallErrorReason,
        key: str,
        tool: Optional[str] = None,
        detail: str = "",
    ):
        self.reason = reason
        self.key = key
        self.tool = tool
        self.detail = detail
        self.code = ErrorCode(reason.value)
        target = f" from {tool}" if tool else ""
        message = f"Failed to uninstall '{key}'{target}: {reason.value}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


class ProbeError(PlugdeckError):
    """Liveness probe of an MCP server failed. The message is kept verbatim."""

    code = ErrorCode.PROBE_FAILED


class OperationInProgressError(PlugdeckError):
    """An install/uninstall for the same catalog key is still outstanding."""

    code = ErrorCode.OPERATION_IN_PROGRESS

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"An operation on '{key}' is already in progress")


class RecoveryAction(BaseModel):
    """A suggested recovery action for an error."""

    key: str = Field(description="Keyboard shortcut (single letter)")
    label: str = Field(description="Description of the action")
    action: Literal["edit_config", "choose_tool", "rescan", "dismiss"] = Field(
        description="Action type for handling"
    )


class TypedError(BaseModel):
    """A structured error with user-friendly info and recovery suggestions."""

    code: ErrorCode = Field(description="Error code for programmatic handling")
    title: str = Field(description="User-friendly title")
    message: str = Field(description="Detailed message explaining what went wrong")
    actions: list[RecoveryAction] = Field(
        default_factory=list, description="Suggested recovery actions"
    )
    plugin_key: Optional[str] = Field(
        alias="pluginKey", default=None, description="Catalog key of the failed operation"
    )
    tool: Optional[str] = Field(default=None, description="Tool the operation targeted")
    original_error: Optional[str] = Field(
        alias="originalError", default=None, description="Original error message"
    )

    model_config = {"populate_by_name": True}


ERROR_DEFINITIONS: dict[ErrorCode, dict[str, Any]] = {
    ErrorCode.PARSE_FAILED: {
        "title": "Invalid Config File",
        "message": "A tool config file could not be parsed. Fix its syntax and try again.",
        "actions": [
            RecoveryAction(key="e", label="Edit config", action="edit_config"),
        ],
    },
    ErrorCode.UNKNOWN_TOOL: {
        "title": "Unknown Tool",
        "message": "The requested tool is not one of the supported CLI tools.",
        "actions": [
            RecoveryAction(key="t", label="Choose another tool", action="choose_tool"),
        ],
    },
    ErrorCode.TOOL_NOT_FOUND: {
        "title": "Tool Not Found",
        "message": "The target tool for this plugin is not supported.",
        "actions": [
            RecoveryAction(key="t", label="Choose another tool", action="choose_tool"),
        ],
    },
    ErrorCode.WRITE_FAILED: {
        "title": "Write Failed",
        "message": "The change could not be written. The previous file content is unchanged.",
        "actions": [
            RecoveryAction(key="d", label="Dismiss", action="dismiss"),
        ],
    },
    ErrorCode.PROBE_UNAVAILABLE: {
        "title": "Server Not Responding",
        "message": "The server was installed but did not answer a liveness probe.",
        "actions": [
            RecoveryAction(key="e", label="Edit config", action="edit_config"),
        ],
    },
    ErrorCode.INVALID_CONFIG: {
        "title": "Invalid Config File",
        "message": "The target config file is malformed and was left untouched.",
        "actions": [
            RecoveryAction(key="e", label="Edit config", action="edit_config"),
        ],
    },
    ErrorCode.MISSING_COMMAND: {
        "title": "No Command",
        "message": "The plugin has neither a launch spec nor a command URL.",
        "actions": [
            RecoveryAction(key="e", label="Edit plugin", action="edit_config"),
        ],
    },
    ErrorCode.UNSUPPORTED_KIND: {
        "title": "Not Installable",
        "message": "This kind of plugin cannot be installed automatically.",
        "actions": [
            RecoveryAction(key="d", label="Dismiss", action="dismiss"),
        ],
    },
    ErrorCode.NOT_FOUND: {
        "title": "Not Installed",
        "message": "No installed copy of this plugin was found.",
        "actions": [
            RecoveryAction(key="r", label="Rescan", action="rescan"),
        ],
    },
    ErrorCode.PROBE_FAILED: {
        "title": "Inspection Failed",
        "message": "The MCP server could not be started or did not list its tools.",
        "actions": [
            RecoveryAction(key="e", label="Edit config", action="edit_config"),
        ],
    },
    ErrorCode.UNKNOWN_PLUGIN: {
        "title": "Unknown Plugin",
        "message": "No plugin with this key exists in the catalog.",
        "actions": [
            RecoveryAction(key="d", label="Dismiss", action="dismiss"),
        ],
    },
    ErrorCode.OPERATION_IN_PROGRESS: {
        "title": "Busy",
        "message": "Wait for the running operation on this plugin to finish.",
        "actions": [
            RecoveryAction(key="d", label="Dismiss", action="dismiss"),
        ],
    },
    ErrorCode.UNKNOWN_ERROR: {
        "title": "Error",
        "message": "An unexpected error occurred.",
        "actions": [
            RecoveryAction(key="d", label="Dismiss", action="dismiss"),
        ],
    },
}


def to_typed_error(error: Exception | str) -> TypedError:
    """
    Convert an error into a typed error with user-friendly info.

    Engine exceptions map by their code; anything else is UNKNOWN_ERROR.
    """
    if isinstance(error, Exception):
        original_error = f"{type(error).__name__}: {error}"
    else:
        original_error = str(error)

    code = getattr(error, "code", ErrorCode.UNKNOWN_ERROR)
    if code not in ERROR_DEFINITIONS:
        code = ErrorCode.UNKNOWN_ERROR
    definition = ERROR_DEFINITIONS[code]

    return TypedError(
        code=code,
        title=definition["title"],
        message=definition["message"],
        actions=definition["actions"],
        plugin_key=getattr(error, "key", None),
        tool=getattr(error, "tool", None),
        original_error=original_error,
    )
