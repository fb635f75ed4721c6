"""
Format adapter: config text <-> generic tree.

Two dialects are supported:
1. object_tree: JSON. Parsed into insertion-ordered dicts/lists/scalars.
2. table_tree: TOML. Parsed with tomlkit so comments, key order and
   whitespace survive a round trip byte for byte.

Empty text means "file absent" and yields an empty tree. Malformed text
raises ParseError; it is never treated as empty.

Known round-trip differences for object_tree (table_tree has none):
- whitespace is rewritten as 2-space indentation, ": " separators and a
  single trailing newline
- \\uXXXX escapes of non-ASCII characters come back as literal UTF-8
- floats use Python formatting (1e3 -> 1000.0)
- duplicate keys collapse to the last occurrence
Key order is always preserved.
"""

import json
from collections.abc import MutableMapping
from typing import Any, Optional

import tomlkit
from tomlkit.exceptions import TOMLKitError

from plugdeck.lib.typed_errors import ParseError
from plugdeck.models.tool import Dialect

JSON_INDENT = 2


def empty_tree(dialect: Dialect) -> MutableMapping[str, Any]:
    """Return an empty tree for a dialect."""
    if dialect == Dialect.TABLE_TREE:
        return tomlkit.document()
    return {}


def parse(text: str, dialect: Dialect, path: Optional[str] = None) -> MutableMapping[str, Any]:
    """
    Parse config text into a tree.

    Args:
        text: Raw file content ("" for an absent file)
        dialect: Serialization dialect of the file
        path: Used only to label errors

    Raises:
        ParseError: If the text is present but malformed
    """
    if not text.strip():
        return empty_tree(dialect)

    if dialect == Dialect.TABLE_TREE:
        try:
            return tomlkit.parse(text)
        except TOMLKitError as e:
            raise ParseError(str(e), path) from e

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(str(e), path) from e

    if not isinstance(data, dict):
        raise ParseError(f"top-level value is {type(data).__name__}, expected an object", path)
    return data


def serialize(tree: MutableMapping[str, Any], dialect: Dialect) -> str:
    """Serialize a tree back to config text."""
    if dialect == Dialect.TABLE_TREE:
        return tomlkit.dumps(tree)

    return json.dumps(tree, indent=JSON_INDENT, ensure_ascii=False) + "\n"
