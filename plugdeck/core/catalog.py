"""
Plugin catalog: curated entries, the custom store, and their merge.

Custom entries are persisted as one JSON document under a fixed storage key
and rewritten in full on every change. A custom entry whose key matches a
curated entry patches it; any other custom entry stands on its own.
"""

import json
import logging
import time
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from plugdeck.core.host import atomic_write_text
from plugdeck.models.catalog import CatalogEntry, PluginKind
from plugdeck.models.extension import ExtensionSpec

logger = logging.getLogger(__name__)

STORAGE_KEY = "plugdeck_custom_plugins"
STORE_FILENAME = "custom_plugins.json"

# Fields a custom entry may override on a curated one
PATCHABLE_FIELDS = (
    "kind", "name", "desc", "repo", "url", "docs_url",
    "recommended_tool", "spec", "is_custom",
)

# Python field names accepted by save_entry, mapped to their stored names
FIELD_ALIASES = {
    "kind": "type",
    "docs_url": "docsUrl",
    "recommended_tool": "recommendedTool",
}


def _npx(package: str) -> ExtensionSpec:
    return ExtensionSpec(command="npx", args=["-y", package])


CURATED_CATALOG: tuple[CatalogEntry, ...] = (
    CatalogEntry(key="composio", repo="ComposioHQ/composio", kind=PluginKind.MCP,
                 recommended_tool="Claude", spec=_npx("@composio/mcp-server")),
    CatalogEntry(key="mem", repo="claudemem/claude-mem", kind=PluginKind.MCP,
                 recommended_tool="Claude", spec=_npx("@claudemem/mcp-server")),
    CatalogEntry(key="superpowers", repo="superpowers/superpowers", kind=PluginKind.SKILL,
                 recommended_tool="Claude", url="https://github.com/superpowers/superpowers.git"),
    CatalogEntry(key="localReview", repo="agencyenterprise/local-review", kind=PluginKind.MCP,
                 recommended_tool="Claude", spec=_npx("@agencyenterprise/local-review-mcp")),
    CatalogEntry(key="plannotator", repo="m-onz/plannotator", kind=PluginKind.MCP,
                 recommended_tool="Claude", spec=_npx("plannotator-mcp")),
    CatalogEntry(key="ralphWiggum", repo="jpsim/RalphWiggum", kind=PluginKind.MCP,
                 recommended_tool="Claude", spec=_npx("ralph-wiggum-mcp")),
    CatalogEntry(key="shipyard", repo="shipyard/shipyard", kind=PluginKind.MCP,
                 recommended_tool="Claude", spec=_npx("@shipyard/mcp-server")),
    CatalogEntry(key="devBrowser", repo="dev-browser/dev-browser", kind=PluginKind.MCP,
                 recommended_tool="Claude", spec=_npx("@dev-browser/mcp-server")),
    CatalogEntry(key="lsp", repo="sourcegraph/cody", kind=PluginKind.MCP,
                 recommended_tool="Claude", spec=_npx("@sourcegraph/mcp-server-lsp")),
    CatalogEntry(key="peerReview", repo="agent-peer-review/agent-peer-review", kind=PluginKind.MCP,
                 recommended_tool="Claude", spec=_npx("agent-peer-review-mcp")),
)


def _patch(curated: CatalogEntry, custom: CatalogEntry) -> CatalogEntry:
    """Apply the fields a custom entry explicitly sets on top of a curated entry."""
    update = {
        name: getattr(custom, name)
        for name in PATCHABLE_FIELDS
        if name in custom.model_fields_set and getattr(custom, name) is not None
    }
    return curated.model_copy(update=update)


def merge(
    curated: Sequence[CatalogEntry], custom: Sequence[CatalogEntry]
) -> list[CatalogEntry]:
    """
    Merge curated and custom entries into one catalog.

    Curated entries come first in declared order, each patched by a custom
    entry with the same key. Remaining custom entries follow in stored
    order. Keys are unique in the result.
    """
    overrides: dict[str, CatalogEntry] = {}
    for entry in custom:
        overrides.setdefault(entry.key, entry)

    curated_keys = {entry.key for entry in curated}
    merged = [
        _patch(entry, overrides[entry.key]) if entry.key in overrides else entry
        for entry in curated
    ]

    seen = set(curated_keys)
    for entry in custom:
        if entry.key in seen:
            continue
        seen.add(entry.key)
        merged.append(entry)
    return merged


def is_installed(entry: CatalogEntry, installed: set[str]) -> bool:
    """
    Whether a catalog entry appears in the installed set.

    Skills may sit in a directory named after their repo rather than
    their key, so the repo's last path segment also counts.
    """
    if entry.key in installed:
        return True
    if entry.kind == PluginKind.SKILL:
        basename = entry.repo_basename()
        return basename is not None and basename in installed
    return False


def filter_catalog(
    entries: Iterable[CatalogEntry], installed: set[str], category: str = "all"
) -> list[CatalogEntry]:
    """Select the 'all' or 'installed' view of the catalog."""
    if category == "installed":
        return [e for e in entries if is_installed(e, installed)]
    return list(entries)


def find_entry(entries: Iterable[CatalogEntry], key: str) -> Optional[CatalogEntry]:
    for entry in entries:
        if entry.key == key:
            return entry
    return None


class CustomCatalogStore:
    """Persisted custom catalog entries, read once and rewritten in full."""

    def __init__(self, path: Path, curated: Sequence[CatalogEntry] = CURATED_CATALOG):
        self.path = path
        self.curated_keys = {entry.key for entry in curated}
        self._entries: list[CatalogEntry] = []

    @classmethod
    def in_dir(cls, directory: Path) -> "CustomCatalogStore":
        return cls(directory / STORE_FILENAME)

    @property
    def entries(self) -> list[CatalogEntry]:
        return list(self._entries)

    def load(self) -> list[CatalogEntry]:
        """Load stored entries. Unreadable stores load as empty."""
        self._entries = []
        if not self.path.exists():
            return self.entries

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            raw_entries = data.get(STORAGE_KEY, []) if isinstance(data, dict) else []
        except (json.JSONDecodeError, OSError) as e:
            logger.error(f"Failed to parse saved custom plugins at {self.path}: {e}")
            return self.entries

        for raw in raw_entries:
            try:
                self._entries.append(CatalogEntry.model_validate(raw))
            except ValidationError as e:
                logger.warning(f"Skipping invalid custom plugin entry {raw!r}: {e}")

        logger.debug(f"Loaded {len(self._entries)} custom plugins from {self.path}")
        return self.entries

    def save(self) -> None:
        """Rewrite the whole store."""
        payload = {STORAGE_KEY: [entry.to_store() for entry in self._entries]}
        atomic_write_text(self.path, json.dumps(payload, indent=2) + "\n")

    def save_entry(
        self, values: dict[str, Any], editing_key: Optional[str] = None
    ) -> CatalogEntry:
        """
        Add a custom entry, or edit the entry stored under editing_key.

        Editing a curated key stores an override (isCustom false); editing an
        unknown key stores a custom entry. New entries get a
        "custom-<millis>" key. New and newly overriding entries are
        prepended.

        Raises:
            pydantic.ValidationError: If the values do not form a valid entry
        """
        fields = {
            FIELD_ALIASES.get(k, k): v
            for k, v in values.items()
            if v is not None and k not in ("key", "isCustom", "is_custom")
        }

        if editing_key is None:
            entry = CatalogEntry.model_validate(
                {**fields, "key": f"custom-{int(time.time() * 1000)}", "isCustom": True}
            )
            self._entries.insert(0, entry)
        else:
            index = next(
                (i for i, e in enumerate(self._entries) if e.key == editing_key), None
            )
            base = self._entries[index].to_store() if index is not None else {}
            entry = CatalogEntry.model_validate(
                {
                    **base,
                    **fields,
                    "key": editing_key,
                    "isCustom": editing_key not in self.curated_keys,
                }
            )
            if index is not None:
                self._entries[index] = entry
            else:
                self._entries.insert(0, entry)

        self.save()
        logger.info(f"Saved custom plugin '{entry.key}'")
        return entry

    def remove(self, key: str) -> bool:
        """Drop a stored entry. Returns True if one was removed."""
        remaining = [e for e in self._entries if e.key != key]
        if len(remaining) == len(self._entries):
            return False
        self._entries = remaining
        self.save()
        logger.info(f"Removed custom plugin '{key}'")
        return True
