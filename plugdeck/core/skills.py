"""
Skill metadata resolution.

A skill is a directory. Its description comes from the first metadata file
found, in order: SKILL.md, AGENTS.md, README.md. YAML frontmatter in that
file may also carry version and author. If none exists, package.json is
consulted, and failing that a fixed marker is used.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Optional

import frontmatter

from plugdeck.core.host import Host
from plugdeck.models.extension import SkillRecord

logger = logging.getLogger(__name__)

METADATA_FILES = ("SKILL.md", "AGENTS.md", "README.md")
PACKAGE_MANIFEST = "package.json"

NO_SUMMARY = "No summary found"
NO_PACKAGE_DESCRIPTION = "No description in package.json"
NO_METADATA = "No metadata file found (SKILL.md, AGENTS.md, README.md)"


def _first_summary_line(body: str) -> Optional[str]:
    for line in body.splitlines():
        if line.strip() and not line.startswith("#"):
            return line.strip()
    return None


def _author_name(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value or None
    if isinstance(value, dict):
        return value.get("name")
    return None


def _describe_from_markdown(record: SkillRecord, content: str) -> None:
    try:
        post = frontmatter.loads(content)
        metadata, body = dict(post.metadata), post.content
    except Exception as e:
        # Broken frontmatter still has a readable body
        logger.debug(f"Ignoring frontmatter of {record.path}: {e}")
        metadata, body = {}, content

    description = metadata.get("description")
    record.description = str(description) if description else (_first_summary_line(body) or NO_SUMMARY)
    if metadata.get("version") is not None:
        record.version = str(metadata["version"])
    record.author = _author_name(metadata.get("author"))


def describe_skill(path: str, name: Optional[str] = None) -> SkillRecord:
    """Resolve a skill directory's metadata."""
    skill_dir = Path(path)
    record = SkillRecord(path=str(skill_dir), name=name or skill_dir.name)

    for file_name in METADATA_FILES:
        candidate = skill_dir / file_name
        try:
            content = candidate.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            continue
        _describe_from_markdown(record, content)
        return record

    try:
        pkg = json.loads((skill_dir / PACKAGE_MANIFEST).read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError):
        record.description = NO_METADATA
        return record

    if not isinstance(pkg, dict):
        record.description = NO_PACKAGE_DESCRIPTION
        return record
    record.description = pkg.get("description") or NO_PACKAGE_DESCRIPTION
    if pkg.get("version"):
        record.version = str(pkg["version"])
    record.author = _author_name(pkg.get("author"))
    return record


async def list_skills(host: Host, scope: str) -> list[SkillRecord]:
    """Describe every installed skill of a scope."""
    installed = await host.list_installed_skills(scope)
    return [
        await asyncio.to_thread(describe_skill, item.path, item.name)
        for item in installed
    ]


def read_skill_document(path: str) -> Optional[tuple[str, str]]:
    """Return (file name, content) of the first metadata file, package.json included."""
    skill_dir = Path(path)
    for file_name in (*METADATA_FILES, PACKAGE_MANIFEST):
        try:
            return file_name, (skill_dir / file_name).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            continue
    return None
