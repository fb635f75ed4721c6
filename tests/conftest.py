"""
Pytest configuration and fixtures.
"""

import asyncio
import os
from pathlib import Path
from typing import Optional

import pytest

# Set test environment
os.environ["PLUGDECK_LOG_LEVEL"] = "WARNING"

from plugdeck.core.catalog import CustomCatalogStore  # noqa: E402
from plugdeck.core.manager import PluginManager  # noqa: E402
from plugdeck.lib.typed_errors import ProbeError  # noqa: E402
from plugdeck.models.extension import InstalledSkill, ToolCapability  # noqa: E402


class FakeHost:
    """In-memory Host: config files are strings keyed by their declared path."""

    def __init__(self):
        self.files: dict[str, str] = {}
        self.skills: dict[str, list[InstalledSkill]] = {}
        self.unreadable: set[str] = set()
        self.fail_writes = False
        self.writes: list[str] = []
        self.cloned: list[str] = []
        self.removed: list[str] = []
        self.opened: list[str] = []
        self.probes: list[tuple[str, list[str]]] = []
        self.capabilities = [ToolCapability(name="search", description="Search things")]
        self.probe_error: Optional[str] = None
        self.write_gate: Optional[asyncio.Event] = None

    async def read_config_file(self, path: str) -> str:
        if path in self.unreadable:
            raise PermissionError(f"Permission denied: {path}")
        return self.files.get(path, "")

    async def write_config_file(self, path: str, content: str) -> None:
        if self.write_gate is not None:
            await self.write_gate.wait()
        if self.fail_writes:
            raise OSError("No space left on device")
        self.files[path] = content
        self.writes.append(path)

    async def list_installed_skills(self, scope: str) -> list[InstalledSkill]:
        return list(self.skills.get(scope, []))

    async def install_skill_from_source(self, url: str, name: str, scope: str) -> str:
        path = f"/skills/{scope}/{name}"
        self.skills.setdefault(scope, []).append(InstalledSkill(path=path, name=name))
        self.cloned.append(url)
        return path

    async def remove_directory(self, path: str) -> None:
        for scope, items in self.skills.items():
            remaining = [s for s in items if s.path != path]
            if len(remaining) != len(items):
                self.skills[scope] = remaining
                self.removed.append(path)
                return
        raise FileNotFoundError(f"Path does not exist: {path}")

    async def probe_server_liveness(self, command, args, env):
        self.probes.append((command, list(args)))
        if self.probe_error is not None:
            raise ProbeError(self.probe_error)
        return list(self.capabilities)

    def open_external_url(self, url: str) -> None:
        self.opened.append(url)

    def add_skill(self, scope: str, name: str) -> None:
        path = f"/skills/{scope}/{name}"
        self.skills.setdefault(scope, []).append(InstalledSkill(path=path, name=name))


@pytest.fixture
def host() -> FakeHost:
    """A fresh in-memory host for each test."""
    return FakeHost()


@pytest.fixture
def home(tmp_path: Path) -> Path:
    """A fake home directory with a .plugdeck directory."""
    home_path = tmp_path / "home"
    home_path.mkdir()
    (home_path / ".plugdeck").mkdir()
    return home_path


@pytest.fixture
def store(home: Path) -> CustomCatalogStore:
    """An empty custom catalog store under the fake home."""
    return CustomCatalogStore.in_dir(home / ".plugdeck")


@pytest.fixture
def manager(host: FakeHost, store: CustomCatalogStore) -> PluginManager:
    """A manager over the in-memory host."""
    return PluginManager(host, store)
