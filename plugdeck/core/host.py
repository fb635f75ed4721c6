"""
Host collaborators: file, directory, process and browser access.

The engine never touches the filesystem or spawns processes directly; it
goes through a Host. LocalHost is the real implementation. Tests swap in
their own Host with the same coroutine methods.
"""

import asyncio
import logging
import os
import re
import shutil
import tempfile
import webbrowser
from pathlib import Path
from typing import Optional, Protocol
from urllib.parse import urlparse

import aiofiles

from plugdeck.core.tools import expand_home, skill_root
from plugdeck.lib.typed_errors import ProbeError
from plugdeck.models.extension import InstalledSkill, ToolCapability

logger = logging.getLogger(__name__)


class Host(Protocol):
    """Collaborator calls consumed by the engine."""

    async def read_config_file(self, path: str) -> str: ...

    async def write_config_file(self, path: str, content: str) -> None: ...

    async def list_installed_skills(self, scope: str) -> list[InstalledSkill]: ...

    async def install_skill_from_source(self, url: str, name: str, scope: str) -> str: ...

    async def remove_directory(self, path: str) -> None: ...

    async def probe_server_liveness(
        self, command: str, args: list[str], env: Optional[dict[str, str]]
    ) -> list[ToolCapability]: ...

    def open_external_url(self, url: str) -> None: ...


def derive_skill_folder(url: str) -> str:
    """Derive an 'owner-repo' folder name from a git URL."""
    path = urlparse(url).path if "://" in url else url
    parts = [p for p in path.rstrip("/").removesuffix(".git").split("/") if p]
    if len(parts) >= 2:
        name = f"{parts[-2]}-{parts[-1]}"
    elif parts:
        name = parts[-1]
    else:
        name = "skill"
    return re.sub(r"[^a-zA-Z0-9_.-]", "-", name).strip("-") or "skill"


def atomic_write_text(path: Path, content: str) -> None:
    """Atomically write a text file; on failure the old content stays in place."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp", prefix=f".{path.name}-")
    closed = False
    try:
        os.write(fd, content.encode("utf-8"))
        os.fsync(fd)
        os.close(fd)
        closed = True
        os.replace(tmp_path, path)
    except Exception:
        if not closed:
            os.close(fd)
        if Path(tmp_path).exists():
            os.unlink(tmp_path)
        raise


class LocalHost:
    """Host backed by the local filesystem, git and the MCP stdio client."""

    def __init__(self, home_dir: Path, git_timeout: float = 60):
        self.home_dir = home_dir
        self.git_timeout = git_timeout

    def resolve(self, path: str) -> Path:
        return expand_home(path, self.home_dir)

    async def read_config_file(self, path: str) -> str:
        """Read a config file; an absent file reads as ""."""
        full_path = self.resolve(path)
        if not full_path.exists():
            return ""
        async with aiofiles.open(full_path, "r", encoding="utf-8") as f:
            return await f.read()

    async def write_config_file(self, path: str, content: str) -> None:
        """Write a config file, creating parent directories."""
        full_path = self.resolve(path)
        await asyncio.to_thread(atomic_write_text, full_path, content)
        logger.debug(f"Wrote {len(content)} bytes to {full_path}")

    async def list_installed_skills(self, scope: str) -> list[InstalledSkill]:
        """List skill directories under a scope's root."""
        root = skill_root(scope, self.home_dir)

        def _list() -> list[InstalledSkill]:
            if not root.is_dir():
                return []
            return [
                InstalledSkill(path=str(entry), name=entry.name)
                for entry in sorted(root.iterdir())
                if entry.is_dir()
            ]

        return await asyncio.to_thread(_list)

    async def install_skill_from_source(self, url: str, name: str, scope: str) -> str:
        """
        Clone a skill repository into the scope's skill root.

        Returns the install path.

        Raises:
            ValueError: If the target directory already exists
            RuntimeError: If git clone fails or times out
        """
        root = skill_root(scope, self.home_dir)
        root.mkdir(parents=True, exist_ok=True)
        folder = name or derive_skill_folder(url)
        target = root / folder

        if target.exists():
            raise ValueError(f"Skill '{folder}' is already installed at {target}")

        logger.info(f"Cloning skill {url} into {target}")
        proc = await asyncio.create_subprocess_exec(
            "git", "clone", "--depth", "1", url, str(target),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            _, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.git_timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            shutil.rmtree(target, ignore_errors=True)
            raise RuntimeError(f"git clone timed out after {self.git_timeout}s")

        if proc.returncode != 0:
            error_msg = stderr.decode().strip() if stderr else "Unknown error"
            shutil.rmtree(target, ignore_errors=True)
            raise RuntimeError(f"Git clone failed: {error_msg}")

        return str(target)

    async def remove_directory(self, path: str) -> None:
        """Delete a directory tree. Raises FileNotFoundError if it is missing."""
        target = Path(path)
        if not target.exists():
            raise FileNotFoundError(f"Path does not exist: {path}")
        await asyncio.to_thread(shutil.rmtree, target)
        logger.info(f"Removed {target}")

    async def probe_server_liveness(
        self, command: str, args: list[str], env: Optional[dict[str, str]]
    ) -> list[ToolCapability]:
        """
        Start an MCP server over stdio and list its tools.

        No timeout is applied; callers cancel the task to give up.

        Raises:
            ProbeError: With the underlying failure message
        """
        from mcp import ClientSession, StdioServerParameters
        from mcp.client.stdio import stdio_client

        params = StdioServerParameters(
            command=command,
            args=list(args),
            env={**os.environ, **env} if env else None,
        )
        try:
            async with stdio_client(params) as (read, write):
                async with ClientSession(read, write) as session:
                    await session.initialize()
                    result = await session.list_tools()
        except Exception as e:
            raise ProbeError(str(e) or type(e).__name__) from e

        return [ToolCapability(name=t.name, description=t.description) for t in result.tools]

    def open_external_url(self, url: str) -> None:
        """Open a URL in the default browser without waiting."""
        webbrowser.open(url)
