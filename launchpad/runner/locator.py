"""Provider CLI discovery and process environments.

Resolves each provider's executable from a short ordered candidate list (the
first existing path wins) and builds the environment its processes run in.
The Railway CLI is a native binary; the Netlify CLI is a Node script run as
``<node> <run.js> ...``.
"""

from __future__ import annotations

import asyncio
import os
import platform
import stat
import sys
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from launchpad.config import LocatorConfig
from launchpad.models import Provider
from launchpad.parser.output import extract_version
from launchpad.utils import log_line, print_error, print_warning

NETLIFY_SCRIPT = Path("node_modules") / "netlify-cli" / "bin" / "run.js"

NODE_CANDIDATES: tuple[str, ...] = (
    "/usr/local/bin/node",
    "/opt/homebrew/bin/node",
    "/usr/bin/node",
)

_ARCH_ALIASES = {
    "x86_64": "x64",
    "amd64": "x64",
    "aarch64": "arm64",
    "arm64": "arm64",
}


@dataclass(frozen=True)
class CLICommand:
    """How to invoke a provider CLI: an executable plus fixed leading args."""

    executable: str
    base_args: tuple[str, ...] = field(default_factory=tuple)

    def args(self, *args: str) -> list[str]:
        """Arguments to pass after ``executable`` for a sub-command."""
        return [*self.base_args, *args]

    @property
    def path(self) -> str:
        """The located CLI artifact (script for interpreted CLIs)."""
        return self.base_args[0] if self.base_args else self.executable


def platform_key() -> str:
    """Bundled-binary directory name, e.g. ``darwin-arm64`` or ``linux-x64``."""
    machine = platform.machine().lower()
    return f"{sys.platform}-{_ARCH_ALIASES.get(machine, machine)}"


def build_environment(
    provider: Provider,
    token: str,
    base_env: Optional[Mapping[str, str]] = None,
) -> dict[str, str]:
    """Build the process environment for a provider CLI.

    Railway gets the token only under ``RAILWAY_API_TOKEN`` (account level).
    ``RAILWAY_TOKEN`` is project scoped and takes precedence when present,
    which blocks ``init``/``link``/``whoami``, so it is removed even if the
    ambient environment carries one.

    Netlify gets ``NETLIFY_AUTH_TOKEN``, an empty ``NETLIFY_SITE_ID`` (pinned
    later per deploy) and ``NODE_ENV=production``.

    Both run with ``CI=true`` so neither CLI blocks on a terminal it cannot get.
    """
    env = dict(os.environ if base_env is None else base_env)
    env["CI"] = "true"

    if provider is Provider.RAILWAY:
        env.pop("RAILWAY_TOKEN", None)
        env["RAILWAY_API_TOKEN"] = token
    else:
        env["NETLIFY_AUTH_TOKEN"] = token
        env["NETLIFY_SITE_ID"] = ""
        env["NODE_ENV"] = "production"
    return env


class CLILocator:
    """Finds the provider CLIs for the current packaging mode."""

    def __init__(self, config: LocatorConfig) -> None:
        self.config = config

    # ------------------------------------------------------------------
    # Candidate lists
    # ------------------------------------------------------------------

    def railway_candidates(self) -> list[Path]:
        binary = "railway.exe" if sys.platform == "win32" else "railway"
        candidates: list[Path] = []
        if self.config.railway_cli:
            candidates.append(self.config.railway_cli)
        if self.config.packaged:
            candidates.append(self.config.resources_root / "binaries" / binary)
        else:
            candidates.append(
                self.config.app_root / "resources" / "binaries" / platform_key() / binary
            )
        return candidates

    def netlify_candidates(self) -> list[Path]:
        candidates: list[Path] = []
        if self.config.netlify_cli:
            candidates.append(self.config.netlify_cli)
        if self.config.packaged:
            resources = self.config.resources_root
            candidates.append(resources / "app.asar.unpacked" / NETLIFY_SCRIPT)
            candidates.append(resources / "app" / NETLIFY_SCRIPT)
        else:
            candidates.append(self.config.app_root / NETLIFY_SCRIPT)
        return candidates

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def locate(self, provider: Provider) -> Optional[Path]:
        """Return the first existing candidate path for *provider*, or ``None``."""
        if provider is Provider.RAILWAY:
            candidates = self.railway_candidates()
        else:
            candidates = self.netlify_candidates()

        for candidate in candidates:
            if candidate.exists():
                log_line("LOCATOR", f"Found {provider.display_name} CLI at: {candidate}")
                if provider is Provider.RAILWAY:
                    self._ensure_executable(candidate)
                return candidate

        print_warning(
            f"{provider.display_name} CLI not found. Checked: "
            + ", ".join(str(c) for c in candidates)
        )
        return None

    def command_for(self, provider: Provider, path: Path) -> CLICommand:
        """Turn a located path into an invocable command."""
        if provider is Provider.RAILWAY:
            return CLICommand(executable=str(path))
        return CLICommand(executable=self.node_binary(), base_args=(str(path),))

    def node_binary(self) -> str:
        """Resolve the system Node.js interpreter, falling back to ``node`` on PATH."""
        if self.config.node_binary:
            return self.config.node_binary
        candidates = list(NODE_CANDIDATES)
        if os.environ.get("NODE_PATH"):
            candidates.append(os.path.join(os.environ["NODE_PATH"], "node"))
        for candidate in candidates:
            if os.path.exists(candidate):
                return candidate
        return "node"

    @staticmethod
    def _ensure_executable(path: Path) -> None:
        """Best-effort ``chmod 755`` for a bundled binary on non-Windows hosts."""
        if sys.platform == "win32" or os.access(path, os.X_OK):
            return
        try:
            path.chmod(stat.S_IRWXU | stat.S_IRGRP | stat.S_IXGRP | stat.S_IROTH | stat.S_IXOTH)
        except OSError as exc:
            print_error(f"Failed to make {path} executable: {exc}")


async def probe_version(command: CLICommand, timeout: float = 10.0) -> Optional[str]:
    """Run ``<cli> --version`` and return a normalised version string.

    Returns ``None`` when the CLI cannot be started, times out or exits
    non-zero.
    """
    try:
        process = await asyncio.create_subprocess_exec(
            command.executable,
            *command.args("--version"),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError:
        return None

    try:
        stdout_bytes, _ = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        return None

    if process.returncode != 0:
        return None
    return extract_version(stdout_bytes.decode("utf-8", errors="replace"))
