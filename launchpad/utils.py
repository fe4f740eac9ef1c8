"""Shared utility functions for Launchpad.

Provides async command execution, JSON I/O, resource-name helpers and
Rich-based diagnostic output. The shared ``console`` writes to stderr so the
progress narrative printed by the CLI keeps stdout to itself.
"""

from __future__ import annotations

import asyncio
import json
import os
import re
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

console = Console(stderr=True)

# ---------------------------------------------------------------------------
# Async command execution
# ---------------------------------------------------------------------------


async def run_command(
    cmd: list[str],
    cwd: str | Path | None = None,
    timeout: float = 120,
    env: dict[str, str] | None = None,
) -> tuple[int, str, str]:
    """Run a short-lived command asynchronously and capture its output.

    Used for quick probes (``git rev-parse``, ``--version``). Long-running,
    streamed deploy commands go through ``launchpad.runner.ProcessRunner``.

    Args:
        cmd: Argument vector; the first element is the executable.
        cwd: Working directory for the child process.
        timeout: Maximum wall-clock seconds before the process is killed.
        env: Optional extra environment variables merged on top of ``os.environ``.

    Returns:
        A ``(returncode, stdout, stderr)`` tuple. A command that cannot be
        started returns ``(-1, "", <reason>)``.
    """
    merged_env: dict[str, str] | None = None
    if env:
        merged_env = {**os.environ, **env}

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd) if cwd else None,
            env=merged_env,
        )
    except OSError as exc:
        return (-1, "", f"Could not start {cmd[0]}: {exc}")

    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(
            process.communicate(), timeout=timeout
        )
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        return (-1, "", f"Command timed out after {timeout}s: {' '.join(cmd)}")

    stdout_str = (stdout_bytes or b"").decode("utf-8", errors="replace").strip()
    stderr_str = (stderr_bytes or b"").decode("utf-8", errors="replace").strip()
    return (process.returncode or 0, stdout_str, stderr_str)


async def get_head_commit(project_path: str | Path) -> str | None:
    """Return the project's current git HEAD hash, or ``None`` if unavailable."""
    code, stdout, _ = await run_command(
        ["git", "rev-parse", "HEAD"], cwd=project_path, timeout=5
    )
    if code != 0 or not stdout:
        return None
    return stdout


# ---------------------------------------------------------------------------
# Resource-name helpers
# ---------------------------------------------------------------------------


def site_name(project_name: str) -> str:
    """Convert a display name into a Netlify site name.

    Lowercases and replaces every character outside ``[a-z0-9-]`` with a
    hyphen. Hyphens are not collapsed.

    Examples::

        site_name("My App!!") -> "my-app--"
        site_name("shop-2024") -> "shop-2024"
    """
    return re.sub(r"[^a-z0-9-]", "-", project_name.lower())


def project_slug(project_name: str) -> str:
    """Convert a display name into a Railway project name (case preserved)."""
    return re.sub(r"[^a-zA-Z0-9-]", "-", project_name)


def mask_secrets(parts: Sequence[str], secrets: Sequence[str]) -> list[str]:
    """Mask secret values in an argument vector.

    An argument equal to a secret becomes ``***``; a ``KEY=VALUE`` argument
    whose value is a secret becomes ``KEY=***``. Nothing else is touched, so a
    short secret never masks unrelated text.
    """
    hidden = {secret for secret in secrets if secret}
    masked: list[str] = []
    for part in parts:
        key, sep, value = part.partition("=")
        if part in hidden:
            part = "***"
        elif sep and value in hidden:
            part = f"{key}=***"
        masked.append(part)
    return masked


# ---------------------------------------------------------------------------
# JSON I/O
# ---------------------------------------------------------------------------


def load_json(path: str | Path) -> dict[str, Any]:
    """Load and parse a JSON file.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
    """
    file_path = Path(path)
    raw = file_path.read_text(encoding="utf-8")
    data = json.loads(raw)
    if not isinstance(data, dict):
        return {"_root": data}
    return data


async def save_json(data: dict[str, Any] | list[Any], path: str | Path) -> None:
    """Save data as pretty-printed JSON.

    Parent directories are created automatically. The write itself runs in a
    thread-pool executor to avoid blocking the event loop.
    """
    file_path = Path(path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    content = json.dumps(data, indent=2, ensure_ascii=False, default=str)

    loop = asyncio.get_running_loop()
    await loop.run_in_executor(None, file_path.write_text, content, "utf-8")


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def format_duration(seconds: float) -> str:
    """Format a duration in seconds to a human-readable string.

    Examples::

        format_duration(3.7)    -> "3.7s"
        format_duration(65.2)   -> "1m 5s"
        format_duration(3661.0) -> "1h 1m 1s"
    """
    if seconds < 0:
        return "0.0s"

    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = seconds % 60

    parts: list[str] = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")

    if hours > 0 or minutes > 0:
        parts.append(f"{int(secs)}s")
    else:
        parts.append(f"{secs:.1f}s")

    return " ".join(parts)


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def log_line(prefix: str, message: str, style: str = "cyan") -> None:
    """Print one diagnostic line tagged with a provider prefix.

    *message* is escaped, so CLI output containing ``[brackets]`` is printed
    verbatim rather than being parsed as Rich markup.
    """
    console.print(f"[{style}]\\[{prefix}][/{style}] {escape(message)}")


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Print a two-column key/value summary table."""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)
    console.print()


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{escape(message)}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{escape(message)}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{escape(message)}[/bold yellow]")
