"""Project env-file collection.

Reads a project's ``.env`` files into one mapping for a deployment request.
Files are parsed with ``dotenv_values`` so nothing leaks into our own
``os.environ``.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Literal

from dotenv import dotenv_values

DEFAULT_ENV_FILES: tuple[str, ...] = (".env", "backend/.env", "frontend/.env")

FRONTEND_PREFIX = "VITE_"

# Keys that are safe to ship to the browser even without the build-tool prefix.
FRONTEND_KEYS: frozenset[str] = frozenset(
    {"STRIPE_PUBLISHABLE_KEY", "SUPABASE_URL", "SUPABASE_ANON_KEY"}
)

EnvTarget = Literal["frontend", "backend"]


def load_env_files(
    project_path: str | Path, files: Sequence[str] = DEFAULT_ENV_FILES
) -> dict[str, str]:
    """Merge the project's env files in order; later files override earlier ones.

    Missing files are skipped. Keys without a value and blank values are
    dropped.
    """
    root = Path(project_path)
    merged: dict[str, str] = {}
    for relative in files:
        env_file = root / relative
        if not env_file.is_file():
            continue
        for key, value in dotenv_values(env_file).items():
            if value is None or not value.strip():
                continue
            merged[key] = value
    return merged


def env_key_target(key: str) -> EnvTarget:
    """Which side of a full-stack project a variable belongs to."""
    if key.startswith(FRONTEND_PREFIX) or key in FRONTEND_KEYS:
        return "frontend"
    return "backend"


def split_by_target(env_vars: dict[str, str]) -> dict[EnvTarget, list[str]]:
    """Group variable names by ``env_key_target``, preserving order."""
    groups: dict[EnvTarget, list[str]] = {"frontend": [], "backend": []}
    for key in env_vars:
        groups[env_key_target(key)].append(key)
    return groups
