"""Launchpad configuration.

Centralised, typed configuration for the deployment orchestrators. All settings
use Pydantic v2 models so they can be validated at construction time and
serialised to/from JSON or environment variables without boiler-plate.

Auth tokens are deliberately absent: they travel with each deployment request
and are never written to disk.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field


class RunnerConfig(BaseModel):
    """Tuning knobs for spawned CLI processes."""

    prompt_delay: float = Field(
        default=0.1, ge=0, description="Seconds to wait before answering a detected prompt"
    )
    version_timeout: float = Field(
        default=10.0, gt=0, description="Timeout for `--version` probes in seconds"
    )
    chunk_size: int = Field(default=4096, ge=64, description="Stream read size in bytes")


class LocatorConfig(BaseModel):
    """Where to look for the bundled provider CLIs.

    ``packaged`` switches between the development candidate list (relative to
    ``app_root``) and the installed one (relative to ``resources_path``).
    """

    app_root: Path = Field(default=Path("."))
    resources_path: Path | None = Field(default=None)
    packaged: bool = Field(default=False)
    railway_cli: Path | None = Field(default=None, description="Explicit Railway binary")
    netlify_cli: Path | None = Field(default=None, description="Explicit Netlify run.js script")
    node_binary: str | None = Field(default=None, description="Interpreter for the Netlify script")

    @property
    def resources_root(self) -> Path:
        """Installed-mode resource directory (falls back to ``app_root``)."""
        return self.resources_path or self.app_root


class NetlifyConfig(BaseModel):
    """Single-target (static site) deploy settings."""

    build_command: list[str] = Field(default_factory=lambda: ["npm", "run", "build"])
    build_dirs: list[str] = Field(
        default_factory=lambda: ["dist", "frontend/dist", "build", "frontend/build", "out"]
    )
    state_dir: str = Field(default=".netlify")
    state_file: str = Field(default="state.json")


class RailwayConfig(BaseModel):
    """Multi-service deploy settings."""

    api_url: str = Field(default="https://backboard.railway.app/graphql/v2")
    api_timeout: int = Field(default=30, ge=1, description="Per-request timeout in seconds")
    backend_dir: str = Field(default="backend")
    frontend_dir: str = Field(default="frontend")
    frontend_env_prefix: str = Field(default="VITE_")
    backend_url_var: str = Field(default="VITE_API_URL")
    frontend_url_var: str = Field(default="FRONTEND_URL")
    production_environment: str = Field(default="production")


class Config(BaseModel):
    """Global Launchpad configuration.

    Instances are typically created once by the CLI entry point (or the host
    application) and passed to ``DeploymentService``.
    """

    runner: RunnerConfig = Field(default_factory=RunnerConfig)
    locator: LocatorConfig = Field(default_factory=LocatorConfig)
    netlify: NetlifyConfig = Field(default_factory=NetlifyConfig)
    railway: RailwayConfig = Field(default_factory=RailwayConfig)

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file.

        Args:
            path: Destination file. Parent directories are created.

        Returns:
            The path where the file was written.
        """
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            LAUNCHPAD_APP_ROOT, LAUNCHPAD_RESOURCES_PATH, LAUNCHPAD_PACKAGED,
            LAUNCHPAD_RAILWAY_CLI, LAUNCHPAD_NETLIFY_CLI, LAUNCHPAD_NODE,
            LAUNCHPAD_RAILWAY_API_URL, LAUNCHPAD_RAILWAY_API_TIMEOUT,
            LAUNCHPAD_PROMPT_DELAY, LAUNCHPAD_VERSION_TIMEOUT.
        """
        locator_kwargs: dict[str, Any] = {}
        if os.environ.get("LAUNCHPAD_APP_ROOT"):
            locator_kwargs["app_root"] = Path(os.environ["LAUNCHPAD_APP_ROOT"])
        if os.environ.get("LAUNCHPAD_RESOURCES_PATH"):
            locator_kwargs["resources_path"] = Path(os.environ["LAUNCHPAD_RESOURCES_PATH"])
        if os.environ.get("LAUNCHPAD_PACKAGED"):
            locator_kwargs["packaged"] = os.environ["LAUNCHPAD_PACKAGED"].lower() in (
                "1", "true", "yes",
            )
        if os.environ.get("LAUNCHPAD_RAILWAY_CLI"):
            locator_kwargs["railway_cli"] = Path(os.environ["LAUNCHPAD_RAILWAY_CLI"])
        if os.environ.get("LAUNCHPAD_NETLIFY_CLI"):
            locator_kwargs["netlify_cli"] = Path(os.environ["LAUNCHPAD_NETLIFY_CLI"])
        if os.environ.get("LAUNCHPAD_NODE"):
            locator_kwargs["node_binary"] = os.environ["LAUNCHPAD_NODE"]

        railway_kwargs: dict[str, Any] = {}
        if os.environ.get("LAUNCHPAD_RAILWAY_API_URL"):
            railway_kwargs["api_url"] = os.environ["LAUNCHPAD_RAILWAY_API_URL"]
        if os.environ.get("LAUNCHPAD_RAILWAY_API_TIMEOUT"):
            railway_kwargs["api_timeout"] = int(os.environ["LAUNCHPAD_RAILWAY_API_TIMEOUT"])

        runner_kwargs: dict[str, Any] = {}
        if os.environ.get("LAUNCHPAD_PROMPT_DELAY"):
            runner_kwargs["prompt_delay"] = float(os.environ["LAUNCHPAD_PROMPT_DELAY"])
        if os.environ.get("LAUNCHPAD_VERSION_TIMEOUT"):
            runner_kwargs["version_timeout"] = float(os.environ["LAUNCHPAD_VERSION_TIMEOUT"])

        return cls(
            runner=RunnerConfig(**runner_kwargs),
            locator=LocatorConfig(**locator_kwargs),
            railway=RailwayConfig(**railway_kwargs),
        )
