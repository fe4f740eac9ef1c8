"""Data models shared by the deployment orchestrators.

Request/result records crossing the caller boundary are Pydantic v2 models;
the per-call working values (``ServiceTopology``) are frozen dataclasses that
pipeline steps update functionally with ``dataclasses.replace``.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict, Field

ProgressSink = Callable[[str], None]


def _discard(_message: str) -> None:
    return None


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class Provider(str, Enum):
    """Supported deployment targets."""
    RAILWAY = "railway"
    NETLIFY = "netlify"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

    @classmethod
    def parse(cls, value: str) -> Optional["Provider"]:
        """Return the provider whose tag is exactly *value*, or ``None``."""
        try:
            return cls(value)
        except ValueError:
            return None


# ---------------------------------------------------------------------------
# Caller-facing records
# ---------------------------------------------------------------------------

class DeploymentRequest(BaseModel):
    """Everything one deploy call needs. Immutable for the duration of the call."""

    model_config = ConfigDict(frozen=True)

    provider: Provider
    project_path: Path
    project_name: str
    auth_token: str = Field(..., repr=False)
    env_vars: dict[str, str] = Field(default_factory=dict)
    existing_resource_id: Optional[str] = Field(
        default=None, description="Site id (Netlify) or project id (Railway) for redeploys"
    )
    progress_sink: ProgressSink = Field(default=_discard, exclude=True, repr=False)

    def progress(self, message: str) -> None:
        """Forward one narrative line to the caller."""
        self.progress_sink(message)


class DeploymentResult(BaseModel):
    """Outcome of one top-level deploy call."""

    success: bool
    url: Optional[str] = None
    site_id: Optional[str] = None
    project_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def resource_id(self) -> Optional[str]:
        """The provider-specific identifier to store for the next redeploy."""
        return self.site_id or self.project_id

    @classmethod
    def failure(cls, error: str) -> "DeploymentResult":
        return cls(success=False, error=error or "Unknown error")


class CLIAvailability(BaseModel):
    """Availability of one provider CLI, computed at service initialization."""

    available: bool = False
    path: Optional[str] = None
    version: Optional[str] = None
    error: Optional[str] = None


class DeploymentServiceStatus(BaseModel):
    """Availability of every provider CLI."""

    railway: CLIAvailability = Field(default_factory=CLIAvailability)
    netlify: CLIAvailability = Field(default_factory=CLIAvailability)

    def for_provider(self, provider: Provider) -> CLIAvailability:
        return self.railway if provider is Provider.RAILWAY else self.netlify


# ---------------------------------------------------------------------------
# Internal working values
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CommandOutcome:
    """Result of one subprocess run. Never persisted."""

    success: bool
    stdout: str = ""
    stderr: str = ""
    error: Optional[str] = None
    exit_code: Optional[int] = None


@dataclass(frozen=True)
class ServiceTopology:
    """Identifiers resolved so far during one multi-service deploy call."""

    project_id: Optional[str] = None
    environment_id: Optional[str] = None
    backend_service_id: Optional[str] = None
    frontend_service_id: Optional[str] = None
    backend_url: Optional[str] = None
    frontend_url: Optional[str] = None

    def with_(self, **changes: Optional[str]) -> "ServiceTopology":
        """Return a copy with *changes* applied."""
        return replace(self, **changes)
