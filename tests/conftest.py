"""Shared pytest fixtures for the Launchpad test suite.

Provides reusable fixtures for:
- Project directories shaped like static sites and full-stack apps
- A scripted stand-in for ProcessRunner (no processes spawned)
- A mocked Railway GraphQL client
- Mocked httpx responses
- Deployment request factories
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from launchpad.models import CommandOutcome, DeploymentRequest, Provider
from launchpad.railway_client import RailwayClient
from launchpad.runner.locator import CLICommand

TOKEN = "tok-secret-123"


# ---------------------------------------------------------------------------
# Scripted process runner
# ---------------------------------------------------------------------------

@dataclass
class RecordedCall:
    """One invocation captured by ScriptedRunner."""

    argv: list[str]
    cwd: Path
    env: Optional[dict[str, str]]
    prompt: Any
    redact: tuple[str, ...]

    def starts_with(self, *prefix: str) -> bool:
        return tuple(self.argv[: len(prefix)]) == prefix


@dataclass
class ScriptedRunner:
    """Drop-in for ``ProcessRunner`` that replays scripted outcomes.

    Outcomes are keyed by an argv prefix. Several outcomes for the same prefix
    are returned in order; the last one repeats. Unscripted commands succeed
    with empty output.

    Usage::

        runner.script(("netlify", "deploy"), ok("Live URL: https://x.netlify.app"))
    """

    calls: list[RecordedCall] = field(default_factory=list)
    rules: list[tuple[tuple[str, ...], list[CommandOutcome]]] = field(default_factory=list)

    def script(self, prefix: tuple[str, ...], *outcomes: CommandOutcome) -> None:
        self.rules.append((prefix, list(outcomes)))

    async def run(
        self,
        command: str,
        args: list[str],
        *,
        cwd: Path,
        env: Optional[dict[str, str]] = None,
        prompt: Any = None,
        on_progress: Any = None,
        redact: tuple[str, ...] = (),
    ) -> CommandOutcome:
        call = RecordedCall(
            argv=[command, *args],
            cwd=Path(cwd),
            env=dict(env) if env is not None else None,
            prompt=prompt,
            redact=tuple(redact),
        )
        self.calls.append(call)
        if on_progress is not None:
            on_progress(f"Running: {' '.join(call.argv)}")
        for prefix, outcomes in self.rules:
            if call.starts_with(*prefix):
                return outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
        return CommandOutcome(success=True)

    def find(self, *prefix: str) -> list[RecordedCall]:
        return [call for call in self.calls if call.starts_with(*prefix)]


def ok(stdout: str = "") -> CommandOutcome:
    return CommandOutcome(success=True, stdout=stdout, exit_code=0)


def fail(error: str, code: int = 1) -> CommandOutcome:
    return CommandOutcome(success=False, stderr=error, error=error, exit_code=code)


@pytest.fixture
def scripted_runner() -> ScriptedRunner:
    return ScriptedRunner()


@pytest.fixture
def netlify_cli() -> CLICommand:
    return CLICommand(executable="netlify")


@pytest.fixture
def railway_cli() -> CLICommand:
    return CLICommand(executable="railway")


# ---------------------------------------------------------------------------
# Railway API client
# ---------------------------------------------------------------------------

@pytest.fixture
def railway_api() -> AsyncMock:
    """Mocked RailwayClient; every operation degrades to "nothing found"."""
    client = AsyncMock(spec=RailwayClient)
    client.get_environments.return_value = []
    client.create_service.return_value = None
    client.create_service_domain.return_value = None
    client.get_project_services.return_value = []
    client.find_service_domain.return_value = None
    return client


@pytest.fixture
def mock_http():
    """Factory patching ``httpx.AsyncClient`` to answer every POST the same way.

    Usage::

        with mock_http(json_body={"data": {...}}) as client:
            ...
        client.post.call_args
    """

    def factory(
        json_body: Any = None,
        side_effect: Optional[BaseException] = None,
        status_code: int = 200,
    ):
        mock_response = MagicMock()
        mock_response.status_code = status_code
        mock_response.json.return_value = json_body
        mock_response.raise_for_status = MagicMock()

        mock_client = AsyncMock()
        if side_effect is not None:
            mock_client.post = AsyncMock(side_effect=side_effect)
        else:
            mock_client.post = AsyncMock(return_value=mock_response)
        mock_client.__aenter__ = AsyncMock(return_value=mock_client)
        mock_client.__aexit__ = AsyncMock(return_value=False)

        patcher = patch("httpx.AsyncClient", return_value=mock_client)

        class _Ctx:
            def __enter__(self):
                patcher.start()
                return mock_client

            def __exit__(self, *exc):
                patcher.stop()
                return False

        return _Ctx()

    return factory


# ---------------------------------------------------------------------------
# Projects & requests
# ---------------------------------------------------------------------------

@pytest.fixture
def static_project(tmp_path: Path) -> Path:
    """Static site with a ``dist/`` build output."""
    project = tmp_path / "my-app"
    (project / "dist").mkdir(parents=True)
    (project / "dist" / "index.html").write_text("<h1>hi</h1>", encoding="utf-8")
    return project


@pytest.fixture
def fullstack_project(tmp_path: Path) -> Path:
    """Project with ``backend/`` and ``frontend/`` subdirectories."""
    project = tmp_path / "shop"
    (project / "backend").mkdir(parents=True)
    (project / "frontend").mkdir()
    (project / "docs").mkdir()
    return project


@pytest.fixture
def make_request():
    """Factory for DeploymentRequest with a test token and a recording sink."""

    def factory(
        provider: Provider,
        project_path: Path,
        project_name: str = "My App",
        env_vars: Optional[dict[str, str]] = None,
        existing_resource_id: Optional[str] = None,
        sink: Optional[list[str]] = None,
    ) -> DeploymentRequest:
        lines = sink if sink is not None else []
        return DeploymentRequest(
            provider=provider,
            project_path=project_path,
            project_name=project_name,
            auth_token=TOKEN,
            env_vars=env_vars or {},
            existing_resource_id=existing_resource_id,
            progress_sink=lines.append,
        )

    return factory
