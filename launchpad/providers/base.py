"""Shared plumbing for provider orchestrators."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Optional

from launchpad.models import CommandOutcome, DeploymentRequest, DeploymentResult, Provider
from launchpad.runner.locator import CLICommand
from launchpad.runner.process import ProcessRunner, PromptPolicy
from launchpad.utils import log_line, print_error, print_warning


class DeploymentError(Exception):
    """Raised by a hard-fail step; becomes the result's ``error``."""

    def __init__(self, message: str, step: str = "") -> None:
        self.step = step
        super().__init__(message)


def non_blank(env_vars: Mapping[str, str]) -> dict[str, str]:
    """Entries whose value is non-empty after trimming, in input order."""
    return {key: value for key, value in env_vars.items() if value and value.strip()}


class Deployer:
    """Base class for one provider's deploy flow.

    Subclasses implement ``_deploy``; ``deploy`` is the boundary that turns
    every exception into a failed ``DeploymentResult``.
    """

    provider: Provider
    prefix: str = "DEPLOY"

    def __init__(
        self,
        runner: ProcessRunner,
        cli: CLICommand,
        prompt: Optional[PromptPolicy] = None,
    ) -> None:
        self.runner = runner
        self.cli = cli
        self.prompt = prompt or PromptPolicy()

    async def deploy(self, request: DeploymentRequest) -> DeploymentResult:
        try:
            return await self._deploy(request)
        except DeploymentError as exc:
            print_error(f"[{self.prefix}] {exc}")
            return DeploymentResult.failure(str(exc))
        except Exception as exc:  # noqa: BLE001
            print_error(f"[{self.prefix}] Deploy error: {exc!r}")
            return DeploymentResult.failure(str(exc))

    async def _deploy(self, request: DeploymentRequest) -> DeploymentResult:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _cli(
        self,
        request: DeploymentRequest,
        *args: str,
        env: Mapping[str, str],
        prompt: Optional[PromptPolicy] = None,
        redact: Sequence[str] = (),
        cwd: Optional[Path] = None,
    ) -> CommandOutcome:
        """Run one provider CLI sub-command in the project directory."""
        return await self.runner.run(
            self.cli.executable,
            self.cli.args(*args),
            cwd=cwd or request.project_path,
            env=env,
            prompt=prompt,
            on_progress=request.progress_sink,
            redact=redact,
        )

    def _narrate(self, request: DeploymentRequest, message: str) -> None:
        """Tell the caller and the diagnostic log about a step."""
        log_line(self.prefix, message)
        request.progress(message)

    def _warn(self, message: str) -> None:
        print_warning(f"[{self.prefix}] {message}")
