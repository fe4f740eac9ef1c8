"""Single-target (static site) deploy on Netlify.

Strictly sequential: build locally, locate the build output, create or reuse
the site, push env vars, deploy the prebuilt directory, read back the URL.
Any hard failure ends the flow with a failed result; there is no partial
success.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Optional

from launchpad.config import NetlifyConfig
from launchpad.models import DeploymentRequest, DeploymentResult, Provider
from launchpad.parser.output import extract_netlify_url, extract_site_id
from launchpad.providers.base import Deployer, DeploymentError, non_blank
from launchpad.runner.locator import CLICommand, build_environment
from launchpad.runner.process import ProcessRunner, PromptPolicy
from launchpad.utils import load_json, print_warning, save_json, site_name


def site_state_path(project_path: str | Path, config: Optional[NetlifyConfig] = None) -> Path:
    """Location of the per-project site state file (``.netlify/state.json``)."""
    cfg = config or NetlifyConfig()
    return Path(project_path) / cfg.state_dir / cfg.state_file


def load_site_id(project_path: str | Path, config: Optional[NetlifyConfig] = None) -> Optional[str]:
    """Read the site id saved by a previous deploy, or ``None``.

    A missing or unreadable state file is treated as "no site yet".
    """
    path = site_state_path(project_path, config)
    if not path.exists():
        return None
    try:
        site_id = load_json(path).get("siteId")
    except (OSError, ValueError) as exc:
        print_warning(f"Ignoring unreadable site state {path}: {exc}")
        return None
    return str(site_id) if site_id else None


class NetlifyDeployer(Deployer):
    """Builds locally and deploys the output directory to a Netlify site."""

    provider = Provider.NETLIFY
    prefix = "NETLIFY"

    def __init__(
        self,
        runner: ProcessRunner,
        cli: CLICommand,
        config: Optional[NetlifyConfig] = None,
        prompt: Optional[PromptPolicy] = None,
    ) -> None:
        super().__init__(runner, cli, prompt)
        self.config = config or NetlifyConfig()

    async def _deploy(self, request: DeploymentRequest) -> DeploymentResult:
        env = build_environment(Provider.NETLIFY, request.auth_token)

        await self._build(request)
        build_dir = self.locate_build_dir(request.project_path)

        site_id = request.existing_resource_id
        if not site_id:
            site_id = await self._create_site(request, env)
        if site_id:
            env["NETLIFY_SITE_ID"] = site_id

        await self._set_env_vars(request, env)

        self._narrate(request, "Deploying to Netlify...")
        deploy_args = ["deploy", "--prod", "--dir", build_dir, "--no-build"]
        if site_id:
            deploy_args += ["--site", site_id]
        outcome = await self._cli(request, *deploy_args, env=env)
        if not outcome.success:
            raise DeploymentError(f"Deploy failed: {outcome.error}", step="deploy")

        url = extract_netlify_url(outcome.stdout)
        self._narrate(
            request, f"Deployed successfully!{f' Live at: {url}' if url else ''}"
        )
        return DeploymentResult(success=True, url=url, site_id=site_id)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _build(self, request: DeploymentRequest) -> None:
        """Run the local build with the ambient environment (no deploy token)."""
        self._narrate(request, "Building project...")
        command, *args = self.config.build_command
        outcome = await self.runner.run(
            command,
            args,
            cwd=request.project_path,
            env=None,
            on_progress=request.progress_sink,
        )
        if not outcome.success:
            raise DeploymentError(f"Build failed: {outcome.error}", step="build")
        self._narrate(request, "Build complete!")

    def locate_build_dir(self, project_path: str | Path) -> str:
        """Return the first conventional build output directory that exists."""
        root = Path(project_path)
        for candidate in self.config.build_dirs:
            if (root / candidate).exists():
                return candidate
        raise DeploymentError(
            f"Build directory not found. Checked: {', '.join(self.config.build_dirs)}",
            step="locate_build_dir",
        )

    async def _create_site(
        self, request: DeploymentRequest, env: dict[str, str]
    ) -> Optional[str]:
        """Create a site, retrying once with a timestamp suffix.

        Any first-attempt failure triggers the retry; a name collision is the
        usual cause but the CLI does not report a distinct error code for it.
        """
        self._narrate(request, "Creating Netlify site...")
        name = site_name(request.project_name)
        outcome = await self._cli(
            request, "sites:create", "--name", name, "--manual", env=env, prompt=self.prompt
        )
        if not outcome.success:
            retry_name = f"{name}-{self._timestamp()}"
            self._warn(f"Could not create site '{name}', retrying as '{retry_name}'")
            outcome = await self._cli(
                request, "sites:create", "--name", retry_name, "--manual",
                env=env, prompt=self.prompt,
            )
            if not outcome.success:
                raise DeploymentError(
                    f"Failed to create site: {outcome.error}", step="create_site"
                )

        site_id = extract_site_id(outcome.stdout)
        if not site_id:
            self._warn("Site created but no site ID found in CLI output")
            return None

        self._narrate(request, f"Site created with ID: {site_id}")
        await self._save_site_state(request.project_path, site_id)
        return site_id

    async def _save_site_state(self, project_path: Path, site_id: str) -> None:
        path = site_state_path(project_path, self.config)
        try:
            await save_json({"siteId": site_id}, path)
        except OSError as exc:
            self._warn(f"Could not write {path}: {exc}")

    async def _set_env_vars(self, request: DeploymentRequest, env: dict[str, str]) -> None:
        """One ``env:set`` per non-blank variable; failures are logged, not fatal."""
        pending = non_blank(request.env_vars)
        if not pending:
            return
        self._narrate(request, "Setting environment variables...")
        for key, value in pending.items():
            outcome = await self._cli(request, "env:set", key, value, env=env, redact=(value,))
            if not outcome.success:
                self._warn(f"Failed to set {key}: {outcome.error}")

    @staticmethod
    def _timestamp() -> int:
        return int(time.time() * 1000)
