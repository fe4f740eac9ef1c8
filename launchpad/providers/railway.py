"""Railway deploys: single service or backend + frontend.

A project with both ``backend/`` and ``frontend/`` subdirectories is deployed
as two services that learn each other's public URL. The topology flow runs a
fixed sequence of steps, each taking and returning a ``ServiceTopology``:

    1. resolve_project        - ``init`` (or ``link`` when redeploying)
    2. fetch_environment      - GraphQL, prefer ``production``
    3. create_backend_service - GraphQL ``serviceCreate``
    4. deploy_backend         - ``up --detach --path-as-root`` (hard fail)
    5. fetch_backend_domain   - ``domain``
    6. set_backend_env_vars   - non-frontend variables
    7. create_frontend_service
    8. deploy_frontend        - (hard fail)
    9. resolve_frontend_domain - GraphQL create, else query existing
   10. cross_wire_env_vars    - backend URL -> frontend, frontend URL -> backend
   11. redeploy_services      - pick up the variables set above

Only the two deploy steps and project creation end the flow; everything else
degrades to a warning and leaves the affected identifier unset.

Any other project is deployed as a single service from its root.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from launchpad.config import RailwayConfig
from launchpad.models import (
    CommandOutcome,
    DeploymentRequest,
    DeploymentResult,
    Provider,
    ServiceTopology,
)
from launchpad.parser.output import extract_service_id, extract_url, extract_uuid
from launchpad.providers.base import Deployer, DeploymentError, non_blank
from launchpad.railway_client import RailwayClient, select_environment
from launchpad.runner.locator import CLICommand, build_environment
from launchpad.runner.process import ProcessRunner, PromptPolicy
from launchpad.utils import project_slug

ClientFactory = Callable[[str], RailwayClient]

TOPOLOGY_STEPS: tuple[str, ...] = (
    "resolve_project",
    "fetch_environment",
    "create_backend_service",
    "deploy_backend",
    "fetch_backend_domain",
    "set_backend_env_vars",
    "create_frontend_service",
    "deploy_frontend",
    "resolve_frontend_domain",
    "cross_wire_env_vars",
    "redeploy_services",
)


def is_full_stack(project_path: str | Path, config: Optional[RailwayConfig] = None) -> bool:
    """True when the project has both backend and frontend subdirectories."""
    cfg = config or RailwayConfig()
    root = Path(project_path)
    return (root / cfg.backend_dir).is_dir() and (root / cfg.frontend_dir).is_dir()


@dataclass(frozen=True)
class RailwayRun:
    """Per-call context shared by every step."""

    request: DeploymentRequest
    env: dict[str, str]
    client: RailwayClient

    @property
    def redeploying(self) -> bool:
        return bool(self.request.existing_resource_id)


class RailwayDeployer(Deployer):
    """Drives the Railway CLI and API for one deploy call."""

    provider = Provider.RAILWAY
    prefix = "RAILWAY"

    def __init__(
        self,
        runner: ProcessRunner,
        cli: CLICommand,
        config: Optional[RailwayConfig] = None,
        prompt: Optional[PromptPolicy] = None,
        client_factory: Optional[ClientFactory] = None,
    ) -> None:
        super().__init__(runner, cli, prompt)
        self.config = config or RailwayConfig()
        self.client_factory = client_factory or self._default_client

    def _default_client(self, token: str) -> RailwayClient:
        return RailwayClient(
            token, api_url=self.config.api_url, timeout=self.config.api_timeout
        )

    async def _deploy(self, request: DeploymentRequest) -> DeploymentResult:
        run = RailwayRun(
            request=request,
            env=build_environment(Provider.RAILWAY, request.auth_token),
            client=self.client_factory(request.auth_token),
        )
        if is_full_stack(request.project_path, self.config):
            self._narrate(request, "Detected full-stack project (backend + frontend)")
            return await self.deploy_topology(run)
        return await self.deploy_single(run)

    # ------------------------------------------------------------------
    # Flows
    # ------------------------------------------------------------------

    async def deploy_topology(self, run: RailwayRun) -> DeploymentResult:
        """Deploy backend and frontend as two cross-wired services."""
        topology = ServiceTopology()
        for step_name in TOPOLOGY_STEPS:
            step = getattr(self, f"_{step_name}")
            topology = await step(run, topology)

        if topology.backend_url:
            self._narrate(run.request, f"Backend: {topology.backend_url}")
        self._narrate(
            run.request, f"Full-stack deployed! Frontend: {topology.frontend_url or 'pending'}"
        )
        return DeploymentResult(
            success=True, url=topology.frontend_url, project_id=topology.project_id
        )

    async def deploy_single(self, run: RailwayRun) -> DeploymentResult:
        """Deploy the whole project directory as one service."""
        request = run.request
        topology = await self._resolve_project(run, ServiceTopology())

        self._narrate(request, "Deploying to Railway...")
        outcome = await self._cli_run(run, "up", "--detach")
        if not outcome.success:
            raise DeploymentError(f"Deploy failed: {outcome.error}", step="deploy")

        service_id = extract_service_id(outcome.stdout)
        pending = non_blank(request.env_vars)
        if service_id and pending:
            self._narrate(request, "Setting environment variables...")
            for key, value in pending.items():
                await self._set_variable(run, service_id, key, value)
            self._narrate(request, "Redeploying with environment variables...")
            redeploy = await self._cli_run(run, "up", "--detach", "--service", service_id)
            if not redeploy.success:
                self._warn(f"Redeploy failed: {redeploy.error}")
        elif pending:
            self._warn("No service ID in deploy output; environment variables not set")

        self._narrate(request, "Getting deployment URL...")
        domain_args = ["domain"]
        if service_id:
            domain_args += ["--service", service_id]
        domain = await self._cli_run(run, *domain_args)
        url = extract_url(domain.stdout) if domain.success else None
        if not url:
            self._warn("No public URL found for the deployed service")

        self._narrate(request, f"Deployed successfully!{f' Live at: {url}' if url else ''}")
        return DeploymentResult(success=True, url=url, project_id=topology.project_id)

    # ------------------------------------------------------------------
    # Topology steps
    # ------------------------------------------------------------------

    async def _resolve_project(self, run: RailwayRun, topology: ServiceTopology) -> ServiceTopology:
        existing = run.request.existing_resource_id
        if existing:
            self._narrate(run.request, f"Linking existing project {existing}...")
            outcome = await self._cli_run(run, "link", "--project", existing, prompt=self.prompt)
            if not outcome.success:
                self._warn(f"Could not link project {existing}: {outcome.error}")
            return topology.with_(project_id=existing)

        self._narrate(run.request, "Creating Railway project...")
        outcome = await self._cli_run(
            run, "init", "--name", project_slug(run.request.project_name), prompt=self.prompt
        )
        if not outcome.success:
            raise DeploymentError(
                f"Failed to create project: {outcome.error}", step="resolve_project"
            )
        project_id = extract_uuid(outcome.stdout)
        if project_id:
            self._narrate(run.request, f"Project created with ID: {project_id}")
        else:
            self._warn("Project created but no project ID found in CLI output")
        return topology.with_(project_id=project_id)

    async def _fetch_environment(self, run: RailwayRun, topology: ServiceTopology) -> ServiceTopology:
        if not topology.project_id:
            return topology
        environments = await run.client.get_environments(topology.project_id)
        environment = select_environment(environments, self.config.production_environment)
        if environment is None:
            self._warn("No environments found; domain generation will be skipped")
            return topology
        self._narrate(run.request, f"Using environment '{environment.name}' ({environment.id})")
        return topology.with_(environment_id=environment.id)

    async def _create_backend_service(
        self, run: RailwayRun, topology: ServiceTopology
    ) -> ServiceTopology:
        self._narrate(run.request, "Creating backend service...")
        service_id = await self._ensure_service(run, topology, "Backend")
        return topology.with_(backend_service_id=service_id)

    async def _deploy_backend(self, run: RailwayRun, topology: ServiceTopology) -> ServiceTopology:
        self._narrate(run.request, "Deploying backend service...")
        outcome = await self._deploy_subtree(
            run, self.config.backend_dir, topology.backend_service_id
        )
        if not outcome.success:
            raise DeploymentError(f"Backend deploy failed: {outcome.error}", step="deploy_backend")
        service_id = topology.backend_service_id or extract_service_id(outcome.stdout)
        return topology.with_(backend_service_id=service_id)

    async def _fetch_backend_domain(
        self, run: RailwayRun, topology: ServiceTopology
    ) -> ServiceTopology:
        self._narrate(run.request, "Getting backend URL...")
        args = ["domain"]
        if topology.backend_service_id:
            args += ["--service", topology.backend_service_id]
        outcome = await self._cli_run(run, *args)
        backend_url = extract_url(outcome.stdout) if outcome.success else None
        if not backend_url:
            self._warn("Could not determine backend URL")
            return topology
        self._narrate(run.request, f"Backend URL: {backend_url}")
        return topology.with_(backend_url=backend_url)

    async def _set_backend_env_vars(
        self, run: RailwayRun, topology: ServiceTopology
    ) -> ServiceTopology:
        backend_vars = {
            key: value
            for key, value in non_blank(run.request.env_vars).items()
            if not key.startswith(self.config.frontend_env_prefix)
        }
        if not backend_vars:
            return topology
        if not topology.backend_service_id:
            self._warn("No backend service ID; skipping backend environment variables")
            return topology
        self._narrate(run.request, "Setting backend environment variables...")
        for key, value in backend_vars.items():
            await self._set_variable(run, topology.backend_service_id, key, value)
        return topology

    async def _create_frontend_service(
        self, run: RailwayRun, topology: ServiceTopology
    ) -> ServiceTopology:
        self._narrate(run.request, "Creating frontend service...")
        service_id = await self._ensure_service(run, topology, "Frontend")
        return topology.with_(frontend_service_id=service_id)

    async def _deploy_frontend(self, run: RailwayRun, topology: ServiceTopology) -> ServiceTopology:
        self._narrate(run.request, "Deploying frontend service...")
        outcome = await self._deploy_subtree(
            run, self.config.frontend_dir, topology.frontend_service_id
        )
        if not outcome.success:
            raise DeploymentError(
                f"Frontend deploy failed: {outcome.error}", step="deploy_frontend"
            )
        service_id = topology.frontend_service_id or extract_service_id(outcome.stdout)
        return topology.with_(frontend_service_id=service_id)

    async def _resolve_frontend_domain(
        self, run: RailwayRun, topology: ServiceTopology
    ) -> ServiceTopology:
        service_id = topology.frontend_service_id
        if not service_id:
            self._warn("No frontend service ID; cannot resolve frontend URL")
            return topology

        self._narrate(run.request, "Getting frontend URL...")
        domain: Optional[str] = None
        if topology.environment_id:
            domain = await run.client.create_service_domain(service_id, topology.environment_id)
        if not domain and topology.project_id:
            domain = await run.client.find_service_domain(topology.project_id, service_id)
        if not domain:
            self._warn("Could not determine frontend URL")
            return topology

        frontend_url = domain if domain.startswith("http") else f"https://{domain}"
        self._narrate(run.request, f"Frontend URL: {frontend_url}")
        return topology.with_(frontend_url=frontend_url)

    async def _cross_wire_env_vars(
        self, run: RailwayRun, topology: ServiceTopology
    ) -> ServiceTopology:
        backend_id = topology.backend_service_id
        frontend_id = topology.frontend_service_id

        if frontend_id:
            frontend_vars: dict[str, str] = {}
            if topology.backend_url:
                frontend_vars[self.config.backend_url_var] = topology.backend_url
            for key, value in non_blank(run.request.env_vars).items():
                if key == self.config.backend_url_var:
                    continue
                if key.startswith(self.config.frontend_env_prefix):
                    frontend_vars[key] = value
            if frontend_vars:
                self._narrate(run.request, "Setting frontend environment variables...")
                for key, value in frontend_vars.items():
                    await self._set_variable(run, frontend_id, key, value)

        if backend_id and frontend_id and topology.frontend_url:
            self._narrate(run.request, "Updating backend with frontend URL...")
            await self._set_variable(
                run, backend_id, self.config.frontend_url_var, topology.frontend_url
            )
        return topology

    async def _redeploy_services(
        self, run: RailwayRun, topology: ServiceTopology
    ) -> ServiceTopology:
        targets = [
            ("backend", self.config.backend_dir, topology.backend_service_id),
            ("frontend", self.config.frontend_dir, topology.frontend_service_id),
        ]
        targets = [t for t in targets if t[2]]
        if not targets:
            return topology
        self._narrate(run.request, "Redeploying services with environment variables...")
        for role, subdir, service_id in targets:
            outcome = await self._deploy_subtree(run, subdir, service_id)
            if not outcome.success:
                self._warn(f"Redeploy of {role} failed: {outcome.error}")
        return topology

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _cli_run(
        self, run: RailwayRun, *args: str, prompt: Optional[PromptPolicy] = None,
        redact: tuple[str, ...] = (),
    ) -> CommandOutcome:
        return await self._cli(run.request, *args, env=run.env, prompt=prompt, redact=redact)

    async def _deploy_subtree(
        self, run: RailwayRun, subdir: str, service_id: Optional[str]
    ) -> CommandOutcome:
        """``up --detach --path-as-root [--service id] <subdir>``."""
        args = ["up", "--detach", "--path-as-root"]
        if service_id:
            args += ["--service", service_id]
        args.append(str(run.request.project_path / subdir))
        return await self._cli_run(run, *args)

    async def _set_variable(
        self, run: RailwayRun, service_id: str, key: str, value: str
    ) -> bool:
        outcome = await self._cli_run(
            run, "variables", "--set", f"{key}={value}", "--service", service_id,
            redact=(value,),
        )
        if not outcome.success:
            self._warn(f"Failed to set {key}: {outcome.error}")
        return outcome.success

    async def _ensure_service(
        self, run: RailwayRun, topology: ServiceTopology, role: str
    ) -> Optional[str]:
        """Create ``"<name> - <role>"``, reusing a same-named service on redeploy."""
        if not topology.project_id:
            self._warn(f"No project ID; {role.lower()} service will be created by deploy")
            return None
        name = f"{run.request.project_name} - {role}"
        if run.redeploying:
            for service in await run.client.get_project_services(topology.project_id):
                if service.name == name:
                    self._narrate(run.request, f"Reusing service '{name}' ({service.id})")
                    return service.id
        return await run.client.create_service(topology.project_id, name)
