"""Caller-facing deployment service.

``DeploymentService`` owns the resolved CLI paths and availability cache for
one host process. Construct it explicitly, ``await initialize()`` (or let the
first ``deploy`` do it) and route every deploy through ``deploy(request)``.

Typical usage::

    service = DeploymentService(Config.from_env())
    await service.initialize()
    result = await service.deploy(request)
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Optional

from launchpad.config import Config
from launchpad.models import (
    CLIAvailability,
    DeploymentRequest,
    DeploymentResult,
    DeploymentServiceStatus,
    Provider,
)
from launchpad.providers.base import Deployer
from launchpad.providers.netlify import NetlifyDeployer
from launchpad.providers.railway import ClientFactory, RailwayDeployer
from launchpad.runner.locator import CLICommand, CLILocator, probe_version
from launchpad.runner.process import ProcessRunner, PromptPolicy
from launchpad.utils import print_error, print_success, print_warning


class DeploymentService:
    """Routes deploy requests to the provider orchestrators.

    Collaborators (locator, runner, Railway client factory) can be injected;
    by default they are built from ``config``.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        *,
        locator: Optional[CLILocator] = None,
        runner: Optional[ProcessRunner] = None,
        client_factory: Optional[ClientFactory] = None,
    ) -> None:
        self.config = config or Config()
        self.locator = locator or CLILocator(self.config.locator)
        self.runner = runner or ProcessRunner(chunk_size=self.config.runner.chunk_size)
        self.client_factory = client_factory
        self.initialized = False
        self._paths: dict[Provider, Optional[Path]] = {}
        self._status = DeploymentServiceStatus()

    # ------------------------------------------------------------------
    # Lifecycle / status
    # ------------------------------------------------------------------

    async def initialize(self) -> DeploymentServiceStatus:
        """Locate every provider CLI and probe its version."""
        availability: dict[str, CLIAvailability] = {}
        for provider in Provider:
            availability[provider.value] = await self._probe(provider)
        self._status = DeploymentServiceStatus(**availability)
        self.initialized = True
        return self._status

    async def _probe(self, provider: Provider) -> CLIAvailability:
        name = provider.display_name
        path = self.locator.locate(provider)
        self._paths[provider] = path
        if path is None:
            return CLIAvailability(error=f"{name} CLI not found")

        version = await probe_version(
            self.locator.command_for(provider, path),
            timeout=self.config.runner.version_timeout,
        )
        if version:
            print_success(f"{name} CLI ready: {version}")
        else:
            print_warning(f"{name} CLI found at {path} but did not report a version")
        return CLIAvailability(available=True, path=str(path), version=version)

    async def get_status(self) -> DeploymentServiceStatus:
        """Current availability; initializes on first use, re-probes versions after."""
        if not self.initialized:
            return await self.initialize()

        for provider in Provider:
            current = self._status.for_provider(provider)
            path = self._paths.get(provider)
            if not current.available or path is None:
                continue
            version = await probe_version(
                self.locator.command_for(provider, path),
                timeout=self.config.runner.version_timeout,
            )
            current.version = version or current.version
        return self._status

    def is_provider_available(self, provider: Provider) -> bool:
        """True when the provider's CLI was located and still exists on disk."""
        path = self._paths.get(provider)
        return path is not None and path.exists()

    def get_cli_command(self, provider: Provider) -> Optional[CLICommand]:
        """How to invoke the provider's CLI, or ``None`` if it was not located."""
        path = self._paths.get(provider)
        if path is None:
            return None
        return self.locator.command_for(provider, path)

    def select_provider(
        self,
        template_services: Sequence[str],
        connected_services: Sequence[str],
    ) -> Optional[Provider]:
        """First template service that is connected and has an available CLI.

        Order follows *template_services*; names that are not known providers
        are ignored.
        """
        connected = set(connected_services)
        for service in template_services:
            if service not in connected:
                continue
            provider = Provider.parse(service)
            if provider is not None and self.is_provider_available(provider):
                return provider
        return None

    # ------------------------------------------------------------------
    # Deploy
    # ------------------------------------------------------------------

    async def deploy(self, request: DeploymentRequest) -> DeploymentResult:
        """Run one deployment. Never raises; failures come back in the result."""
        try:
            if not self.initialized:
                await self.initialize()

            provider = request.provider
            cli = self.get_cli_command(provider)
            if cli is None or not self.is_provider_available(provider):
                message = f"{provider.display_name} CLI not available"
                print_error(message)
                return DeploymentResult.failure(message)

            return await self.deployer_for(provider, cli).deploy(request)
        except Exception as exc:  # noqa: BLE001
            print_error(f"Deploy error: {exc!r}")
            return DeploymentResult.failure(str(exc))

    def deployer_for(self, provider: Provider, cli: CLICommand) -> Deployer:
        """Build the orchestrator for *provider* around *cli*."""
        prompt = PromptPolicy(delay=self.config.runner.prompt_delay)
        if provider is Provider.NETLIFY:
            return NetlifyDeployer(self.runner, cli, self.config.netlify, prompt)
        return RailwayDeployer(
            self.runner,
            cli,
            self.config.railway,
            prompt,
            client_factory=self.client_factory,
        )