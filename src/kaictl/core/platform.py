"""
Platform orchestration.

KaiPlatform composes the provisioner, image resolver, lifecycle controller
and health waiter into the setup, start, stop, update and status flows.
Ordering is fixed: provisioning first, then image resolution, then
containers, then readiness. Image resolution failures abort before any
container is touched.
"""

import logging
from collections.abc import Callable
from pathlib import Path

from pydantic import BaseModel, Field

from kaictl.core.config.models import KaiConfig
from kaictl.core.docker.client import DockerClient
from kaictl.core.docker.models import ContainerInfo
from kaictl.core.docker.runner import CommandRunner
from kaictl.core.exceptions import HealthCheckTimeout, MissingPrerequisite
from kaictl.core.images.manager import ImageManager
from kaictl.core.images.models import ImageReference, ImageResolution, ImageSource
from kaictl.core.images.registry import RegistryClient, has_registry_credentials
from kaictl.core.images.resolver import ALL_ROLES, SANDBOX, AuthPrompt, ImageResolver
from kaictl.core.services.health import HealthWaiter
from kaictl.core.services.lifecycle import ActionCallback, ServiceController
from kaictl.core.services.models import LifecycleReport, ProvisionReport
from kaictl.core.services.provisioner import Provisioner
from kaictl.core.services.specs import build_service_specs
from kaictl.core.setup.repo import clone_or_update, ensure_pnpm, install_dependencies

logger = logging.getLogger(__name__)

# Called with (service, attempt) while waiting for a service to answer
WaitCallback = Callable[[str, int], None]


class HealthStatus(BaseModel):
    """Readiness of one HTTP service after start."""

    service: str
    url: str
    ready: bool
    attempts: int = 0
    elapsed_s: float = 0.0


class StartReport(BaseModel):
    """What a start run did."""

    provision: ProvisionReport
    images: list[ImageResolution] = Field(default_factory=list)
    lifecycle: LifecycleReport = Field(default_factory=LifecycleReport)
    health: list[HealthStatus] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class SetupReport(BaseModel):
    """What a setup run did."""

    checkout: str | None = Field(default=None, description="'cloned', 'updated' or None if skipped")
    pnpm_installed: bool = False
    dependencies: list[str] = Field(default_factory=list)
    sandbox_built: bool = False
    provision: ProvisionReport | None = None
    images: list[ImageResolution] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class UpdateReport(BaseModel):
    """What an update run did."""

    stopped: LifecycleReport | None = None
    images: list[ImageResolution] = Field(default_factory=list)
    started: StartReport | None = None


class KaiPlatform:
    """
    Entry point for the platform flows.

    Args:
        config: Invocation configuration
        docker: Docker client (created from `runner` when omitted)
        runner: Command runner for docker, git and pnpm
        registry: Registry client override for image pulls
        auth_prompt: Hook called when a registry asks for a login
        health: Health waiter override
        on_action: Progress callback for container actions
    """

    def __init__(
        self,
        config: KaiConfig,
        docker: DockerClient | None = None,
        *,
        runner: CommandRunner | None = None,
        registry: RegistryClient | None = None,
        auth_prompt: AuthPrompt | None = None,
        health: HealthWaiter | None = None,
        on_action: ActionCallback | None = None,
    ) -> None:
        self.config = config
        self.runner = runner or CommandRunner()
        self.docker = docker or DockerClient(self.runner)
        self.provisioner = Provisioner(self.docker, config)
        self.resolver = ImageResolver(self.docker, config, registry=registry, auth_prompt=auth_prompt)
        self.controller = ServiceController(self.docker, on_action=on_action)
        self.health = health or HealthWaiter(config.health)

    # =========================================================================
    # Prerequisites
    # =========================================================================

    def check_prerequisites(self, require_git: bool = True) -> list[str]:
        """
        Verify the tools the platform needs.

        Returns:
            Warnings for optional tools that are missing

        Raises:
            MissingPrerequisite: If git (when required) or Docker is
                unavailable
        """
        if require_git and not self.runner.which("git"):
            raise MissingPrerequisite("Git is not installed", tool="git")
        self.docker.ensure_available()

        warnings = []
        if not self.runner.which("node"):
            warnings.append("Node.js is not installed; local backend/frontend development needs it")
        return warnings

    def registry_logged_in(self) -> bool:
        """True if Docker holds credentials for the configured registry."""
        return has_registry_credentials(self.config.registry.host)

    # =========================================================================
    # Flows
    # =========================================================================

    def setup(
        self,
        *,
        clone: bool = True,
        install_deps: bool = True,
        build_sandbox: bool = True,
    ) -> SetupReport:
        """
        Prepare a machine to run the platform.

        Args:
            clone: Clone or update the Kai checkout
            install_deps: Run pnpm install in backend/ and frontend/
            build_sandbox: Build the sandbox image from the checkout when a
                Dockerfile is present, instead of pulling it

        Returns:
            SetupReport

        Raises:
            MissingPrerequisite: If a required tool is absent
            CommandFailed: If git, pnpm or docker build fails
            ImageUnavailable: If a required image cannot be obtained
        """
        dirs = self.config.directories
        report = SetupReport()
        report.warnings = self.check_prerequisites(require_git=clone)

        if clone:
            report.checkout = clone_or_update(
                self.runner, self.config.repo.url, dirs.kai_dir, self.config.repo.branch
            )

        if install_deps and dirs.kai_dir.is_dir():
            report.pnpm_installed = ensure_pnpm(self.runner)
            report.dependencies = install_dependencies(self.runner, dirs.kai_dir)

        built: list[ImageResolution] = []
        context = dirs.sandbox_context_path
        if build_sandbox and (context / "Dockerfile").is_file():
            image = self.sandbox_manager(context).build()
            report.sandbox_built = True
            built.append(ImageResolution(service=SANDBOX, image=image, source=ImageSource.BUILT))
        elif build_sandbox:
            logger.info(f"No Dockerfile in {context}, the sandbox image will be pulled")

        report.provision = self.provisioner.provision(env_file=True)

        roles = [r for r in ALL_ROLES if not (report.sandbox_built and r == SANDBOX)]
        resolved = self.resolver.resolve_all(roles, allow_pull=True)
        report.images = built + resolved
        report.warnings.extend(r.message for r in resolved if r.degraded and r.message)
        return report

    def start(self, *, wait: bool = True, on_wait: WaitCallback | None = None) -> StartReport:
        """
        Start (or restart) every service.

        Required images must already be present locally; nothing is pulled
        except the public code-server fallback.

        Args:
            wait: Poll the backend and frontend until they answer
            on_wait: Progress callback while polling

        Returns:
            StartReport; health timeouts appear as warnings

        Raises:
            MissingPrerequisite: If Docker is unavailable
            ImageUnavailable: If a required image is missing (no container
                is created)
            CommandFailed: If a container fails to start
        """
        self.docker.ensure_available()
        provision = self.provisioner.provision()
        images = self.resolver.resolve_all(ALL_ROLES, allow_pull=False)
        return self._launch(provision, images, wait=wait, on_wait=on_wait)

    def stop(self) -> LifecycleReport:
        """
        Stop every running service. Stopped services are left alone.

        Raises:
            MissingPrerequisite: If Docker is unavailable
        """
        self.docker.ensure_available()
        return self.controller.stop()

    def update(
        self,
        *,
        stop: bool = True,
        start: bool = True,
        wait: bool = True,
        on_wait: WaitCallback | None = None,
    ) -> UpdateReport:
        """
        Pull the latest service images and restart.

        Args:
            stop: Stop the services before pulling
            start: Start the services after pulling
            wait: Poll readiness after starting
            on_wait: Progress callback while polling

        Raises:
            MissingPrerequisite: If Docker is unavailable
            ImageUnavailable: If a pull fails
            RegistryAuthRequired: If the registry refused and no login
                happened
        """
        self.docker.ensure_available()
        report = UpdateReport()
        if stop:
            report.stopped = self.controller.stop()
        report.images = self.resolver.pull_latest()
        if start:
            report.started = self.start(wait=wait, on_wait=on_wait)
        return report

    def status(self) -> list[ContainerInfo]:
        """Managed containers, running or not."""
        self.docker.ensure_available()
        return self.controller.status()

    def access_urls(self) -> dict[str, str]:
        """Browser URLs of the services, keyed by service name."""
        host = self.config.health.host
        ports = self.config.ports
        return {
            "frontend": f"http://{host}:{ports.frontend}",
            "backend": f"http://{host}:{ports.backend}",
            "code-server": f"http://{host}:{ports.code_server}",
        }

    def sandbox_manager(self, context: Path | None = None) -> ImageManager:
        """ImageManager for the locally built sandbox image."""
        reference = ImageReference(repository=self.config.images.sandbox, tag=self.config.images.tag)
        return ImageManager(
            self.docker,
            reference,
            context or self.config.directories.sandbox_context_path,
        )

    # =========================================================================
    # Private helpers
    # =========================================================================

    def _launch(
        self,
        provision: ProvisionReport,
        images: list[ImageResolution],
        *,
        wait: bool,
        on_wait: WaitCallback | None,
    ) -> StartReport:
        report = StartReport(provision=provision, images=images)
        report.warnings.extend(r.message for r in images if r.degraded and r.message)

        specs = build_service_specs(self.config, {r.service: r.image for r in images})
        report.lifecycle = self.controller.start(specs)

        if wait:
            ports = self.config.ports
            checks = [
                ("backend", self.health.backend_url(ports.backend), self.config.health.backend_timeout),
                ("frontend", self.health.frontend_url(ports.frontend), self.config.health.frontend_timeout),
            ]
            for service, url, ceiling in checks:
                report.health.append(self._wait(service, url, ceiling, on_wait, report.warnings))
        return report

    def _wait(
        self,
        service: str,
        url: str,
        ceiling: float,
        on_wait: WaitCallback | None,
        warnings: list[str],
    ) -> HealthStatus:
        def on_attempt(attempt: int) -> None:
            if on_wait is not None:
                on_wait(service, attempt)

        try:
            result = self.health.wait_for_http(url, ceiling, on_attempt=on_attempt)
        except HealthCheckTimeout as e:
            logger.warning(f"{service} did not become ready: {e}")
            warnings.append(f"{service} may still be starting (no answer from {url} after {ceiling:.0f}s)")
            return HealthStatus(service=service, url=url, ready=False)
        return HealthStatus(
            service=service,
            url=url,
            ready=True,
            attempts=result.attempts,
            elapsed_s=result.elapsed_s,
        )
