"""
Service lifecycle controller.

Start uses a stop-remove-recreate policy: every start leaves exactly one
container per service, built from its ServiceSpec. Stop only
stops; it never removes, and a service that is already stopped is a no-op.
"""

import logging
from collections.abc import Callable, Iterable

from kaictl.core.docker.client import DockerClient
from kaictl.core.docker.models import ContainerInfo
from kaictl.core.exceptions import CommandFailed

from .models import ActionKind, LifecycleReport, ServiceAction, ServiceSpec
from .specs import CONTAINER_NAMES

logger = logging.getLogger(__name__)

# Prefix shared by every managed container
CONTAINER_PREFIX = "kai-"

ActionCallback = Callable[[ServiceAction], None]


class ServiceController:
    """
    Start, stop and inspect the managed service containers.

    Args:
        docker: Docker client
        on_action: Optional callback invoked after every action, for progress
            output
    """

    def __init__(self, docker: DockerClient, on_action: ActionCallback | None = None) -> None:
        self.docker = docker
        self.on_action = on_action

    def start(self, specs: Iterable[ServiceSpec]) -> LifecycleReport:
        """
        Bring every service to the running state, replacing old containers.

        Services are processed in the given order. The first failure aborts
        the run (CommandFailed propagates); services already handled stay as
        they are.

        Args:
            specs: Services in start order

        Returns:
            LifecycleReport of stop/remove/start actions
        """
        report = LifecycleReport()
        for spec in specs:
            self._replace(spec, report)
        return report

    def stop(self, container_names: Iterable[str] = CONTAINER_NAMES) -> LifecycleReport:
        """
        Stop running service containers.

        Failures are isolated per service and recorded as FAILED actions so
        the remaining services are still stopped.

        Args:
            container_names: Containers to stop

        Returns:
            LifecycleReport; `changed` is empty when nothing was running
        """
        report = LifecycleReport()
        for name in container_names:
            service = name.removeprefix(CONTAINER_PREFIX)
            try:
                container = self.docker.get_container(name)
                if container is None or not container.running:
                    self._record(report, service, name, ActionKind.ALREADY_STOPPED)
                    continue
                self.docker.stop_container(name)
            except CommandFailed as e:
                logger.error(f"Failed to stop {name}: {e}")
                self._record(report, service, name, ActionKind.FAILED, str(e))
                continue
            self._record(report, service, name, ActionKind.STOPPED)
        return report

    def status(self) -> list[ContainerInfo]:
        """Managed containers (running or not), sorted by name."""
        containers = self.docker.list_containers(CONTAINER_PREFIX)
        managed = [c for c in containers if c.name.startswith(CONTAINER_PREFIX)]
        return sorted(managed, key=lambda c: c.name)

    def running(self) -> list[ContainerInfo]:
        """Managed containers that are currently running."""
        return [c for c in self.status() if c.running]

    # =========================================================================
    # Private helpers
    # =========================================================================

    def _replace(self, spec: ServiceSpec, report: LifecycleReport) -> None:
        name = spec.container_name
        existing = self.docker.get_container(name)

        if existing is not None and existing.running:
            logger.info(f"Stopping existing {name} container")
            self.docker.stop_container(name)
            self._record(report, spec.name, name, ActionKind.STOPPED)

        if existing is not None:
            logger.info(f"Removing existing {name} container")
            self.docker.remove_container(name)
            self._record(report, spec.name, name, ActionKind.REMOVED)

        logger.info(f"Starting {spec.name} ({spec.image})")
        container_id = self.docker.run_container(
            name,
            spec.image,
            network=spec.network,
            ports=[(p.host, p.container) for p in spec.ports],
            env=spec.env,
            volumes=[(v.host, v.container) for v in spec.volumes],
            privileged=spec.privileged,
            command=spec.command,
        )
        self._record(report, spec.name, name, ActionKind.STARTED, container_id[:12])

    def _record(
        self,
        report: LifecycleReport,
        service: str,
        container: str,
        kind: ActionKind,
        detail: str | None = None,
    ) -> None:
        action = ServiceAction(service=service, container=container, kind=kind, detail=detail)
        report.actions.append(action)
        if self.on_action is not None:
            self.on_action(action)
