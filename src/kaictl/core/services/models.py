"""
Service data models.

ServiceSpec describes one long-running platform container. The action and
report models record what the lifecycle controller and provisioner did, so
callers can tell a no-op run from one that changed something.
"""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class PortMapping(BaseModel):
    """Host to container port binding."""

    model_config = ConfigDict(frozen=True)

    host: int = Field(ge=1, le=65535)
    container: int = Field(ge=1, le=65535)


class VolumeMapping(BaseModel):
    """Host path to container path bind mount."""

    model_config = ConfigDict(frozen=True)

    host: str
    container: str


class ServiceSpec(BaseModel):
    """
    Desired state of one managed service.

    Built from configuration once per invocation and never mutated.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Service name (backend, code-server, frontend)")
    container_name: str = Field(description="Docker container name")
    image: str = Field(description="Local image reference")
    ports: list[PortMapping] = Field(default_factory=list)
    env: dict[str, str] = Field(default_factory=dict)
    volumes: list[VolumeMapping] = Field(default_factory=list)
    privileged: bool = Field(
        default=False,
        description="Run privileged (needed to manage sibling sandbox containers)",
    )
    network: str | None = Field(default=None)
    command: list[str] = Field(
        default_factory=list,
        description="Arguments passed after the image",
    )


class ActionKind(str, Enum):
    """What happened to a service container."""

    STOPPED = "stopped"
    REMOVED = "removed"
    STARTED = "started"
    ALREADY_STOPPED = "already_stopped"
    FAILED = "failed"


class ServiceAction(BaseModel):
    """One step taken (or skipped) for a service."""

    service: str
    container: str
    kind: ActionKind
    detail: str | None = None

    @property
    def changed(self) -> bool:
        """True if this step altered container state."""
        return self.kind in (ActionKind.STOPPED, ActionKind.REMOVED, ActionKind.STARTED)


class LifecycleReport(BaseModel):
    """Ordered actions from a start or stop run."""

    actions: list[ServiceAction] = Field(default_factory=list)

    @property
    def changed(self) -> list[ServiceAction]:
        return [a for a in self.actions if a.changed]

    @property
    def failures(self) -> list[ServiceAction]:
        return [a for a in self.actions if a.kind == ActionKind.FAILED]

    @property
    def ok(self) -> bool:
        return not self.failures


class ProvisionReport(BaseModel):
    """What the provisioner created."""

    network: str
    network_created: bool = False
    directories_created: list[Path] = Field(default_factory=list)
    env_file: Path | None = None
    env_file_written: bool = False
