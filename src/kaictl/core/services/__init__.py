"""
Platform services: specs, provisioning, lifecycle and readiness.
"""

from .health import HealthWaiter, PollResult, poll_until
from .lifecycle import CONTAINER_PREFIX, ServiceController
from .models import (
    ActionKind,
    LifecycleReport,
    PortMapping,
    ProvisionReport,
    ServiceAction,
    ServiceSpec,
    VolumeMapping,
)
from .provisioner import Provisioner, backend_env
from .specs import CONTAINER_NAMES, build_service_specs

__all__ = [
    # Models
    "ActionKind",
    "LifecycleReport",
    "PortMapping",
    "ProvisionReport",
    "ServiceAction",
    "ServiceSpec",
    "VolumeMapping",
    # Components
    "CONTAINER_NAMES",
    "CONTAINER_PREFIX",
    "HealthWaiter",
    "PollResult",
    "Provisioner",
    "ServiceController",
    "backend_env",
    "build_service_specs",
    "poll_until",
]
