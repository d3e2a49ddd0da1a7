"""
Docker access layer.

CommandRunner executes external processes; DockerClient issues typed
docker CLI calls on top of it.
"""

from .client import DockerClient, registry_of
from .models import ContainerInfo, ImageInfo, NetworkInfo, RunResult
from .runner import CommandRunner

__all__ = [
    "CommandRunner",
    "ContainerInfo",
    "DockerClient",
    "ImageInfo",
    "NetworkInfo",
    "RunResult",
    "registry_of",
]
