"""
Docker CLI client.

This module wraps the docker command line with typed queries. Listings are
requested as JSON lines (`--format '{{json .}}'`) and decoded into models,
so existence checks never depend on grepping human-readable tables.
"""

import json
import logging
import re
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from kaictl.core.exceptions import CommandFailed, MissingPrerequisite, RegistryAuthRequired

from .models import ContainerInfo, ImageInfo, NetworkInfo, RunResult
from .runner import CommandRunner

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

# Builds and pulls can be slow on a cold cache
LONG_TIMEOUT = 3600

# stderr fragments that mean "log in first"
_AUTH_ERROR_PATTERNS = re.compile(
    r"unauthorized|authentication required|denied|no basic auth credentials"
    r"|requested access to the resource is denied",
    re.IGNORECASE,
)


def registry_of(reference: str) -> str:
    """
    Extract the registry host from an image reference.

    The first path segment is a registry when it contains a dot or a colon
    or is `localhost`; otherwise the image lives on Docker Hub.

    Args:
        reference: Image reference such as `ghcr.io/alice/app:latest`

    Returns:
        Registry host (e.g. 'ghcr.io' or 'docker.io')
    """
    first, sep, _ = reference.partition("/")
    if sep and ("." in first or ":" in first or first == "localhost"):
        return first
    return "docker.io"


class DockerClient:
    """
    Typed access to the docker CLI.

    Args:
        runner: Command runner used for every docker invocation
    """

    def __init__(self, runner: CommandRunner | None = None) -> None:
        self.runner = runner or CommandRunner()

    # =========================================================================
    # Daemon
    # =========================================================================

    def is_installed(self) -> bool:
        """Check if the docker command exists."""
        return self.runner.which("docker") is not None

    def ensure_available(self) -> None:
        """
        Verify Docker is usable.

        Raises:
            MissingPrerequisite: If the CLI is absent or the daemon is down
        """
        if not self.is_installed():
            raise MissingPrerequisite("docker is not installed", tool="docker")
        if not self._run(["info"], check=False, timeout=10).ok:
            raise MissingPrerequisite(
                "Docker daemon is not running. Please start Docker Desktop or Docker service.",
                tool="docker",
            )

    # =========================================================================
    # Containers
    # =========================================================================

    def list_containers(
        self, name_filter: str | None = None, include_stopped: bool = True
    ) -> list[ContainerInfo]:
        """
        List containers, optionally filtered by name.

        Args:
            name_filter: Docker name filter (substring or anchored regex)
            include_stopped: Include stopped containers

        Returns:
            Container records
        """
        args = ["ps"]
        if include_stopped:
            args.append("-a")
        if name_filter:
            args.extend(["--filter", f"name={name_filter}"])
        args.extend(["--format", "{{json .}}"])
        result = self._run(args)
        return _parse_json_lines(result.stdout, ContainerInfo)

    def get_container(self, name: str) -> ContainerInfo | None:
        """
        Look up a container by exact name.

        Docker's name filter matches substrings, so results are narrowed to
        the exact name afterwards.

        Returns:
            ContainerInfo, or None if no such container exists
        """
        for container in self.list_containers(f"^{name}$"):
            if container.name == name:
                return container
        return None

    def stop_container(self, name: str) -> None:
        """Stop a container."""
        self._run(["stop", name])

    def remove_container(self, name: str) -> None:
        """Remove a stopped container."""
        self._run(["rm", name])

    def run_container(
        self,
        name: str,
        image: str,
        *,
        network: str | None = None,
        ports: Iterable[tuple[int, int]] = (),
        env: dict[str, str] | None = None,
        volumes: Iterable[tuple[str, str]] = (),
        privileged: bool = False,
        command: Sequence[str] = (),
    ) -> str:
        """
        Create and start a detached container.

        Args:
            name: Container name
            image: Image reference
            network: Network to attach to
            ports: (host_port, container_port) bindings
            env: Environment variables
            volumes: (host_path, container_path) bind mounts
            privileged: Run with --privileged
            command: Arguments appended after the image

        Returns:
            New container ID
        """
        args = ["run", "-d", "--name", name]
        if network:
            args.extend(["--network", network])
        if privileged:
            args.append("--privileged")
        for host_port, container_port in ports:
            args.extend(["-p", f"{host_port}:{container_port}"])
        for key, value in (env or {}).items():
            args.extend(["-e", f"{key}={value}"])
        for host_path, container_path in volumes:
            args.extend(["-v", f"{host_path}:{container_path}"])
        args.append(image)
        args.extend(command)
        result = self._run(args)
        return result.stdout.strip()

    # =========================================================================
    # Images
    # =========================================================================

    def image_exists(self, reference: str) -> bool:
        """Check if an image is present locally."""
        return self._run(["image", "inspect", reference], check=False).ok

    def list_images(
        self, repository: str | None = None, dangling: bool = False
    ) -> list[ImageInfo]:
        """
        List local images.

        Args:
            repository: Only images whose reference matches this repository
            dangling: Only untagged images

        Returns:
            Image records
        """
        args = ["images"]
        if dangling:
            args.extend(["--filter", "dangling=true"])
        if repository:
            args.extend(["--filter", f"reference={repository}"])
        args.extend(["--format", "{{json .}}"])
        result = self._run(args)
        return _parse_json_lines(result.stdout, ImageInfo)

    def pull_image(self, reference: str) -> None:
        """
        Pull an image from its registry.

        Raises:
            RegistryAuthRequired: If the registry requires a login
            CommandFailed: For any other failure
        """
        self._run_registry(["pull", reference], reference)

    def push_image(self, reference: str) -> None:
        """
        Push an image to its registry.

        Raises:
            RegistryAuthRequired: If the registry requires a login
            CommandFailed: For any other failure
        """
        self._run_registry(["push", reference], reference)

    def tag_image(self, source: str, target: str) -> None:
        """Tag `source` as `target`."""
        self._run(["tag", source, target])

    def remove_images(self, image_ids: Sequence[str]) -> None:
        """Remove images by ID. No-op for an empty list."""
        if image_ids:
            self._run(["rmi", *image_ids])

    def build_image(self, context: Path, tag: str, no_cache: bool = False) -> None:
        """
        Build an image from a directory containing a Dockerfile.

        Args:
            context: Build context directory
            tag: Tag to apply (`name:tag`)
            no_cache: Build without the layer cache
        """
        args = ["build"]
        if no_cache:
            args.append("--no-cache")
        args.extend(["-t", tag, str(context)])
        self._run(args, timeout=LONG_TIMEOUT, interactive=True)

    # =========================================================================
    # Networks
    # =========================================================================

    def network_exists(self, name: str) -> bool:
        """Check if a network with exactly this name exists."""
        result = self._run(
            ["network", "ls", "--filter", f"name=^{name}$", "--format", "{{json .}}"]
        )
        return any(n.name == name for n in _parse_json_lines(result.stdout, NetworkInfo))

    def create_network(self, name: str) -> None:
        """Create a bridge network."""
        self._run(["network", "create", name])

    # =========================================================================
    # Private helpers
    # =========================================================================

    def _run(
        self,
        args: list[str],
        check: bool = True,
        timeout: float | None = None,
        interactive: bool = False,
    ) -> RunResult:
        return self.runner.run(
            ["docker", *args],
            check=check,
            timeout=timeout,
            interactive=interactive,
        )

    def _run_registry(self, args: list[str], reference: str) -> None:
        result = self._run(args, check=False, timeout=LONG_TIMEOUT)
        if result.ok:
            return
        if _AUTH_ERROR_PATTERNS.search(result.stderr):
            raise RegistryAuthRequired(registry_of(reference), reference=reference)
        raise CommandFailed(result)


def _parse_json_lines(output: str, model: type[ModelT]) -> list[ModelT]:
    """Decode Docker's one-JSON-object-per-line output."""
    records: list[ModelT] = []
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            records.append(model.model_validate(json.loads(line)))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Skipping unparseable docker output line: {line!r} ({e})")
    return records
