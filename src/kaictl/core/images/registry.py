"""
Registry client protocol and registry.

Each registry kind (Docker Hub, GHCR, anything else) gets a RegistryClient
implementation selected by host name, so naming rules, tag listing and
login hints live in one place instead of being branched on at every call
site.
"""

import json
import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import Protocol, runtime_checkable

import httpx

from kaictl.core.docker.client import DockerClient
from kaictl.core.exceptions import KaiError, MissingPrerequisite

from .models import DEFAULT_REGISTRY, ImageReference, TagListing

logger = logging.getLogger(__name__)

DOCKER_HUB_API = "https://registry.hub.docker.com/v2/repositories"

# Maximum number of tags reported by list_tags
TAG_LIMIT = 20


@runtime_checkable
class RegistryClient(Protocol):
    """
    Protocol for registry implementations.

    Implementations are responsible for:
    - Building fully qualified references for their naming scheme
    - Listing remote tags (or saying explicitly that they cannot)
    - Pushing and pulling through the Docker CLI
    """

    @property
    def host(self) -> str:
        """Registry host name (e.g. 'docker.io', 'ghcr.io')."""
        ...

    def reference(
        self, repository: str, namespace: str | None = None, tag: str = "latest"
    ) -> ImageReference:
        """Build a reference for an image on this registry."""
        ...

    def list_tags(self, reference: ImageReference) -> TagListing:
        """
        List tags published for a repository.

        Returns:
            TagListing; `supported` is False when the registry cannot be
            queried and `browse_url` points at a web UI instead
        """
        ...

    def push(self, docker: DockerClient, reference: ImageReference) -> str:
        """
        Tag the local image under its qualified name and push it.

        Returns:
            The pushed reference

        Raises:
            MissingPrerequisite: If the reference has no namespace
            RegistryAuthRequired: If the registry requires a login
        """
        ...

    def pull(self, docker: DockerClient, reference: ImageReference) -> str:
        """
        Pull an image and re-tag it under its bare local name.

        Returns:
            The local name the image was tagged as

        Raises:
            MissingPrerequisite: If the reference cannot be rendered
            RegistryAuthRequired: If the registry requires a login
        """
        ...

    def login_hint(self) -> str:
        """Command the user should run to authenticate."""
        ...


# Registry implementations keyed by host
_registries: dict[str, type["BaseRegistry"]] = {}


def register_registry(host: str) -> Callable[[type["BaseRegistry"]], type["BaseRegistry"]]:
    """
    Decorator to register a registry implementation for a host.

    Usage:
        @register_registry("ghcr.io")
        class GhcrRegistry(BaseRegistry):
            ...
    """

    def decorator(registry_class: type["BaseRegistry"]) -> type["BaseRegistry"]:
        _registries[host] = registry_class
        return registry_class

    return decorator


def get_registry(
    host: str | None = None, http_client: httpx.Client | None = None
) -> RegistryClient:
    """
    Get the registry client for a host.

    Unknown hosts get a GenericRegistry.

    Args:
        host: Registry host (None means Docker Hub)
        http_client: Optional HTTP client for registries that query an API

    Returns:
        RegistryClient implementation
    """
    host = (host or DEFAULT_REGISTRY).lower()
    if host == "index.docker.io":
        host = DEFAULT_REGISTRY
    registry_class = _registries.get(host, GenericRegistry)
    return registry_class(host, http_client=http_client)


def has_registry_credentials(host: str, docker_config_dir: Path | None = None) -> bool:
    """
    Check whether the Docker client holds credentials for a registry.

    Looks at `auths` and `credHelpers` in the Docker config file. A global
    `credsStore` cannot be inspected without invoking the helper, so it
    counts as logged in.

    Args:
        host: Registry host
        docker_config_dir: Override for $DOCKER_CONFIG / ~/.docker
    """
    if docker_config_dir is None:
        docker_config_dir = Path(os.environ.get("DOCKER_CONFIG", str(Path.home() / ".docker")))
    config_file = docker_config_dir / "config.json"
    try:
        data = json.loads(config_file.read_text())
    except (OSError, json.JSONDecodeError):
        return False
    if not isinstance(data, dict):
        return False

    if data.get("credsStore"):
        return True
    auths = data.get("auths") or {}
    helpers = data.get("credHelpers") or {}
    for key in [*auths.keys(), *helpers.keys()]:
        # Keys may be bare hosts or URLs like https://index.docker.io/v1/
        normalized = key.removeprefix("https://").removeprefix("http://").split("/", 1)[0]
        if normalized == host:
            return True
    return False


class BaseRegistry:
    """
    Shared push/pull behavior for registry implementations.

    Args:
        host: Registry host
        http_client: Optional HTTP client for tag listing
    """

    def __init__(self, host: str, http_client: httpx.Client | None = None) -> None:
        self._host = host
        self._http_client = http_client

    @property
    def host(self) -> str:
        return self._host

    def reference(
        self, repository: str, namespace: str | None = None, tag: str = "latest"
    ) -> ImageReference:
        return ImageReference(
            registry=self.host,
            namespace=namespace or None,
            repository=repository,
            tag=tag,
        )

    def list_tags(self, reference: ImageReference) -> TagListing:
        return TagListing(
            repository=reference.path,
            registry=self.host,
            supported=False,
            message=(
                f"Listing tags for {self.host} is not implemented. "
                "Please check the registry's UI."
            ),
        )

    def push(self, docker: DockerClient, reference: ImageReference) -> str:
        if not reference.namespace:
            raise MissingPrerequisite(
                f"Username is required to push to {self.host}",
                registry=self.host,
            )
        qualified = reference.render()
        docker.tag_image(reference.local, qualified)
        logger.info(f"Pushing {qualified}")
        docker.push_image(qualified)
        return qualified

    def pull(self, docker: DockerClient, reference: ImageReference) -> str:
        qualified = reference.render()
        logger.info(f"Pulling {qualified}")
        docker.pull_image(qualified)
        if qualified != reference.local:
            docker.tag_image(qualified, reference.local)
        return reference.local

    def login_hint(self) -> str:
        return f"docker login {self.host}"


@register_registry("docker.io")
class DockerHubRegistry(BaseRegistry):
    """Docker Hub: optional namespace, public tag API."""

    def list_tags(self, reference: ImageReference) -> TagListing:
        """
        Query the Docker Hub tag API.

        Official images without a namespace live under `library/`.

        Raises:
            KaiError: If the API cannot be reached or returns an error
        """
        repo_path = reference.path if reference.namespace else f"library/{reference.repository}"
        url = f"{DOCKER_HUB_API}/{repo_path}/tags/"
        client = self._http_client or httpx.Client(timeout=30.0)
        try:
            response = client.get(url, params={"page_size": TAG_LIMIT})
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            raise KaiError(f"Failed to list Docker Hub tags for {repo_path}: {e}", url=url) from e
        except ValueError as e:
            raise KaiError(f"Docker Hub returned invalid JSON for {repo_path}", url=url) from e
        finally:
            if self._http_client is None:
                client.close()

        results = payload.get("results", []) if isinstance(payload, dict) else []
        tags = [str(item["name"]) for item in results if isinstance(item, dict) and "name" in item]
        return TagListing(
            repository=repo_path,
            registry=self.host,
            tags=tags[:TAG_LIMIT],
            browse_url=f"https://hub.docker.com/r/{repo_path}/tags",
        )

    def login_hint(self) -> str:
        return "docker login"


@register_registry("ghcr.io")
class GhcrRegistry(BaseRegistry):
    """
    GitHub Container Registry.

    Tag listing needs an authenticated GitHub API call, which kaictl does
    not make; the package page is reported instead.
    """

    def list_tags(self, reference: ImageReference) -> TagListing:
        if not reference.namespace:
            raise MissingPrerequisite(
                "Username required for GitHub Container Registry.",
                registry=self.host,
            )
        return TagListing(
            repository=reference.path,
            registry=self.host,
            supported=False,
            browse_url=(
                f"https://github.com/users/{reference.namespace}"
                f"/packages/container/package/{reference.repository}"
            ),
            message="Tag listing on GitHub Container Registry requires the web UI.",
        )


class GenericRegistry(BaseRegistry):
    """Any registry without a dedicated implementation."""
