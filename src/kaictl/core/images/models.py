"""
Image data models.

ImageReference captures the two naming schemes kaictl deals with: Docker Hub,
where a namespace is optional, and every other registry, where the
registry host and a namespace must both appear in the reference.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from kaictl.core.exceptions import MissingPrerequisite

DEFAULT_REGISTRY = "docker.io"


class ImageReference(BaseModel):
    """
    A registry-qualified image name.

    Rendering rules:
        docker.io, no namespace  -> repository:tag
        docker.io, namespace     -> namespace/repository:tag
        other registry           -> registry/namespace/repository:tag
    """

    model_config = ConfigDict(frozen=True)

    registry: str = Field(
        default=DEFAULT_REGISTRY,
        description="Registry host",
    )
    namespace: str | None = Field(
        default=None,
        description="Registry user or organization",
    )
    repository: str = Field(
        min_length=1,
        description="Repository (image) name",
    )
    tag: str = Field(
        default="latest",
        min_length=1,
        description="Image tag",
    )

    @property
    def is_default_registry(self) -> bool:
        """True for Docker Hub."""
        return self.registry in (DEFAULT_REGISTRY, "", "index.docker.io")

    @property
    def local(self) -> str:
        """Bare `repository:tag` name the services run against."""
        return f"{self.repository}:{self.tag}"

    @property
    def path(self) -> str:
        """`namespace/repository`, or just the repository without a namespace."""
        return f"{self.namespace}/{self.repository}" if self.namespace else self.repository

    def render(self) -> str:
        """
        Render the fully qualified reference.

        Raises:
            MissingPrerequisite: If the registry is not Docker Hub and no
                namespace is set
        """
        if self.is_default_registry:
            return f"{self.path}:{self.tag}"
        if not self.namespace:
            raise MissingPrerequisite(
                f"Username is required for non-Docker Hub registries ({self.registry})",
                registry=self.registry,
                repository=self.repository,
            )
        return f"{self.registry}/{self.namespace}/{self.repository}:{self.tag}"

    def __str__(self) -> str:
        return self.render()


class ImageSource(str, Enum):
    """Where a resolved image came from."""

    LOCAL = "local"
    REGISTRY = "registry"
    FALLBACK = "fallback"
    BUILT = "built"


class ImageResolution(BaseModel):
    """Outcome of resolving one service image."""

    service: str = Field(description="Service or image role (backend, sandbox, ...)")
    image: str = Field(description="Local image the service will run")
    source: ImageSource = Field(description="How the image was obtained")
    degraded: bool = Field(
        default=False,
        description="A fallback image with reduced capabilities is in use",
    )
    message: str | None = Field(
        default=None,
        description="Warning to show the user",
    )


class TagListing(BaseModel):
    """Result of listing tags for a repository."""

    repository: str = Field(description="Repository path that was queried")
    registry: str = Field(description="Registry host")
    supported: bool = Field(
        default=True,
        description="False when this registry has no tag-listing support",
    )
    tags: list[str] = Field(default_factory=list)
    browse_url: str | None = Field(
        default=None,
        description="Web page where tags can be browsed instead",
    )
    message: str | None = Field(default=None)
