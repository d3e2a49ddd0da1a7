"""
Sandbox image management.

ImageManager implements the build / push / pull / tag / list-tags / clean
operations for a single image (by default the flexy-dev-sandbox image that
the backend starts per project).
"""

import logging
from pathlib import Path

from pydantic import BaseModel, Field

from kaictl.core.docker.client import DockerClient
from kaictl.core.docker.models import ImageInfo
from kaictl.core.exceptions import MissingPrerequisite

from .models import ImageReference, TagListing
from .registry import RegistryClient, get_registry

logger = logging.getLogger(__name__)


class CleanReport(BaseModel):
    """Images removed by clean()."""

    dangling: list[str] = Field(default_factory=list, description="Removed dangling image IDs")
    superseded: list[str] = Field(
        default_factory=list,
        description="Removed tagged images other than the current tag",
    )

    @property
    def total(self) -> int:
        return len(self.dangling) + len(self.superseded)


class ImageManager:
    """
    Lifecycle operations for one image.

    Args:
        docker: Docker client
        reference: The image to manage (registry/namespace/repository/tag)
        build_context: Directory holding the Dockerfile
        registry: Registry client (defaults to the reference's registry)
    """

    def __init__(
        self,
        docker: DockerClient,
        reference: ImageReference,
        build_context: Path,
        registry: RegistryClient | None = None,
    ) -> None:
        self.docker = docker
        self.reference = reference
        self.build_context = build_context
        self.registry = registry or get_registry(reference.registry)

    def check_build_context(self) -> None:
        """
        Verify the build context holds a Dockerfile.

        Raises:
            MissingPrerequisite: If the directory or Dockerfile is missing
        """
        if not self.build_context.is_dir():
            raise MissingPrerequisite(
                f"Build context directory does not exist: {self.build_context}",
                path=str(self.build_context),
            )
        if not (self.build_context / "Dockerfile").is_file():
            raise MissingPrerequisite(
                f"Dockerfile not found in {self.build_context}",
                path=str(self.build_context),
            )

    def build(self, no_cache: bool = False) -> str:
        """
        Build the image from the build context.

        Returns:
            Local name the image was built as
        """
        self.check_build_context()
        logger.info(f"Building {self.reference.local} from {self.build_context}")
        self.docker.build_image(self.build_context, self.reference.local, no_cache=no_cache)
        return self.reference.local

    def push(self) -> str:
        """
        Push the local image to the registry.

        A namespace is required on every registry, Docker Hub included.

        Returns:
            The pushed reference
        """
        return self.registry.push(self.docker, self.reference)

    def pull(self) -> str:
        """
        Pull the image and re-tag it locally.

        Returns:
            Local name the image was tagged as
        """
        return self.registry.pull(self.docker, self.reference)

    def tag(self) -> str:
        """
        Tag the local image under its registry-qualified name.

        Returns:
            The qualified reference
        """
        qualified = self.reference.render()
        if qualified != self.reference.local:
            self.docker.tag_image(self.reference.local, qualified)
        return qualified

    def list_tags(self) -> TagListing:
        """List tags published on the registry."""
        return self.registry.list_tags(self.reference)

    def local_images(self) -> list[ImageInfo]:
        """Locally available images of this repository."""
        return self.docker.list_images(self.reference.repository)

    def clean(self, prune_tagged: bool = False) -> CleanReport:
        """
        Remove unused images of this repository.

        Args:
            prune_tagged: Also remove every tagged image except the current
                tag. Callers must confirm with the user first.

        Returns:
            CleanReport with the removed image IDs
        """
        report = CleanReport()
        dangling = self.docker.list_images(self.reference.repository, dangling=True)
        report.dangling = _unique_ids(dangling)
        self.docker.remove_images(report.dangling)

        if prune_tagged:
            local = self.local_images()
            current_ids = {image.id for image in local if image.tag == self.reference.tag}
            superseded = [
                image
                for image in local
                if not image.dangling
                and image.tag != self.reference.tag
                and image.id not in current_ids
            ]
            report.superseded = _unique_ids(superseded)
            self.docker.remove_images(report.superseded)

        logger.info(f"Removed {report.total} image(s) of {self.reference.repository}")
        return report


def _unique_ids(images: list[ImageInfo]) -> list[str]:
    seen: list[str] = []
    for image in images:
        if image.id and image.id not in seen:
            seen.append(image.id)
    return seen
