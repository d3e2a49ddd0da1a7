"""
Image handling: references, registries, resolution and management.

Example usage:
    from kaictl.core.images import ImageReference, get_registry

    ref = ImageReference(registry="ghcr.io", namespace="alice", repository="app")
    ref.render()  # 'ghcr.io/alice/app:latest'

    registry = get_registry(ref.registry)
    registry.pull(docker, ref)  # pulls, then tags app:latest
"""

from .manager import CleanReport, ImageManager
from .models import ImageReference, ImageResolution, ImageSource, TagListing
from .registry import (
    DockerHubRegistry,
    GenericRegistry,
    GhcrRegistry,
    RegistryClient,
    get_registry,
    has_registry_credentials,
    register_registry,
)
from .resolver import ALL_ROLES, REQUIRED_ROLES, ImageResolver, image_roles

__all__ = [
    # Models
    "ImageReference",
    "ImageResolution",
    "ImageSource",
    "TagListing",
    # Registries
    "RegistryClient",
    "DockerHubRegistry",
    "GhcrRegistry",
    "GenericRegistry",
    "get_registry",
    "has_registry_credentials",
    "register_registry",
    # Resolution and management
    "ALL_ROLES",
    "REQUIRED_ROLES",
    "CleanReport",
    "ImageManager",
    "ImageResolver",
    "image_roles",
]
