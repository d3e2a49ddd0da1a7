"""
Image resolution.

Decides, for each image the platform needs, whether to use a local image,
pull it from the configured registry, or fall back to a public default.
The first step that succeeds wins:

1. A local image with the expected name exists.
2. The image is pulled from the registry and re-tagged under its bare
   local name (so services never see registry naming).
3. For code-server only, the public upstream image is used and a
   capability warning is recorded (no Docker CLI inside the editor).

Anything else raises ImageUnavailable before a single container is touched.
"""

import logging
from collections.abc import Callable, Iterable

from pydantic import BaseModel, ConfigDict, Field

from kaictl.core.config.models import KaiConfig
from kaictl.core.docker.client import DockerClient
from kaictl.core.exceptions import (
    CommandFailed,
    ImageUnavailable,
    MissingPrerequisite,
    RegistryAuthRequired,
)

from .models import ImageResolution, ImageSource
from .registry import RegistryClient, get_registry

logger = logging.getLogger(__name__)

# Called when a registry rejects a pull; return True to retry once
AuthPrompt = Callable[[RegistryAuthRequired], bool]

BACKEND = "backend"
FRONTEND = "frontend"
SANDBOX = "sandbox"
CODE_SERVER = "code-server"

# Images the services cannot run without
REQUIRED_ROLES = (BACKEND, FRONTEND, SANDBOX)

# Order used by setup and start
ALL_ROLES = (BACKEND, FRONTEND, SANDBOX, CODE_SERVER)

CODE_SERVER_DEGRADED = (
    "Using official code-server image (Docker CLI not available). "
    "To enable Docker CLI in code-server, build or pull the kai-code-server image."
)


class ImageRole(BaseModel):
    """An image the platform needs, by role."""

    model_config = ConfigDict(frozen=True)

    role: str = Field(description="backend, frontend, sandbox or code-server")
    repository: str = Field(description="Local repository name")
    tag: str = Field(default="latest")
    fallback: str | None = Field(
        default=None,
        description="Public image used when the custom image is unavailable",
    )

    @property
    def local(self) -> str:
        return f"{self.repository}:{self.tag}"


def image_roles(config: KaiConfig) -> dict[str, ImageRole]:
    """Build the image roles from configuration."""
    images = config.images
    return {
        BACKEND: ImageRole(role=BACKEND, repository=images.backend, tag=images.tag),
        FRONTEND: ImageRole(role=FRONTEND, repository=images.frontend, tag=images.tag),
        SANDBOX: ImageRole(role=SANDBOX, repository=images.sandbox, tag=images.tag),
        CODE_SERVER: ImageRole(
            role=CODE_SERVER,
            repository=images.code_server,
            tag=images.tag,
            fallback=images.code_server_fallback,
        ),
    }


class ImageResolver:
    """
    Make the platform's images present locally.

    Args:
        docker: Docker client
        config: Invocation configuration
        registry: Registry client (defaults to the configured registry host)
        auth_prompt: Interactive hook for RegistryAuthRequired; when absent
            the error propagates
    """

    def __init__(
        self,
        docker: DockerClient,
        config: KaiConfig,
        registry: RegistryClient | None = None,
        auth_prompt: AuthPrompt | None = None,
    ) -> None:
        self.docker = docker
        self.config = config
        self.registry = registry or get_registry(config.registry.host)
        self.auth_prompt = auth_prompt
        self.roles = image_roles(config)

    def resolve(self, role: str, allow_pull: bool = True) -> ImageResolution:
        """
        Resolve one image.

        Args:
            role: Image role (see ALL_ROLES)
            allow_pull: Try the registry when the image is not local

        Returns:
            ImageResolution naming the local image to run

        Raises:
            ImageUnavailable: If no step produced the image
            RegistryAuthRequired: If the registry refused and the user did
                not log in (no fallback available)
        """
        spec = self.roles[role]

        if self.docker.image_exists(spec.local):
            logger.debug(f"{role}: using local image {spec.local}")
            return ImageResolution(service=role, image=spec.local, source=ImageSource.LOCAL)

        pull_error: Exception | None = None
        if allow_pull:
            try:
                image = self._pull_with_auth(spec)
                return ImageResolution(service=role, image=image, source=ImageSource.REGISTRY)
            except (CommandFailed, MissingPrerequisite, RegistryAuthRequired) as e:
                if spec.fallback is None:
                    if isinstance(e, RegistryAuthRequired):
                        raise
                    raise ImageUnavailable(
                        f"Could not obtain {role} image {spec.local}: {e}",
                        images=[spec.local],
                    ) from e
                pull_error = e
                logger.debug(f"{role}: pull failed, falling back ({e})")

        if spec.fallback is not None:
            return self._use_fallback(spec, pull_error)

        raise ImageUnavailable(f"Required image not found: {spec.local}", images=[spec.local])

    def resolve_all(
        self, roles: Iterable[str] = ALL_ROLES, allow_pull: bool = True
    ) -> list[ImageResolution]:
        """
        Resolve several images.

        Required images are checked before any fallback is pulled, and all
        missing required images are reported together.

        Raises:
            ImageUnavailable: Listing every required image that is missing
        """
        roles = list(roles)
        resolutions: dict[str, ImageResolution] = {}
        missing: list[str] = []
        ordered = [r for r in roles if self.roles[r].fallback is None] + [
            r for r in roles if self.roles[r].fallback is not None
        ]
        for role in ordered:
            if missing and self.roles[role].fallback is not None:
                break
            try:
                resolutions[role] = self.resolve(role, allow_pull=allow_pull)
            except ImageUnavailable as e:
                missing.extend(e.images)

        if missing:
            raise ImageUnavailable(
                f"Required images not found: {', '.join(missing)}",
                images=missing,
            )
        return [resolutions[r] for r in roles]

    def pull_latest(self, roles: Iterable[str] = REQUIRED_ROLES) -> list[ImageResolution]:
        """
        Pull and re-tag images regardless of what is present locally.

        Used by update. There is no fallback: a failed pull is fatal.

        Raises:
            ImageUnavailable: If a pull fails
            RegistryAuthRequired: If the registry refused and the user did
                not log in
        """
        resolutions = []
        for role in roles:
            spec = self.roles[role]
            try:
                image = self._pull_with_auth(spec)
            except (CommandFailed, MissingPrerequisite) as e:
                raise ImageUnavailable(
                    f"Failed to pull {role} image: {e}", images=[spec.local]
                ) from e
            resolutions.append(
                ImageResolution(service=role, image=image, source=ImageSource.REGISTRY)
            )
        return resolutions

    def missing(self, roles: Iterable[str] = REQUIRED_ROLES) -> list[str]:
        """Local names of the given images that are not present."""
        return [
            self.roles[r].local for r in roles if not self.docker.image_exists(self.roles[r].local)
        ]

    # =========================================================================
    # Private helpers
    # =========================================================================

    def _pull_with_auth(self, spec: ImageRole) -> str:
        reference = self.registry.reference(
            spec.repository, namespace=self.config.registry.user, tag=spec.tag
        )
        try:
            return self.registry.pull(self.docker, reference)
        except RegistryAuthRequired as e:
            if self.auth_prompt is None or not self.auth_prompt(e):
                raise
            logger.info(f"Retrying pull of {reference} after login")
            return self.registry.pull(self.docker, reference)

    def _use_fallback(self, spec: ImageRole, cause: Exception | None) -> ImageResolution:
        fallback = spec.fallback or ""
        if not self.docker.image_exists(fallback):
            try:
                self.docker.pull_image(fallback)
            except (CommandFailed, RegistryAuthRequired) as e:
                raise ImageUnavailable(
                    f"Neither {spec.local} nor fallback {fallback} is available: {e}",
                    images=[spec.local, fallback],
                ) from (cause or e)
        logger.warning(f"{spec.role}: falling back to {fallback}")
        return ImageResolution(
            service=spec.role,
            image=fallback,
            source=ImageSource.FALLBACK,
            degraded=True,
            message=CODE_SERVER_DEGRADED,
        )
