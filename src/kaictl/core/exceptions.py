"""
Exceptions for kaictl orchestration.

Exception Hierarchy:
    KaiError (base)
    ├── MissingPrerequisite (tool absent, daemon down, bad reference)
    ├── ImageUnavailable (an image could not be made present locally)
    ├── RegistryAuthRequired (registry refused the request, login needed)
    ├── HealthCheckTimeout (readiness probe never succeeded)
    └── CommandFailed (a delegated command exited non-zero)

A service that is already in the requested state (already stopped, network
already present) is not an error and has no exception type.

Example:
    >>> from kaictl.core.exceptions import MissingPrerequisite
    >>> try:
    ...     raise MissingPrerequisite("docker is not installed", tool="docker")
    ... except MissingPrerequisite as e:
    ...     print(e.context["tool"])
    docker
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from kaictl.core.docker.models import RunResult


class KaiError(Exception):
    """
    Base exception for all kaictl errors.

    Attributes:
        message: Human-readable error message
        context: Optional dictionary of additional context
    """

    def __init__(self, message: str, **context: object) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        return self.message


class MissingPrerequisite(KaiError):
    """
    A prerequisite for the requested operation is missing.

    Raised for absent CLI tools, an unreachable Docker daemon, missing
    directories or Dockerfiles, and image references that cannot be
    rendered (no namespace on a non-default registry). Always fatal.
    """


class ImageUnavailable(KaiError):
    """
    An image required by a service could not be made present locally.

    Attributes:
        images: Local image names that are missing
    """

    def __init__(self, message: str, images: list[str] | None = None, **context: object) -> None:
        super().__init__(message, **context)
        self.images = images or []


class RegistryAuthRequired(KaiError):
    """
    The registry rejected a pull or push because the client is not logged in.

    Recoverable: interactive commands prompt for `docker login` and retry.

    Attributes:
        registry: Registry host that requires authentication
    """

    def __init__(self, registry: str, message: str | None = None, **context: object) -> None:
        super().__init__(message or f"Authentication required for {registry}", **context)
        self.registry = registry


class HealthCheckTimeout(KaiError):
    """
    A readiness probe did not succeed before its ceiling elapsed.

    Never fatal: callers report it as a warning and carry on.

    Attributes:
        url: Probed URL
        elapsed_s: Seconds spent waiting
    """

    def __init__(self, url: str, elapsed_s: float, **context: object) -> None:
        super().__init__(f"Timed out after {elapsed_s:.0f}s waiting for {url}", **context)
        self.url = url
        self.elapsed_s = elapsed_s


class CommandFailed(KaiError):
    """
    A delegated command (docker, git, pnpm) exited with a non-zero status.

    Attributes:
        result: RunResult of the failed command
    """

    def __init__(self, result: RunResult, message: str | None = None) -> None:
        detail = result.stderr.strip() or result.stdout.strip()
        text = message or f"Command failed ({result.exit_code}): {' '.join(result.args)}"
        if detail:
            text = f"{text}\n{detail}"
        super().__init__(text, exit_code=result.exit_code)
        self.result = result


__all__ = [
    "KaiError",
    "MissingPrerequisite",
    "ImageUnavailable",
    "RegistryAuthRequired",
    "HealthCheckTimeout",
    "CommandFailed",
]
