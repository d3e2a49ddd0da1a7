"""
Standardized error handling and exit codes for the kaictl CLI.

This module provides consistent error messaging with actionable guidance
and maps domain exceptions to exit codes.
"""

import traceback
from enum import IntEnum

import typer
from rich.console import Console

from kaictl.core.exceptions import (
    CommandFailed,
    ImageUnavailable,
    KaiError,
    MissingPrerequisite,
    RegistryAuthRequired,
)
from kaictl.core.images.registry import get_registry

console = Console(stderr=True)


class ExitCode(IntEnum):
    """Standard exit codes for kaictl operations."""

    SUCCESS = 0
    """Operation completed successfully."""

    GENERAL_ERROR = 1
    """Generic error, missing prerequisite or failed step."""

    USER_ERROR = 2
    """Invalid input or configuration (actionable by user)."""

    SIGINT = 130
    """Terminated by SIGINT (Ctrl+C) - Unix standard."""


def print_error(
    problem: str,
    *,
    reason: str | None = None,
    solution: str | None = None,
    doc_url: str | None = None,
) -> None:
    """
    Print a standardized error message with actionable guidance.

    Args:
        problem: Brief description of what went wrong
        reason: Optional explanation of why it happened
        solution: Optional command or action to fix it
        doc_url: Optional documentation URL for more help

    Example:
        >>> print_error(
        ...     "Docker daemon is not running",
        ...     reason="kaictl runs every service in a container",
        ...     solution="sudo systemctl start docker",
        ... )
    """
    console.print(f"[red]Error:[/red] {problem}")

    if reason:
        console.print(f"[dim]{reason}[/dim]")

    if solution:
        console.print(f"[cyan]→ Try:[/cyan] {solution}")

    if doc_url:
        console.print(f"[dim]Docs: {doc_url}[/dim]")


def print_missing_images_error(images: list[str]) -> None:
    """Print error when required images are not available locally."""
    print_error(
        "Required images not found: " + ", ".join(images),
        reason="Services cannot start without their images; no container was created",
        solution="kaictl update  # pulls the latest images",
    )


def handle_error(error: Exception, debug: bool = False) -> typer.Exit:
    """
    Print a domain error and return the matching typer.Exit.

    Usage:
        except KaiError as e:
            raise handle_error(e, debug)
    """
    if isinstance(error, ImageUnavailable) and error.images:
        print_missing_images_error(error.images)
    elif isinstance(error, RegistryAuthRequired):
        hint = get_registry(error.registry).login_hint()
        print_error(
            f"Authentication required for {error.registry}",
            reason=str(error),
            solution=hint,
        )
    elif isinstance(error, MissingPrerequisite):
        tool = error.context.get("tool")
        print_error(
            str(error),
            solution=f"Install {tool} and try again" if tool else None,
        )
    elif isinstance(error, CommandFailed):
        print_error(
            f"Command failed: {' '.join(error.result.args)}",
            reason=str(error),
            solution="Re-run with --debug for details",
        )
    elif isinstance(error, KaiError):
        print_error(str(error))
    else:
        print_error(f"Unexpected error: {error}")

    if debug:
        console.print(f"[dim]{traceback.format_exc()}[/dim]")
    return typer.Exit(ExitCode.GENERAL_ERROR)


def confirm_login(error: RegistryAuthRequired) -> bool:
    """
    Ask the user to log in after a registry refused a pull.

    Returns:
        True if the user says they logged in and the pull should be retried
    """
    hint = get_registry(error.registry).login_hint()
    console.print(f"[yellow]Authentication required for {error.registry}[/yellow]")
    console.print(f"Run [cyan]{hint}[/cyan] in another terminal, then continue.")
    return typer.confirm("Retry after logging in?", default=True)
