"""
kaictl CLI - Main application entry point.

This module sets up the Typer CLI application with all subcommands.
"""

import logging
import sys

import typer
from rich.console import Console

from kaictl import __version__
from kaictl.cli import image, setup, start, status, stop, update
from kaictl.cli.errors import ExitCode
from kaictl.core.config.env import load_layered_env

# Help panel names for command grouping
PANEL_PLATFORM = "Run the Platform"
PANEL_IMAGES = "Manage Images"

# Create the main Typer app
app = typer.Typer(
    name="kaictl",
    help="Set up and run the Kai development sandbox platform",
    no_args_is_help=True,
    add_completion=True,
    context_settings={"help_option_names": ["--help", "-h"]},
)

console = Console()


def setup_logging(debug: bool) -> None:
    """
    Configure logging for all commands.

    Args:
        debug: If True, enable DEBUG level logging
    """
    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"kaictl version {__version__}")
        raise typer.Exit(ExitCode.SUCCESS)


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug output with detailed logging",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show kaictl version and exit",
    ),
) -> None:
    """
    kaictl - Kai platform control.

    Kai runs three services (backend, frontend, code-server) plus a sandbox
    image that the backend starts for every project.

    Quick Start:
        1. kaictl setup     # Clone, install, build and pull images
        2. kaictl start     # Start the services
        3. kaictl status    # See what is running

    Common Workflows:
        kaictl update                  # Pull new images and restart
        kaictl stop                    # Stop everything
        kaictl image build             # Rebuild the sandbox image
        kaictl image push -u alice     # Publish it
    """
    # Precedence: OS env > project .env > user .env
    load_layered_env()
    setup_logging(debug)

    # Store debug flag in context for subcommands
    ctx.obj = {"debug": debug}


# =============================================================================
# Run the Platform
# =============================================================================

app.command(name="setup", rich_help_panel=PANEL_PLATFORM)(setup.setup)
app.command(name="start", rich_help_panel=PANEL_PLATFORM)(start.start)
app.command(name="stop", rich_help_panel=PANEL_PLATFORM)(stop.stop)
app.command(name="update", rich_help_panel=PANEL_PLATFORM)(update.update)
app.command(name="status", rich_help_panel=PANEL_PLATFORM)(status.status)


# =============================================================================
# Manage Images
# =============================================================================

app.add_typer(image.app, name="image", rich_help_panel=PANEL_IMAGES)


def cli_main() -> None:
    """Main CLI entry point."""
    app()


__all__ = ["app", "cli_main"]
