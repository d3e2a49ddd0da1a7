"""
kaictl CLI - Setup command.

Prepare a machine to run Kai: check prerequisites, fetch the source,
install dependencies, build or pull images, create the network and write
the backend env file.
"""

from pathlib import Path

import typer
from rich.console import Console

from kaictl.cli.errors import confirm_login, handle_error
from kaictl.cli.progress import print_images, print_warnings
from kaictl.core.config.loader import load_config
from kaictl.core.exceptions import KaiError
from kaictl.core.platform import KaiPlatform

console = Console()


def setup(
    ctx: typer.Context,
    kai_dir: Path | None = typer.Option(
        None,
        "--kai-dir",
        "-d",
        help="Where the Kai source is checked out (default: ~/cotandem)",
    ),
    base_dir: Path | None = typer.Option(
        None,
        "--base-dir",
        "-b",
        help="Root for project data and editor settings (default: ~/KaiBase)",
    ),
    repo: str | None = typer.Option(
        None,
        "--repo",
        "-r",
        help="Git URL of the Kai repository",
    ),
    user: str | None = typer.Option(
        None,
        "--user",
        "-u",
        help="Registry user to pull service images from",
    ),
    skip_deps: bool = typer.Option(
        False,
        "--skip-deps",
        help="Do not run pnpm install",
    ),
    skip_clone: bool = typer.Option(
        False,
        "--skip-clone",
        help="Use the existing checkout as-is",
    ),
    build_sandbox: bool = typer.Option(
        True,
        "--build-sandbox/--pull-sandbox",
        help="Build the sandbox image from the checkout, or pull it",
    ),
) -> None:
    """
    Set up the Kai platform on this machine.

    Examples:
        kaictl setup
        kaictl setup --base-dir /data/kai --user alice
        kaictl setup --skip-clone --pull-sandbox
    """
    debug = ctx.obj.get("debug", False) if ctx.obj else False

    config = load_config().with_overrides(
        directories={"kai_dir": kai_dir, "base_dir": base_dir},
        repo={"url": repo},
        registry={"user": user},
    )
    dirs = config.directories

    console.print("[bold]Setting up Kai[/bold]")
    console.print(f"  Kai directory:  {dirs.kai_dir}")
    console.print(f"  Base directory: {dirs.base_dir}")
    console.print()

    platform = KaiPlatform(config, auth_prompt=confirm_login)
    try:
        report = platform.setup(
            clone=not skip_clone,
            install_deps=not skip_deps,
            build_sandbox=build_sandbox,
        )
    except KaiError as e:
        raise handle_error(e, debug)

    if report.checkout:
        console.print(f"[green]✓[/green] Repository {report.checkout}")
    if report.pnpm_installed:
        console.print("[green]✓[/green] Installed pnpm")
    for name in report.dependencies:
        console.print(f"[green]✓[/green] Installed {name} dependencies")
    if report.provision is not None:
        provision = report.provision
        state = "created" if provision.network_created else "already exists"
        console.print(f"[green]✓[/green] Network {provision.network} {state}")
        if provision.env_file is not None:
            state = "written" if provision.env_file_written else "kept"
            console.print(f"[green]✓[/green] Env file {provision.env_file} {state}")
    console.print("[bold]Images:[/bold]")
    print_images(report.images)
    print_warnings(report.warnings)

    console.print()
    console.print("[green]Setup complete.[/green] Start the platform with: [cyan]kaictl start[/cyan]")
