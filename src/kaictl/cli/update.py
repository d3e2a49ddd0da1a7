"""
kaictl CLI - Update command.

Pull the latest service images from the registry and restart the platform.
"""

import typer
from rich.console import Console

from kaictl.cli.errors import ExitCode, confirm_login, handle_error
from kaictl.cli.progress import (
    print_access_urls,
    print_action,
    print_images,
    print_warnings,
    summarize_stop,
)
from kaictl.core.config.loader import load_config
from kaictl.core.exceptions import KaiError
from kaictl.core.platform import KaiPlatform

console = Console()


def update(
    ctx: typer.Context,
    user: str | None = typer.Option(
        None,
        "--user",
        "-u",
        help="Registry user to pull images from",
    ),
    no_stop: bool = typer.Option(
        False,
        "--no-stop",
        help="Pull without stopping the running services",
    ),
    no_start: bool = typer.Option(
        False,
        "--no-start",
        help="Do not start the services after pulling",
    ),
    no_wait: bool = typer.Option(
        False,
        "--no-wait",
        help="Do not wait for the services to answer after starting",
    ),
) -> None:
    """
    Update the Kai service images and restart.

    Examples:
        kaictl update
        kaictl update --user alice
        kaictl update --no-stop --no-start   # only pull
    """
    debug = ctx.obj.get("debug", False) if ctx.obj else False

    config = load_config().with_overrides(registry={"user": user})
    platform = KaiPlatform(config, auth_prompt=confirm_login, on_action=print_action)
    registry = config.registry

    console.print("[bold]Updating Kai[/bold]")
    console.print(f"  Registry: {registry.host}/{registry.user or ''}")

    if not platform.registry_logged_in():
        console.print(f"[yellow]Not logged in to {registry.host}.[/yellow]")
        console.print(f"[dim]Private images need: docker login {registry.host}[/dim]")
        if not typer.confirm("Continue anyway?", default=True):
            raise typer.Exit(ExitCode.SUCCESS)

    try:
        report = platform.update(stop=not no_stop, start=not no_start, wait=not no_wait)
    except KaiError as e:
        raise handle_error(e, debug)

    if report.stopped is not None:
        summarize_stop(report.stopped)
    console.print("[bold]Pulled images:[/bold]")
    print_images(report.images)

    if report.started is None:
        console.print()
        console.print("[green]Images updated.[/green] Start the platform with: [cyan]kaictl start[/cyan]")
        return

    print_warnings(report.started.warnings)
    console.print()
    console.print("[green]Update complete.[/green]")
    print_access_urls(platform.access_urls(), config.services.code_server_password)
