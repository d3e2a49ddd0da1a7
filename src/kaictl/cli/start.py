"""
kaictl CLI - Start command.
"""

from pathlib import Path

import typer
from rich.console import Console

from kaictl.cli.errors import handle_error
from kaictl.cli.progress import print_access_urls, print_action, print_images, print_warnings
from kaictl.core.config.loader import load_config
from kaictl.core.exceptions import KaiError
from kaictl.core.platform import KaiPlatform

console = Console()


def _on_wait(service: str, attempt: int) -> None:
    if attempt % 5 == 0:
        console.print(f"[dim]  still waiting for {service} (attempt {attempt})[/dim]")


def start(
    ctx: typer.Context,
    base_dir: Path | None = typer.Option(
        None,
        "--base-dir",
        "-b",
        help="Root for project data and editor settings",
    ),
    password: str | None = typer.Option(
        None,
        "--password",
        "-p",
        help="Password for the code-server web UI",
    ),
    no_wait: bool = typer.Option(
        False,
        "--no-wait",
        help="Do not wait for the services to answer",
    ),
) -> None:
    """
    Start (or restart) the Kai services.

    Existing containers are stopped, removed and recreated. Every required
    image must already be present; run `kaictl update` to pull them.

    Examples:
        kaictl start
        kaictl start -b /data/kai -p secret
        kaictl start --no-wait
    """
    debug = ctx.obj.get("debug", False) if ctx.obj else False

    config = load_config().with_overrides(
        directories={"base_dir": base_dir},
        services={"code_server_password": password},
    )
    platform = KaiPlatform(config, on_action=print_action)

    console.print("[bold]Starting Kai services[/bold]")
    try:
        report = platform.start(wait=not no_wait, on_wait=_on_wait)
    except KaiError as e:
        raise handle_error(e, debug)

    console.print("[bold]Images:[/bold]")
    print_images(report.images)
    for health in report.health:
        if health.ready:
            console.print(f"[green]✓[/green] {health.service} is ready ({health.elapsed_s:.0f}s)")
    print_warnings(report.warnings)
    print_access_urls(platform.access_urls(), config.services.code_server_password)
