"""
kaictl CLI - Status command.
"""

import typer
from rich.console import Console
from rich.table import Table

from kaictl.cli.errors import handle_error
from kaictl.core.config.loader import load_config
from kaictl.core.exceptions import KaiError
from kaictl.core.platform import KaiPlatform

console = Console()


def status(ctx: typer.Context) -> None:
    """
    Show the Kai containers and where to reach them.
    """
    debug = ctx.obj.get("debug", False) if ctx.obj else False

    platform = KaiPlatform(load_config())
    try:
        containers = platform.status()
    except KaiError as e:
        raise handle_error(e, debug)

    if not containers:
        console.print("[dim]No Kai containers found. Run: kaictl start[/dim]")
        return

    table = Table(title="Kai Services")
    table.add_column("Name", style="cyan")
    table.add_column("Image")
    table.add_column("Status")
    table.add_column("Ports", style="dim")

    for container in containers:
        color = "green" if container.running else "yellow"
        table.add_row(
            container.name,
            container.image,
            f"[{color}]{container.status}[/{color}]",
            container.ports,
        )
    console.print(table)

    if any(c.running for c in containers):
        console.print()
        console.print("[bold]Access URLs:[/bold]")
        for service, url in platform.access_urls().items():
            console.print(f"  {service}: {url}")
