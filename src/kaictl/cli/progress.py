"""
Console output shared by the platform commands.
"""

from rich.console import Console

from kaictl.core.images.models import ImageResolution, ImageSource
from kaictl.core.services.models import ActionKind, LifecycleReport, ServiceAction

console = Console()

_ACTION_STYLES = {
    ActionKind.STOPPED: ("yellow", "Stopped"),
    ActionKind.REMOVED: ("dim", "Removed"),
    ActionKind.STARTED: ("green", "Started"),
    ActionKind.ALREADY_STOPPED: ("dim", "Not running"),
    ActionKind.FAILED: ("red", "Failed"),
}


def print_action(action: ServiceAction) -> None:
    """Print one container action as it happens."""
    style, label = _ACTION_STYLES[action.kind]
    line = f"[{style}]{label}[/{style}] {action.container}"
    if action.detail and action.kind == ActionKind.FAILED:
        line += f": {action.detail}"
    elif action.detail:
        line += f" [dim]({action.detail})[/dim]"
    console.print(line)


def print_images(images: list[ImageResolution]) -> None:
    """Print where each image came from."""
    for resolution in images:
        source = resolution.source.value
        color = "yellow" if resolution.source == ImageSource.FALLBACK else "green"
        console.print(f"  [{color}]✓[/{color}] {resolution.service}: {resolution.image} [dim]({source})[/dim]")


def print_warnings(warnings: list[str]) -> None:
    for warning in warnings:
        console.print(f"[yellow]Warning:[/yellow] {warning}")


def summarize_stop(report: LifecycleReport) -> None:
    """Print the outcome of a stop run."""
    if report.failures:
        console.print(f"[red]{len(report.failures)} service(s) could not be stopped[/red]")
    elif not report.changed:
        console.print("[dim]No Kai services were running[/dim]")
    else:
        console.print(f"[green]Stopped {len(report.changed)} service(s)[/green]")


def print_access_urls(urls: dict[str, str], password: str | None = None) -> None:
    """Print the service URLs and log hints after a start."""
    console.print()
    console.print("[bold]Access URLs:[/bold]")
    console.print(f"  Frontend:    {urls['frontend']}")
    console.print(f"  Backend:     {urls['backend']}")
    line = f"  Code Server: {urls['code-server']}"
    if password:
        line += f" [dim](password: {password})[/dim]"
    console.print(line)
    console.print()
    console.print("[dim]Logs: docker logs -f kai-backend | kai-frontend | kai-code-server[/dim]")
    console.print("[dim]Stop: kaictl stop[/dim]")
