"""
kaictl CLI - Image commands.

Build, publish and tidy the sandbox image that the backend launches for
every project.
"""

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from kaictl.cli.errors import ExitCode, handle_error
from kaictl.core.config.loader import load_config
from kaictl.core.docker.client import DockerClient
from kaictl.core.exceptions import KaiError
from kaictl.core.images.manager import ImageManager
from kaictl.core.images.models import DEFAULT_REGISTRY, ImageReference

app = typer.Typer(
    name="image",
    help="Manage the sandbox image",
    no_args_is_help=True,
)

console = Console()

# Shared option declarations
KaiDirOption = typer.Option(None, "--kai-dir", "-d", help="Kai checkout (default: ~/cotandem)")
NameOption = typer.Option(None, "--name", "-n", help="Image name (default: flexy-dev-sandbox)")
TagOption = typer.Option(None, "--tag", "-t", help="Image tag (default: latest)")
RegistryOption = typer.Option(
    DEFAULT_REGISTRY, "--registry", "-r", help="Registry host (docker.io, ghcr.io, ...)"
)
UsernameOption = typer.Option(None, "--username", "-u", help="Registry user or organization")


def _debug(ctx: typer.Context) -> bool:
    return ctx.obj.get("debug", False) if ctx.obj else False


def _manager(
    ctx: typer.Context,
    kai_dir: Path | None,
    name: str | None,
    tag: str | None,
    registry: str,
    username: str | None,
) -> ImageManager:
    config = load_config().with_overrides(
        directories={"kai_dir": kai_dir},
        images={"sandbox": name, "tag": tag},
    )
    reference = ImageReference(
        registry=registry,
        namespace=username or None,
        repository=config.images.sandbox,
        tag=config.images.tag,
    )
    if _debug(ctx):
        console.print(f"[dim]Image: {reference.local} on {reference.registry}[/dim]")

    docker = DockerClient()
    try:
        docker.ensure_available()
    except KaiError as e:
        raise handle_error(e, _debug(ctx))
    return ImageManager(docker, reference, config.directories.sandbox_context_path)


@app.command()
def build(
    ctx: typer.Context,
    kai_dir: Path | None = KaiDirOption,
    name: str | None = NameOption,
    tag: str | None = TagOption,
    registry: str = RegistryOption,
    username: str | None = UsernameOption,
    no_cache: bool = typer.Option(False, "--no-cache", help="Build without the layer cache"),
) -> None:
    """
    Build the sandbox image from the checkout's Flexy/ directory.

    Examples:
        kaictl image build
        kaictl image build --tag v1.2 --no-cache
    """
    manager = _manager(ctx, kai_dir, name, tag, registry, username)
    try:
        built = manager.build(no_cache=no_cache)
    except KaiError as e:
        raise handle_error(e, _debug(ctx))
    console.print(f"[green]✓[/green] Built {built}")


@app.command()
def push(
    ctx: typer.Context,
    kai_dir: Path | None = KaiDirOption,
    name: str | None = NameOption,
    tag: str | None = TagOption,
    registry: str = RegistryOption,
    username: str | None = UsernameOption,
) -> None:
    """
    Push the local image to a registry.

    Examples:
        kaictl image push -u alice
        kaictl image push -r ghcr.io -u alice -t v1.2
    """
    manager = _manager(ctx, kai_dir, name, tag, registry, username)
    try:
        pushed = manager.push()
    except KaiError as e:
        raise handle_error(e, _debug(ctx))
    console.print(f"[green]✓[/green] Pushed {pushed}")


@app.command()
def pull(
    ctx: typer.Context,
    kai_dir: Path | None = KaiDirOption,
    name: str | None = NameOption,
    tag: str | None = TagOption,
    registry: str = RegistryOption,
    username: str | None = UsernameOption,
) -> None:
    """
    Pull the image and tag it under its local name.

    Examples:
        kaictl image pull -u alice
        kaictl image pull -r ghcr.io -u alice
    """
    manager = _manager(ctx, kai_dir, name, tag, registry, username)
    try:
        local = manager.pull()
    except KaiError as e:
        raise handle_error(e, _debug(ctx))
    console.print(f"[green]✓[/green] Pulled {manager.reference.render()} as {local}")


@app.command()
def tag(
    ctx: typer.Context,
    kai_dir: Path | None = KaiDirOption,
    name: str | None = NameOption,
    tag: str | None = TagOption,
    registry: str = RegistryOption,
    username: str | None = UsernameOption,
) -> None:
    """
    Tag the local image with its registry-qualified name.
    """
    manager = _manager(ctx, kai_dir, name, tag, registry, username)
    try:
        qualified = manager.tag()
    except KaiError as e:
        raise handle_error(e, _debug(ctx))
    console.print(f"[green]✓[/green] Tagged {manager.reference.local} as {qualified}")


@app.command(name="list-tags")
def list_tags(
    ctx: typer.Context,
    kai_dir: Path | None = KaiDirOption,
    name: str | None = NameOption,
    registry: str = RegistryOption,
    username: str | None = UsernameOption,
) -> None:
    """
    List published tags and locally available tags.

    Only Docker Hub can be queried directly; other registries point at
    their web UI.
    """
    manager = _manager(ctx, kai_dir, name, None, registry, username)

    # Local tags are listed even when the registry query fails
    try:
        listing = manager.list_tags()
    except KaiError as e:
        console.print(f"[yellow]Warning:[/yellow] {escape(str(e))}")
    else:
        console.print(f"[bold]Tags for {listing.repository} on {listing.registry}[/bold]")
        if listing.supported:
            if listing.tags:
                for remote_tag in listing.tags:
                    console.print(f"  {remote_tag}")
            else:
                console.print("[dim]  No tags published[/dim]")
        else:
            console.print(f"[yellow]{listing.message}[/yellow]")
        if listing.browse_url:
            console.print(f"[dim]Browse: {listing.browse_url}[/dim]")

    try:
        local = manager.local_images()
    except KaiError as e:
        raise handle_error(e, _debug(ctx))

    console.print()
    table = Table(title="Local images")
    table.add_column("Tag", style="cyan")
    table.add_column("ID")
    table.add_column("Size")
    table.add_column("Created", style="dim")
    for image in local:
        table.add_row(image.tag, image.id, image.size, image.created_at)
    console.print(table)


@app.command()
def clean(
    ctx: typer.Context,
    kai_dir: Path | None = KaiDirOption,
    name: str | None = NameOption,
    tag: str | None = TagOption,
    prune_tagged: bool = typer.Option(
        False,
        "--prune-tagged",
        help="Also remove every tagged version except the current tag",
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
) -> None:
    """
    Remove dangling images of the repository.

    Examples:
        kaictl image clean
        kaictl image clean --prune-tagged --tag v1.2 --yes
    """
    manager = _manager(ctx, kai_dir, name, tag, DEFAULT_REGISTRY, None)
    if prune_tagged and not yes:
        keep = manager.reference.local
        if not typer.confirm(f"Remove every {manager.reference.repository} image except {keep}?"):
            console.print("[dim]Cancelled[/dim]")
            raise typer.Exit(ExitCode.SUCCESS)

    try:
        report = manager.clean(prune_tagged=prune_tagged)
    except KaiError as e:
        raise handle_error(e, _debug(ctx))

    if report.total == 0:
        console.print("[dim]Nothing to clean[/dim]")
        return
    console.print(f"[green]✓[/green] Removed {len(report.dangling)} dangling image(s)")
    if prune_tagged:
        console.print(f"[green]✓[/green] Removed {len(report.superseded)} older image(s)")
