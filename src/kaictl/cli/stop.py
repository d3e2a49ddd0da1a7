"""
kaictl CLI - Stop command.
"""

import typer

from kaictl.cli.errors import handle_error
from kaictl.cli.progress import console, print_action, summarize_stop
from kaictl.core.config.loader import load_config
from kaictl.core.exceptions import KaiError
from kaictl.core.platform import KaiPlatform


def stop(ctx: typer.Context) -> None:
    """
    Stop the Kai services.

    Containers are stopped but kept; services that are not running are
    skipped. A failure on one service is reported and does not prevent
    stopping the others; only an unreachable Docker daemon fails the command.
    """
    debug = ctx.obj.get("debug", False) if ctx.obj else False

    platform = KaiPlatform(load_config(), on_action=print_action)
    console.print("[bold]Stopping Kai services[/bold]")
    try:
        report = platform.stop()
    except KaiError as e:
        raise handle_error(e, debug)

    summarize_stop(report)
