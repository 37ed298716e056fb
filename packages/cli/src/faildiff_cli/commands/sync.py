"""sync command — resolve requests whose verification builds have finished."""

from __future__ import annotations

import click
from rich.console import Console

console = Console()


@click.command("sync")
@click.pass_context
def sync_cmd(ctx):
    """Check pending requests and report the failures their builds introduced.

    Requests whose verification builds are still queued or running stay
    pending; run `faildiff sync` again later.
    """
    from faildiff_core.sync import Synchronizer
    from faildiff_cli.report import ConsoleReportSender

    workspace = ctx.obj["workspace"]
    pending = workspace.pending_requests()
    if not pending:
        console.print("[yellow]No pending requests.[/yellow]")
        return

    resolved = Synchronizer(ctx.obj["client"], ConsoleReportSender(console)).update(workspace)
    console.print(f"Resolved {resolved} of {len(pending)} pending request(s).")
