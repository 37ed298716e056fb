"""Render request reports on the terminal."""

from __future__ import annotations

from rich.console import Console
from rich.table import Table

from faildiff_core.report import BaseReportSender, RequestReport

_STATUS_STYLE = {
    "new failures": "red",
    "updated failures": "yellow",
    "same failures": "dim",
}


def _first_line(text: str) -> str:
    return text.splitlines()[0] if text else ""


class ConsoleReportSender(BaseReportSender):
    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def send(self, report: RequestReport) -> None:
        title = (
            f"Request {report.request_id[:8]}: {report.branch} "
            f"{report.reference_commit.short()}..{report.head_commit.short()}"
        )
        table = Table(title=title, show_header=True, header_style="bold cyan")
        table.add_column("Build", style="bold")
        table.add_column("Status")
        table.add_column("Test")
        table.add_column("Details", max_width=50)

        for verification in report.verifications:
            build = f"{verification.build}\nvs {verification.baseline}"
            if verification.diff is None:
                table.add_row(build, "[yellow]not comparable[/yellow]", "", verification.reason)
                continue
            labels = verification.diff.status.labels()
            status = "\n".join(f"[{_STATUS_STYLE[label]}]{label}[/{_STATUS_STYLE[label]}]" for label in labels)
            table.add_row(build, status or "[green]no failures[/green]", "", "")
            for test in verification.diff.added:
                table.add_row("", "[red]new[/red]", str(test), _first_line(test.error_details))
            for test in verification.diff.updated:
                table.add_row("", "[yellow]updated[/yellow]", str(test), _first_line(test.error_details))

        self.console.print(table)
        if report.has_regressions:
            self.console.print("[bold red]Regressions found.[/bold red]")
        else:
            self.console.print("[green]No new failures.[/green]")
