"""Console display for sync runs using rich."""

import time
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.prompt import Confirm
from rich.table import Table
from rich.text import Text

from ..domain.timesheet import Timesheet
from ..sync.engine import PendingUpdate, PushResult


class SyncConsole:
    """Console front end for pulling and pushing timesheets."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()
        self.started_at: Optional[float] = None

    @staticmethod
    def format_hours(hours: float) -> str:
        """Format decimal hours as a duration, e.g. 1.5 -> "1h 30m"."""
        whole, minutes = divmod(int(round(hours * 60)), 60)
        if whole and minutes:
            return f"{whole}h {minutes}m"
        if whole:
            return f"{whole}h"
        return f"{minutes}m"

    def show_banner(self) -> None:
        title = Text("zebratrack", style="bold blue")
        title.append("  timesheet sync", style="dim")
        self.console.print(Panel(title, border_style="blue", expand=False))

    def validate_config(self, errors: list[str]) -> bool:
        """Print configuration problems. Returns True if there are none."""
        if not errors:
            return True
        self.console.print("❌ [red bold]Invalid configuration[/red bold]")
        for error in errors:
            self.console.print(f"   • {error}", style="red")
        return False

    def show_last_run(self, record: Optional[dict[str, Any]]) -> None:
        if record is None:
            self.console.print("[dim]No previous successful pull[/dim]")
            return
        self.console.print(f"[dim]Last successful pull: {record.get('finished_at', '?')}[/dim]")

    def start_sync(self, time_range: str) -> None:
        self.started_at = time.monotonic()
        self.console.print(f"⏳ Syncing [cyan]{time_range}[/cyan]")

    def complete_sync(
        self, time_range: str, pulled: list[Timesheet], push_result: PushResult
    ) -> None:
        """Print the pulled and pushed timesheets and a summary panel."""
        elapsed = time.monotonic() - self.started_at if self.started_at is not None else 0.0

        self.show_timesheets("Pulled from Zebra", pulled, "yellow")
        self.show_timesheets("Pushed to Zebra", push_result.pushed, "green")
        self.show_timesheets("Not synced (do not sync)", push_result.skipped, "dim")

        if pulled or push_result.pushed:
            state = f"[yellow]{len(pulled) + len(push_result.pushed)} changes[/yellow]"
        else:
            state = "[green]up-to-date[/green]"
        summary = (
            f"✅ [green bold]{elapsed:.2f}s[/green bold] • [cyan]{time_range}[/cyan] • "
            f"{len(pulled)} pulled • {len(push_result.pushed)} pushed • "
            f"{len(push_result.skipped)} skipped • {state}"
        )
        self.console.print(Panel(summary, border_style="green", title="Sync Summary"))

    def show_timesheets(self, title: str, timesheets: list[Timesheet], color: str) -> None:
        if not timesheets:
            return

        table = Table(title=title, title_style=f"{color} bold", title_justify="left", box=None)
        table.add_column("Date", style="cyan", no_wrap=True)
        table.add_column("Activity", max_width=30, overflow="ellipsis")
        table.add_column("Description", max_width=55, overflow="ellipsis", style="dim")
        table.add_column("Time", justify="right", style="blue")
        table.add_column("Zebra", justify="right")

        for timesheet in sorted(timesheets, key=lambda item: item.date):
            table.add_row(
                timesheet.date.isoformat(),
                timesheet.activity.name,
                timesheet.description,
                self.format_hours(timesheet.time),
                "-" if timesheet.zebra_id is None else str(timesheet.zebra_id),
            )
        self.console.print(table)

    def show_error(self, error: str) -> None:
        self.console.print(f"❌ [red bold]{error}[/red bold]")

    def ask_confirmation(self, message: str) -> bool:
        return Confirm.ask(message, console=self.console, default=False)

    def resolve_update(self, pending: PendingUpdate) -> Optional[Timesheet]:
        """Ask whether a pending update should go to Zebra, then confirm or cancel it.

        Returns:
            The merged timesheet if the update was confirmed, else None
        """
        timesheet = pending.timesheet
        question = (
            f"Update Zebra timesheet {timesheet.zebra_id} "
            f"({timesheet.date.isoformat()}, {timesheet.activity.name}, "
            f"{self.format_hours(timesheet.time)})?"
        )
        if self.ask_confirmation(question):
            return pending.confirm()
        pending.cancel()
        return None

    @contextmanager
    def progress_spinner(self, description: str) -> Iterator[Progress]:
        """Show a transient spinner while the block runs."""
        with Progress(
            SpinnerColumn(),
            TextColumn("{task.description}"),
            TimeElapsedColumn(),
            console=self.console,
            transient=True,
        ) as progress:
            progress.add_task(description, total=None)
            yield progress
