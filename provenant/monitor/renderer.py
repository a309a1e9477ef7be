"""Rich terminal renderer for anchoring runs, records and verification.

Color scheme
------------
- green     : DONE / matched
- yellow    : RUNNING / degraded publish
- red       : FAILED / mismatch
- dim       : PENDING / SKIPPED
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from datetime import datetime, timezone

from rich.console import Console, Group
from rich.live import Live
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from provenant.models.progress import ProgressEvent, RunStage
from provenant.models.records import ProvenanceRecord, format_fingerprint
from provenant.models.verification import VerificationResult, VerificationStatus
from provenant.monitor.projection import (
    STEP_DISPLAY_NAMES,
    RunSnapshot,
    StepState,
    project,
)

_STATE_ICONS: dict[StepState, str] = {
    StepState.PENDING: "[dim]PENDING[/dim]",
    StepState.RUNNING: "[yellow]RUNNING[/yellow]",
    StepState.DONE: "[green]DONE[/green]",
    StepState.DEGRADED: "[bold yellow]DEGRADED[/bold yellow]",
    StepState.SKIPPED: "[dim]SKIPPED[/dim]",
    StepState.FAILED: "[bold red]FAILED[/bold red]",
}


def format_timestamp(ts: int) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


class ProgressRenderer:
    """Renders run progress and registry data as Rich terminal output.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    # ------------------------------------------------------------------
    # Runs
    # ------------------------------------------------------------------

    def render_snapshot(self, snapshot: RunSnapshot) -> Panel:
        table = Table(show_header=True, header_style="bold cyan", expand=True)
        table.add_column("Step", min_width=12)
        table.add_column("State", min_width=10, justify="center")
        table.add_column("Attempt", justify="right", width=9)
        table.add_column("Details", min_width=20)

        for status in snapshot.steps:
            attempt = (
                f"{status.attempt}/{status.max_attempts}" if status.max_attempts else "[dim]-[/dim]"
            )
            table.add_row(
                STEP_DISPLAY_NAMES[status.step],
                _STATE_ICONS[status.state],
                attempt,
                Text(status.detail or "-", style="dim" if not status.detail else ""),
            )

        summary = [f"[bold]Run:[/bold] {snapshot.run_id or '-'}"]
        if snapshot.fingerprint:
            summary.append(f"[bold]Fingerprint:[/bold] {format_fingerprint(snapshot.fingerprint)}")
        if snapshot.stage == RunStage.COMMITTED:
            locator = snapshot.storage_locator or "[yellow]none[/yellow]"
            summary.append(f"[bold]Locator:[/bold] {locator}")

        border = {
            RunStage.COMMITTED: "green",
            RunStage.FAILED: "red",
        }.get(snapshot.stage, "blue")
        return Panel(
            Group(table, Text(""), Text.from_markup("  |  ".join(summary))),
            title="[bold]Provenant Anchoring[/bold]",
            border_style=border,
            padding=(1, 2),
        )

    def follow(self, events: Iterable[ProgressEvent]) -> Iterator[ProgressEvent]:
        """Re-yield *events* while rendering them live."""
        seen: list[ProgressEvent] = []
        with Live(
            self.render_snapshot(project(seen)),
            console=self.console,
            refresh_per_second=8,
            transient=False,
        ) as live:
            for ev in events:
                seen.append(ev)
                live.update(self.render_snapshot(project(seen)))
                yield ev

    def print_event(self, event: ProgressEvent) -> None:
        style = {
            RunStage.COMMITTED: "green",
            RunStage.FAILED: "bold red",
        }.get(event.stage, "cyan")
        self.console.print(f"[{style}]{event.stage.value:>14}[/{style}]  {escape(event.message)}")

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def render_record(self, record: ProvenanceRecord) -> Panel:
        lines = [
            f"[bold]Fingerprint:[/bold]  {record.fingerprint}",
            f"[bold]Endorser:[/bold]     {record.endorser_identity}",
            f"[bold]Timestamp:[/bold]    {record.timestamp} ({format_timestamp(record.timestamp)})",
            f"[bold]Endorsement:[/bold]  {len(record.endorsement)} bytes",
            f"[bold]Locator:[/bold]      {record.storage_locator or '[dim]not published[/dim]'}",
        ]
        return Panel("\n".join(lines), title="[bold]Provenance Record[/bold]", border_style="blue")

    def history_table(self, records: Iterable[ProvenanceRecord], *, offset: int = 0) -> Table:
        table = Table(title="Provenance History", header_style="bold cyan")
        table.add_column("#", style="dim", justify="right")
        table.add_column("Fingerprint", style="cyan")
        table.add_column("Endorser")
        table.add_column("Date")
        table.add_column("Locator")
        for i, record in enumerate(records, start=offset):
            table.add_row(
                str(i),
                format_fingerprint(record.fingerprint, 10),
                format_fingerprint(record.endorser_identity, 8),
                format_timestamp(record.timestamp),
                record.storage_locator or "[dim]-[/dim]",
            )
        return table

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def print_verification(self, result: VerificationResult) -> None:
        if result.status == VerificationStatus.MATCHED:
            self.console.print(
                f"[bold green]MATCHED[/bold green] {result.fingerprint} was endorsed by "
                f"{result.actual_identity}"
            )
            if result.record is not None:
                self.console.print(self.render_record(result.record))
        elif result.status == VerificationStatus.MISMATCH:
            self.console.print(
                f"[bold red]MISMATCH[/bold red] {result.fingerprint} was endorsed by "
                f"{result.actual_identity}, not {result.expected_identity}"
            )
        else:
            self.console.print(
                f"[bold yellow]NOT FOUND[/bold yellow] {result.fingerprint} has no record"
            )
