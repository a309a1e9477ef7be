"""Read-only registry commands: ``show``, ``history`` and ``count``.

``history --csv`` writes the page as CSV with a header row, for
spreadsheets and audits.
"""

from __future__ import annotations

import csv
import sys
from pathlib import Path

import typer
from rich.console import Console

from provenant.config import config
from provenant.core.registry import ProvenanceRegistry, RecordNotFoundError
from provenant.monitor.renderer import ProgressRenderer, format_timestamp

console = Console()

CSV_COLUMNS = ["index", "fingerprint", "endorser_identity", "timestamp", "date", "storage_locator"]


def _open_registry(registry_db: Path | None) -> ProvenanceRegistry:
    db_path = Path(registry_db or config.registry_path)
    if not db_path.exists():
        console.print(f"[bold red]Registry not found:[/bold red] {db_path}")
        console.print("[dim]Anchor an artifact first with: provenant anchor FILE[/dim]")
        raise typer.Exit(code=2)
    return ProvenanceRegistry(db_path)


_REGISTRY_OPTION = typer.Option(
    None,
    "--registry",
    "-r",
    help="Path to the registry SQLite database.",
)


def show_cmd(
    fingerprint: str = typer.Argument(..., help="0x-prefixed fingerprint."),
    registry_db: Path = _REGISTRY_OPTION,
) -> None:
    """Show the committed record for FINGERPRINT."""
    registry = _open_registry(registry_db)
    try:
        record = registry.get(fingerprint)
    except RecordNotFoundError as exc:
        console.print(f"[bold yellow]Not found:[/bold yellow] {exc}")
        raise typer.Exit(code=2)
    console.print(ProgressRenderer(console).render_record(record))


def history_cmd(
    offset: int = typer.Option(0, "--offset", min=0, help="First index to list."),
    limit: int = typer.Option(50, "--limit", "-n", min=1, help="Page size."),
    as_csv: bool = typer.Option(False, "--csv", help="Write CSV to stdout."),
    registry_db: Path = _REGISTRY_OPTION,
) -> None:
    """List committed records in insertion order."""
    registry = _open_registry(registry_db)
    records = registry.history(offset=offset, limit=limit)

    if as_csv:
        writer = csv.writer(sys.stdout)
        writer.writerow(CSV_COLUMNS)
        for i, record in enumerate(records, start=offset):
            writer.writerow([
                i,
                record.fingerprint,
                record.endorser_identity,
                record.timestamp,
                format_timestamp(record.timestamp),
                record.storage_locator,
            ])
        return

    if not records:
        console.print("[dim]No records.[/dim]")
        return
    console.print(ProgressRenderer(console).history_table(records, offset=offset))
    console.print(f"[dim]{len(records)} of {registry.count()} records[/dim]")


def count_cmd(registry_db: Path = _REGISTRY_OPTION) -> None:
    """Print the number of committed records."""
    registry = _open_registry(registry_db)
    console.print(str(registry.count()))
