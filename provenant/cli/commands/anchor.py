"""``provenant anchor FILE`` — anchor a file's fingerprint to the configured key.

Runs the full fingerprint -> endorse -> publish -> commit pipeline, showing
progress as it goes.  Exits non-zero if the run fails; a degraded publish
(committed without a storage locator) is reported but exits zero.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from provenant.bridge.credentials import CredentialUnavailableError, Ed25519CredentialProvider
from provenant.config import config
from provenant.core.hasher import ArtifactTooLargeError
from provenant.core.orchestrator import AnchoringOrchestrator
from provenant.models.config import RetryPolicy
from provenant.monitor.renderer import ProgressRenderer

console = Console()


def anchor_cmd(
    file: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        readable=True,
        help="The artifact to anchor.",
    ),
    registry_db: Path = typer.Option(
        None,
        "--registry",
        "-r",
        help="Path to the registry SQLite database.",
    ),
    publisher: str = typer.Option(
        None,
        "--publisher",
        "-p",
        help="Publisher backend: none, local or pinata.",
    ),
    max_retries: int = typer.Option(
        None,
        "--retries",
        min=0,
        help="Publish retries after the first attempt.",
    ),
    retry_delay: float = typer.Option(
        None,
        "--retry-delay",
        min=0.0,
        help="Seconds to wait between publish attempts.",
    ),
    live: bool = typer.Option(
        False,
        "--live",
        "-L",
        help="Render a live step table instead of an event log.",
    ),
) -> None:
    """Anchor FILE: fingerprint, endorse, publish and commit its record."""
    overrides: dict = {}
    if registry_db is not None:
        overrides["registry_path"] = registry_db
    if publisher is not None:
        overrides["publisher"] = publisher
    cfg = config.model_copy(update=overrides)

    try:
        credential = Ed25519CredentialProvider.from_config(cfg)
        credential.identity()
    except CredentialUnavailableError as exc:
        console.print(f"[bold red]No credential:[/bold red] {exc}")
        console.print("[dim]Generate one with: provenant keygen[/dim]")
        raise typer.Exit(code=1)

    try:
        orchestrator = AnchoringOrchestrator.from_config(cfg)
    except ValueError as exc:
        console.print(f"[bold red]Configuration error:[/bold red] {exc}")
        raise typer.Exit(code=1)

    base = cfg.retry_policy()
    policy = RetryPolicy(
        max_retries=base.max_retries if max_retries is None else max_retries,
        retry_delay=base.retry_delay if retry_delay is None else retry_delay,
        timeout=base.timeout,
    )

    size = file.stat().st_size
    if size > cfg.max_artifact_bytes:
        reason = str(ArtifactTooLargeError(size, cfg.max_artifact_bytes))
        console.print(f"[bold red]Anchoring failed:[/bold red] {escape(reason)}")
        raise typer.Exit(code=1)

    renderer = ProgressRenderer(console)
    data = file.read_bytes()
    events = orchestrator.run(data, credential, policy)
    if live:
        events = renderer.follow(events)

    last = None
    for ev in events:
        if not live:
            renderer.print_event(ev)
        last = ev

    console.print()
    if last is None or last.record is None:
        reason = str(last.failure) if last is not None and last.failure else "unknown"
        console.print(f"[bold red]Anchoring failed:[/bold red] {escape(reason)}")
        raise typer.Exit(code=1)

    console.print(renderer.render_record(last.record))
    if not last.record.storage_locator and last.publish_error:
        console.print(
            f"[yellow]Warning:[/yellow] committed without a storage locator "
            f"({escape(last.publish_error)})"
        )
