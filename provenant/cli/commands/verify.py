"""``provenant verify FILE --signer ID`` — check who endorsed a file.

``--signer`` takes a hex identity or, when ``PROVENANT_RESOLVER_PATH``
points to a label directory, a human-readable label.

Exit codes: 0 matched, 1 mismatch or unresolvable signer, 2 not found.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from provenant.bridge.resolution import (
    CachingResolver,
    ResolutionError,
    StaticNameResolver,
    looks_like_identity,
)
from provenant.config import config
from provenant.core.hasher import ArtifactTooLargeError
from provenant.core.registry import ProvenanceRegistry
from provenant.core.verifier import Verifier, check_endorsement
from provenant.models.verification import VerificationStatus
from provenant.monitor.renderer import ProgressRenderer

console = Console()

_EXIT_CODES = {
    VerificationStatus.MATCHED: 0,
    VerificationStatus.MISMATCH: 1,
    VerificationStatus.NOT_FOUND: 2,
}


def verify_cmd(
    file: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        readable=True,
        help="The artifact to verify.",
    ),
    signer: str = typer.Option(
        ...,
        "--signer",
        "-s",
        help="Expected endorser identity or label.",
    ),
    registry_db: Path = typer.Option(
        None,
        "--registry",
        "-r",
        help="Path to the registry SQLite database.",
    ),
    labels: Path = typer.Option(
        None,
        "--labels",
        help="JSON label directory (defaults to PROVENANT_RESOLVER_PATH).",
    ),
    check_signature: bool = typer.Option(
        False,
        "--check-signature",
        help="Also verify the stored endorsement cryptographically.",
    ),
) -> None:
    """Verify that FILE was anchored by the expected endorser."""
    db_path = registry_db or config.registry_path
    if not Path(db_path).exists():
        console.print(f"[bold red]Registry not found:[/bold red] {db_path}")
        raise typer.Exit(code=2)

    label_path = labels or config.resolver_path
    resolver = None
    if label_path is not None:
        try:
            resolver = CachingResolver(StaticNameResolver.from_file(label_path))
        except ResolutionError as exc:
            console.print(f"[bold red]Label directory error:[/bold red] {exc}")
            raise typer.Exit(code=1)

    verifier = Verifier(
        ProvenanceRegistry(db_path),
        resolver,
        max_artifact_bytes=config.max_artifact_bytes,
    )
    data = file.read_bytes()
    try:
        if looks_like_identity(signer):
            result = verifier.verify(data, signer)
        else:
            result = verifier.verify_label(data, signer)
    except ResolutionError as exc:
        console.print(f"[bold red]Cannot resolve signer:[/bold red] {exc}")
        raise typer.Exit(code=1)
    except ArtifactTooLargeError as exc:
        console.print(f"[bold red]Cannot fingerprint:[/bold red] {exc}")
        raise typer.Exit(code=1)

    ProgressRenderer(console).print_verification(result)

    if check_signature and result.record is not None:
        if check_endorsement(result.record, config.statement_template):
            console.print("[green]Endorsement signature is valid.[/green]")
        else:
            console.print("[bold red]Endorsement signature does NOT verify.[/bold red]")
            raise typer.Exit(code=1)

    raise typer.Exit(code=_EXIT_CODES[result.status])
