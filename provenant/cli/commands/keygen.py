"""``provenant keygen`` — generate an Ed25519 endorsing key.

Prints the identity and, in ``.env`` form, the seed to configure it as
``PROVENANT_SIGNING_KEY``.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel

from provenant.bridge.credentials import Ed25519CredentialProvider
from provenant.bridge.crypto_bridge import key_fingerprint

console = Console()


def keygen_cmd(
    env_file: Path = typer.Option(
        None,
        "--env-file",
        "-e",
        help="Append PROVENANT_SIGNING_KEY to this file instead of printing the seed.",
    ),
) -> None:
    """Generate a fresh endorsing key and print its identity."""
    provider = Ed25519CredentialProvider.generate()
    identity = provider.identity()
    line = f"PROVENANT_SIGNING_KEY={provider.private_key}"

    console.print(
        Panel(
            "\n".join([
                "[bold green]New endorsing key generated.[/bold green]",
                "",
                f"[bold]Key:[/bold] {key_fingerprint(identity)}",
            ]),
            title="[bold]Provenant[/bold]",
            border_style="green",
            padding=(1, 2),
        )
    )
    console.print(f"[bold]Identity:[/bold] {identity}", soft_wrap=True)

    if env_file is not None:
        with open(env_file, "a", encoding="utf-8") as fh:
            fh.write(line + "\n")
        console.print(f"[dim]Signing key appended to {env_file}[/dim]")
    else:
        console.print("[yellow]Keep the seed below secret:[/yellow]")
        console.print(line, soft_wrap=True, markup=False, highlight=False)
