"""Main Typer application — imports and registers all CLI commands.

Entry point: ``provenant`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import logging

import typer
from rich.console import Console
from rich.logging import RichHandler

from provenant.cli.commands.anchor import anchor_cmd
from provenant.cli.commands.keygen import keygen_cmd
from provenant.cli.commands.registry_cmds import count_cmd, history_cmd, show_cmd
from provenant.cli.commands.verify import verify_cmd
from provenant.config import config

app = typer.Typer(
    name="provenant",
    help="Provenant: anchor artifact fingerprints to an endorsing identity.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


def setup_logging(log_level: str = "INFO") -> None:
    """Route library logging through Rich on stderr."""
    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        None,
        "--log-level",
        help="Logging level (defaults to PROVENANT_LOG_LEVEL).",
    ),
) -> None:
    setup_logging(log_level or ("DEBUG" if config.debug else config.log_level))


# Register subcommands
app.command(name="keygen", help="Generate a new Ed25519 endorsing key.")(keygen_cmd)
app.command(name="anchor", help="Fingerprint, endorse, publish and commit a file.")(anchor_cmd)
app.command(name="verify", help="Check a file against an expected endorser.")(verify_cmd)
app.command(name="show", help="Show the record for a fingerprint.")(show_cmd)
app.command(name="history", help="List committed records in order.")(history_cmd)
app.command(name="count", help="Print the number of committed records.")(count_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
