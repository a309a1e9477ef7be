"""Provenant CLI — Typer-based command-line interface.

Provides the ``provenant`` command with subcommands for generating an
endorsing key, anchoring artifacts, verifying them against an endorser,
and browsing the registry.

All output uses Rich for formatted terminal display.
"""
