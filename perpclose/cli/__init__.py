"""CLI commands for perpclose.

This package provides the command-line interface for previewing and
submitting position closes from market-state snapshots.
"""

from perpclose.cli.main import cli, main

__all__ = ["cli", "main"]
