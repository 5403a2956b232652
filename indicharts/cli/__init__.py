"""CLI commands for Indicharts.

This package provides the command-line interface for Indicharts,
including alert management, evaluation and account sync commands.
"""

from indicharts.cli.main import cli, main

__all__ = ["cli", "main"]
