"""
Command-line interface for pixshop.

This package contains CLI implementations using Click.
"""

from pixshop.cli.commands import cli, main

__all__ = ["cli", "main"]
