"""
CLI module for DocDrift.

The command-line interface providing snapshot, detect, explain, and history commands.
"""

from cli.main import app

__all__ = ["app"]
