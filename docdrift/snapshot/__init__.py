"""
Snapshot module for DocDrift.

This module provides the Snapshot Builder and its explicit build context.
"""

from docdrift.snapshot.builder import IGNORED_DIRS, BuildContext, SnapshotBuilder

__all__ = [
    "IGNORED_DIRS",
    "BuildContext",
    "SnapshotBuilder",
]
