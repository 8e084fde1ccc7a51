"""
Hash module for DocDrift.

This module provides the fast content digests used to decide whether a
file changed between two snapshots.
"""

from docdrift.hash.content_hash import compute_content_hash

__all__ = [
    "compute_content_hash",
]
