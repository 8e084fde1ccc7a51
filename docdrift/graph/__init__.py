"""
Graph module for DocDrift.

This module provides the NetworkX-backed index between code symbols and
the documentation sections that reference them.
"""

from docdrift.graph.reference_index import ReferenceIndex, SectionRef

__all__ = [
    "ReferenceIndex",
    "SectionRef",
]
