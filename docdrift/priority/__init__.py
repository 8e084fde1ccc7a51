"""
Priority module for DocDrift.

This module provides the deterministic multi-factor Priority Scorer.
"""

from docdrift.priority.scorer import (
    SUGGESTED_ACTIONS,
    PriorityScorer,
    recommendation_for,
    score,
)

__all__ = [
    "SUGGESTED_ACTIONS",
    "PriorityScorer",
    "recommendation_for",
    "score",
]
