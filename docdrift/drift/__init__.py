"""
Drift module for DocDrift.

This module provides the Diff Engine, the impact classification
strategies, the Drift Aggregator, and the pipeline that ties them together.
"""

from docdrift.drift.aggregator import aggregate, classify_drift, estimate_effort
from docdrift.drift.augment import (
    AstOnlyStrategy,
    HybridStrategy,
    ImpactStrategy,
    SemanticClient,
    strategy_for,
)
from docdrift.drift.detector import DriftDetector
from docdrift.drift.differ import compare_parameters, diff_fingerprints

__all__ = [
    "AstOnlyStrategy",
    "DriftDetector",
    "HybridStrategy",
    "ImpactStrategy",
    "SemanticClient",
    "aggregate",
    "classify_drift",
    "compare_parameters",
    "diff_fingerprints",
    "estimate_effort",
    "strategy_for",
]
