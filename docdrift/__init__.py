"""
DocDrift Engine

Core engine for extracting structural fingerprints of source files,
modelling documentation sections, diffing snapshots, and scoring the
resulting documentation drift.
"""

from docdrift.drift import DriftDetector
from docdrift.models import (
    CodeDiff,
    DriftDetectionResult,
    DriftSnapshot,
    PriorityScore,
    StructuralFingerprint,
)

__all__ = [
    "CodeDiff",
    "DriftDetectionResult",
    "DriftDetector",
    "DriftSnapshot",
    "PriorityScore",
    "StructuralFingerprint",
]
__version__ = "0.1.0"
