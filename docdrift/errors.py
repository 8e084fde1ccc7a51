"""
Error taxonomy for DocDrift.

Per-file errors (ParseError, SnapshotCorruptionError, ScoringInputError) are
caught close to where they happen and turned into degraded values or
ExtractionFailure entries. Only RootAccessError aborts a build.
"""

from pathlib import Path
from typing import Optional


class DriftError(Exception):
    """Base class for all DocDrift errors."""


class ConfigError(DriftError):
    """Raised when .docdrift.yml cannot be parsed or has invalid values."""


class ParseError(DriftError):
    """
    Raised by a language backend when one file cannot be structurally parsed.

    The extractor dispatcher converts it into a degraded fingerprint.
    """

    def __init__(self, message: str, path: str = "", language: str = "") -> None:
        super().__init__(message)
        self.path = path
        self.language = language


class RootAccessError(DriftError, OSError):
    """Raised when the project or docs root is missing or unreadable."""

    def __init__(self, message: str, root: Optional[Path] = None) -> None:
        super().__init__(message)
        self.root = root


class SnapshotCorruptionError(DriftError):
    """Raised when a stored snapshot fails to deserialize."""

    def __init__(self, message: str, source: Optional[Path] = None) -> None:
        super().__init__(message)
        self.source = source


class ScoringInputError(DriftError):
    """Raised when scoring inputs are incomplete (e.g. file absent from snapshot)."""


class AugmentationError(DriftError):
    """Raised when the semantic augmentation collaborator fails."""
