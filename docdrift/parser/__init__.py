"""
Parser module for DocDrift.

This module provides the Structural Extractor: a LibCST backend for Python
and line/regex backends for the JS/TS family, the C family, Go, Ruby, and
shell, behind a single `extract_fingerprint` dispatcher.
"""

from docdrift.parser.base import (
    LANGUAGE_BY_EXTENSION,
    ExtractedStructure,
    LanguageBackend,
    degraded_fingerprint,
    detect_language,
    extract_fingerprint,
    get_backend,
    supported_languages,
)

__all__ = [
    "LANGUAGE_BY_EXTENSION",
    "ExtractedStructure",
    "LanguageBackend",
    "degraded_fingerprint",
    "detect_language",
    "extract_fingerprint",
    "get_backend",
    "supported_languages",
]
