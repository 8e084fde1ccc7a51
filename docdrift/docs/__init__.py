"""
Docs module for DocDrift.

This module provides the Documentation Extractor: Markdown section
splitting, symbol recovery, and example classification.
"""

from docdrift.docs.classification import (
    extract_dependencies,
    normalize_content_type,
    resolve_content_type,
    validation_hints,
)
from docdrift.docs.extractor import (
    DOC_EXTENSIONS,
    extract_code_references,
    extract_documentation,
    extract_symbols_from_code,
    is_documentation_file,
    parse_front_matter,
)

__all__ = [
    "DOC_EXTENSIONS",
    "extract_code_references",
    "extract_dependencies",
    "extract_documentation",
    "extract_symbols_from_code",
    "is_documentation_file",
    "normalize_content_type",
    "parse_front_matter",
    "resolve_content_type",
    "validation_hints",
]
