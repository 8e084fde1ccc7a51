"""
Structural Extraction Dispatch

Maps a language tag to the backend that understands it and turns the
backend's raw structure into a StructuralFingerprint.

Key Components:
    - LanguageBackend: Base class every per-language backend derives from
    - ExtractedStructure: Raw backend output, before hashing and metrics
    - DegenerateBackend: No-op backend for unknown language tags
    - extract_fingerprint: Main entry point; never raises for one bad file

Design Decisions:
    - A closed capability table (tag -> backend instance) instead of duck
      typing; unknown tags map to the degenerate backend rather than failing
    - Backends only report structure; content hash, line count, and the
      aggregate complexity are computed here so every language agrees on them
    - A backend signals unparsable input by raising ParseError; any other
      exception is treated the same way so one file can never abort a run

Academic Context:
    Input: File content + language tag
    Transformation: Backend dispatch -> structure -> fingerprint assembly
    Output: StructuralFingerprint (possibly degraded)
    Limitation: Non-Python backends are line/regex scanners, not full parsers
"""

from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Optional

from docdrift.errors import ParseError
from docdrift.hash import compute_content_hash
from docdrift.logging import get_logger
from docdrift.models import (
    ClassInfo,
    FunctionSignature,
    ImportInfo,
    StructuralFingerprint,
    TypeInfo,
)

logger = get_logger("parser")


@dataclass
class ExtractedStructure:
    """
    Raw structure reported by a backend.

    Attributes:
        functions: Top-level functions
        classes: Classes with methods and properties
        types: Interfaces and type declarations
        imports: Import statements
        exports: Public surface names in declaration order
    """

    functions: list[FunctionSignature] = field(default_factory=list)
    classes: list[ClassInfo] = field(default_factory=list)
    types: list[TypeInfo] = field(default_factory=list)
    imports: list[ImportInfo] = field(default_factory=list)
    exports: list[str] = field(default_factory=list)

    @property
    def complexity(self) -> int:
        return sum(f.complexity for f in self.functions) + sum(
            c.complexity for c in self.classes
        )


class LanguageBackend:
    """
    Base class for per-language structural extraction.

    Subclasses set `languages` to the tags they serve and implement
    `extract`, raising ParseError when the content cannot be understood.
    `extract` receives the language tag the file was dispatched under, so a
    backend serving several tags never has to guess from the path.
    """

    languages: tuple[str, ...] = ()

    def extract(self, content: str, path: str = "", language: str = "") -> ExtractedStructure:
        raise NotImplementedError


class DegenerateBackend(LanguageBackend):
    """Backend for unknown tags: reports no structure, never fails."""

    languages = ("unknown",)

    def extract(self, content: str, path: str = "", language: str = "") -> ExtractedStructure:
        return ExtractedStructure()


_DEGENERATE = DegenerateBackend()


def _build_registry() -> dict[str, LanguageBackend]:
    # Imported here: backends depend on this module for the base class.
    from docdrift.parser.c_family import CFamilyBackend
    from docdrift.parser.go_backend import GoBackend
    from docdrift.parser.python_backend import PythonBackend
    from docdrift.parser.ruby_backend import RubyBackend
    from docdrift.parser.script_backend import ScriptBackend
    from docdrift.parser.shell_backend import ShellBackend

    registry: dict[str, LanguageBackend] = {}
    for backend in (
        PythonBackend(),
        ScriptBackend(),
        CFamilyBackend(),
        GoBackend(),
        RubyBackend(),
        ShellBackend(),
    ):
        for tag in backend.languages:
            registry[tag] = backend
    return registry


_REGISTRY: Optional[dict[str, LanguageBackend]] = None


LANGUAGE_BY_EXTENSION: dict[str, str] = {
    ".py": "python",
    ".pyi": "python",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".c": "c",
    ".h": "c",
    ".cc": "cpp",
    ".cpp": "cpp",
    ".cxx": "cpp",
    ".hh": "cpp",
    ".hpp": "cpp",
    ".hxx": "cpp",
    ".java": "java",
    ".go": "go",
    ".rb": "ruby",
    ".sh": "shell",
    ".bash": "shell",
    ".zsh": "shell",
}


def get_backend(language: str) -> LanguageBackend:
    """Return the backend for a language tag (degenerate backend if unknown)."""
    global _REGISTRY
    if _REGISTRY is None:
        _REGISTRY = _build_registry()
    return _REGISTRY.get(language, _DEGENERATE)


def supported_languages() -> list[str]:
    """Language tags with a real backend."""
    get_backend("unknown")
    assert _REGISTRY is not None
    return sorted(_REGISTRY)


def detect_language(path: str) -> Optional[str]:
    """
    Map a file path to a language tag by extension.

    Returns:
        The tag, or None if the extension is not a supported source type
    """
    return LANGUAGE_BY_EXTENSION.get(PurePosixPath(path).suffix.lower())


def degraded_fingerprint(
    content: str,
    language: str,
    path: str = "",
    last_modified: str = "",
    reason: str = "unparsable",
) -> StructuralFingerprint:
    """
    Build the minimal fingerprint for content that could not be extracted.

    Only the content hash and line count are kept, so a changed file still
    shows up as changed even though it has no structure.
    """
    return StructuralFingerprint(
        path=path,
        language=language,
        content_hash=compute_content_hash(content),
        last_modified=last_modified,
        lines_of_code=_count_lines(content),
        complexity=0,
        parse_error=reason,
    )


def extract_fingerprint(
    content: str,
    language: str,
    path: str = "",
    last_modified: str = "",
) -> StructuralFingerprint:
    """
    Extract the structural fingerprint of one source file.

    This is a pure function of (content, language); path and last_modified
    are only carried along. It never raises: unparsable content and unknown
    language tags both yield a degraded fingerprint.

    Args:
        content: Decoded file content
        language: Language tag (see LANGUAGE_BY_EXTENSION)
        path: Path to attribute to the fingerprint
        last_modified: ISO-8601 modification time

    Returns:
        StructuralFingerprint; `parse_error` is set when degraded

    Example:
        >>> fp = extract_fingerprint("def f(a):\\n    return a\\n", "python")
        >>> [f.name for f in fp.functions], fp.exports
        (['f'], ('f',))
    """
    backend = get_backend(language)
    if backend is _DEGENERATE:
        return degraded_fingerprint(
            content, language, path, last_modified,
            reason=f"unsupported language '{language}'",
        )

    try:
        structure = backend.extract(content, path, language)
    except ParseError as exc:
        logger.warning(f"Parse error in {path or '<source>'} ({language}): {exc}")
        return degraded_fingerprint(content, language, path, last_modified, reason=str(exc))
    except Exception as exc:  # backend bug or pathological input
        logger.warning(
            f"Extraction failed for {path or '<source>'} ({language}): "
            f"{type(exc).__name__}: {exc}"
        )
        return degraded_fingerprint(
            content, language, path, last_modified,
            reason=f"{type(exc).__name__}: {exc}",
        )

    return StructuralFingerprint(
        path=path,
        language=language,
        functions=tuple(structure.functions),
        classes=tuple(structure.classes),
        types=tuple(structure.types),
        imports=tuple(structure.imports),
        exports=tuple(dict.fromkeys(structure.exports)),
        content_hash=compute_content_hash(content),
        last_modified=last_modified,
        lines_of_code=_count_lines(content),
        complexity=structure.complexity,
    )


def _count_lines(content: str) -> int:
    return len(content.splitlines())
