"""
Snapshot Serialization for DocDrift

Converts DriftSnapshots to and from plain JSON-compatible dicts, and renders
drift results for machine-readable CLI output.

Design Decisions:
    - Encoding is generic over the frozen dataclasses (enums by value,
      tuples and read-only maps as lists and dicts)
    - Decoding is explicit per type so a stored file with missing or
      mistyped fields is reported instead of half-loaded
    - Every stored snapshot carries a `format_version`; unknown versions are
      treated as corrupt rather than guessed at
"""

from dataclasses import fields, is_dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Optional

from docdrift.errors import SnapshotCorruptionError
from docdrift.models import (
    ClassInfo,
    CodeExample,
    ContentType,
    DocumentationSection,
    DocumentationSnapshot,
    DriftDetectionResult,
    DriftSnapshot,
    FunctionSignature,
    ImportInfo,
    ParameterInfo,
    PriorityScore,
    StructuralFingerprint,
    TypeInfo,
    ValidationHints,
)

FORMAT_VERSION = 1


def to_plain(value: Any) -> Any:
    """Recursively convert models into JSON-compatible values."""
    if isinstance(value, Enum):
        return value.value
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_plain(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Mapping):
        return {str(k): to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(v) for v in value]
    return value


def snapshot_to_dict(snapshot: DriftSnapshot) -> dict[str, Any]:
    """
    Serialize a DriftSnapshot.

    Returns:
        Dict with `format_version`, `project_path`, `timestamp`, `files`
        and `documentation`; map keys are sorted for stable output
    """
    return {
        "format_version": FORMAT_VERSION,
        "project_path": snapshot.project_path,
        "timestamp": snapshot.timestamp,
        "files": {path: to_plain(snapshot.files[path]) for path in sorted(snapshot.files)},
        "documentation": {
            path: to_plain(snapshot.documentation[path])
            for path in sorted(snapshot.documentation)
        },
    }


def snapshot_from_dict(data: Any, source: Optional[Path] = None) -> DriftSnapshot:
    """
    Deserialize a DriftSnapshot.

    Args:
        data: Parsed JSON document
        source: File the document came from (for error reporting)

    Raises:
        SnapshotCorruptionError: If the document is not a valid snapshot
    """
    if not isinstance(data, dict):
        raise SnapshotCorruptionError("snapshot document is not an object", source)
    version = data.get("format_version")
    if version != FORMAT_VERSION:
        raise SnapshotCorruptionError(f"unsupported format_version: {version!r}", source)
    try:
        return DriftSnapshot(
            project_path=_str(data["project_path"]),
            timestamp=_str(data["timestamp"]),
            files={
                path: fingerprint_from_dict(item) for path, item in _dict(data["files"]).items()
            },
            documentation={
                path: documentation_from_dict(item)
                for path, item in _dict(data["documentation"]).items()
            },
        )
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise SnapshotCorruptionError(f"malformed snapshot: {exc!r}", source) from exc


def fingerprint_from_dict(data: Mapping[str, Any]) -> StructuralFingerprint:
    return StructuralFingerprint(
        path=_str(data["path"]),
        language=_str(data["language"]),
        functions=tuple(_function(item) for item in data.get("functions", ())),
        classes=tuple(_class(item) for item in data.get("classes", ())),
        types=tuple(_type(item) for item in data.get("types", ())),
        imports=tuple(
            ImportInfo(source=_str(item["source"]), names=tuple(item.get("names", ())),
                       line=int(item.get("line", 0)))
            for item in data.get("imports", ())
        ),
        exports=tuple(_str(name) for name in data.get("exports", ())),
        content_hash=_str(data.get("content_hash", "")),
        last_modified=_str(data.get("last_modified", "")),
        lines_of_code=int(data.get("lines_of_code", 0)),
        complexity=int(data.get("complexity", 0)),
        parse_error=data.get("parse_error"),
    )


def documentation_from_dict(data: Mapping[str, Any]) -> DocumentationSnapshot:
    return DocumentationSnapshot(
        path=_str(data["path"]),
        content_hash=_str(data.get("content_hash", "")),
        referenced_code=tuple(data.get("referenced_code", ())),
        sections=tuple(_section(item) for item in data.get("sections", ())),
        last_updated=_str(data.get("last_updated", "")),
    )


def _parameter(data: Mapping[str, Any]) -> ParameterInfo:
    return ParameterInfo(
        name=_str(data["name"]),
        type=data.get("type"),
        optional=bool(data.get("optional", False)),
        default=data.get("default"),
    )


def _function(data: Mapping[str, Any]) -> FunctionSignature:
    return FunctionSignature(
        name=_str(data["name"]),
        parameters=tuple(_parameter(item) for item in data.get("parameters", ())),
        return_type=data.get("return_type"),
        is_async=bool(data.get("is_async", False)),
        is_exported=bool(data.get("is_exported", True)),
        complexity=int(data.get("complexity", 1)),
        start_line=int(data.get("start_line", 0)),
        end_line=int(data.get("end_line", 0)),
    )


def _class(data: Mapping[str, Any]) -> ClassInfo:
    return ClassInfo(
        name=_str(data["name"]),
        methods=tuple(_function(item) for item in data.get("methods", ())),
        properties=tuple(data.get("properties", ())),
        base=data.get("base"),
        is_exported=bool(data.get("is_exported", True)),
        start_line=int(data.get("start_line", 0)),
        end_line=int(data.get("end_line", 0)),
    )


def _type(data: Mapping[str, Any]) -> TypeInfo:
    return TypeInfo(
        name=_str(data["name"]),
        kind=_str(data.get("kind", "type")),
        definition=_str(data.get("definition", "")),
        is_exported=bool(data.get("is_exported", True)),
        start_line=int(data.get("start_line", 0)),
        end_line=int(data.get("end_line", 0)),
    )


def _example(data: Mapping[str, Any]) -> CodeExample:
    content_type = data.get("content_type")
    hints = data.get("hints")
    return CodeExample(
        language=_str(data["language"]),
        code=_str(data["code"]),
        description=_str(data.get("description", "")),
        referenced_symbols=tuple(data.get("referenced_symbols", ())),
        content_type=ContentType(content_type) if content_type else None,
        hints=(
            ValidationHints(
                expected_behavior=_str(hints["expected_behavior"]),
                dependencies=tuple(hints.get("dependencies", ())),
                requires_context=bool(hints.get("requires_context", False)),
            )
            if hints
            else None
        ),
    )


def _section(data: Mapping[str, Any]) -> DocumentationSection:
    return DocumentationSection(
        title=_str(data["title"]),
        content=_str(data.get("content", "")),
        referenced_functions=tuple(data.get("referenced_functions", ())),
        referenced_classes=tuple(data.get("referenced_classes", ())),
        referenced_types=tuple(data.get("referenced_types", ())),
        code_examples=tuple(_example(item) for item in data.get("code_examples", ())),
        start_line=int(data.get("start_line", 0)),
        end_line=int(data.get("end_line", 0)),
    )


def result_to_dict(
    result: DriftDetectionResult, score: Optional[PriorityScore] = None
) -> dict[str, Any]:
    """Render a drift result (and optional priority score) for JSON output."""
    rendered = to_plain(result)
    if score is not None:
        rendered["priority"] = to_plain(score)
    return rendered


def _str(value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError(f"expected string, got {type(value).__name__}")
    return value


def _dict(value: Any) -> dict:
    if not isinstance(value, dict):
        raise TypeError(f"expected object, got {type(value).__name__}")
    return value
