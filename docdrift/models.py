"""
Core Data Models for DocDrift

This module defines the canonical data structures used throughout the system:
- StructuralFingerprint: The extracted shape of one source file
- DocumentationSnapshot / DocumentationSection: Section-level model of a doc file
- DriftSnapshot: Immutable capture of a whole project at one point in time
- CodeDiff / DriftRecord / DriftDetectionResult: Output of diffing and aggregation
- PriorityWeights / PriorityScore: Input and output of priority scoring

These models are designed to be:
- Immutable (frozen dataclasses, tuples instead of lists, read-only mappings)
- Serializable for storage (see docdrift.storage.serialization)
- Clear in their semantic meaning
"""

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional


class ChangeKind(Enum):
    """Kind of structural change between two fingerprints."""

    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"


class DiffCategory(Enum):
    """Which part of the public surface a change belongs to."""

    FUNCTION = "function"
    CLASS = "class"
    INTERFACE = "interface"
    TYPE = "type"
    EXPORT = "export"


class ImpactLevel(Enum):
    """
    Severity classification of one structural change.

    Levels (most to least severe):
        BREAKING: Callers of the public surface will fail
        MAJOR: Behaviour or contract changed in an observable way
        MINOR: New surface, backwards compatible
        PATCH: Internal or cosmetic change
    """

    BREAKING = "breaking"
    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"

    @property
    def rank(self) -> int:
        return _IMPACT_RANK[self]


_IMPACT_RANK = {
    ImpactLevel.PATCH: 0,
    ImpactLevel.MINOR: 1,
    ImpactLevel.MAJOR: 2,
    ImpactLevel.BREAKING: 3,
}


class DriftType(Enum):
    """
    Classification of a documentation drift record.

    States:
        BREAKING: A breaking change to the public surface
        MISSING: A new exported symbol that no documentation section covers
        OUTDATED: A documented symbol changed in a non-breaking way
        INCORRECT: A documented symbol no longer exists
    """

    OUTDATED = "outdated"
    INCORRECT = "incorrect"
    MISSING = "missing"
    BREAKING = "breaking"


class Severity(Enum):
    """Ordered severity scale shared by records and results."""

    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_ORDER.index(self)

    def escalate(self) -> "Severity":
        """Return the next tier up (CRITICAL stays CRITICAL, NONE stays NONE)."""
        if self is Severity.NONE:
            return self
        return _SEVERITY_ORDER[min(self.rank + 1, len(_SEVERITY_ORDER) - 1)]

    @classmethod
    def highest(cls, severities: "list[Severity]") -> "Severity":
        """Maximum of a collection of severities; NONE when empty."""
        if not severities:
            return cls.NONE
        return max(severities, key=lambda s: s.rank)


_SEVERITY_ORDER = [
    Severity.NONE,
    Severity.LOW,
    Severity.MEDIUM,
    Severity.HIGH,
    Severity.CRITICAL,
]


class UpdateEffort(Enum):
    """Qualitative estimate of the documentation work a drift implies."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ContentType(Enum):
    """Purpose of a documentation page or example (tutorial/how-to/reference/explanation)."""

    TUTORIAL = "tutorial"
    HOW_TO = "how-to"
    REFERENCE = "reference"
    EXPLANATION = "explanation"


class Recommendation(Enum):
    """Recommendation tier derived from an overall priority score."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return [Recommendation.LOW, Recommendation.MEDIUM,
                Recommendation.HIGH, Recommendation.CRITICAL].index(self)


# ---------------------------------------------------------------------------
# Structural fingerprint
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ParameterInfo:
    """
    One declared parameter of a function or method.

    Attributes:
        name: Parameter name as written (without `*`/`**`/`...` prefixes)
        type: Type annotation text, if the language/source declares one
        optional: True if callers may omit it (default value, `?`, variadic)
        default: Default value text, if any
    """

    name: str
    type: Optional[str] = None
    optional: bool = False
    default: Optional[str] = None


@dataclass(frozen=True)
class FunctionSignature:
    """
    A function or method as seen from its declaration.

    Attributes:
        name: Simple name (methods are stored on their ClassInfo)
        parameters: Declared parameters in order (receiver excluded)
        return_type: Declared return type text, if any
        is_async: True for async/coroutine functions
        is_exported: True if part of the file's public surface
        complexity: 1 + number of decision points in the body
        start_line: 1-indexed first line
        end_line: 1-indexed last line
    """

    name: str
    parameters: tuple[ParameterInfo, ...] = ()
    return_type: Optional[str] = None
    is_async: bool = False
    is_exported: bool = True
    complexity: int = 1
    start_line: int = 0
    end_line: int = 0

    @property
    def required_parameters(self) -> tuple[ParameterInfo, ...]:
        return tuple(p for p in self.parameters if not p.optional)

    def signature(self) -> str:
        """Render a language-neutral signature, e.g. `async f(a: int, b?): str`."""
        rendered = []
        for param in self.parameters:
            text = param.name + ("?" if param.optional else "")
            if param.type:
                text += f": {param.type}"
            rendered.append(text)
        prefix = "async " if self.is_async else ""
        suffix = f": {self.return_type}" if self.return_type else ""
        return f"{prefix}{self.name}({', '.join(rendered)}){suffix}"


@dataclass(frozen=True)
class ClassInfo:
    """
    A class, struct, or module-like container.

    Attributes:
        name: Class name
        methods: Methods declared directly in the class body
        properties: Attribute/field names declared on the class
        base: First base type, if any
        is_exported: True if part of the file's public surface
        start_line: 1-indexed first line
        end_line: 1-indexed last line
    """

    name: str
    methods: tuple[FunctionSignature, ...] = ()
    properties: tuple[str, ...] = ()
    base: Optional[str] = None
    is_exported: bool = True
    start_line: int = 0
    end_line: int = 0

    @property
    def complexity(self) -> int:
        return sum(m.complexity for m in self.methods)

    def signature(self) -> str:
        base = f"({self.base})" if self.base else ""
        return f"class {self.name}{base}"


@dataclass(frozen=True)
class TypeInfo:
    """
    An interface, protocol, type alias, or enum-like declaration.

    Attributes:
        name: Declared name
        kind: "interface" or "type"
        definition: Normalised definition text (members or aliased type)
        is_exported: True if part of the file's public surface
        start_line: 1-indexed first line
        end_line: 1-indexed last line
    """

    name: str
    kind: str = "type"
    definition: str = ""
    is_exported: bool = True
    start_line: int = 0
    end_line: int = 0

    def signature(self) -> str:
        return f"{self.kind} {self.name} = {self.definition}".rstrip(" =")


@dataclass(frozen=True)
class ImportInfo:
    """An import/include/require statement: its source module and imported names."""

    source: str
    names: tuple[str, ...] = ()
    line: int = 0


@dataclass(frozen=True)
class StructuralFingerprint:
    """
    The extracted structural shape of one source file at a point in time.

    Attributes:
        path: Project-relative path of the file
        language: Language tag the file was extracted with
        functions: Top-level functions
        classes: Classes with their methods and properties
        types: Interfaces and type declarations
        imports: Import statements
        exports: Public surface names, in declaration order
        content_hash: Fast digest of the raw content (equality checks only)
        last_modified: ISO-8601 modification time of the file
        lines_of_code: Number of lines in the file
        complexity: Sum of function and method complexities
        parse_error: Set when extraction degraded to a minimal fingerprint

    Invariants:
        - Equal content_hash means the files are identical; no re-diffing needed
        - A degraded fingerprint has no functions, classes, types, or exports
    """

    path: str
    language: str
    functions: tuple[FunctionSignature, ...] = ()
    classes: tuple[ClassInfo, ...] = ()
    types: tuple[TypeInfo, ...] = ()
    imports: tuple[ImportInfo, ...] = ()
    exports: tuple[str, ...] = ()
    content_hash: str = ""
    last_modified: str = ""
    lines_of_code: int = 0
    complexity: int = 0
    parse_error: Optional[str] = None

    @property
    def is_degraded(self) -> bool:
        return self.parse_error is not None

    @property
    def interfaces(self) -> tuple[TypeInfo, ...]:
        return tuple(t for t in self.types if t.kind == "interface")

    def with_metadata(self, path: str, last_modified: str) -> "StructuralFingerprint":
        """Return a copy re-keyed to a path and modification time (immutable update)."""
        return replace(self, path=path, last_modified=last_modified)


# ---------------------------------------------------------------------------
# Documentation model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ValidationHints:
    """
    How a code example should be validated, derived from its content type.

    Attributes:
        expected_behavior: What a successful validation demonstrates
        dependencies: Modules/packages the example imports or installs
        requires_context: True if the example only works with surrounding prose/state
    """

    expected_behavior: str
    dependencies: tuple[str, ...] = ()
    requires_context: bool = False


@dataclass(frozen=True)
class CodeExample:
    """
    A fenced code block inside a documentation section.

    Attributes:
        language: Info-string language ("text" when absent)
        code: Body of the block
        description: Nearest preceding prose line, if any
        referenced_symbols: Identifiers the code calls or names
        content_type: Resolved classification, None when unresolved
        hints: Validation hints, present iff content_type is resolved
    """

    language: str
    code: str
    description: str = ""
    referenced_symbols: tuple[str, ...] = ()
    content_type: Optional[ContentType] = None
    hints: Optional[ValidationHints] = None


@dataclass(frozen=True)
class DocumentationSection:
    """
    One heading-delimited block of a documentation file.

    Attributes:
        title: Heading text ("" for the preamble before the first heading)
        content: Raw section body (heading line excluded)
        referenced_functions: Function names the section mentions
        referenced_classes: Class names the section mentions
        referenced_types: Interface/type names the section mentions
        code_examples: Fenced code blocks in the section
        start_line: 1-indexed line of the heading
        end_line: 1-indexed last line of the section
    """

    title: str
    content: str = ""
    referenced_functions: tuple[str, ...] = ()
    referenced_classes: tuple[str, ...] = ()
    referenced_types: tuple[str, ...] = ()
    code_examples: tuple[CodeExample, ...] = ()
    start_line: int = 0
    end_line: int = 0

    @property
    def referenced_symbols(self) -> frozenset[str]:
        return frozenset(
            self.referenced_functions + self.referenced_classes + self.referenced_types
        )


@dataclass(frozen=True)
class DocumentationSnapshot:
    """
    Section-level model of one documentation file.

    Attributes:
        path: Key of the documentation file inside the snapshot
        content_hash: Digest of the raw file content
        referenced_code: Source paths the file links to or names
        sections: Ordered sections
        last_updated: ISO-8601 modification time of the file
    """

    path: str
    content_hash: str = ""
    referenced_code: tuple[str, ...] = ()
    sections: tuple[DocumentationSection, ...] = ()
    last_updated: str = ""


def _freeze(mapping: Optional[Mapping]) -> Mapping:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class DriftSnapshot:
    """
    Immutable capture of all fingerprints and documentation for a project.

    Attributes:
        project_path: Root directory the snapshot was built from
        timestamp: ISO-8601 UTC build time; also the reference "now" for staleness
        files: Read-only map of project-relative path -> StructuralFingerprint
        documentation: Read-only map of doc path -> DocumentationSnapshot

    Invariants:
        - Never mutated after construction, only compared
    """

    project_path: str
    timestamp: str
    files: Mapping[str, StructuralFingerprint] = field(default_factory=dict)
    documentation: Mapping[str, DocumentationSnapshot] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Wrap the maps in read-only views."""
        object.__setattr__(self, "files", _freeze(self.files))
        object.__setattr__(self, "documentation", _freeze(self.documentation))


# ---------------------------------------------------------------------------
# Diff and drift results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CodeDiff:
    """
    One typed, impact-classified structural change.

    Attributes:
        kind: added / removed / modified
        category: function / class / interface / type / export
        name: Symbol name ("Class.method" for methods)
        description: Human-readable summary of what changed
        old_signature: Rendered signature before the change
        new_signature: Rendered signature after the change
        impact: Impact level of the change
        was_exported: True if the symbol belonged to the old public surface
        is_exported: True if the symbol belongs to the new public surface
    """

    kind: ChangeKind
    category: DiffCategory
    name: str
    description: str
    old_signature: Optional[str] = None
    new_signature: Optional[str] = None
    impact: ImpactLevel = ImpactLevel.PATCH
    was_exported: bool = False
    is_exported: bool = False

    @property
    def short_name(self) -> str:
        return self.name.rsplit(".", 1)[-1]


@dataclass(frozen=True)
class DriftRecord:
    """
    One documentation drift tied to one code change.

    Attributes:
        type: outdated / incorrect / missing / breaking
        affected_docs: Doc files with sections referencing the changed symbol
        code_changes: The CodeDiffs behind this record
        description: Human-readable explanation
        detected_at: ISO-8601 time (the new snapshot's timestamp)
        severity: Severity of this record alone
    """

    type: DriftType
    affected_docs: tuple[str, ...]
    code_changes: tuple[CodeDiff, ...]
    description: str
    detected_at: str
    severity: Severity


@dataclass(frozen=True)
class DriftSuggestion:
    """
    A proposed documentation edit for one affected section.

    Attributes:
        doc_file: Documentation file to edit
        section: Title of the section to edit
        current_content: Section body as it stands
        suggested_content: Synthesised replacement body
        reasoning: Why the edit is proposed
        confidence: Confidence in [0, 1]
        auto_applicable: True only if confidence clears the threshold and no breaking drift is involved
        drift_type: Type of the record the suggestion belongs to
    """

    doc_file: str
    section: str
    current_content: str
    suggested_content: str
    reasoning: str
    confidence: float
    auto_applicable: bool
    drift_type: DriftType


@dataclass(frozen=True)
class ImpactSummary:
    """
    Aggregate impact of one file's changes.

    Attributes:
        breaking_changes: Number of breaking diffs
        major_changes: Number of major diffs
        minor_changes: Number of minor diffs
        affected_doc_files: Doc files with at least one affected section
        estimated_update_effort: low / medium / high
        requires_manual_review: True whenever a breaking change is present
    """

    breaking_changes: int = 0
    major_changes: int = 0
    minor_changes: int = 0
    affected_doc_files: tuple[str, ...] = ()
    estimated_update_effort: UpdateEffort = UpdateEffort.LOW
    requires_manual_review: bool = False


@dataclass(frozen=True)
class DriftDetectionResult:
    """
    Drift detected for one source file.

    Attributes:
        path: Project-relative source path
        has_drift: True if at least one drift record exists
        severity: Max record severity, escalated per aggregation rules
        drifts: Drift records
        suggestions: Proposed documentation edits
        impact: Impact summary
        changes: Every CodeDiff found for the file, including ones without a record
    """

    path: str
    has_drift: bool
    severity: Severity
    drifts: tuple[DriftRecord, ...] = ()
    suggestions: tuple[DriftSuggestion, ...] = ()
    impact: ImpactSummary = field(default_factory=ImpactSummary)
    changes: tuple[CodeDiff, ...] = ()


# ---------------------------------------------------------------------------
# Priority scoring
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PriorityWeights:
    """
    Weights of the six priority factors.

    Defaults sum to 1.0. Overrides replace individual weights without
    renormalising the rest.
    """

    code_complexity: float = 0.20
    usage_frequency: float = 0.25
    change_magnitude: float = 0.25
    documentation_coverage: float = 0.15
    staleness: float = 0.10
    user_feedback: float = 0.05

    @property
    def total(self) -> float:
        return sum(getattr(self, f.name) for f in fields(self))

    def with_overrides(self, overrides: Optional[Mapping[str, float]]) -> "PriorityWeights":
        """
        Return weights with the given entries replaced.

        Accepts both snake_case field names and the camelCase names used in
        reports (`codeComplexity`, `usageFrequency`, ...).

        Raises:
            ValueError: If a key names no weight or a value is negative
        """
        if not overrides:
            return self
        changes: dict[str, float] = {}
        for key, value in overrides.items():
            name = WEIGHT_ALIASES.get(key, key)
            if name not in _WEIGHT_FIELDS:
                raise ValueError(f"Unknown priority weight: {key!r}")
            if value < 0:
                raise ValueError(f"Priority weight {key!r} must be >= 0, got {value}")
            changes[name] = float(value)
        return replace(self, **changes)

    def as_dict(self) -> dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


_WEIGHT_FIELDS = {f.name for f in fields(PriorityWeights)}

WEIGHT_ALIASES = {
    "codeComplexity": "code_complexity",
    "usageFrequency": "usage_frequency",
    "changeMagnitude": "change_magnitude",
    "documentationCoverage": "documentation_coverage",
    "staleness": "staleness",
    "userFeedback": "user_feedback",
}


@dataclass(frozen=True)
class PriorityFactors:
    """The six factor sub-scores, each in [0, 100]."""

    code_complexity: float = 0.0
    usage_frequency: float = 0.0
    change_magnitude: float = 0.0
    documentation_coverage: float = 0.0
    staleness: float = 0.0
    user_feedback: float = 0.0

    def as_dict(self) -> dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class PriorityScore:
    """
    Urgency rating of one drift result.

    Attributes:
        overall: Weighted composite in [0, 100]
        factors: The six factor sub-scores
        recommendation: Tier derived from overall
        suggested_action: Action text implying an SLA for the tier
    """

    overall: float
    factors: PriorityFactors
    recommendation: Recommendation
    suggested_action: str


@dataclass(frozen=True)
class UsageMetadata:
    """
    Externally supplied usage counts for one file.

    Attributes:
        path: Project-relative source path
        function_calls: symbol -> call count
        class_instantiations: symbol -> instantiation count
        imports: symbol -> import count
    """

    path: str
    function_calls: Mapping[str, int] = field(default_factory=dict)
    class_instantiations: Mapping[str, int] = field(default_factory=dict)
    imports: Mapping[str, int] = field(default_factory=dict)

    @property
    def total_references(self) -> int:
        return (
            sum(self.function_calls.values())
            + sum(self.class_instantiations.values())
            + sum(self.imports.values())
        )


@dataclass(frozen=True)
class PrioritizedDriftResult:
    """A drift result paired with its priority score."""

    result: DriftDetectionResult
    score: PriorityScore


# ---------------------------------------------------------------------------
# Run bookkeeping
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ExtractionFailure:
    """
    A per-file failure reported alongside successful results.

    Attributes:
        path: File the failure concerns
        stage: read / parse / timeout / docs / diff
        message: Error description
    """

    path: str
    stage: str
    message: str


@dataclass
class BuildResult:
    """
    Result of building one snapshot.

    Attributes:
        snapshot: The assembled snapshot
        failures: Per-file extraction failures
        stored_at: Where the snapshot was persisted, if it was
        build_time_seconds: Wall time of the build
    """

    snapshot: DriftSnapshot
    failures: list[ExtractionFailure] = field(default_factory=list)
    stored_at: Optional[str] = None
    build_time_seconds: float = 0.0

    @property
    def file_count(self) -> int:
        return len(self.snapshot.files)

    @property
    def doc_count(self) -> int:
        return len(self.snapshot.documentation)


@dataclass
class DriftRun:
    """
    Output of one pipeline run.

    Attributes:
        results: Drift results ordered by path (or by priority when scored)
        failures: Per-file failures from extraction and diffing
        scored: Results paired with scores, when prioritisation was requested
        previous_timestamp: Timestamp of the snapshot diffed against, if any
        current_timestamp: Timestamp of the new snapshot
    """

    results: list[DriftDetectionResult] = field(default_factory=list)
    failures: list[ExtractionFailure] = field(default_factory=list)
    scored: list[PrioritizedDriftResult] = field(default_factory=list)
    previous_timestamp: Optional[str] = None
    current_timestamp: Optional[str] = None

    @property
    def drift_count(self) -> int:
        return sum(1 for r in self.results if r.has_drift)
