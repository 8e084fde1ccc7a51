"""
Drift Aggregator for DocDrift

This module cross-references one file's CodeDiffs with the documentation
sections that reference the changed symbols, producing a
DriftDetectionResult with records, suggestions and an impact summary.

Drift Types:
    BREAKING:  any breaking diff
    MISSING:   new exported symbol referenced by no section
    OUTDATED:  referenced symbol changed in a non-breaking way
    INCORRECT: referenced symbol no longer exists

Severity:
    Record severity follows the diff impact (breaking -> critical,
    major -> high, minor -> medium, patch -> low). The result severity is
    the maximum over records, escalated one tier when the update effort is
    high and manual review is required.

Academic Context:
    Input: CodeDiffs for one path + ReferenceIndex over the new docs
    Transformation: Symbol/section intersection and rule-based classification
    Output: DriftDetectionResult
    Limitation: Suggestions are textual rewrites of the section body, not
    regenerated documentation

Design Decisions:
    - One record per diff that needs documentation attention; diffs with
      no documentation consequence are kept in `changes` only
    - Confidence of a suggestion is split across candidate sections in
      proportion to how often each mentions the symbol
    - A suggestion tied to a breaking record is never auto-applicable
"""

import re
from typing import Optional

from docdrift.config import DriftConfig
from docdrift.graph import ReferenceIndex, SectionRef
from docdrift.models import (
    ChangeKind,
    CodeDiff,
    DriftDetectionResult,
    DriftRecord,
    DriftSuggestion,
    DriftType,
    ImpactLevel,
    ImpactSummary,
    Severity,
    UpdateEffort,
)

IMPACT_SEVERITY = {
    ImpactLevel.BREAKING: Severity.CRITICAL,
    ImpactLevel.MAJOR: Severity.HIGH,
    ImpactLevel.MINOR: Severity.MEDIUM,
    ImpactLevel.PATCH: Severity.LOW,
}

MEDIUM_EFFORT_CHANGES = 3


def symbol_names(diff: CodeDiff) -> tuple[str, ...]:
    """Names a documentation section may use for the changed symbol."""
    if diff.short_name != diff.name:
        return (diff.name, diff.short_name)
    return (diff.name,)


def classify_drift(diff: CodeDiff, referenced: bool) -> Optional[DriftType]:
    """
    Decide the drift type of one diff, or None when docs need no attention.

    Args:
        diff: The structural change
        referenced: True if any documentation section references the symbol
    """
    if diff.impact is ImpactLevel.BREAKING:
        return DriftType.BREAKING
    if diff.kind is ChangeKind.ADDED:
        return DriftType.MISSING if diff.is_exported and not referenced else None
    if not referenced:
        return None
    if diff.kind is ChangeKind.REMOVED:
        return DriftType.INCORRECT
    return DriftType.OUTDATED


def estimate_effort(breaking: int, major: int, minor: int) -> UpdateEffort:
    if breaking > 0:
        return UpdateEffort.HIGH
    if major + minor >= MEDIUM_EFFORT_CHANGES:
        return UpdateEffort.MEDIUM
    return UpdateEffort.LOW


def aggregate(
    path: str,
    diffs: list[CodeDiff],
    index: ReferenceIndex,
    detected_at: str,
    config: Optional[DriftConfig] = None,
) -> DriftDetectionResult:
    """
    Build the drift result for one changed file.

    Args:
        path: Project-relative source path
        diffs: CodeDiffs for the file (possibly refined by a strategy)
        index: Reference index over the new snapshot's documentation
        detected_at: Timestamp recorded on every drift record
        config: Supplies suggestion confidence and auto-apply threshold

    Returns:
        DriftDetectionResult; has_drift is False when no diff needs
        documentation attention
    """
    config = config or DriftConfig()
    records: list[DriftRecord] = []
    suggestions: list[DriftSuggestion] = []

    for diff in diffs:
        refs = index.sections_referencing_any(symbol_names(diff))
        drift_type = classify_drift(diff, bool(refs))
        if drift_type is None:
            continue
        affected = tuple(sorted({ref.doc_path for ref in refs}))
        records.append(
            DriftRecord(
                type=drift_type,
                affected_docs=affected,
                code_changes=(diff,),
                description=_describe(diff, drift_type),
                detected_at=detected_at,
                severity=IMPACT_SEVERITY[diff.impact],
            )
        )
        if drift_type is not DriftType.MISSING:
            suggestions.extend(_suggest(diff, drift_type, refs, config))

    breaking = sum(1 for d in diffs if d.impact is ImpactLevel.BREAKING)
    major = sum(1 for d in diffs if d.impact is ImpactLevel.MAJOR)
    minor = sum(1 for d in diffs if d.impact is ImpactLevel.MINOR)
    effort = estimate_effort(breaking, major, minor)
    manual_review = breaking > 0

    severity = Severity.highest([record.severity for record in records])
    if effort is UpdateEffort.HIGH and manual_review:
        severity = severity.escalate()

    return DriftDetectionResult(
        path=path,
        has_drift=bool(records),
        severity=severity,
        drifts=tuple(records),
        suggestions=tuple(suggestions),
        impact=ImpactSummary(
            breaking_changes=breaking,
            major_changes=major,
            minor_changes=minor,
            affected_doc_files=tuple(sorted({doc for r in records for doc in r.affected_docs})),
            estimated_update_effort=effort,
            requires_manual_review=manual_review,
        ),
        changes=tuple(diffs),
    )


def _describe(diff: CodeDiff, drift_type: DriftType) -> str:
    if drift_type is DriftType.MISSING:
        return f"{diff.description}; no documentation section covers it"
    if drift_type is DriftType.INCORRECT:
        return f"{diff.description}; documentation still references it"
    if drift_type is DriftType.OUTDATED:
        return f"{diff.description}; documentation describes the previous form"
    return f"Breaking change: {diff.description}"


# ---------------------------------------------------------------------------
# Suggestions
# ---------------------------------------------------------------------------


def _occurrences(ref: SectionRef, names: tuple[str, ...]) -> int:
    text = f"{ref.section.title}\n{ref.section.content}"
    count = sum(len(re.findall(rf"(?<![\w.]){re.escape(name)}\b", text)) for name in names)
    return max(1, count)


def _suggest(
    diff: CodeDiff,
    drift_type: DriftType,
    refs: list[SectionRef],
    config: DriftConfig,
) -> list[DriftSuggestion]:
    if not refs:
        return []
    names = symbol_names(diff)
    weights = [_occurrences(ref, names) for ref in refs]
    total = sum(weights)

    suggestions = []
    for ref, weight in zip(refs, weights):
        confidence = round(config.suggestion_confidence * weight / total, 4)
        suggestions.append(
            DriftSuggestion(
                doc_file=ref.doc_path,
                section=ref.title,
                current_content=ref.section.content,
                suggested_content=_rewrite(ref.section.content, diff),
                reasoning=_reasoning(diff),
                confidence=confidence,
                auto_applicable=(
                    confidence >= config.auto_apply_threshold
                    and drift_type is not DriftType.BREAKING
                ),
                drift_type=drift_type,
            )
        )
    return suggestions


def _reasoning(diff: CodeDiff) -> str:
    category = diff.category.value
    if diff.kind is ChangeKind.REMOVED:
        return f"The {category} '{diff.name}' has been removed. This section should be updated or removed."
    if diff.kind is ChangeKind.ADDED:
        return f"The {category} '{diff.name}' changed visibility: {diff.description}"
    return f"The {category} '{diff.name}' has been modified: {diff.description}"


def _rewrite(content: str, diff: CodeDiff) -> str:
    """Synthesize the updated section body for one change."""
    if diff.kind is ChangeKind.REMOVED:
        rewritten = content
        for name in symbol_names(diff):
            rewritten = re.sub(
                rf"(?<![\w.~]){re.escape(name)}\b(?!~~)",
                f"~~{name}~~ (removed)",
                rewritten,
            )
            if rewritten != content:
                break
        notice = f"> **Note**: The `{diff.name}` {diff.category.value} has been removed in the latest version."
        return f"{notice}\n\n{rewritten}"

    rewritten = content
    if diff.old_signature and diff.new_signature:
        rewritten = rewritten.replace(diff.old_signature, diff.new_signature)
    return f"> **Updated**: {diff.description}\n\n{rewritten}"
