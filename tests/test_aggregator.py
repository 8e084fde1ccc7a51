"""
Tests for the drift aggregator.

Tests drift type classification, severity and effort rules, and the
suggestions generated for affected documentation sections.
"""

import pytest

from docdrift.config import DriftConfig
from docdrift.drift import aggregate, classify_drift, estimate_effort
from docdrift.graph import ReferenceIndex
from docdrift.models import (
    ChangeKind,
    CodeDiff,
    DiffCategory,
    DocumentationSection,
    DocumentationSnapshot,
    DriftType,
    ImpactLevel,
    Severity,
    UpdateEffort,
)

DETECTED_AT = "2024-05-01T12:00:00+00:00"


def _diff(kind, name="process", impact=ImpactLevel.MINOR, exported=True, old=None, new=None):
    return CodeDiff(
        kind=kind,
        category=DiffCategory.FUNCTION,
        name=name,
        description=f"{name} changed",
        old_signature=old,
        new_signature=new,
        impact=impact,
        was_exported=exported and kind is not ChangeKind.ADDED,
        is_exported=exported and kind is not ChangeKind.REMOVED,
    )


@pytest.fixture
def index():
    """Index over one doc with a section documenting process()."""
    doc = DocumentationSnapshot(
        path="docs/api.md",
        sections=(
            DocumentationSection(
                title="process(a)",
                content="Call process(a) to process one item.",
                referenced_functions=("process",),
            ),
            DocumentationSection(
                title="Calculator",
                content="Use add(x) on a Calculator.",
                referenced_functions=("add",),
                referenced_classes=("Calculator",),
            ),
        ),
    )
    return ReferenceIndex.from_documentation({doc.path: doc})


class TestClassifyDrift:
    """Tests for the per-diff drift type rules."""

    def test_breaking_wins(self):
        """Test that breaking diffs are breaking drift even when undocumented."""
        diff = _diff(ChangeKind.REMOVED, impact=ImpactLevel.BREAKING)

        assert classify_drift(diff, referenced=False) is DriftType.BREAKING

    def test_added(self):
        """Test MISSING only for unreferenced exported additions."""
        assert classify_drift(_diff(ChangeKind.ADDED), referenced=False) is DriftType.MISSING
        assert classify_drift(_diff(ChangeKind.ADDED), referenced=True) is None
        assert classify_drift(_diff(ChangeKind.ADDED, exported=False), referenced=False) is None

    def test_removed_and_modified(self):
        """Test INCORRECT and OUTDATED for referenced symbols only."""
        assert classify_drift(_diff(ChangeKind.REMOVED, exported=False), referenced=True) is DriftType.INCORRECT
        assert classify_drift(_diff(ChangeKind.MODIFIED), referenced=True) is DriftType.OUTDATED
        assert classify_drift(_diff(ChangeKind.MODIFIED), referenced=False) is None


class TestEffort:
    """Tests for update effort estimation."""

    @pytest.mark.parametrize(
        "breaking,major,minor,expected",
        [
            (1, 0, 0, UpdateEffort.HIGH),
            (0, 2, 1, UpdateEffort.MEDIUM),
            (0, 0, 3, UpdateEffort.MEDIUM),
            (0, 1, 1, UpdateEffort.LOW),
            (0, 0, 0, UpdateEffort.LOW),
        ],
    )
    def test_estimate_effort(self, breaking, major, minor, expected):
        assert estimate_effort(breaking, major, minor) is expected


class TestAggregate:
    """Tests for aggregating one file's diffs."""

    def test_breaking_change_on_documented_symbol(self, index):
        """Test record, impact summary and escalated severity for a breaking change."""
        diff = _diff(
            ChangeKind.MODIFIED, impact=ImpactLevel.BREAKING,
            old="process(a)", new="process(a, b)",
        )

        result = aggregate("src/lib.py", [diff], index, DETECTED_AT)

        assert result.has_drift is True
        assert result.severity is Severity.CRITICAL
        assert [r.type for r in result.drifts] == [DriftType.BREAKING]
        record = result.drifts[0]
        assert record.affected_docs == ("docs/api.md",)
        assert record.detected_at == DETECTED_AT
        assert record.code_changes == (diff,)
        assert result.impact.breaking_changes == 1
        assert result.impact.estimated_update_effort is UpdateEffort.HIGH
        assert result.impact.requires_manual_review is True
        assert result.impact.affected_doc_files == ("docs/api.md",)

        suggestion = result.suggestions[0]
        assert suggestion.section == "process(a)"
        assert suggestion.auto_applicable is False
        assert "process(a, b)" in suggestion.suggested_content

    def test_missing_documentation(self, index):
        """Test that an undocumented new export is MISSING with no suggestion."""
        result = aggregate("src/lib.py", [_diff(ChangeKind.ADDED, name="summarize")], index, DETECTED_AT)

        assert [r.type for r in result.drifts] == [DriftType.MISSING]
        assert result.drifts[0].affected_docs == ()
        assert result.severity is Severity.MEDIUM
        assert result.suggestions == ()
        assert result.impact.affected_doc_files == ()

    def test_outdated_suggestion_is_auto_applicable(self, index):
        """Test a single candidate section gets the full confidence."""
        diff = _diff(ChangeKind.MODIFIED, old="process(a)", new="process(a, b?)")

        result = aggregate("src/lib.py", [diff], index, DETECTED_AT)

        assert [r.type for r in result.drifts] == [DriftType.OUTDATED]
        suggestion = result.suggestions[0]
        assert suggestion.confidence == pytest.approx(0.9)
        assert suggestion.auto_applicable is True
        assert suggestion.suggested_content.startswith("> **Updated**")

    def test_auto_apply_threshold_from_config(self, index):
        """Test that a stricter threshold disables auto-apply."""
        diff = _diff(ChangeKind.MODIFIED)

        result = aggregate("src/lib.py", [diff], index, DETECTED_AT, DriftConfig(auto_apply_threshold=0.95))

        assert result.suggestions[0].auto_applicable is False

    def test_incorrect_reference_rewrites_section(self, index):
        """Test that a removed documented symbol is struck through."""
        diff = _diff(ChangeKind.REMOVED, exported=False)

        result = aggregate("src/lib.py", [diff], index, DETECTED_AT)

        assert [r.type for r in result.drifts] == [DriftType.INCORRECT]
        content = result.suggestions[0].suggested_content
        assert content.startswith("> **Note**: The `process` function has been removed")
        assert "~~process~~ (removed)" in content

    def test_method_matched_by_short_name(self, index):
        """Test that Class.method diffs match sections naming the method."""
        diff = _diff(ChangeKind.MODIFIED, name="Calculator.add")

        result = aggregate("src/calc.py", [diff], index, DETECTED_AT)

        assert result.drifts[0].affected_docs == ("docs/api.md",)
        assert result.suggestions[0].section == "Calculator"

    def test_no_documentation_consequence(self, index):
        """Test that diffs without drift are kept in changes only."""
        diff = _diff(ChangeKind.REMOVED, name="_helper", exported=False)

        result = aggregate("src/lib.py", [diff], index, DETECTED_AT)

        assert result.has_drift is False
        assert result.severity is Severity.NONE
        assert result.drifts == ()
        assert result.changes == (diff,)
        assert result.impact.minor_changes == 1

    def test_escalation_on_high_effort(self, index):
        """Test that breaking changes escalate the max record severity."""
        diffs = [
            _diff(ChangeKind.MODIFIED, name="_internal", impact=ImpactLevel.BREAKING, exported=False),
            _diff(ChangeKind.MODIFIED, impact=ImpactLevel.MAJOR),
        ]

        result = aggregate("src/lib.py", diffs, index, DETECTED_AT)

        assert [r.severity for r in result.drifts] == [Severity.CRITICAL, Severity.HIGH]
        assert result.severity is Severity.CRITICAL

    def test_confidence_split_across_sections(self):
        """Test confidence split by how often each section mentions the symbol."""
        doc = DocumentationSnapshot(
            path="docs/guide.md",
            sections=(
                DocumentationSection(
                    title="Usage", content="process(1) and process(2)", referenced_functions=("process",)
                ),
                DocumentationSection(title="Notes", content="See process.", referenced_functions=("process",)),
            ),
        )
        index = ReferenceIndex.from_documentation({doc.path: doc})

        result = aggregate("src/lib.py", [_diff(ChangeKind.MODIFIED)], index, DETECTED_AT)

        confidences = [s.confidence for s in result.suggestions]
        assert confidences == [pytest.approx(0.6), pytest.approx(0.3)]
        assert not any(s.auto_applicable for s in result.suggestions)
