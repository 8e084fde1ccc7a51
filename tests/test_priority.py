"""
Tests for the priority scorer.

Tests the six factor sub-scores, weighting, the breaking-change floor
and recommendation tiers.
"""

from datetime import datetime, timedelta, timezone

import pytest

from docdrift.config import ScoringConstants
from docdrift.docs import extract_documentation
from docdrift.drift import aggregate, diff_fingerprints
from docdrift.graph import ReferenceIndex
from docdrift.models import (
    ChangeKind,
    CodeDiff,
    DiffCategory,
    DriftSnapshot,
    ImpactLevel,
    PriorityWeights,
    Recommendation,
    UsageMetadata,
)
from docdrift.parser import extract_fingerprint
from docdrift.priority import PriorityScorer, recommendation_for, score
from tests.fixtures import PROCESS_DOC, PROCESS_V1, PROCESS_V2_OPTIONAL, PROCESS_V2_REQUIRED

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

ZERO_WEIGHTS = {
    "code_complexity": 0.0,
    "usage_frequency": 0.0,
    "change_magnitude": 0.0,
    "documentation_coverage": 0.0,
    "staleness": 0.0,
    "user_feedback": 0.0,
}


def _snapshot(source=PROCESS_V2_REQUIRED, doc_age_days=1.0, documented=True):
    fingerprint = extract_fingerprint(source, "python", "src/lib.py")
    documentation = {}
    if documented:
        updated = (NOW - timedelta(days=doc_age_days)).isoformat()
        doc = extract_documentation(PROCESS_DOC, "docs/api.md", updated)
        documentation[doc.path] = doc
    return DriftSnapshot(
        project_path="/p",
        timestamp=NOW.isoformat(),
        files={fingerprint.path: fingerprint},
        documentation=documentation,
    )


def _result(snapshot, old_source=PROCESS_V1, path="src/lib.py"):
    old = extract_fingerprint(old_source, "python", path)
    new = snapshot.files.get(path) or extract_fingerprint(PROCESS_V2_REQUIRED, "python", path)
    diffs = diff_fingerprints(old, new)
    index = ReferenceIndex.from_documentation(snapshot.documentation)
    return aggregate(path, diffs, index, snapshot.timestamp)


class TestFactors:
    """Tests for the individual factor sub-scores."""

    def test_breaking_change_factors(self):
        """Test every factor for a documented breaking change."""
        snapshot = _snapshot()
        result = _result(snapshot)

        factors = score(result, snapshot).factors

        assert factors.code_complexity == pytest.approx(3.33)
        assert factors.usage_frequency == 15.0
        assert factors.change_magnitude == 100.0
        assert factors.documentation_coverage == 40.0
        assert factors.staleness == 20.0
        assert factors.user_feedback == 0.0

    def test_non_breaking_change_magnitude(self):
        """Test points per minor change when nothing is breaking."""
        snapshot = _snapshot(PROCESS_V2_OPTIONAL)
        result = _result(snapshot)

        assert score(result, snapshot).factors.change_magnitude == 8.0

    def test_undocumented_change(self):
        """Test coverage 90 and staleness 0 with no affected docs."""
        snapshot = _snapshot(documented=False)
        result = _result(snapshot)

        factors = score(result, snapshot).factors

        assert factors.documentation_coverage == 90.0
        assert factors.staleness == 0.0

    def test_missing_fingerprint_defaults(self):
        """Test the default complexity when the file is not in the snapshot."""
        snapshot = _snapshot()
        result = _result(snapshot, path="src/gone.py")

        factors = score(result, snapshot).factors

        assert factors.code_complexity == 50.0
        assert factors.usage_frequency == 0.0

    def test_usage_metadata(self):
        """Test that external usage counts replace the export heuristic."""
        snapshot = _snapshot()
        result = _result(snapshot)
        usage = UsageMetadata(path="src/lib.py", function_calls={"process": 30}, imports={"process": 12})

        assert score(result, snapshot, usage=usage).factors.usage_frequency == 42.0

    @pytest.mark.parametrize(
        "age,expected",
        [(120, 100.0), (45, 80.0), (20, 60.0), (10, 40.0), (2, 20.0)],
    )
    def test_staleness_thresholds(self, age, expected):
        """Test staleness measured against the snapshot timestamp."""
        snapshot = _snapshot(doc_age_days=age)
        result = _result(snapshot)

        assert score(result, snapshot).factors.staleness == expected

    def test_user_feedback(self):
        """Test that supplied feedback is clamped into range."""
        snapshot = _snapshot()
        scorer = PriorityScorer(snapshot)

        assert scorer.score(_result(snapshot), user_feedback=150).factors.user_feedback == 100.0


class TestOverall:
    """Tests for weighting, the breaking floor and tiers."""

    def test_deterministic(self):
        """Test that identical inputs give identical scores."""
        snapshot = _snapshot()
        result = _result(snapshot)

        assert score(result, snapshot) == score(result, snapshot)

    def test_breaking_floor(self):
        """Test that a breaking change is never ranked below the floor."""
        snapshot = _snapshot()

        priority = score(_result(snapshot), snapshot)

        assert priority.overall == 60.0
        assert priority.recommendation is Recommendation.HIGH
        assert "3 days" in priority.suggested_action

    def test_weight_isolation(self):
        """Test that only the weighted factor contributes."""
        snapshot = _snapshot(doc_age_days=120)
        result = _result(snapshot)

        only_magnitude = score(result, snapshot, weights={**ZERO_WEIGHTS, "change_magnitude": 1.0})
        only_staleness = score(result, snapshot, weights={**ZERO_WEIGHTS, "staleness": 0.5})

        assert only_magnitude.overall == 100.0
        assert only_magnitude.recommendation is Recommendation.CRITICAL
        assert only_staleness.overall == 50.0

    def test_floor_needs_change_magnitude_weight(self):
        """Test that the floor is skipped when change magnitude carries no weight."""
        snapshot = _snapshot()
        result = _result(snapshot)

        priority = score(result, snapshot, weights={**ZERO_WEIGHTS, "usageFrequency": 1.0})

        assert priority.overall == 15.0
        assert priority.recommendation is Recommendation.LOW

    def test_floor_can_be_disabled(self):
        """Test a None breaking floor."""
        snapshot = _snapshot()
        result = _result(snapshot)

        priority = score(result, snapshot, scoring=ScoringConstants(breaking_floor=None))

        assert priority.overall < 60.0

    def test_custom_weights_keep_defaults(self):
        """Test that partial overrides leave other weights unchanged."""
        weights = PriorityWeights().with_overrides({"codeComplexity": 0.3, "usageFrequency": 0.3})

        assert weights.change_magnitude == 0.25
        assert weights.documentation_coverage == 0.15
        assert weights.staleness == 0.10
        assert weights.user_feedback == 0.05
        assert weights.total == pytest.approx(1.15)

    @pytest.mark.parametrize(
        "overall,tier",
        [
            (100.0, Recommendation.CRITICAL),
            (80.0, Recommendation.CRITICAL),
            (79.99, Recommendation.HIGH),
            (60.0, Recommendation.HIGH),
            (40.0, Recommendation.MEDIUM),
            (39.99, Recommendation.LOW),
            (0.0, Recommendation.LOW),
        ],
    )
    def test_tiers(self, overall, tier):
        assert recommendation_for(overall) is tier

    def test_monotonic_in_change_magnitude(self):
        """Test that a breaking change never scores below a minor one."""
        minor_snapshot = _snapshot(PROCESS_V2_OPTIONAL)
        breaking_snapshot = _snapshot(PROCESS_V2_REQUIRED)

        minor = score(_result(minor_snapshot), minor_snapshot)
        breaking = score(_result(breaking_snapshot), breaking_snapshot)

        assert breaking.overall > minor.overall

    def test_scores_in_range(self):
        """Test that all factors and the overall score are within [0, 100]."""
        snapshot = _snapshot(doc_age_days=365)
        diff = CodeDiff(
            kind=ChangeKind.MODIFIED, category=DiffCategory.FUNCTION, name="process",
            description="changed", impact=ImpactLevel.MAJOR,
        )
        result = aggregate("src/lib.py", [diff] * 10, ReferenceIndex.from_documentation(snapshot.documentation), snapshot.timestamp)

        priority = score(result, snapshot, weights={"user_feedback": 5.0})

        assert 0.0 <= priority.overall <= 100.0
        assert all(0.0 <= value <= 100.0 for value in priority.factors.as_dict().values())
