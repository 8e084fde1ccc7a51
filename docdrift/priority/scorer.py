"""
Priority Scorer for DocDrift

This module maps one drift result to a 0-100 urgency score with a
recommendation tier, so drift can be triaged or used to gate CI.

Factors (each 0-100):
    code_complexity:        aggregate file complexity, linear up to the ceiling
    usage_frequency:        external usage counts, or exports/doc references
    change_magnitude:       100 on any breaking change, else points per change
    documentation_coverage: inverted; higher means fewer changed symbols documented
    staleness:              age of the most stale affected doc at snapshot time
    user_feedback:          externally supplied, 0 by default

Design Decisions:
    - Pure function: the snapshot timestamp is the reference "now"; no
      clock, randomness or shared state is consulted
    - Missing inputs fall back to documented defaults instead of failing
    - Unspecified weight overrides keep their defaults (no renormalisation)
    - A breaking change raises the overall score to a configurable floor
      whenever change_magnitude carries weight

Academic Context:
    Input: DriftDetectionResult + DriftSnapshot (+ usage, weights)
    Transformation: Six factor sub-scores, weighted sum, tiering
    Output: PriorityScore
    Limitation: Constants were tuned empirically, not derived
"""

from datetime import datetime, timezone
from typing import Mapping, Optional

from docdrift.config import ScoringConstants
from docdrift.errors import ScoringInputError
from docdrift.graph import ReferenceIndex
from docdrift.logging import get_logger
from docdrift.models import (
    DriftDetectionResult,
    DriftSnapshot,
    PriorityFactors,
    PriorityScore,
    PriorityWeights,
    Recommendation,
    StructuralFingerprint,
    UsageMetadata,
)

logger = get_logger("priority")

TIER_THRESHOLDS = (
    (80.0, Recommendation.CRITICAL),
    (60.0, Recommendation.HIGH),
    (40.0, Recommendation.MEDIUM),
)

SUGGESTED_ACTIONS = {
    Recommendation.CRITICAL: "Update documentation immediately (within 24 hours); breaking changes affect users.",
    Recommendation.HIGH: "Update documentation within 3 days.",
    Recommendation.MEDIUM: "Schedule a documentation update within 2 weeks.",
    Recommendation.LOW: "Review during the next documentation cycle (within 30 days).",
}


def recommendation_for(overall: float) -> Recommendation:
    for threshold, tier in TIER_THRESHOLDS:
        if overall >= threshold:
            return tier
    return Recommendation.LOW


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def _parse_time(value: str) -> Optional[datetime]:
    if not value:
        return None
    try:
        moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)


class PriorityScorer:
    """
    Computes PriorityScores against one snapshot.

    The reference index over the snapshot's documentation is built once
    and reused for every result scored against the same snapshot.

    Usage:
        scorer = PriorityScorer(snapshot)
        score = scorer.score(result, usage=usage_by_path.get(result.path))
    """

    def __init__(
        self,
        snapshot: DriftSnapshot,
        weights: Optional[PriorityWeights] = None,
        scoring: Optional[ScoringConstants] = None,
        index: Optional[ReferenceIndex] = None,
    ) -> None:
        self.snapshot = snapshot
        self.weights = weights or PriorityWeights()
        self.scoring = scoring or ScoringConstants()
        self.index = index or ReferenceIndex.from_documentation(snapshot.documentation)

    def score(
        self,
        result: DriftDetectionResult,
        usage: Optional[UsageMetadata] = None,
        weights: Optional[Mapping[str, float]] = None,
        user_feedback: float = 0.0,
    ) -> PriorityScore:
        """
        Score one drift result.

        The overall score is the weighted sum of the six factors. The
        breaking floor is then applied on top of that sum: a result with at
        least one breaking change scores no lower than
        `ScoringConstants.breaking_floor`, as long as change_magnitude has
        a non-zero weight. A floor of None leaves the weighted sum as is.

        Args:
            result: The drift result
            usage: External usage counts for the result's file, if available
            weights: Partial weight overrides (snake_case or camelCase keys)
            user_feedback: Externally supplied feedback sub-score (0-100)

        Returns:
            PriorityScore with the six factors and the derived tier
        """
        effective = self.weights.with_overrides(weights)
        fingerprint = self._fingerprint(result.path)

        factors = PriorityFactors(
            code_complexity=round(self._code_complexity(fingerprint), 2),
            usage_frequency=round(self._usage_frequency(fingerprint, usage), 2),
            change_magnitude=round(self._change_magnitude(result), 2),
            documentation_coverage=round(self._documentation_coverage(result), 2),
            staleness=round(self._staleness(result), 2),
            user_feedback=round(_clamp(user_feedback), 2),
        )

        overall = sum(
            getattr(effective, name) * value for name, value in factors.as_dict().items()
        )
        floor = self.scoring.breaking_floor
        if (
            floor is not None
            and result.impact.breaking_changes > 0
            and effective.change_magnitude > 0
        ):
            overall = max(overall, floor)
        overall = round(_clamp(overall), 2)

        recommendation = recommendation_for(overall)
        return PriorityScore(
            overall=overall,
            factors=factors,
            recommendation=recommendation,
            suggested_action=SUGGESTED_ACTIONS[recommendation],
        )

    def require_fingerprint(self, path: str) -> StructuralFingerprint:
        """
        Raises:
            ScoringInputError: If the path is absent from the snapshot
        """
        fingerprint = self.snapshot.files.get(path)
        if fingerprint is None:
            raise ScoringInputError(f"{path} is not in the snapshot")
        return fingerprint

    def _fingerprint(self, path: str) -> Optional[StructuralFingerprint]:
        try:
            return self.require_fingerprint(path)
        except ScoringInputError as exc:
            logger.debug(f"{exc}; using default complexity and usage")
            return None

    def _code_complexity(self, fingerprint: Optional[StructuralFingerprint]) -> float:
        if fingerprint is None:
            return self.scoring.missing_complexity_score
        return _clamp(fingerprint.complexity / self.scoring.complexity_ceiling * 100.0)

    def _usage_frequency(
        self, fingerprint: Optional[StructuralFingerprint], usage: Optional[UsageMetadata]
    ) -> float:
        if usage is not None:
            return _clamp(usage.total_references / self.scoring.usage_reference * 100.0)
        if fingerprint is None:
            return 0.0
        doc_references = sum(self.index.reference_count(name) for name in fingerprint.exports)
        return _clamp(
            len(fingerprint.exports) * self.scoring.export_usage_points
            + doc_references * self.scoring.doc_reference_usage_points
        )

    def _change_magnitude(self, result: DriftDetectionResult) -> float:
        impact = result.impact
        if impact.breaking_changes > 0:
            return 100.0
        return _clamp(
            impact.major_changes * self.scoring.major_change_points
            + impact.minor_changes * self.scoring.minor_change_points
        )

    def _documentation_coverage(self, result: DriftDetectionResult) -> float:
        if not result.impact.affected_doc_files:
            return self.scoring.undocumented_coverage_score
        symbols = {change.name for change in result.changes}
        if not symbols:
            return self.scoring.coverage_floor
        matched = sum(
            1
            for name in symbols
            if self.index.is_referenced(name) or self.index.is_referenced(name.rsplit(".", 1)[-1])
        )
        floor = self.scoring.coverage_floor
        span = self.scoring.coverage_span
        return _clamp(floor + span * (1.0 - matched / len(symbols)), floor, floor + span)

    def _staleness(self, result: DriftDetectionResult) -> float:
        affected = result.impact.affected_doc_files
        if not affected:
            return 0.0
        now = _parse_time(self.snapshot.timestamp)
        ages = []
        for path in affected:
            doc = self.snapshot.documentation.get(path)
            updated = _parse_time(doc.last_updated) if doc is not None else None
            if now is not None and updated is not None:
                ages.append((now - updated).total_seconds() / 86400.0)
        if not ages:
            return self.scoring.staleness_floor
        oldest = max(ages)
        for days, value in self.scoring.staleness_thresholds:
            if oldest >= days:
                return value
        return self.scoring.staleness_floor


def score(
    result: DriftDetectionResult,
    snapshot: DriftSnapshot,
    usage: Optional[UsageMetadata] = None,
    weights: Optional[Mapping[str, float]] = None,
    scoring: Optional[ScoringConstants] = None,
) -> PriorityScore:
    """
    Score one drift result against a snapshot.

    Convenience wrapper around PriorityScorer for single calls; identical
    inputs always give identical outputs.
    """
    return PriorityScorer(snapshot, scoring=scoring).score(result, usage=usage, weights=weights)
