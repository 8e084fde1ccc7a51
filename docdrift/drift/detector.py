"""
Drift Detection Pipeline for DocDrift

This module wires the pipeline stages together:

    Snapshot Builder (old, new) -> Diff Engine (per file)
        -> impact strategy -> Drift Aggregator (per file)
        -> Priority Scorer (per result, optional)

Pipeline Rules:
    - Files whose content hash is unchanged are skipped without diffing
    - A changed file that is degraded on either side yields a `diff`-stage
      failure ("changed but unparsable") instead of structural diffs
    - Only files with a non-empty diff list produce a result
    - First run (no previous snapshot): the snapshot is stored and the
      result list is empty

Academic Context:
    Input: Two DriftSnapshots, or a project root plus the stored history
    Transformation: Per-file diff, refine, aggregate, score
    Output: DriftRun (results + per-file failures)
    Limitation: Documentation-only edits are not drift; only code changes
    are cross-referenced against documentation

Design Decisions:
    - Deterministic: results are ordered by path, or by descending score
      then path when prioritised
    - Snapshots are never mutated; every stage returns fresh values
"""

from pathlib import Path
from typing import Mapping, Optional

from docdrift.config import DriftConfig
from docdrift.drift.aggregator import aggregate
from docdrift.drift.augment import ImpactStrategy, SemanticClient, strategy_for
from docdrift.drift.differ import diff_fingerprints
from docdrift.graph import ReferenceIndex
from docdrift.logging import get_logger
from docdrift.models import (
    BuildResult,
    DriftRun,
    DriftSnapshot,
    ExtractionFailure,
    PrioritizedDriftResult,
    PriorityWeights,
    UsageMetadata,
)
from docdrift.priority import PriorityScorer
from docdrift.snapshot import BuildContext, SnapshotBuilder
from docdrift.storage import FileSnapshotStore, SnapshotStore

logger = get_logger("drift")


class DriftDetector:
    """
    Detects documentation drift between snapshots and ranks it.

    Attributes:
        config: Pipeline configuration
        store: Snapshot store; when omitted, a FileSnapshotStore under the
            project's configured snapshot_dir is used
        strategy: Impact classification strategy

    Usage:
        detector = DriftDetector(config)
        run = detector.run(Path("."), prioritize=True)
        for item in run.scored:
            print(item.result.path, item.score.overall)
    """

    def __init__(
        self,
        config: Optional[DriftConfig] = None,
        store: Optional[SnapshotStore] = None,
        strategy: Optional[ImpactStrategy] = None,
        semantic_client: Optional[SemanticClient] = None,
    ) -> None:
        self.config = config or DriftConfig()
        self.store = store
        self.strategy = strategy or strategy_for(self.config, semantic_client)
        self._weights = self.config.weights

    # ------------------------------------------------------------------
    # Weights
    # ------------------------------------------------------------------

    def set_custom_weights(self, weights: Mapping[str, float]) -> None:
        """
        Override some priority weights.

        Unspecified weights keep their configured values; nothing is
        renormalised.

        Raises:
            ValueError: If a key names no weight or a value is negative
        """
        self._weights = self._weights.with_overrides(weights)

    def get_weights(self) -> PriorityWeights:
        return self._weights

    # ------------------------------------------------------------------
    # Pipeline stages
    # ------------------------------------------------------------------

    def store_for(self, project_root: Path) -> SnapshotStore:
        if self.store is None:
            self.store = FileSnapshotStore(self.config.snapshot_path(project_root))
        return self.store

    def create_snapshot(
        self,
        project_root: Path | str,
        docs_root: Optional[Path | str] = None,
        persist: bool = True,
        context: Optional[BuildContext] = None,
    ) -> BuildResult:
        """
        Build a snapshot of the project and (by default) store it.

        Raises:
            RootAccessError: If the project root or docs root is inaccessible
        """
        root = Path(project_root).expanduser().resolve()
        builder = SnapshotBuilder(self.config, self.store_for(root) if persist else None)
        return builder.build(root, docs_root, context=context, persist=persist)

    def detect_drift(self, old: DriftSnapshot, new: DriftSnapshot) -> DriftRun:
        """
        Diff two snapshots and aggregate drift per changed file.

        Args:
            old: Earlier snapshot
            new: Later snapshot; its documentation is the reference

        Returns:
            DriftRun with results ordered by path
        """
        index = ReferenceIndex.from_documentation(new.documentation)
        run = DriftRun(previous_timestamp=old.timestamp, current_timestamp=new.timestamp)

        for path in sorted(set(old.files) | set(new.files)):
            before = old.files.get(path)
            after = new.files.get(path)
            if before is not None and after is not None and before.content_hash == after.content_hash:
                continue
            if (before is not None and before.is_degraded) or (after is not None and after.is_degraded):
                run.failures.append(
                    ExtractionFailure(path=path, stage="diff", message="changed but unparsable")
                )
                continue

            diffs = diff_fingerprints(before, after)
            diffs = self.strategy.refine(diffs, before, after)
            if not diffs:
                continue
            run.results.append(aggregate(path, diffs, index, new.timestamp, self.config))

        logger.info(
            f"Compared {len(new.files)} files: {len(run.results)} changed, {run.drift_count} with drift"
        )
        return run

    def prioritize(
        self,
        run: DriftRun,
        snapshot: DriftSnapshot,
        usage: Optional[Mapping[str, UsageMetadata]] = None,
        weights: Optional[Mapping[str, float]] = None,
    ) -> list[PrioritizedDriftResult]:
        """
        Score every result of a run and order them by urgency.

        Args:
            run: Run to score; its results are reordered to match
            snapshot: Snapshot the results were detected against (the newer one)
            usage: Optional usage metadata keyed by source path
            weights: Optional per-call weight overrides on top of the detector's

        Returns:
            Results with scores, by descending overall score then path
        """
        scorer = PriorityScorer(snapshot, weights=self._weights, scoring=self.config.scoring)
        usage = usage or {}
        scored = [
            PrioritizedDriftResult(
                result=result,
                score=scorer.score(result, usage=usage.get(result.path), weights=weights),
            )
            for result in run.results
        ]
        scored.sort(key=lambda item: (-item.score.overall, item.result.path))
        run.scored = scored
        run.results = [item.result for item in scored]
        return scored

    def run(
        self,
        project_root: Path | str,
        docs_root: Optional[Path | str] = None,
        previous: Optional[DriftSnapshot] = None,
        prioritize: bool = False,
        usage: Optional[Mapping[str, UsageMetadata]] = None,
    ) -> DriftRun:
        """
        Build a new snapshot and detect drift against the previous one.

        Args:
            project_root: Project directory
            docs_root: Documentation directory (defaults to configured docs_dir)
            previous: Snapshot to diff against; defaults to the latest stored
                snapshot of this project
            prioritize: Score and order the results
            usage: Optional usage metadata keyed by source path

        Returns:
            DriftRun; empty results on the first run

        Raises:
            RootAccessError: If the project root or docs root is inaccessible
        """
        root = Path(project_root).expanduser().resolve()
        if previous is None:
            previous = self.store_for(root).latest(project_path=str(root))

        build = self.create_snapshot(root, docs_root)
        current = build.snapshot

        if previous is None:
            logger.info("No previous snapshot; stored a baseline")
            return DriftRun(failures=list(build.failures), current_timestamp=current.timestamp)

        run = self.detect_drift(previous, current)
        run.failures = list(build.failures) + run.failures
        if prioritize:
            self.prioritize(run, current, usage=usage)
        return run
