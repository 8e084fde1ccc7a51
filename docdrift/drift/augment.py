"""
Impact classification strategies.

The structural (AST-only) classification produced by the diff engine is
always complete on its own. A hybrid strategy may consult an external
semantic collaborator to escalate a non-breaking impact level; it never
relaxes a structurally breaking change, and any collaborator failure or
timeout falls back to the structural level.
"""

from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import replace
from typing import Optional, Protocol, Union

from docdrift.config import DriftConfig
from docdrift.errors import AugmentationError
from docdrift.logging import get_logger
from docdrift.models import CodeDiff, ImpactLevel, StructuralFingerprint

logger = get_logger("drift.augment")


class SemanticClient(Protocol):
    """External service judging the behavioural impact of one change."""

    def classify(
        self,
        diff: CodeDiff,
        old: Optional[StructuralFingerprint],
        new: Optional[StructuralFingerprint],
    ) -> Union[ImpactLevel, str, None]:
        ...


class ImpactStrategy(Protocol):
    name: str

    def refine(
        self,
        diffs: list[CodeDiff],
        old: Optional[StructuralFingerprint],
        new: Optional[StructuralFingerprint],
    ) -> list[CodeDiff]:
        ...


class AstOnlyStrategy:
    """Keeps the structural classification unchanged."""

    name = "ast-only"

    def refine(
        self,
        diffs: list[CodeDiff],
        old: Optional[StructuralFingerprint],
        new: Optional[StructuralFingerprint],
    ) -> list[CodeDiff]:
        return list(diffs)


class HybridStrategy:
    """
    Structural classification refined by a semantic collaborator.

    Attributes:
        client: The semantic collaborator
        timeout: Seconds allowed per classification call
    """

    name = "hybrid"

    def __init__(self, client: SemanticClient, timeout: float = 5.0) -> None:
        self.client = client
        self.timeout = timeout

    def refine(
        self,
        diffs: list[CodeDiff],
        old: Optional[StructuralFingerprint],
        new: Optional[StructuralFingerprint],
    ) -> list[CodeDiff]:
        """
        Refine each diff in order. After the first timeout the worker is
        still busy with the hung call, so the remaining diffs keep their
        structural impact without consulting the client.
        """
        if not diffs:
            return []
        refined = []
        executor = ThreadPoolExecutor(max_workers=1)
        try:
            for position, diff in enumerate(diffs):
                if diff.impact is ImpactLevel.BREAKING:
                    refined.append(diff)
                    continue
                try:
                    refined.append(self._refine_one(executor, diff, old, new))
                except FutureTimeout:
                    logger.debug(
                        f"Semantic classification of {diff.name} timed out; keeping structural "
                        f"impact for it and {len(diffs) - position - 1} remaining changes"
                    )
                    refined.extend(diffs[position:])
                    break
        finally:
            executor.shutdown(wait=False, cancel_futures=True)
        return refined

    def _refine_one(
        self,
        executor: ThreadPoolExecutor,
        diff: CodeDiff,
        old: Optional[StructuralFingerprint],
        new: Optional[StructuralFingerprint],
    ) -> CodeDiff:
        future = executor.submit(self.client.classify, diff, old, new)
        try:
            suggested = _as_level(future.result(timeout=self.timeout))
        except FutureTimeout:
            raise
        except Exception as exc:
            logger.debug(f"Semantic classification of {diff.name} failed ({exc}); keeping {diff.impact.value}")
            return diff

        if suggested is None or suggested.rank <= diff.impact.rank:
            return diff
        return replace(diff, impact=suggested)


def _as_level(value: Union[ImpactLevel, str, None]) -> Optional[ImpactLevel]:
    if value is None or isinstance(value, ImpactLevel):
        return value
    try:
        return ImpactLevel(str(value).lower())
    except ValueError as exc:
        raise AugmentationError(f"unknown impact level {value!r}") from exc


def strategy_for(config: DriftConfig, client: Optional[SemanticClient] = None) -> ImpactStrategy:
    """Select the configured strategy; hybrid without a client degrades to ast-only."""
    if config.strategy == "hybrid":
        if client is None:
            logger.warning("Hybrid strategy configured without a semantic client; using ast-only")
            return AstOnlyStrategy()
        return HybridStrategy(client, timeout=config.parse_timeout)
    return AstOnlyStrategy()
