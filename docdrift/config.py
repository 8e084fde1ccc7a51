"""
Configuration loading for DocDrift (.docdrift.yml).

All tunables of the pipeline live here, including the scoring constants
(change points, thresholds, reference values) that were tuned empirically
and are therefore exposed instead of hard-coded.

Example .docdrift.yml:

    docs_dir: docs
    exclude_paths: ["vendor/*", "**/generated/*"]
    workers: 4
    parse_timeout: 5
    weights:
      changeMagnitude: 0.4
    scoring:
      major_change_points: 25
"""

import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from docdrift.errors import ConfigError
from docdrift.models import PriorityWeights

CONFIG_FILENAME = ".docdrift.yml"

DEFAULT_SNAPSHOT_DIR = ".docdrift/snapshots"

STRATEGIES = ("ast-only", "hybrid")


def _default_workers() -> int:
    return max(1, min(8, os.cpu_count() or 1))


@dataclass(frozen=True)
class ScoringConstants:
    """
    Numeric constants used by the priority scorer.

    Attributes:
        major_change_points: changeMagnitude points per major change
        minor_change_points: changeMagnitude points per minor change
        complexity_ceiling: Aggregate complexity that maps to a score of 100
        missing_complexity_score: codeComplexity when the file has no fingerprint
        usage_reference: Combined usage count that maps to a score of 100
        export_usage_points: Heuristic usage points per exported symbol
        doc_reference_usage_points: Heuristic usage points per referencing doc section
        undocumented_coverage_score: documentationCoverage with no affected docs
        coverage_floor: Lower bound of documentationCoverage with affected docs
        coverage_span: Width of the documentationCoverage band
        staleness_thresholds: (min age in days, score) pairs, most stale first
        staleness_floor: Staleness of recently updated docs
        breaking_floor: Minimum overall score when a breaking change is present
            and changeMagnitude carries weight; None disables it
    """

    major_change_points: float = 20.0
    minor_change_points: float = 8.0
    complexity_ceiling: float = 30.0
    missing_complexity_score: float = 50.0
    usage_reference: float = 100.0
    export_usage_points: float = 10.0
    doc_reference_usage_points: float = 5.0
    undocumented_coverage_score: float = 90.0
    coverage_floor: float = 40.0
    coverage_span: float = 40.0
    staleness_thresholds: tuple[tuple[float, float], ...] = (
        (90.0, 100.0),
        (30.0, 80.0),
        (14.0, 60.0),
        (7.0, 40.0),
    )
    staleness_floor: float = 20.0
    breaking_floor: Optional[float] = 60.0


@dataclass(frozen=True)
class DriftConfig:
    """
    Represents the settings defined in .docdrift.yml.

    Attributes:
        docs_dir: Documentation root, relative to the project root
        snapshot_dir: Snapshot store directory, relative to the project root
        exclude_paths: fnmatch globs (project-relative posix paths) to skip
        workers: Upper bound of the extraction worker pool
        parse_timeout: Seconds before one file's extraction is abandoned
        strategy: "ast-only" or "hybrid" impact classification
        weights: Priority weights after applying overrides
        scoring: Scoring constants
        auto_apply_threshold: Minimum confidence for auto-applicable suggestions
        suggestion_confidence: Confidence of a suggestion with one candidate section
    """

    docs_dir: str = "docs"
    snapshot_dir: str = DEFAULT_SNAPSHOT_DIR
    exclude_paths: tuple[str, ...] = ()
    workers: int = field(default_factory=_default_workers)
    parse_timeout: float = 10.0
    strategy: str = "ast-only"
    weights: PriorityWeights = field(default_factory=PriorityWeights)
    scoring: ScoringConstants = field(default_factory=ScoringConstants)
    auto_apply_threshold: float = 0.8
    suggestion_confidence: float = 0.9

    def snapshot_path(self, project_root: Path) -> Path:
        path = Path(self.snapshot_dir)
        return path if path.is_absolute() else project_root / path

    def docs_path(self, project_root: Path) -> Path:
        path = Path(self.docs_dir)
        return path if path.is_absolute() else project_root / path


def load_config(project_root: Path) -> DriftConfig:
    """
    Load configuration for a project.

    Args:
        project_root: Project directory, or a path to the config file itself

    Returns:
        DriftConfig with defaults for everything the file leaves out

    Raises:
        ConfigError: If the file is not valid YAML or has wrongly-typed values
    """
    config_file = _resolve_config_path(Path(project_root))
    if not config_file.exists():
        return DriftConfig()

    data = _read_config(config_file)
    return config_from_mapping(data)


def config_from_mapping(data: Mapping[str, Any]) -> DriftConfig:
    """Build a DriftConfig from an already-parsed mapping."""
    if not isinstance(data, Mapping):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    config = DriftConfig()
    changes: dict[str, Any] = {}

    if "docs_dir" in data:
        changes["docs_dir"] = _as_str(data["docs_dir"], "docs_dir")
    if "snapshot_dir" in data:
        changes["snapshot_dir"] = _as_str(data["snapshot_dir"], "snapshot_dir")
    if "exclude_paths" in data:
        changes["exclude_paths"] = tuple(_as_str_list(data["exclude_paths"], "exclude_paths"))
    if "workers" in data:
        workers = _as_number(data["workers"], "workers")
        if workers < 1:
            raise ConfigError("workers must be >= 1")
        changes["workers"] = int(workers)
    if "parse_timeout" in data:
        timeout = _as_number(data["parse_timeout"], "parse_timeout")
        if timeout <= 0:
            raise ConfigError("parse_timeout must be > 0")
        changes["parse_timeout"] = float(timeout)
    if "strategy" in data:
        strategy = _as_str(data["strategy"], "strategy")
        if strategy not in STRATEGIES:
            raise ConfigError(f"strategy must be one of {', '.join(STRATEGIES)}")
        changes["strategy"] = strategy
    if "auto_apply_threshold" in data:
        changes["auto_apply_threshold"] = _as_unit(data["auto_apply_threshold"], "auto_apply_threshold")
    if "suggestion_confidence" in data:
        changes["suggestion_confidence"] = _as_unit(data["suggestion_confidence"], "suggestion_confidence")

    weights_data = data.get("weights")
    if weights_data is not None:
        if not isinstance(weights_data, Mapping):
            raise ConfigError("weights must be a mapping")
        overrides = {str(k): _as_number(v, f"weights.{k}") for k, v in weights_data.items()}
        try:
            changes["weights"] = config.weights.with_overrides(overrides)
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc

    scoring_data = data.get("scoring")
    if scoring_data is not None:
        changes["scoring"] = _scoring_from_mapping(scoring_data)

    return replace(config, **changes)


def _scoring_from_mapping(data: Any) -> ScoringConstants:
    if not isinstance(data, Mapping):
        raise ConfigError("scoring must be a mapping")
    known = {f.name for f in fields(ScoringConstants)}
    changes: dict[str, Any] = {}
    for key, value in data.items():
        if key not in known:
            raise ConfigError(f"Unknown scoring constant: {key}")
        if key == "staleness_thresholds":
            changes[key] = _as_thresholds(value)
        elif key == "breaking_floor" and value is None:
            changes[key] = None
        else:
            changes[key] = float(_as_number(value, f"scoring.{key}"))
    return replace(ScoringConstants(), **changes)


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Mapping[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_str(value: Any, key: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"{key} must be a non-empty string")
    return value.strip()


def _as_str_list(value: Any, key: str) -> list[str]:
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{key} must be a list of strings")
    return [v for v in value if v.strip()]


def _as_number(value: Any, key: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{key} must be a number")
    return value


def _as_unit(value: Any, key: str) -> float:
    number = float(_as_number(value, key))
    if not 0.0 <= number <= 1.0:
        raise ConfigError(f"{key} must be between 0 and 1")
    return number


def _as_thresholds(value: Any) -> tuple[tuple[float, float], ...]:
    if not isinstance(value, list):
        raise ConfigError("scoring.staleness_thresholds must be a list of [days, score] pairs")
    pairs = []
    for item in value:
        if not isinstance(item, (list, tuple)) or len(item) != 2:
            raise ConfigError("scoring.staleness_thresholds must be a list of [days, score] pairs")
        days = float(_as_number(item[0], "staleness threshold days"))
        score = float(_as_number(item[1], "staleness threshold score"))
        pairs.append((days, score))
    return tuple(sorted(pairs, key=lambda pair: pair[0], reverse=True))
