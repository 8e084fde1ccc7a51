"""
Snapshot Builder for DocDrift

This module walks a project tree and a documentation tree, runs the
structural and documentation extractors on every file, and assembles one
immutable DriftSnapshot, optionally persisting it to a SnapshotStore.

Key Components:
    - BuildContext: Explicit per-build state (clock, fingerprint cache,
      merge lock, collected failures) threaded through one build call
    - SnapshotBuilder: Directory traversal, bounded worker pool, merge

Design Decisions:
    - Extraction runs on a ThreadPoolExecutor bounded by `workers`; results
      merge into the snapshot maps under the context lock
    - A file whose extraction runs longer than `parse_timeout` (measured
      from when its job starts) is degraded to a minimal fingerprint; its
      content hash still marks it as changed
    - Jobs queued behind a timed-out job move to a fresh pool, so a hung
      file never degrades the files waiting after it
    - Per-file failures are collected, never raised; only an inaccessible
      project root (or an unreadable docs root) aborts the build
    - An absent docs root yields an empty documentation map

Academic Context:
    Input: Project root + docs root
    Transformation: Walk -> per-file extraction -> keyed merge
    Output: BuildResult (snapshot + failures)
    Limitation: A timed-out worker thread cannot be interrupted; it is
    abandoned and its late result discarded
"""

import os
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime, timezone
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Callable, Iterable, Iterator, Optional

from docdrift.config import DriftConfig
from docdrift.docs import extract_documentation, is_documentation_file
from docdrift.errors import RootAccessError
from docdrift.logging import get_logger
from docdrift.models import (
    BuildResult,
    DocumentationSnapshot,
    DriftSnapshot,
    ExtractionFailure,
    StructuralFingerprint,
)
from docdrift.parser import degraded_fingerprint, detect_language, extract_fingerprint
from docdrift.storage import SnapshotStore

logger = get_logger("snapshot")

IGNORED_DIRS = frozenset(
    {
        ".git",
        ".hg",
        ".svn",
        ".venv",
        "venv",
        ".tox",
        "node_modules",
        "__pycache__",
        ".pytest_cache",
        ".mypy_cache",
        ".idea",
        ".next",
        "dist",
        "build",
        ".docdrift",
    }
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _iso_mtime(stat: os.stat_result) -> str:
    return datetime.fromtimestamp(stat.st_mtime, timezone.utc).isoformat()


@dataclass
class BuildContext:
    """
    Scoped state for one snapshot build.

    Attributes:
        clock: Source of the snapshot timestamp
        cache: Fingerprints keyed by (path, size, mtime_ns); reuse a context
            across builds to skip re-parsing unchanged files
        failures: Per-file failures collected during the build
    """

    clock: Callable[[], datetime] = utc_now
    cache: dict[tuple[str, int, int], StructuralFingerprint] = field(default_factory=dict)
    failures: list[ExtractionFailure] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def record_failure(self, path: str, stage: str, message: str) -> None:
        with self._lock:
            self.failures.append(ExtractionFailure(path=path, stage=stage, message=message))

    def cached(self, key: tuple[str, int, int]) -> Optional[StructuralFingerprint]:
        with self._lock:
            return self.cache.get(key)

    def remember(self, key: tuple[str, int, int], fingerprint: StructuralFingerprint) -> None:
        with self._lock:
            self.cache[key] = fingerprint

    def insert(self, target: dict, key: str, value: object) -> None:
        """Insert a result; a key already present is kept (first writer wins)."""
        with self._lock:
            if key in target:
                logger.debug(f"Duplicate snapshot key ignored: {key}")
                return
            target[key] = value


@dataclass(eq=False)
class _Job:
    """
    One file's extraction and its outcome.

    `started` is set by the worker thread when the job begins running; the
    timeout is measured from there, never from when the job was queued.
    """

    key: str
    path: Path
    is_source: bool
    started: Optional[float] = None
    result: object = None
    error: Optional[BaseException] = None
    timed_out: bool = False


class SnapshotBuilder:
    """
    Builds DriftSnapshots from a project tree.

    Usage:
        builder = SnapshotBuilder(config, store=FileSnapshotStore(...))
        result = builder.build(Path("."))
        print(result.file_count, len(result.failures))
    """

    def __init__(self, config: Optional[DriftConfig] = None, store: Optional[SnapshotStore] = None) -> None:
        self.config = config or DriftConfig()
        self.store = store

    def build(
        self,
        project_root: Path | str,
        docs_root: Optional[Path | str] = None,
        context: Optional[BuildContext] = None,
        persist: bool = True,
    ) -> BuildResult:
        """
        Build (and by default persist) a snapshot of a project.

        Args:
            project_root: Directory holding the source tree
            docs_root: Documentation directory; defaults to the configured
                docs_dir under the project root
            context: Build context; a fresh one is created when omitted
            persist: Store the snapshot when a store is configured

        Returns:
            BuildResult with the snapshot and per-file failures

        Raises:
            RootAccessError: If the project root (or an existing docs root)
                is missing or unreadable
        """
        start = time.perf_counter()
        context = context or BuildContext()
        root = _check_root(Path(project_root), "Project root")
        docs = Path(docs_root) if docs_root is not None else self.config.docs_path(root)
        docs = docs if docs.is_absolute() else (Path.cwd() / docs)
        if docs.exists():
            docs = _check_root(docs, "Docs root")
        else:
            logger.debug(f"Docs root {docs} does not exist; documentation map is empty")

        timestamp = context.clock().isoformat()
        files: dict[str, StructuralFingerprint] = {}
        documentation: dict[str, DocumentationSnapshot] = {}

        sources = list(self._walk(root, root, lambda p: detect_language(p) is not None))
        doc_files = (
            list(self._walk(docs, root, is_documentation_file)) if docs.is_dir() else []
        )
        logger.debug(f"Found {len(sources)} source files and {len(doc_files)} doc files")

        jobs = [_Job(key, path, is_source=True) for key, path in sources]
        jobs += [_Job(key, path, is_source=False) for key, path in doc_files]
        self._run_jobs(jobs, context)

        for job in jobs:
            if job.is_source:
                fingerprint = self._collect_source(job, context)
                if fingerprint is not None:
                    context.insert(files, job.key, fingerprint)
            else:
                doc = self._collect_doc(job, context)
                if doc is not None:
                    context.insert(documentation, job.key, doc)

        snapshot = DriftSnapshot(
            project_path=str(root),
            timestamp=timestamp,
            files=files,
            documentation=documentation,
        )

        stored_at = None
        if persist and self.store is not None:
            stored_at = str(self.store.put(snapshot))

        elapsed = time.perf_counter() - start
        logger.info(
            f"Snapshot built: {len(files)} files, {len(documentation)} docs, "
            f"{len(context.failures)} failures in {elapsed:.2f}s"
        )
        return BuildResult(
            snapshot=snapshot,
            failures=list(context.failures),
            stored_at=stored_at,
            build_time_seconds=elapsed,
        )

    def _walk(
        self, base: Path, project_root: Path, accept: Callable[[str], bool]
    ) -> Iterator[tuple[str, Path]]:
        """Yield (snapshot key, path) for accepted files under base, sorted."""
        snapshot_dir = self.config.snapshot_path(project_root).resolve()
        found = []
        for dirpath, dirnames, filenames in os.walk(base):
            current = Path(dirpath)
            dirnames[:] = sorted(
                name
                for name in dirnames
                if name not in IGNORED_DIRS and (current / name).resolve() != snapshot_dir
            )
            for name in filenames:
                path = current / name
                key = _snapshot_key(path, base, project_root)
                if not accept(name) or self._excluded(key):
                    continue
                found.append((key, path))
        yield from sorted(found)

    def _excluded(self, key: str) -> bool:
        for pattern in self.config.exclude_paths:
            if fnmatchcase(key, pattern):
                return True
            if "/" not in pattern and any(fnmatchcase(part, pattern) for part in key.split("/")):
                return True
        return False

    def _extract_source(self, path: Path, key: str, context: BuildContext) -> StructuralFingerprint:
        stat = path.stat()
        cache_key = (key, stat.st_size, stat.st_mtime_ns)
        cached = context.cached(cache_key)
        if cached is not None:
            return cached

        content = path.read_text(encoding="utf-8")
        language = detect_language(key) or "unknown"
        fingerprint = extract_fingerprint(content, language, key, _iso_mtime(stat))
        if fingerprint.is_degraded:
            context.record_failure(key, "parse", fingerprint.parse_error or "unparsable")
        context.remember(cache_key, fingerprint)
        return fingerprint

    def _extract_doc(self, path: Path, key: str, context: BuildContext) -> DocumentationSnapshot:
        stat = path.stat()
        content = path.read_text(encoding="utf-8")
        return extract_documentation(content, key, _iso_mtime(stat))

    def _run_jobs(self, jobs: list[_Job], context: BuildContext) -> None:
        """
        Run every job on a pool bounded by `workers`.

        A job still running `parse_timeout` seconds after it started is
        marked timed out and abandoned. Its thread cannot be interrupted and
        keeps its pool slot, so the jobs queued behind it move to a fresh pool.
        """
        timeout = self.config.parse_timeout
        workers = max(1, self.config.workers)
        executor = ThreadPoolExecutor(max_workers=workers)
        pending: dict[Future, _Job] = {}
        try:
            for job in jobs:
                pending[executor.submit(self._start, job, context)] = job

            while pending:
                done, _ = wait(
                    pending, timeout=_wait_time(pending.values(), timeout), return_when=FIRST_COMPLETED
                )
                for future in done:
                    job = pending.pop(future)
                    try:
                        job.result = future.result()
                    except Exception as exc:
                        job.error = exc

                now = time.monotonic()
                overrun = [
                    future
                    for future, job in pending.items()
                    if job.started is not None and now - job.started >= timeout and not future.done()
                ]
                if not overrun:
                    continue
                for future in overrun:
                    job = pending.pop(future)
                    job.timed_out = True
                    logger.warning(f"Extraction of {job.key} timed out after {timeout}s")

                executor.shutdown(wait=False, cancel_futures=True)
                executor = ThreadPoolExecutor(max_workers=workers)
                for future, job in list(pending.items()):
                    if future.cancelled():
                        del pending[future]
                        pending[executor.submit(self._start, job, context)] = job
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    def _start(self, job: _Job, context: BuildContext) -> object:
        job.started = time.monotonic()
        if job.is_source:
            return self._extract_source(job.path, job.key, context)
        return self._extract_doc(job.path, job.key, context)

    def _collect_source(self, job: _Job, context: BuildContext) -> Optional[StructuralFingerprint]:
        if job.timed_out:
            context.record_failure(job.key, "timeout", f"exceeded {self.config.parse_timeout}s")
            try:
                stat = job.path.stat()
                content = job.path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                context.record_failure(job.key, "read", str(exc))
                return None
            return degraded_fingerprint(
                content, detect_language(job.key) or "unknown", job.key, _iso_mtime(stat),
                reason="extraction timed out",
            )
        if isinstance(job.error, (OSError, UnicodeDecodeError)):
            logger.warning(f"Cannot read {job.key}: {job.error}")
            context.record_failure(job.key, "read", str(job.error))
            return None
        if job.error is not None:
            raise job.error
        return job.result

    def _collect_doc(self, job: _Job, context: BuildContext) -> Optional[DocumentationSnapshot]:
        if job.timed_out:
            context.record_failure(job.key, "timeout", f"exceeded {self.config.parse_timeout}s")
        elif isinstance(job.error, (OSError, UnicodeDecodeError)):
            logger.warning(f"Cannot read {job.key}: {job.error}")
            context.record_failure(job.key, "read", str(job.error))
        elif job.error is not None:
            logger.warning(f"Documentation extraction failed for {job.key}: {job.error}")
            context.record_failure(job.key, "docs", f"{type(job.error).__name__}: {job.error}")
        else:
            return job.result
        return None


def _wait_time(jobs: Iterable[_Job], timeout: float) -> float:
    """Seconds until the earliest running job overruns."""
    started = [job.started for job in jobs if job.started is not None]
    if not started:
        return timeout
    return max(0.0, min(started) + timeout - time.monotonic())


def _check_root(path: Path, label: str) -> Path:
    resolved = path.expanduser().resolve()
    if not resolved.exists():
        raise RootAccessError(f"{label} not found: {resolved}", resolved)
    if not resolved.is_dir():
        raise RootAccessError(f"{label} is not a directory: {resolved}", resolved)
    if not os.access(resolved, os.R_OK | os.X_OK):
        raise RootAccessError(f"{label} is not readable: {resolved}", resolved)
    return resolved


def _snapshot_key(path: Path, base: Path, project_root: Path) -> str:
    """
    Project-relative posix key; files outside the project root are keyed
    relative to their walk base, prefixed with the base directory name.
    """
    try:
        return path.relative_to(project_root).as_posix()
    except ValueError:
        return f"{base.name}/{path.relative_to(base).as_posix()}"
