"""
Snapshot Store for DocDrift

This module persists DriftSnapshots as an append-only, timestamp-named
directory of JSON files, enabling drift detection across runs.

Design Decisions:
    - One file per snapshot: `snapshot-<UTC timestamp>.json`; names sort
      in time order, so "latest" is the last readable name
    - Writes are all-or-nothing: temp file, fsync, atomic rename; an
      existing snapshot file is never overwritten or edited
    - A snapshot that fails to load is skipped and the next older one is
      tried; corruption never aborts a run
    - Only "put" and "load latest" are needed by the engine; richer
      storage layers plug in through the SnapshotStore protocol

Academic Context:
    Input: Immutable DriftSnapshots
    Transformation: JSON serialization with atomic file replacement
    Output: Persisted history for future comparison
    Limitation: Concurrent writers within the same microsecond get
    distinct suffixed names but no ordering guarantee between them
"""

import json
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Protocol

from docdrift.errors import SnapshotCorruptionError
from docdrift.logging import get_logger
from docdrift.models import DriftSnapshot
from docdrift.storage.serialization import snapshot_from_dict, snapshot_to_dict

logger = get_logger("storage")

SNAPSHOT_PREFIX = "snapshot-"
SNAPSHOT_SUFFIX = ".json"
TIMESTAMP_FORMAT = "%Y%m%dT%H%M%S%fZ"


class SnapshotStore(Protocol):
    """Minimal persistence interface the engine depends on."""

    def put(self, snapshot: DriftSnapshot) -> Path:
        ...

    def latest(self, project_path: Optional[str] = None) -> Optional[DriftSnapshot]:
        ...

    def history(self, limit: Optional[int] = None) -> list["StoredSnapshot"]:
        ...


@dataclass(frozen=True)
class StoredSnapshot:
    """
    Summary of one stored snapshot file.

    Attributes:
        path: Snapshot file
        timestamp: Snapshot timestamp (empty when unreadable)
        project_path: Project root the snapshot was built from
        file_count: Number of source fingerprints
        doc_count: Number of documentation files
        error: Load error, when the file is corrupt
    """

    path: Path
    timestamp: str = ""
    project_path: str = ""
    file_count: int = 0
    doc_count: int = 0
    error: Optional[str] = None


def snapshot_filename(timestamp: str) -> str:
    """Map an ISO-8601 timestamp to its sortable snapshot file name."""
    moment = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return SNAPSHOT_PREFIX + moment.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT) + SNAPSHOT_SUFFIX


class FileSnapshotStore:
    """
    Append-only JSON snapshot store.

    Usage:
        store = FileSnapshotStore(Path(".docdrift/snapshots"))
        store.put(snapshot)
        previous = store.latest(project_path=str(root))
    """

    def __init__(self, directory: Path | str) -> None:
        """
        Initialize the store.

        The directory is created lazily on the first write.

        Args:
            directory: Directory holding the snapshot files
        """
        self.directory = Path(directory)

    def put(self, snapshot: DriftSnapshot) -> Path:
        """
        Persist a snapshot.

        Args:
            snapshot: Snapshot to store

        Returns:
            Path of the written file
        """
        self.directory.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(snapshot_to_dict(snapshot), indent=2, sort_keys=True)

        fd, tmp_name = tempfile.mkstemp(prefix=".tmp-", suffix=SNAPSHOT_SUFFIX, dir=self.directory)
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            target = self._unused_path(snapshot_filename(snapshot.timestamp))
            os.replace(tmp_path, target)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

        logger.debug(f"Stored snapshot {target.name} ({len(snapshot.files)} files)")
        return target

    def latest(self, project_path: Optional[str] = None) -> Optional[DriftSnapshot]:
        """
        Load the most recent readable snapshot.

        Args:
            project_path: Only consider snapshots built from this root

        Returns:
            The newest snapshot, or None if no usable snapshot exists
        """
        for path in reversed(self._snapshot_files()):
            try:
                snapshot = self.load(path)
            except SnapshotCorruptionError as exc:
                logger.warning(f"Skipping corrupt snapshot {path.name}: {exc}")
                continue
            if project_path is not None and snapshot.project_path != project_path:
                continue
            return snapshot
        return None

    def load(self, path: Path) -> DriftSnapshot:
        """
        Load one snapshot file.

        Raises:
            SnapshotCorruptionError: If the file is unreadable or not a valid snapshot
        """
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise SnapshotCorruptionError(f"cannot read {path.name}: {exc}", path) from exc
        return snapshot_from_dict(data, source=path)

    def history(self, limit: Optional[int] = None) -> list[StoredSnapshot]:
        """
        Summaries of stored snapshots, newest first.

        Args:
            limit: Maximum number of entries to return
        """
        entries = []
        for path in reversed(self._snapshot_files()):
            if limit is not None and len(entries) >= limit:
                break
            try:
                snapshot = self.load(path)
            except SnapshotCorruptionError as exc:
                entries.append(StoredSnapshot(path=path, error=str(exc)))
                continue
            entries.append(
                StoredSnapshot(
                    path=path,
                    timestamp=snapshot.timestamp,
                    project_path=snapshot.project_path,
                    file_count=len(snapshot.files),
                    doc_count=len(snapshot.documentation),
                )
            )
        return entries

    def _snapshot_files(self) -> list[Path]:
        if not self.directory.is_dir():
            return []
        return sorted(
            path
            for path in self.directory.iterdir()
            if path.name.startswith(SNAPSHOT_PREFIX) and path.name.endswith(SNAPSHOT_SUFFIX)
        )

    def _unused_path(self, filename: str) -> Path:
        target = self.directory / filename
        stem = filename[: -len(SNAPSHOT_SUFFIX)]
        counter = 1
        while target.exists():
            target = self.directory / f"{stem}_{counter:03d}{SNAPSHOT_SUFFIX}"
            counter += 1
        return target
