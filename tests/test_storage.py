"""
Tests for the storage module.

Tests the append-only JSON snapshot store and snapshot serialization.
"""

import json

import pytest

from docdrift.docs import extract_documentation
from docdrift.errors import SnapshotCorruptionError
from docdrift.models import DriftSnapshot
from docdrift.parser import extract_fingerprint
from docdrift.storage import (
    FORMAT_VERSION,
    FileSnapshotStore,
    snapshot_filename,
    snapshot_from_dict,
    snapshot_to_dict,
)
from tests.fixtures import CLASS_MODULE, DOC_WITH_FRONT_MATTER, PROCESS_V1


def _snapshot(timestamp="2024-05-01T12:00:00+00:00", project="/work/project", source=PROCESS_V1):
    fingerprint = extract_fingerprint(source, "python", "src/lib.py", timestamp)
    doc = extract_documentation(DOC_WITH_FRONT_MATTER, "docs/connect.md", timestamp)
    return DriftSnapshot(
        project_path=project,
        timestamp=timestamp,
        files={fingerprint.path: fingerprint},
        documentation={doc.path: doc},
    )


@pytest.fixture
def store(tmp_path):
    """Create a store in a temporary directory."""
    return FileSnapshotStore(tmp_path / "snapshots")


class TestSnapshotStore:
    """Tests for basic store operations."""

    def test_empty_store(self, store):
        """Test that a missing directory means no snapshots."""
        assert store.latest() is None
        assert store.history() == []

    def test_put_and_latest(self, store):
        """Test that a stored snapshot loads back unchanged."""
        snapshot = _snapshot()

        path = store.put(snapshot)

        assert path.name == "snapshot-20240501T120000000000Z.json"
        assert store.latest() == snapshot

    def test_latest_is_newest(self, store):
        """Test that 'latest' follows the snapshot timestamp."""
        store.put(_snapshot("2024-05-02T00:00:00+00:00", source=CLASS_MODULE))
        store.put(_snapshot("2024-05-01T00:00:00+00:00"))

        assert store.latest().timestamp == "2024-05-02T00:00:00+00:00"

    def test_latest_filters_by_project(self, store):
        """Test that snapshots of another project are ignored."""
        store.put(_snapshot("2024-05-01T00:00:00+00:00", project="/a"))
        store.put(_snapshot("2024-05-02T00:00:00+00:00", project="/b"))

        assert store.latest(project_path="/a").project_path == "/a"
        assert store.latest(project_path="/missing") is None

    def test_never_overwrites(self, store):
        """Test that equal timestamps get a suffixed name instead of replacing."""
        first = store.put(_snapshot())
        second = store.put(_snapshot(source=CLASS_MODULE))

        assert first != second
        assert second.name == "snapshot-20240501T120000000000Z_001.json"
        assert first.exists() and second.exists()
        assert store.latest().files["src/lib.py"].classes[0].name == "Calculator"

    def test_no_temp_files_left(self, store):
        """Test that writes leave only the snapshot file behind."""
        store.put(_snapshot())

        assert [p.name for p in store.directory.iterdir()] == ["snapshot-20240501T120000000000Z.json"]


class TestCorruption:
    """Tests for corrupt snapshot handling."""

    def test_corrupt_latest_is_skipped(self, store):
        """Test that an unreadable newest file falls back to the next one."""
        store.put(_snapshot())
        (store.directory / "snapshot-20990101T000000000000Z.json").write_text("{not json")

        latest = store.latest()

        assert latest is not None
        assert latest.timestamp == "2024-05-01T12:00:00+00:00"

    def test_unknown_format_version(self, store):
        """Test that an unknown format version counts as corrupt."""
        data = snapshot_to_dict(_snapshot())
        data["format_version"] = FORMAT_VERSION + 1
        store.directory.mkdir(parents=True)
        path = store.directory / "snapshot-20240501T120000000000Z.json"
        path.write_text(json.dumps(data))

        with pytest.raises(SnapshotCorruptionError):
            store.load(path)
        assert store.latest() is None

    def test_history_reports_corrupt_entries(self, store):
        """Test history lists corrupt files with their error."""
        store.put(_snapshot())
        (store.directory / "snapshot-20990101T000000000000Z.json").write_text("[]")

        entries = store.history()

        assert len(entries) == 2
        assert entries[0].error is not None
        assert entries[1].error is None
        assert entries[1].file_count == 1
        assert entries[1].doc_count == 1

    def test_history_limit(self, store):
        """Test the history limit, newest first."""
        for day in range(1, 4):
            store.put(_snapshot(f"2024-05-0{day}T00:00:00+00:00"))

        entries = store.history(limit=2)

        assert [e.timestamp for e in entries] == [
            "2024-05-03T00:00:00+00:00",
            "2024-05-02T00:00:00+00:00",
        ]


class TestSerialization:
    """Tests for snapshot (de)serialization."""

    def test_document_shape(self):
        """Test the top-level keys and enum encoding."""
        data = snapshot_to_dict(_snapshot())

        assert data["format_version"] == FORMAT_VERSION
        assert set(data) == {"format_version", "project_path", "timestamp", "files", "documentation"}
        example = data["documentation"]["docs/connect.md"]["sections"][1]["code_examples"][0]
        assert example["content_type"] == "how-to"
        json.dumps(data)

    def test_missing_field_is_corrupt(self):
        """Test that a partial document is rejected rather than half-loaded."""
        data = snapshot_to_dict(_snapshot())
        del data["files"]["src/lib.py"]["path"]

        with pytest.raises(SnapshotCorruptionError):
            snapshot_from_dict(data)

    def test_filename_normalises_to_utc(self):
        """Test that offsets are converted before naming."""
        assert snapshot_filename("2024-05-01T14:00:00+02:00") == "snapshot-20240501T120000000000Z.json"
        assert snapshot_filename("2024-05-01T12:00:00Z") == "snapshot-20240501T120000000000Z.json"
