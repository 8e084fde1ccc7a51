"""
Tests for the snapshot builder.

Tests directory traversal, exclusion rules, failure collection and
persistence of built snapshots.
"""

import threading
from datetime import datetime, timezone

import pytest

from docdrift.config import DriftConfig
from docdrift.errors import RootAccessError
from docdrift.hash import compute_content_hash
from docdrift.parser import get_backend
from docdrift.snapshot import BuildContext, SnapshotBuilder
from docdrift.storage import FileSnapshotStore
from tests.fixtures import (
    GO_MODULE,
    PROCESS_DOC,
    PROCESS_V1,
    SIMPLE_MODULE,
    SYNTAX_ERROR,
    TYPESCRIPT_MODULE,
    write_tree,
)


def _fixed_clock():
    return datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def project(tmp_path):
    """Create a small mixed-language project with one doc."""
    return write_tree(
        tmp_path / "project",
        {
            "src/lib.py": PROCESS_V1,
            "web/client.ts": TYPESCRIPT_MODULE,
            "shapes/shapes.go": GO_MODULE,
            "README.txt": "not a source file",
            "docs/api.md": PROCESS_DOC,
            "docs/notes.txt": "ignored",
        },
    )


class TestBuild:
    """Tests for building snapshots."""

    def test_files_and_documentation(self, project):
        """Test that sources and docs are keyed by project-relative paths."""
        result = SnapshotBuilder(DriftConfig(workers=2)).build(project, persist=False)

        snapshot = result.snapshot
        assert sorted(snapshot.files) == ["shapes/shapes.go", "src/lib.py", "web/client.ts"]
        assert sorted(snapshot.documentation) == ["docs/api.md"]
        assert snapshot.files["web/client.ts"].language == "typescript"
        assert snapshot.project_path == str(project.resolve())
        assert result.failures == []
        assert result.file_count == 3
        assert result.doc_count == 1

    def test_timestamp_from_context_clock(self, project):
        """Test that the build context supplies the snapshot time."""
        context = BuildContext(clock=_fixed_clock)

        result = SnapshotBuilder().build(project, context=context, persist=False)

        assert result.snapshot.timestamp == "2024-05-01T12:00:00+00:00"

    def test_ignored_directories(self, project):
        """Test that vendored, cache and snapshot directories are skipped."""
        write_tree(
            project,
            {
                "node_modules/pkg/index.js": "function f() {}",
                "__pycache__/cached.py": "x = 1",
                ".docdrift/snapshots/stray.py": "y = 2",
            },
        )

        snapshot = SnapshotBuilder().build(project, persist=False).snapshot

        assert not any(key.startswith(("node_modules", "__pycache__", ".docdrift")) for key in snapshot.files)

    def test_exclude_paths(self, project):
        """Test glob exclusions on full keys and single path parts."""
        config = DriftConfig(exclude_paths=("web/*", "shapes"))

        snapshot = SnapshotBuilder(config).build(project, persist=False).snapshot

        assert sorted(snapshot.files) == ["src/lib.py"]

    def test_absent_docs_root(self, project):
        """Test that a missing docs directory gives an empty documentation map."""
        snapshot = SnapshotBuilder(DriftConfig(docs_dir="manual")).build(project, persist=False).snapshot

        assert dict(snapshot.documentation) == {}
        assert len(snapshot.files) == 3

    def test_explicit_docs_root(self, project, tmp_path):
        """Test a docs root outside the project tree."""
        external = write_tree(tmp_path / "handbook", {"guide.md": PROCESS_DOC})

        snapshot = SnapshotBuilder().build(project, docs_root=external, persist=False).snapshot

        assert sorted(snapshot.documentation) == ["handbook/guide.md"]

    def test_empty_project(self, tmp_path):
        """Test that an empty project builds an empty snapshot."""
        (tmp_path / "empty").mkdir()

        result = SnapshotBuilder().build(tmp_path / "empty", persist=False)

        assert dict(result.snapshot.files) == {}
        assert result.failures == []

    def test_parse_failures_are_collected(self, project):
        """Test that an unparsable file is degraded and reported, not raised."""
        write_tree(project, {"src/broken.py": SYNTAX_ERROR})

        result = SnapshotBuilder().build(project, persist=False)

        broken = result.snapshot.files["src/broken.py"]
        assert broken.is_degraded
        assert [(f.path, f.stage) for f in result.failures] == [("src/broken.py", "parse")]

    def test_undecodable_file_is_a_read_failure(self, project):
        """Test that a non-UTF-8 file is skipped with a read failure."""
        (project / "src" / "latin.py").write_bytes(b"x = '\xe9'\n")

        result = SnapshotBuilder().build(project, persist=False)

        assert "src/latin.py" not in result.snapshot.files
        assert ("src/latin.py", "read") in [(f.path, f.stage) for f in result.failures]

    def test_cache_reuses_fingerprints(self, project):
        """Test that a shared context returns the cached fingerprint objects."""
        context = BuildContext()
        builder = SnapshotBuilder()

        first = builder.build(project, context=context, persist=False).snapshot
        second = builder.build(project, context=context, persist=False).snapshot

        assert first.files["src/lib.py"] is second.files["src/lib.py"]

    @pytest.mark.parametrize("workers", [1, 3])
    def test_timeout_degrades_only_the_slow_file(self, tmp_path, monkeypatch, workers):
        """Test that a hung file is degraded alone and files queued after it still parse."""
        project = write_tree(
            tmp_path / "slow",
            {"a_slow.py": PROCESS_V1, "b.py": PROCESS_V1, "c.py": SIMPLE_MODULE},
        )
        backend = get_backend("python")
        extract = backend.extract
        release = threading.Event()

        def slow_extract(content, path="", language=""):
            if path == "a_slow.py":
                release.wait(5)
            return extract(content, path, language)

        monkeypatch.setattr(backend, "extract", slow_extract)
        config = DriftConfig(workers=workers, parse_timeout=0.3)
        try:
            result = SnapshotBuilder(config).build(project, persist=False)
        finally:
            release.set()

        files = result.snapshot.files
        assert sorted(key for key, fp in files.items() if fp.is_degraded) == ["a_slow.py"]
        assert files["a_slow.py"].parse_error == "extraction timed out"
        assert files["a_slow.py"].content_hash == compute_content_hash(PROCESS_V1)
        assert [f.name for f in files["c.py"].functions] == ["greet"]
        assert [(f.path, f.stage) for f in result.failures] == [("a_slow.py", "timeout")]


class TestRoots:
    """Tests for root validation."""

    def test_missing_project_root(self, tmp_path):
        """Test that a missing project root aborts the build."""
        with pytest.raises(RootAccessError):
            SnapshotBuilder().build(tmp_path / "nope", persist=False)

    def test_project_root_is_a_file(self, tmp_path):
        """Test that a file is not accepted as a project root."""
        target = tmp_path / "file.py"
        target.write_text(PROCESS_V1)

        with pytest.raises(RootAccessError):
            SnapshotBuilder().build(target, persist=False)


class TestPersistence:
    """Tests for storing built snapshots."""

    def test_snapshot_is_stored(self, project, tmp_path):
        """Test that a configured store receives the snapshot."""
        store = FileSnapshotStore(tmp_path / "store")

        result = SnapshotBuilder(store=store).build(project, context=BuildContext(clock=_fixed_clock))

        assert result.stored_at is not None
        assert store.latest() == result.snapshot

    def test_persist_false_skips_store(self, project, tmp_path):
        """Test that persist=False leaves the store untouched."""
        store = FileSnapshotStore(tmp_path / "store")

        result = SnapshotBuilder(store=store).build(project, persist=False)

        assert result.stored_at is None
        assert store.latest() is None
