"""
Tests for the command-line interface.

Runs the typer app in-process with CliRunner against temporary projects.
"""

import json

import pytest
from typer.testing import CliRunner

from cli.main import app
from tests.fixtures import PROCESS_DOC, PROCESS_V1, PROCESS_V2_REQUIRED, write_tree

runner = CliRunner()


def _json(output):
    return json.loads(output[output.index("{"):])


@pytest.fixture
def project(tmp_path):
    """Create a project with one documented function."""
    return write_tree(
        tmp_path / "project",
        {"src/lib.py": PROCESS_V1, "docs/api.md": PROCESS_DOC},
    )


@pytest.fixture
def changed_project(project):
    """A project with a stored baseline and a breaking change since."""
    result = runner.invoke(app, ["snapshot", str(project)])
    assert result.exit_code == 0
    write_tree(project, {"src/lib.py": PROCESS_V2_REQUIRED})
    return project


class TestGeneral:
    """Tests for global options."""

    def test_version(self):
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_no_command_shows_help(self):
        result = runner.invoke(app, [])

        assert result.exit_code == 0
        assert "snapshot" in result.output

    def test_invalid_config_exits_2(self, project):
        """Test that a broken .docdrift.yml is a configuration error."""
        (project / ".docdrift.yml").write_text("workers: 0\n")

        result = runner.invoke(app, ["detect", str(project)])

        assert result.exit_code == 2
        assert "Config error" in result.output

    def test_log_file(self, project, tmp_path):
        """Test that --log-file receives the pipeline's records."""
        log_file = tmp_path / "logs" / "docdrift.log"

        result = runner.invoke(app, ["--log-file", str(log_file), "snapshot", str(project)])

        assert result.exit_code == 0
        assert "docdrift.snapshot: Snapshot built: 1 files, 1 docs" in log_file.read_text(encoding="utf-8")


class TestSnapshotCommand:
    """Tests for `docdrift snapshot`."""

    def test_snapshot(self, project):
        """Test that a snapshot is built and stored."""
        result = runner.invoke(app, ["snapshot", str(project)])

        assert result.exit_code == 0
        assert "Snapshot Complete" in result.output
        assert list((project / ".docdrift" / "snapshots").glob("snapshot-*.json"))

    def test_missing_project(self, tmp_path):
        """Test that a missing path is rejected."""
        result = runner.invoke(app, ["snapshot", str(tmp_path / "missing")])

        assert result.exit_code == 2

    def test_docs_root_is_a_file(self, project, tmp_path):
        """Test that a docs root which is a file is a root access error."""
        stray = tmp_path / "notes.md"
        stray.write_text(PROCESS_DOC)

        result = runner.invoke(app, ["snapshot", str(project), "--docs", str(stray)])

        assert result.exit_code == 2


class TestDetectCommand:
    """Tests for `docdrift detect`."""

    def test_first_run_is_baseline(self, project):
        result = runner.invoke(app, ["detect", str(project)])

        assert result.exit_code == 0
        assert "Baseline snapshot stored" in result.output

    def test_no_changes(self, project):
        runner.invoke(app, ["detect", str(project)])

        result = runner.invoke(app, ["detect", str(project)])

        assert result.exit_code == 0
        assert "No structural changes" in result.output

    def test_drift_table(self, changed_project):
        """Test the human-readable results table."""
        result = runner.invoke(app, ["detect", str(changed_project), "--prioritize"])

        assert result.exit_code == 0
        assert "Documentation Drift" in result.output
        assert "src/lib.py" in result.output

    def test_json_output(self, changed_project):
        """Test the machine-readable output, with and without scores."""
        result = runner.invoke(app, ["detect", str(changed_project), "--json", "-p"])

        assert result.exit_code == 0
        payload = _json(result.output)
        assert payload["previous"] is not None
        assert payload["failures"] == []
        entry = payload["results"][0]
        assert entry["path"] == "src/lib.py"
        assert entry["severity"] == "critical"
        assert entry["drifts"][0]["type"] == "breaking"
        assert entry["priority"]["recommendation"] == "high"

    def test_fail_on_reached(self, changed_project):
        """Test exit code 1 when a result reaches the --fail-on tier."""
        result = runner.invoke(app, ["detect", str(changed_project), "--fail-on", "HIGH"])

        assert result.exit_code == 1

    def test_fail_on_not_reached(self, changed_project):
        result = runner.invoke(app, ["detect", str(changed_project), "--fail-on", "critical"])

        assert result.exit_code == 0


class TestExplainCommand:
    """Tests for `docdrift explain`."""

    def test_needs_two_snapshots(self, project):
        result = runner.invoke(app, ["explain", "src/lib.py", str(project)])

        assert result.exit_code == 1
        assert "Need two snapshots" in result.output

    def test_explain_changed_file(self, changed_project):
        """Test the detailed breakdown for a drifting file."""
        runner.invoke(app, ["snapshot", str(changed_project)])

        result = runner.invoke(app, ["explain", "src/lib.py", str(changed_project)])

        assert result.exit_code == 0
        assert "CRITICAL" in result.output
        assert "Priority factors" in result.output
        assert "added required" in result.output

    def test_explain_unknown_file(self, changed_project):
        runner.invoke(app, ["snapshot", str(changed_project)])

        result = runner.invoke(app, ["explain", "src/nope.py", str(changed_project)])

        assert result.exit_code == 1

    def test_explain_unchanged_file(self, project):
        """Test that a file present in both snapshots without changes is fine."""
        write_tree(project, {"src/other.py": PROCESS_V1})
        runner.invoke(app, ["snapshot", str(project)])
        write_tree(project, {"src/lib.py": PROCESS_V2_REQUIRED})
        runner.invoke(app, ["snapshot", str(project)])

        result = runner.invoke(app, ["explain", "src/other.py", str(project)])

        assert result.exit_code == 0
        assert "No structural changes" in result.output


class TestHistoryCommand:
    """Tests for `docdrift history`."""

    def test_empty_history(self, project):
        result = runner.invoke(app, ["history", str(project)])

        assert result.exit_code == 0
        assert "No snapshots stored" in result.output

    def test_history_lists_snapshots(self, changed_project):
        runner.invoke(app, ["snapshot", str(changed_project)])

        result = runner.invoke(app, ["history", str(changed_project)])

        assert result.exit_code == 0
        assert "Snapshot History" in result.output
