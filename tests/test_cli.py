"""Tests for the hopsconsole CLI."""

import json

import pytest
from click.testing import CliRunner

from hopsconsole.cli import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def event_log_file(tmp_path, event_log):
    path = tmp_path / "events.json"
    path.write_text(json.dumps(event_log))
    return path


@pytest.fixture
def tasks_file(tmp_path, tasks_payload):
    path = tmp_path / "tasks.json"
    path.write_text(json.dumps(tasks_payload))
    return path


class TestEvents:

    def test_batch_compact(self, runner, event_log_file):
        result = runner.invoke(cli, ["events", str(event_log_file)])
        assert result.exit_code == 0
        assert "# Events since" in result.output
        lines = [l for l in result.output.splitlines() if l.startswith("[")]
        assert lines[0].endswith("zzz999")
        assert "[task.deploy] [hiphops] def456" in result.output
        assert "done=false" in result.output

    def test_batch_json(self, runner, event_log_file):
        result = runner.invoke(cli, ["events", str(event_log_file), "-f", "json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert [r["eventId"] for r in data["rows"]] == ["zzz999", "abc123", "def456"]
        assert data["rows"][2]["done"] == "false"

    def test_list_from_stdin(self, runner, bare_envelope):
        result = runner.invoke(cli, ["events", "-", "-f", "json"],
                               input=json.dumps([bare_envelope]))
        assert result.exit_code == 0
        assert json.loads(result.output)[0]["source"] == "github"

    def test_single_envelope(self, runner, bare_envelope):
        result = runner.invoke(cli, ["events", "-"], input=json.dumps(bare_envelope))
        assert result.exit_code == 0
        assert "[pr_merged] [github] abc123" in result.output

    def test_invalid_payload(self, runner):
        result = runner.invoke(cli, ["events", "-"], input="42")
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_unparseable_json(self, runner):
        result = runner.invoke(cli, ["events", "-"], input="{not json")
        assert result.exit_code == 1
        assert "Cannot parse JSON payload" in result.output

    def test_locale_option(self, runner, event_log_file):
        result = runner.invoke(cli, ["--locale", "de-DE", "events", str(event_log_file)])
        assert result.exit_code == 0
        assert "# Events since vor " in result.output


class TestTasks:

    def test_list(self, runner, tasks_file):
        result = runner.invoke(cli, ["tasks", str(tasks_file)])
        assert result.exit_code == 0
        assert "Deploy App (deploy_app)" in result.output
        assert "Restart Service (restart)" in result.output

    def test_list_json(self, runner, tasks_file):
        result = runner.invoke(cli, ["tasks", str(tasks_file), "-f", "json"])
        data = json.loads(result.output)
        assert data[1] == {"display_name": "Restart Service", "name": "restart", "emoji": ""}

    def test_invalid_task_payload(self, runner):
        result = runner.invoke(cli, ["tasks", "-"], input=json.dumps({"name": "x"}))
        assert result.exit_code == 1
        assert "Task list must be a list" in result.output

    def test_describe(self, runner, tasks_file):
        result = runner.invoke(cli, ["task", str(tasks_file), "deploy_app"])
        assert result.exit_code == 0
        assert "- replicas <number> [REQUIRED]" in result.output

    def test_describe_missing(self, runner, tasks_file):
        result = runner.invoke(cli, ["task", str(tasks_file), "nope"])
        assert result.exit_code == 1
        assert "Task not found" in result.output


class TestRun:

    def test_accepted(self, runner, tasks_file):
        result = runner.invoke(cli, [
            "run", str(tasks_file), "deploy_app",
            "-P", "version=1.2.3", "-P", "replicas=3", "-P", "dry_run=true",
            "-f", "json",
        ])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["errors"] == {}
        assert data["message"] == "OK"
        assert len(data["sequence_id"]) == 40

    def test_rejected_reports_all_errors(self, runner, tasks_file):
        result = runner.invoke(cli, [
            "run", str(tasks_file), "deploy_app", "-P", "dry_run=maybe", "-f", "json",
        ])
        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["errors"] == {
            "version": ["Required"],
            "replicas": ["Required"],
            "dry_run": ["Should be a boolean"],
        }
        assert data["sequence_id"] == ""

    def test_string_param_keeps_numeric_text(self, runner, tasks_file):
        result = runner.invoke(cli, [
            "run", str(tasks_file), "deploy_app",
            "-P", "version=2", "-P", "replicas=3", "-f", "json",
        ])
        assert result.exit_code == 0
        assert json.loads(result.output)["errors"] == {}

    def test_text_param_keeps_json_looking_text(self, runner, tasks_file):
        result = runner.invoke(cli, [
            "run", str(tasks_file), "deploy_app",
            "-P", "version=1", "-P", "replicas=1", "-P", "notes=true",
        ])
        assert result.exit_code == 0

    def test_number_param_rejects_non_numeric_text(self, runner, tasks_file):
        result = runner.invoke(cli, [
            "run", str(tasks_file), "deploy_app",
            "-P", "version=1", "-P", "replicas=many", "-f", "json",
        ])
        assert result.exit_code == 1
        assert json.loads(result.output)["errors"] == {"replicas": ["Should be a number"]}

    def test_input_json(self, runner, tasks_file):
        result = runner.invoke(cli, [
            "run", str(tasks_file), "deploy_app",
            "--input", json.dumps({"version": "1", "replicas": 1}),
        ])
        assert result.exit_code == 0
        assert result.output.startswith("OK")

    def test_bad_param_syntax(self, runner, tasks_file):
        result = runner.invoke(cli, ["run", str(tasks_file), "deploy_app", "-P", "version"])
        assert result.exit_code == 1
        assert "key=value" in result.output

    def test_input_must_be_object(self, runner, tasks_file):
        result = runner.invoke(cli, ["run", str(tasks_file), "deploy_app", "--input", "[1]"])
        assert result.exit_code == 1
        assert "JSON object" in result.output
