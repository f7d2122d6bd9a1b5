"""Tests for the toolprobe report CLI command."""

from __future__ import annotations

import json

from typer.testing import CliRunner

from toolprobe.cli.main import app
from toolprobe.models.result import EvalResult
from toolprobe.storage.log_writer import EvalLogWriter

runner = CliRunner()


def _seed(log_dir) -> None:
    writer = EvalLogWriter(log_dir)
    writer.write(EvalResult(scenario="catalog", passed=True), run_id="1")
    writer.write(EvalResult(scenario="catalog", passed=True), run_id="2")
    writer.write(EvalResult(scenario="goodwill", passed=False, failures=["x"]), run_id="3")


class TestReportCommand:
    """Test summarising eval logs."""

    def test_summary_table(self, tmp_path):
        _seed(tmp_path)

        result = runner.invoke(app, ["report", "--log-dir", str(tmp_path)])

        assert result.exit_code == 0, result.output
        assert "66.67%" in result.output
        assert "Follow-up" in result.output
        assert "goodwill" in result.output

    def test_json(self, tmp_path):
        _seed(tmp_path)

        result = runner.invoke(app, ["report", "--log-dir", str(tmp_path), "--json"])

        assert result.exit_code == 0
        assert json.loads(result.stdout) == {
            "totalRuns": 3,
            "passedRuns": 2,
            "failedRuns": 1,
            "uniqueScenarios": 2,
            "passRate": 66.67,
        }

    def test_no_logs(self, tmp_path):
        result = runner.invoke(app, ["report", "--log-dir", str(tmp_path / "missing")])
        assert result.exit_code == 1
        assert "No eval logs found" in result.output

    def test_default_log_dir_from_config(self, tmp_path, monkeypatch):
        (tmp_path / "toolprobe.yaml").write_text("log_dir: out\n", encoding="utf-8")
        _seed(tmp_path / "out")
        monkeypatch.chdir(tmp_path)

        result = runner.invoke(app, ["report", "--json"])

        assert result.exit_code == 0
        assert json.loads(result.stdout)["totalRuns"] == 3
