"""
Tests for the firmo-coverage command-line interface.
"""

import json

import pytest
import yaml
from typer.testing import CliRunner

from firmo_coverage import __version__
from firmo_coverage.cli import app

runner = CliRunner()


@pytest.fixture
def workdir(tmp_path, monkeypatch, calc_source):
    """Temporary project with a Lua file and a recorded trace."""
    monkeypatch.chdir(tmp_path)
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "calc.lua").write_text(calc_source)
    trace = {
        "files": ["src/calc.lua"],
        "executions": {"src/calc.lua": {1: 1, 2: 1, 5: 1, 6: 1}},
        "covered": {"src/calc.lua": [5]},
    }
    (tmp_path / "trace.yml").write_text(yaml.safe_dump(trace))
    return tmp_path


class TestVersion:
    """Test --version."""

    def test_version(self):
        """Test the version is printed."""
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout


class TestClassify:
    """Test the classify command."""

    def test_json_output(self, workdir):
        """Test JSON output lists kinds, functions and conditions."""
        result = runner.invoke(app, ["classify", "src/calc.lua", "--format", "json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["path"] == "src/calc.lua"
        assert [line["kind"] for line in data["lines"]] == [
            "block_start",
            "executable",
            "block_end",
            "non_executable",
            "executable",
            "block_start",
            "executable",
            "block_end",
        ]
        assert data["functions"] == [{"id": "add", "start": 1, "end": 3}]
        assert data["blocks"] == ["function_body:1-3", "branch:6-8"]
        assert data["conditions"] == [{"line": 6, "index": 0, "expression": "total > 2"}]

    def test_console_output(self, workdir):
        """Test the table view."""
        result = runner.invoke(app, ["classify", "src/calc.lua"])
        assert result.exit_code == 0
        assert "block_start" in result.stdout
        assert "5 executable of 8 lines" in result.stdout

    def test_missing_file(self, workdir):
        """Test a missing file exits with an error."""
        result = runner.invoke(app, ["classify", "nope.lua"])
        assert result.exit_code == 1
        assert "File not found" in result.stdout

    def test_unknown_format(self, workdir):
        """Test an unknown output format exits with an error."""
        result = runner.invoke(app, ["classify", "src/calc.lua", "--format", "xml"])
        assert result.exit_code == 1


class TestReport:
    """Test the report command."""

    def test_text_report_to_stdout(self, workdir):
        """Test the default text report."""
        result = runner.invoke(app, ["report", "trace.yml"])
        assert result.exit_code == 0
        assert "Coverage report" in result.stdout
        assert "5 + 1 | local total = add(1, 2)" in result.stdout

    def test_json_report(self, workdir):
        """Test --format json."""
        result = runner.invoke(app, ["report", "trace.yml", "--format", "json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["executed_lines"] == 4
        assert data["covered_lines"] == 1

    def test_output_file(self, workdir):
        """Test --output writes the report and prints a summary."""
        result = runner.invoke(
            app, ["report", "trace.yml", "--format", "lcov", "--output", "out/coverage.info"]
        )
        assert result.exit_code == 0
        content = (workdir / "out" / "coverage.info").read_text()
        assert "SF:src/calc.lua" in content
        assert "Report written" in result.stdout

    def test_fail_under(self, workdir):
        """Test --fail-under exits 1 when coverage is too low."""
        result = runner.invoke(app, ["report", "trace.yml", "--fail-under", "50"])
        assert result.exit_code == 1
        assert "below" in result.stdout

    def test_threshold_met(self, workdir):
        """Test --fail-under passes when coverage is high enough."""
        result = runner.invoke(app, ["report", "trace.yml", "--fail-under", "20"])
        assert result.exit_code == 0

    def test_config_file(self, workdir):
        """Test --config applies path rules and the default format."""
        config = workdir / "cov.yml"
        config.write_text("coverage:\n  exclude: ['src/**']\n  report_format: csv\n")
        result = runner.invoke(app, ["report", "trace.yml", "--config", str(config)])
        assert result.exit_code == 0
        assert result.stdout.strip() == "path,line,kind,status,execution_count,covered"

    def test_discovered_config(self, workdir):
        """Test the default config file in the working directory is used."""
        (workdir / ".firmo-coverage.yml").write_text("coverage:\n  threshold: 90\n")
        result = runner.invoke(app, ["report", "trace.yml"])
        assert result.exit_code == 1

    def test_invalid_trace(self, workdir):
        """Test a malformed trace exits with an error."""
        (workdir / "bad.yml").write_text("- just\n- a list\n")
        result = runner.invoke(app, ["report", "bad.yml"])
        assert result.exit_code == 1
        assert "Error" in result.stdout

    def test_missing_trace(self, workdir):
        """Test a missing trace exits with an error."""
        result = runner.invoke(app, ["report", "missing.yml"])
        assert result.exit_code == 1

    def test_unknown_format(self, workdir):
        """Test an unknown report format exits with an error."""
        result = runner.invoke(app, ["report", "trace.yml", "--format", "pdf"])
        assert result.exit_code == 1
        assert "Unknown report format" in result.stdout

    def test_list_formats(self, workdir):
        """Test --list-formats."""
        result = runner.invoke(app, ["report", "trace.yml", "--list-formats"])
        assert result.exit_code == 0
        for name in ("text", "json", "csv", "lcov", "cobertura"):
            assert name in result.stdout


class TestInit:
    """Test the init command."""

    def test_writes_sample(self, workdir):
        """Test the sample config is written and loads."""
        result = runner.invoke(app, ["init"])
        assert result.exit_code == 0
        data = yaml.safe_load((workdir / ".firmo-coverage.yml").read_text())
        assert data["coverage"]["threshold"] == 80.0

    def test_refuses_overwrite(self, workdir):
        """Test an existing file is kept unless --force is given."""
        target = workdir / "cfg.yml"
        target.write_text("keep: me\n")
        result = runner.invoke(app, ["init", str(target)])
        assert result.exit_code == 1
        assert target.read_text() == "keep: me\n"

        result = runner.invoke(app, ["init", str(target), "--force"])
        assert result.exit_code == 0
        assert "coverage:" in target.read_text()
