"""Integration tests for the ScriptGuard CLI.

Runs the full check pipeline against fixture scripts and rule files.
"""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from scriptguard.cli import app
from scriptguard.scanner.coordinator import analyze_script
from scriptguard.policy.rule_engine import load_rules

runner = CliRunner()
FIXTURES = Path(__file__).parent / "fixtures"
SCRIPTS = FIXTURES / "scripts"
RULES = FIXTURES / "rules"


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch, tmp_path: Path):
    """Keep the user's config file and environment out of the tests."""
    monkeypatch.setattr("scriptguard.config.CONFIG_FILE", tmp_path / "absent.yaml")
    monkeypatch.delenv("SCRIPTGUARD_RULES", raising=False)
    monkeypatch.delenv("SCRIPTGUARD_BLOCK", raising=False)


class TestWarnRun:
    """A warn rule reports and the run completes."""

    def test_eval_warns_once(self):
        result = runner.invoke(
            app, ["check", str(SCRIPTS / "get_element.js"), str(RULES / "eval_warn.json"), "--json"]
        )
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert len(data["violations"]) == 1
        violation = data["violations"][0]
        assert violation["action"] == "warn"
        assert violation["node_type"] == "CallExpression"
        assert data["failed"] is False

    def test_console_output_sections_in_order(self):
        result = runner.invoke(
            app, ["check", str(SCRIPTS / "get_element.js"), str(RULES / "eval_warn.json")]
        )
        assert result.exit_code == 0
        out = result.stdout
        positions = [
            out.index("Unknowns:"),
            out.index("Nodes:"),
            out.index("Variables:"),
            out.index("Rules:"),
            out.index("Warning:"),
            out.index("Basic Blocks:"),
            out.index("Basic block #0:"),
            out.index("Dependency graph:"),
        ]
        assert positions == sorted(positions)

    def test_variables_in_report(self):
        result = runner.invoke(
            app, ["check", str(SCRIPTS / "get_element.js"), str(RULES / "eval_warn.json"), "--json"]
        )
        data = json.loads(result.stdout)
        assert data["variables"] == {"b": {"Properties": [""]}}
        assert data["nodes"][0]["Type"] == "VariableStatement"


class TestFailRun:
    """A fail rule stops the run with a non-zero status."""

    def test_fail_exit_code(self):
        result = runner.invoke(
            app, ["check", str(SCRIPTS / "missing_property.js"), str(RULES / "strict.json"), "--json"]
        )
        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["failed"] is True
        assert data["failure"]["rule_type"] == "PropertyDoesNotExist"
        assert data["failure"]["node_id"] == "missing"

    def test_later_nodes_are_skipped(self):
        report = analyze_script(SCRIPTS / "missing_property.js", load_rules(RULES / "strict.json"))
        # eval(b) comes after the failing read and is never checked
        assert [v.action for v in report.violations] == ["fail"]
        assert report.basic_blocks == {}

    def test_fail_console_output(self):
        result = runner.invoke(
            app, ["check", str(SCRIPTS / "missing_property.js"), str(RULES / "strict.json")]
        )
        assert result.exit_code == 1
        assert "ANALYSIS STOPPED" in result.stdout
        assert "Basic Blocks:" not in result.stdout


class TestInputErrors:
    """Unreadable or malformed inputs are fatal."""

    def test_missing_rule_file(self, tmp_path: Path):
        result = runner.invoke(
            app, ["check", str(SCRIPTS / "get_element.js"), str(tmp_path / "nope.json")]
        )
        assert result.exit_code == 2

    def test_malformed_rule_file(self):
        result = runner.invoke(
            app, ["check", str(SCRIPTS / "get_element.js"), str(RULES / "malformed.json")]
        )
        assert result.exit_code == 2

    def test_tree_printed_before_rule_file_error(self):
        result = runner.invoke(
            app, ["check", str(SCRIPTS / "get_element.js"), str(RULES / "malformed.json")]
        )
        out = result.stdout
        assert out.index("Nodes:") < out.index("Variables:") < out.index("Error:")
        assert "Rules:" not in out

    def test_missing_script(self, tmp_path: Path):
        result = runner.invoke(
            app, ["check", str(tmp_path / "nope.js"), str(RULES / "eval_warn.json")]
        )
        assert result.exit_code == 2

    def test_parse_failure(self):
        result = runner.invoke(
            app, ["check", str(SCRIPTS / "broken.js"), str(RULES / "eval_warn.json")]
        )
        assert result.exit_code == 2


class TestBlocks:
    """Basic blocks and the identifier dump."""

    def test_block_table_and_dump(self, tmp_path: Path):
        rules = tmp_path / "rules.json"
        rules.write_text("[]")
        result = runner.invoke(app, ["check", str(SCRIPTS / "functions.js"), str(rules), "--json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert sorted(data["basic_blocks"]) == ["0", "1"]
        handler = data["basic_blocks"]["0"]
        assert [p["ID"] for p in handler["Parameters"]] == ["event", "options"]
        assert len(handler["Statements"]) == 4
        dump = data["block_identifiers"]
        assert dump[0]["ids"] == ["", "target", "target", "event"]
        graph = data["dependency_graph"]
        labels = {n["label"] for n in graph["nodes"] if n["kind"] == "identifier"}
        assert labels == {"event", "options", "count"}
        assert graph["edges"][0] == [0, 1]

    def test_select_block(self, tmp_path: Path):
        rules = tmp_path / "rules.json"
        rules.write_text("[]")
        result = runner.invoke(
            app, ["check", str(SCRIPTS / "functions.js"), str(rules), "--json", "--block", "1"]
        )
        data = json.loads(result.stdout)
        assert data["block"] == 1
        assert data["block_identifiers"][0]["ids"] == ["", "html", "innerHTML", "node"]


class TestDefaults:
    def test_bundled_rules_used_without_rule_file(self):
        result = runner.invoke(app, ["check", str(SCRIPTS / "get_element.js"), "--json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["rules_file"].endswith("default_rules.json")
        assert any(v["rule_id"] == "eval" for v in data["violations"])

    def test_output_file_written(self, tmp_path: Path):
        out = tmp_path / "report.json"
        result = runner.invoke(
            app,
            ["check", str(SCRIPTS / "get_element.js"), str(RULES / "eval_warn.json"), "-q", "-o", str(out)],
        )
        assert result.exit_code == 0
        assert json.loads(out.read_text())["violations"][0]["rule_id"] == "eval"

    def test_version(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "scriptguard" in result.stdout
