"""
CLI tests using Typer's CliRunner.

Outputs are written to files with -o/--output-json so assertions do not
depend on how the runner interleaves log output.

Example usage:
    pytest tests/test_cli.py -v
"""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from cli.main import app as cli_app
from core.verify import POLICY_ERROR
from tests.helpers import FailingPatchProvider, make_result, make_spec

runner = CliRunner()

BLOCKED = dict(evidence_type="ab", input_schema=[], output_metrics=[])


def write_json(path: Path, data) -> Path:
    path.write_text(json.dumps(data))
    return path


@pytest.fixture
def spec_file(tmp_path):
    def _write(**overrides) -> Path:
        return write_json(tmp_path / "spec.json", make_spec(**overrides).model_dump(mode="json"))
    return _write


class TestVerifyCommand:

    def test_valid_spec(self, spec_file):
        result = runner.invoke(cli_app, ["verify", str(spec_file())])

        assert result.exit_code == 0
        assert "Pipeline verification PASSED" in result.output

    def test_blocked_spec_exits_nonzero(self, spec_file, tmp_path):
        out = tmp_path / "verification.json"

        result = runner.invoke(cli_app, ["verify", str(spec_file(**BLOCKED)), "--output-json", str(out)])

        assert result.exit_code == 1
        assert "FAILED (3 blocking gates)" in result.output
        assert json.loads(out.read_text())["is_valid"] is False

    def test_missing_file(self, tmp_path):
        result = runner.invoke(cli_app, ["verify", str(tmp_path / "nope.json")])

        assert result.exit_code == 1

    def test_invalid_spec(self, tmp_path):
        path = write_json(tmp_path / "spec.json", {"topic": "Energy"})

        result = runner.invoke(cli_app, ["verify", str(path)])

        assert result.exit_code == 1


class TestRepairCommand:

    def test_repairs_with_fallback(self, spec_file, tmp_path):
        out = tmp_path / "repaired.json"

        result = runner.invoke(cli_app, ["repair", str(spec_file(**BLOCKED)), "-o", str(out)])

        assert result.exit_code == 0
        repaired = json.loads(out.read_text())
        assert repaired["version"] == "1.1"
        assert repaired["pipeline_id"] == "pipe_test"
        assert len(repaired["repair_history"]) == 1

    def test_valid_spec_left_alone(self, spec_file, tmp_path):
        out = tmp_path / "repaired.json"

        result = runner.invoke(cli_app, ["repair", str(spec_file()), "-o", str(out)])

        assert result.exit_code == 0
        assert json.loads(out.read_text())["version"] == "1.0.0"

    def test_provider_failure_exits_nonzero(self, spec_file, tmp_path, monkeypatch):
        monkeypatch.setattr("cli.main.HttpPatchProvider.from_settings",
                            staticmethod(lambda settings=None: FailingPatchProvider()))
        out = tmp_path / "repaired.json"

        result = runner.invoke(cli_app, ["repair", str(spec_file(**BLOCKED)), "-o", str(out)])

        assert result.exit_code == 1
        assert not out.exists()


class TestSummarizeCommand:

    def test_summary_output(self, tmp_path):
        blueprint = write_json(tmp_path / "blueprint.json", {
            "id": "bp_1", "required_metrics": [{"metric_id": "m1", "unit": "kWh"}],
        })
        results = write_json(tmp_path / "results.json", {"results": [
            make_result("f1", metrics={"m1": 100}).model_dump(mode="json"),
            make_result("f2", success=False, errors=["E1"]).model_dump(mode="json"),
        ]})
        out = tmp_path / "outcome.json"

        result = runner.invoke(cli_app, ["summarize", str(blueprint), str(results), "--output-json", str(out)])

        assert result.exit_code == 0
        assert "Opinion: FAIL" in result.output
        assert "m1: 100 kWh (1 files)" in result.output
        outcome = json.loads(out.read_text())
        assert outcome["summary"]["failure_breakdown"] == {"E1": 1}

    def test_results_as_plain_list(self, tmp_path):
        blueprint = write_json(tmp_path / "blueprint.json", {"id": "bp_1"})
        results = write_json(tmp_path / "results.json", [make_result("f1").model_dump(mode="json")])

        result = runner.invoke(cli_app, ["summarize", str(blueprint), str(results)])

        assert result.exit_code == 0
        assert "Readiness score: 100.0" in result.output


class TestApproveCommand:

    def test_approves_valid_spec(self, spec_file, tmp_path):
        out = tmp_path / "approved.json"

        result = runner.invoke(cli_app, ["approve", str(spec_file()), "-o", str(out)])

        assert result.exit_code == 0
        assert json.loads(out.read_text())["approved"] is True

    def test_refuses_blocked_spec(self, spec_file, tmp_path):
        out = tmp_path / "approved.json"

        result = runner.invoke(cli_app, ["approve", str(spec_file(output_metrics=[])), "-o", str(out)])

        assert result.exit_code == 1
        assert POLICY_ERROR in result.output
        assert not out.exists()


def test_policy_command():
    result = runner.invoke(cli_app, ["policy"])

    assert result.exit_code == 0
    assert "Repair Provider: LOCAL FALLBACK" in result.output
