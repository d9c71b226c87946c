"""Tests for the gate CLI.

Uses typer.testing.CliRunner.  Most tests patch ``GatePipeline`` in
``codesonar_gate.cli.app`` so that no hub is contacted; the end-to-end
test instead routes the pipeline's own client through ``FakeHub``.
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from conftest import HUB, FakeHub, make_data
from typer.testing import CliRunner

from codesonar_gate.cli.app import EXIT_ERROR, app, console
from codesonar_gate.errors import AnalysisNotFoundError
from codesonar_gate.models.outcome import BuildOutcome, BuildResult, ConditionVerdict
from codesonar_gate.store import OutcomeStore, load_outcome

runner = CliRunner()

_JOB = """\
[hub]
hub_address = "hub.example"
hub_port = 7340
project_name = "firmware"

[[conditions]]
kind = "redAlerts"
alert_limit = 1
warranted_result = "FAILURE"

[[conditions]]
kind = "warningCountIncreaseNewOnly"
percentage = 5.0
"""

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("CODESONAR_OUTCOME_DIR", str(tmp_path / "outcomes"))
    monkeypatch.delenv("BUILD_TAG", raising=False)
    monkeypatch.setattr(console, "width", 200)


@pytest.fixture
def job_file(tmp_path: Path) -> Path:
    path = tmp_path / "gate.toml"
    path.write_text(_JOB, encoding="utf-8")
    return path


@pytest.fixture
def log_file(tmp_path: Path) -> Path:
    path = tmp_path / "build.log"
    path.write_text(f"compiling...\nResults: {HUB}/analysis/42.html\n", encoding="utf-8")
    return path


def _outcome(result: BuildResult, build_id: str = "b-1") -> BuildOutcome:
    outcome = BuildOutcome(build_id=build_id, data=make_data(active_scores=[10] * 40, new_scores=[10] * 4))
    outcome.record(ConditionVerdict(condition="Red alerts", result=BuildResult.SUCCESS, description="threshold=1, count=0"))
    outcome.record(ConditionVerdict(condition="Warning count increase: new only", result=result, description="details"))
    return outcome


def _evaluate(job_file: Path, log_file: Path, *extra: str):  # noqa: ANN202
    return runner.invoke(app, ["evaluate", "--job", str(job_file), "--log", str(log_file), *extra])


# ---------------------------------------------------------------------------
# evaluate
# ---------------------------------------------------------------------------


class TestEvaluateExitCodes:
    @pytest.mark.parametrize(
        ("result", "exit_code"),
        [
            (BuildResult.SUCCESS, 0),
            (BuildResult.UNSTABLE, 1),
            (BuildResult.FAILURE, 2),
        ],
    )
    def test_exit_code_follows_result(
        self, job_file: Path, log_file: Path, result: BuildResult, exit_code: int
    ) -> None:
        with patch("codesonar_gate.cli.app.GatePipeline") as mock_cls:
            mock_cls.return_value.run.return_value = _outcome(result)
            outcome = _evaluate(job_file, log_file, "--no-store")

        assert outcome.exit_code == exit_code
        assert "Warning count increase: new only" in outcome.output

    def test_pipeline_error_exits_3(self, job_file: Path, log_file: Path) -> None:
        with patch("codesonar_gate.cli.app.GatePipeline") as mock_cls:
            mock_cls.return_value.run.side_effect = AnalysisNotFoundError("No analysis found for project 'firmware'.")
            result = _evaluate(job_file, log_file)

        assert result.exit_code == EXIT_ERROR
        assert "No analysis found" in result.output

    def test_unexpected_error_exits_3(self, job_file: Path, log_file: Path, tmp_path: Path) -> None:
        with patch("codesonar_gate.cli.app.GatePipeline") as mock_cls:
            mock_cls.return_value.run.side_effect = OverflowError("boom")
            result = _evaluate(job_file, log_file, "--no-store")

        assert result.exit_code == EXIT_ERROR
        assert "OverflowError: boom" in result.output
        assert not (tmp_path / "outcomes").exists()

    def test_invalid_job_exits_3(self, tmp_path: Path, log_file: Path) -> None:
        bad = tmp_path / "bad.toml"
        bad.write_text('[hub]\nhub_port = 7340\nproject_name = "p"\n', encoding="utf-8")
        with patch("codesonar_gate.cli.app.GatePipeline") as mock_cls:
            result = _evaluate(bad, log_file)

        assert result.exit_code == EXIT_ERROR
        assert "Hub address cannot be empty" in result.output
        mock_cls.assert_not_called()

    def test_unreadable_log_exits_3(self, job_file: Path, tmp_path: Path) -> None:
        result = _evaluate(job_file, tmp_path / "missing.log")
        assert result.exit_code == EXIT_ERROR
        assert "Cannot read build log" in result.output


class TestEvaluatePersistence:
    def test_outcome_stored_and_written(self, job_file: Path, log_file: Path, tmp_path: Path) -> None:
        output = tmp_path / "out.json"
        with patch("codesonar_gate.cli.app.GatePipeline") as mock_cls:
            mock_cls.return_value.run.return_value = _outcome(BuildResult.UNSTABLE, build_id="b-9")
            result = _evaluate(job_file, log_file, "--build-id", "b-9", "--output", str(output))

        assert result.exit_code == 1
        assert (tmp_path / "outcomes" / "b-9.json").exists()
        assert json.loads(output.read_text(encoding="utf-8"))["result"] == "UNSTABLE"
        assert mock_cls.return_value.run.call_args.kwargs["build_id"] == "b-9"

    def test_no_store(self, job_file: Path, log_file: Path, tmp_path: Path) -> None:
        with patch("codesonar_gate.cli.app.GatePipeline") as mock_cls:
            mock_cls.return_value.run.return_value = _outcome(BuildResult.SUCCESS)
            _evaluate(job_file, log_file, "--no-store")

        assert not (tmp_path / "outcomes").exists()

    def test_latest_stored_outcome_is_baseline(self, job_file: Path, log_file: Path, tmp_path: Path) -> None:
        OutcomeStore(tmp_path / "outcomes").save(_outcome(BuildResult.SUCCESS, build_id="b-prev"))
        with patch("codesonar_gate.cli.app.GatePipeline") as mock_cls:
            mock_cls.return_value.run.return_value = _outcome(BuildResult.SUCCESS, build_id="b-next")
            _evaluate(job_file, log_file)

        previous = mock_cls.return_value.run.call_args.args[1]
        assert previous is not None
        assert previous.build_id == "b-prev"

    def test_explicit_previous(self, job_file: Path, log_file: Path, tmp_path: Path) -> None:
        baseline = OutcomeStore(tmp_path / "elsewhere").save(_outcome(BuildResult.SUCCESS, build_id="pinned"))
        with patch("codesonar_gate.cli.app.GatePipeline") as mock_cls:
            mock_cls.return_value.run.return_value = _outcome(BuildResult.SUCCESS)
            _evaluate(job_file, log_file, "--previous", str(baseline), "--no-store")

        assert mock_cls.return_value.run.call_args.args[1].build_id == "pinned"

    def test_json_output(self, job_file: Path, log_file: Path) -> None:
        with patch("codesonar_gate.cli.app.GatePipeline") as mock_cls:
            mock_cls.return_value.run.return_value = _outcome(BuildResult.FAILURE)
            result = _evaluate(job_file, log_file, "--json", "--no-store")

        assert result.exit_code == 2
        assert '"result": "FAILURE"' in result.stdout


class TestEvaluateEndToEnd:
    def test_against_fake_hub(self, job_file: Path, log_file: Path, fake_hub: FakeHub) -> None:
        fake_hub.serve_analysis("42", active_scores=[10] * 40, new_scores=[10] * 4, alerts=["red"])

        with patch("codesonar_gate.engine.HubClient", side_effect=lambda **_: fake_hub.client()):
            result = _evaluate(job_file, log_file, "--build-id", "e2e")

        assert result.exit_code == 1
        stored = load_outcome(Path("outcomes") / "e2e.json")
        assert stored is not None
        assert stored.condition_names_and_results == [
            ("Red alerts", "SUCCESS"),
            ("Warning count increase: new only", "UNSTABLE"),
        ]


# ---------------------------------------------------------------------------
# validate
# ---------------------------------------------------------------------------


class TestValidate:
    def test_valid_job(self, job_file: Path) -> None:
        result = runner.invoke(app, ["validate", "--job", str(job_file)])
        assert result.exit_code == 0
        assert "Configuration is valid." in result.output

    def test_invalid_job_lists_fields(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.toml"
        path.write_text('[hub]\nhub_port = 7340\n\n[[conditions]]\nkind = "moonPhase"\n', encoding="utf-8")
        result = runner.invoke(app, ["validate", "--job", str(path)])
        assert result.exit_code == EXIT_ERROR
        assert "hub.hub_address" in result.output
        assert "conditions[0]" in result.output

    def test_missing_file(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["validate", "--job", str(tmp_path / "none.toml")])
        assert result.exit_code == EXIT_ERROR
        assert "not found" in result.output


# ---------------------------------------------------------------------------
# show
# ---------------------------------------------------------------------------


class TestShow:
    def test_renders_outcome(self, tmp_path: Path) -> None:
        path = OutcomeStore(tmp_path).save(_outcome(BuildResult.UNSTABLE, build_id="b-3"))
        result = runner.invoke(app, ["show", str(path)])
        assert result.exit_code == 0
        assert "CodeSonar Gate" in result.output
        assert "b-3" in result.output
        assert "Red alerts" in result.output

    def test_json(self, tmp_path: Path) -> None:
        path = OutcomeStore(tmp_path).save(_outcome(BuildResult.UNSTABLE, build_id="b-3"))
        result = runner.invoke(app, ["show", str(path), "--json"])
        assert '"build_id": "b-3"' in result.stdout

    def test_outcome_without_conditions(self, tmp_path: Path) -> None:
        path = OutcomeStore(tmp_path).save(BuildOutcome(build_id="bare"))
        result = runner.invoke(app, ["show", str(path)])
        assert result.exit_code == 0
        assert "No conditions configured." in result.output

    def test_missing_file(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["show", str(tmp_path / "none.json")])
        assert result.exit_code == EXIT_ERROR
