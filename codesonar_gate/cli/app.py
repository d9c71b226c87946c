"""Gate CLI application -- Typer-based build-step interface.

Human-readable output goes to *stderr* via Rich; ``--json`` emits the
outcome document on *stdout* so that pipelines can compose cleanly.

Exit codes: 0 SUCCESS, 1 UNSTABLE, 2 FAILURE, 3 configuration or
pipeline error.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import typer
from rich.console import Console

from codesonar_gate.cli.display import display_outcome, display_validation
from codesonar_gate.config import load_settings
from codesonar_gate.engine import GatePipeline
from codesonar_gate.errors import CodeSonarGateError, ConfigError
from codesonar_gate.hub.retry import RetryConfig
from codesonar_gate.job import load_job, read_job_file, validate_job
from codesonar_gate.logging_setup import configure_logging
from codesonar_gate.models.outcome import BuildOutcome, BuildResult
from codesonar_gate.store import OutcomeStore, load_outcome

app = typer.Typer(
    name="codesonar-gate",
    help="Evaluate CodeSonar hub analyses against build conditions.",
    no_args_is_help=True,
)
console = Console(stderr=True)
logger = logging.getLogger(__name__)

EXIT_CODES: dict[BuildResult, int] = {
    BuildResult.SUCCESS: 0,
    BuildResult.UNSTABLE: 1,
    BuildResult.FAILURE: 2,
}
EXIT_ERROR = 3


def _print_error(message: str) -> None:
    # Gate errors carry a literal "[CodeSonar]" prefix, which is not markup.
    console.print(message, style="red", markup=False, highlight=False)


def _read_log(path: Path) -> list[str]:
    try:
        return path.read_text(encoding="utf-8", errors="replace").splitlines()
    except OSError as exc:
        _print_error(f"Cannot read build log {path}: {exc}")
        raise typer.Exit(code=EXIT_ERROR) from exc


def _emit(outcome: BuildOutcome, json_output: bool) -> None:
    if json_output:
        sys.stdout.write(outcome.model_dump_json(indent=2) + "\n")
    else:
        display_outcome(console, outcome)


@app.command("evaluate")
def evaluate_command(
    job_path: Path = typer.Option(..., "--job", "-j", help="Path to the TOML job file."),
    log_path: Path = typer.Option(..., "--log", "-l", help="Captured build log to scan for an analysis URL."),
    build_id: str = typer.Option(
        "",
        "--build-id",
        help="Identifier of the build being gated.",
        envvar="BUILD_TAG",
    ),
    previous_path: Path | None = typer.Option(
        None,
        "--previous",
        help="Outcome JSON of the baseline build (defaults to the latest stored outcome).",
    ),
    output_path: Path | None = typer.Option(None, "--output", "-o", help="Also write the outcome JSON here."),
    store_dir: Path | None = typer.Option(None, "--store-dir", help="Directory of stored outcomes."),
    no_store: bool = typer.Option(False, "--no-store", help="Do not persist the outcome."),
    retries: int = typer.Option(0, "--retries", min=0, help="Retry network failures while fetching."),
    json_output: bool = typer.Option(False, "--json/--no-json", help="Emit the outcome as JSON on stdout."),
) -> None:
    """Resolve the build's analysis, evaluate all conditions, and set the exit code."""
    settings = load_settings()
    configure_logging(settings.log_level, structured=settings.structured_logging)

    try:
        job = load_job(job_path, settings)
    except ConfigError as exc:
        _print_error(str(exc))
        raise typer.Exit(code=EXIT_ERROR) from exc

    log_lines = _read_log(log_path)
    store = OutcomeStore(store_dir or settings.outcome_dir)

    try:
        previous = load_outcome(previous_path) if previous_path is not None else store.latest()
        pipeline = GatePipeline(job.hub, job.conditions, retry=RetryConfig(max_retries=retries))
        outcome = pipeline.run(log_lines, previous, build_id=build_id)
    except CodeSonarGateError as exc:
        _print_error(str(exc))
        raise typer.Exit(code=EXIT_ERROR) from exc
    except Exception as exc:
        logger.error("Gate evaluation crashed: %s", exc, exc_info=True)
        _print_error(f"Gate evaluation crashed: {type(exc).__name__}: {exc}")
        raise typer.Exit(code=EXIT_ERROR) from exc

    if not no_store:
        store.save(outcome)
    if output_path is not None:
        output_path.write_text(outcome.model_dump_json(indent=2), encoding="utf-8")

    _emit(outcome, json_output)
    raise typer.Exit(code=EXIT_CODES[outcome.result])


@app.command("validate")
def validate_command(
    job_path: Path = typer.Option(..., "--job", "-j", help="Path to the TOML job file."),
) -> None:
    """Check a job file and report every field-level problem."""
    try:
        raw = read_job_file(job_path)
    except ConfigError as exc:
        _print_error(str(exc))
        raise typer.Exit(code=EXIT_ERROR) from exc

    validation = validate_job(raw, load_settings())
    display_validation(console, validation)
    if not validation.ok:
        raise typer.Exit(code=EXIT_ERROR)


@app.command("show")
def show_command(
    outcome_path: Path = typer.Argument(..., help="Stored outcome JSON file."),
    json_output: bool = typer.Option(False, "--json/--no-json", help="Emit the outcome as JSON on stdout."),
) -> None:
    """Render a stored build outcome."""
    try:
        outcome = load_outcome(outcome_path)
    except CodeSonarGateError as exc:
        _print_error(str(exc))
        raise typer.Exit(code=EXIT_ERROR) from exc

    if outcome is None:
        _print_error(f"Outcome file not found: {outcome_path}")
        raise typer.Exit(code=EXIT_ERROR)

    _emit(outcome, json_output)
