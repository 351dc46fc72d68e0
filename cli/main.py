"""
AuditReady CLI Main Module

Command-line interface for AuditReady using Typer.
Reads blueprints, specifications and extraction results as JSON files and
runs the verification, repair and scoring engine over them.
"""

import asyncio
import json
import sys
from pathlib import Path
from typing import Any, List, Optional

import typer
from pydantic import ValidationError

from core.engine import approve_pipeline, repair_until_valid, summarize, verify as verify_spec
from core.errors import AuditReadyError
from core.logging import get_logger, setup_logging
from core.models import AuditBlueprint, FileResult, PipelineSpecDSL
from core.policy import get_engine_settings, get_policy_summary
from core.providers import HttpPatchProvider

logger = get_logger(__name__)

app = typer.Typer(
    name="auditready",
    help="AuditReady - Pipeline guardrails, repair and audit readiness scoring",
    add_completion=False
)


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Log level (defaults to LOG_LEVEL)"),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit structured JSON logs")
) -> None:
    """AuditReady command-line interface."""
    settings = get_engine_settings()
    setup_logging(level=log_level or settings['log_level'], format_type="json" if json_logs else "text",
                  stream=sys.stderr)


def _load_json(path: Path, what: str) -> Any:
    if not path.exists():
        typer.echo(f"{what} not found: {path}", err=True)
        raise typer.Exit(1)
    try:
        with open(path, 'r') as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        typer.echo(f"{what} is not valid JSON: {e}", err=True)
        raise typer.Exit(1)


def _load_spec(path: Path) -> PipelineSpecDSL:
    try:
        return PipelineSpecDSL.model_validate(_load_json(path, "Spec JSON"))
    except ValidationError as e:
        typer.echo(f"Invalid pipeline spec: {e}", err=True)
        raise typer.Exit(1)


def _load_results(path: Path) -> List[FileResult]:
    data = _load_json(path, "Results JSON")
    if isinstance(data, dict):
        data = data.get("results", [])
    try:
        return [FileResult.model_validate(item) for item in data]
    except (ValidationError, TypeError) as e:
        typer.echo(f"Invalid extraction results: {e}", err=True)
        raise typer.Exit(1)


def _write_json(data: Any, output: Optional[Path]) -> None:
    text = json.dumps(data, indent=2)
    if output is None:
        typer.echo(text)
        return
    with open(output, 'w') as f:
        f.write(text + "\n")
    typer.echo(f"Saved to: {output}")


@app.command()
def verify(
    spec_json: Path = typer.Argument(..., help="Path to pipeline spec JSON"),
    output_json: Optional[Path] = typer.Option(None, "--output-json", help="Save verification result as JSON")
) -> None:
    """
    Run the guardrail gates over a pipeline specification.

    Exits with status 1 when any gate blocks.
    """
    spec = _load_spec(spec_json)
    result = verify_spec(spec)

    typer.echo(f"Pipeline {spec.pipeline_id} v{spec.version}")
    for gate in result.gates:
        mark = '✓' if gate.status == "PASS" else '✗'
        line = f"  {mark} {gate.label}: {gate.status}"
        if gate.message:
            line += f" - {gate.message}"
        typer.echo(line)

    if output_json:
        _write_json(result.model_dump(mode="json"), output_json)

    if result.is_valid:
        typer.echo("\n✓ Pipeline verification PASSED")
    else:
        typer.echo(f"\n✗ Pipeline verification FAILED ({len(result.errors)} blocking gates)")
        raise typer.Exit(1)


@app.command()
def repair(
    spec_json: Path = typer.Argument(..., help="Path to pipeline spec JSON"),
    max_attempts: Optional[int] = typer.Option(None, "--max-attempts", min=1, help="Repair attempts before giving up (defaults to MAX_REPAIR_ATTEMPTS)"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write repaired spec JSON here (stdout if omitted)")
) -> None:
    """
    Verify a specification and repair it until it passes or attempts run out.

    Uses the HTTP repair provider when REPAIR_PROVIDER_URL is set, otherwise
    the deterministic local fallback.
    """
    spec = _load_spec(spec_json)
    settings = get_engine_settings()
    attempts = max_attempts or settings['max_repair_attempts']
    provider = HttpPatchProvider.from_settings(settings)

    try:
        run = asyncio.run(repair_until_valid(spec, attempts, provider))
    except AuditReadyError as e:
        typer.echo(f"Repair failed: {e.message}", err=True)
        typer.echo(f"  Spec left at v{spec.version}", err=True)
        raise typer.Exit(1)

    if run.attempts == 0:
        typer.echo(f"Pipeline {spec.pipeline_id} v{spec.version} already passes all gates")
    else:
        typer.echo(f"Repaired {spec.pipeline_id}: {' -> '.join(run.versions)} ({run.attempts} attempts)", err=output is None)

    _write_json(run.spec.model_dump(mode="json"), output)

    if not run.converged:
        typer.echo(f"✗ Still blocked: {'; '.join(run.verification.errors)}", err=True)
        raise typer.Exit(1)


@app.command("summarize")
def summarize_command(
    blueprint_json: Path = typer.Argument(..., help="Path to audit blueprint JSON"),
    results_json: Path = typer.Argument(..., help="Path to extraction results JSON (list or {'results': [...]})"),
    output_json: Optional[Path] = typer.Option(None, "--output-json", help="Save full outcome as JSON")
) -> None:
    """
    Score a batch of extraction results against a blueprint.
    """
    try:
        blueprint = AuditBlueprint.model_validate(_load_json(blueprint_json, "Blueprint JSON"))
    except ValidationError as e:
        typer.echo(f"Invalid blueprint: {e}", err=True)
        raise typer.Exit(1)
    results = _load_results(results_json)

    outcome = summarize(blueprint, results)
    summary = outcome.summary

    typer.echo(f"Files: {summary.total_files} (success {summary.success_count}, failed {summary.fail_count})")
    typer.echo(f"Readiness score: {outcome.readiness_score:.1f}")
    typer.echo(f"Opinion: {outcome.opinion}")

    if summary.metric_aggregates:
        typer.echo("\nMetrics:")
        for metric_id, agg in summary.metric_aggregates.items():
            typer.echo(f"  {metric_id}: {agg.total:g} {agg.unit} ({agg.count} files)")

    if outcome.actions:
        typer.echo("\nActions:")
        for action in outcome.actions:
            typer.echo(f"  [{action.priority}] {action.type}: {action.description}")

    if output_json:
        _write_json(outcome.model_dump(mode="json"), output_json)


@app.command()
def approve(
    spec_json: Path = typer.Argument(..., help="Path to pipeline spec JSON"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write approved spec JSON here (stdout if omitted)")
) -> None:
    """
    Approve a pipeline specification. Refuses specs that fail verification.
    """
    spec = _load_spec(spec_json)
    result = verify_spec(spec)
    if not result.is_valid:
        typer.echo(f"Cannot approve blocked pipeline: {'; '.join(result.errors)}", err=True)
        raise typer.Exit(1)
    _write_json(approve_pipeline(spec).model_dump(mode="json"), output)


@app.command()
def policy() -> None:
    """Show the effective engine settings."""
    typer.echo(get_policy_summary())


if __name__ == "__main__":
    app()
