"""
AuditReady Engine

Public operations over the core components:

    verify(spec)                    -> VerificationResult
    await repair(spec, errors)      -> PipelineSpecDSL (one attempt)
    summarize(blueprint, results)   -> AuditOutcome
    approve_pipeline(spec)          -> PipelineSpecDSL
    approve_blueprint(blueprint)    -> AuditBlueprint

``repair_until_valid`` is the bounded verify/repair loop used by the CLI and
HTTP surfaces. Its attempt bound is always supplied by the caller.

Example usage:
    from core.engine import summarize, verify, repair

    outcome = summarize(blueprint, results)
    print(f"Readiness {outcome.readiness_score:.1f} -> {outcome.opinion}")

    check = verify(spec)
    if not check.is_valid:
        spec = await repair(spec, check.errors)
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from core.actions import recommend_actions
from core.aggregate import aggregate_metrics
from core.collect import collect_validation
from core.decide import calculate_readiness_score, classify_compliance
from core.models import (
    AuditBlueprint,
    AuditOutcome,
    BatchSummary,
    FileResult,
    PipelineSpecDSL,
    QualitySummary,
    RiskCount,
    VerificationResult,
)
from core.providers import PatchProvider
from core.repair import RepairCoordinator
from core.verify import verify_pipeline

logger = logging.getLogger(__name__)


def verify(spec: PipelineSpecDSL) -> VerificationResult:
    return verify_pipeline(spec)


async def repair(spec: PipelineSpecDSL, errors: Sequence[str],
                 provider: Optional[PatchProvider] = None) -> PipelineSpecDSL:
    """Make one repair attempt. A None provider selects the local fallback."""
    return await RepairCoordinator(provider).repair(spec, errors)


def summarize(blueprint: AuditBlueprint, results: Iterable[FileResult]) -> AuditOutcome:
    """
    Summarize a resolved batch against its blueprint.

    Args:
        blueprint: Approved audit blueprint
        results: One FileResult per resolved evidence file

    Returns:
        AuditOutcome with summary, readiness score, opinion and actions
    """
    results = list(results)
    digest = collect_validation(results)
    aggregates = aggregate_metrics(blueprint, results)

    summary = BatchSummary(
        total_files=digest.total_files,
        processed=digest.total_files,
        success_count=digest.success_count,
        fail_count=digest.fail_count,
        metric_aggregates=aggregates,
        failure_breakdown=digest.failure_breakdown,
        top_risks=[RiskCount(risk=risk, count=count) for risk, count in digest.top_risks],
        quality_summary=QualitySummary(
            error_rate=digest.fail_count / max(digest.total_files, 1),
            anomalies=digest.anomalies,
        ),
    )

    score = calculate_readiness_score(digest.total_files, digest.success_count, digest.fail_count)
    opinion = classify_compliance(score, digest.fail_count, digest.total_files, digest.anomalies)
    actions = recommend_actions(digest.fail_count, digest.failure_breakdown, digest.top_risks)

    logger.info(
        f"Summarized {digest.total_files} files for blueprint {blueprint.id}: "
        f"score={score:.1f} opinion={opinion.value}",
        extra={"blueprint_id": blueprint.id, "actions": len(actions)},
    )
    return AuditOutcome(summary=summary, readiness_score=score, opinion=opinion, actions=actions)


def approve_pipeline(spec: PipelineSpecDSL) -> PipelineSpecDSL:
    if spec.approved:
        logger.debug(f"Pipeline {spec.pipeline_id} already approved")
    return spec.approve()


def approve_blueprint(blueprint: AuditBlueprint) -> AuditBlueprint:
    if blueprint.approved:
        logger.debug(f"Blueprint {blueprint.id} already approved")
    return blueprint.approve()


@dataclass
class RepairRun:
    """Outcome of a bounded verify/repair loop."""
    spec: PipelineSpecDSL
    verification: VerificationResult
    attempts: int = 0
    versions: List[str] = field(default_factory=list)

    @property
    def converged(self) -> bool:
        return self.verification.is_valid


async def repair_until_valid(spec: PipelineSpecDSL, max_attempts: int,
                             provider: Optional[PatchProvider] = None) -> RepairRun:
    """
    Alternate verify and repair until the spec passes or attempts run out.

    A ProviderFailure aborts the loop and propagates; specs repaired by
    earlier attempts are not returned in that case.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    coordinator = RepairCoordinator(provider)
    verification = verify_pipeline(spec)
    run = RepairRun(spec=spec, verification=verification, versions=[spec.version])

    while not run.verification.is_valid and run.attempts < max_attempts:
        run.spec = await coordinator.repair(run.spec, run.verification.errors)
        run.attempts += 1
        run.versions.append(run.spec.version)
        run.verification = verify_pipeline(run.spec)

    if not run.converged:
        logger.warning(
            f"Pipeline {spec.pipeline_id} still blocked after {run.attempts} repair attempt(s)",
            extra={"pipeline_id": spec.pipeline_id, "errors": run.verification.errors},
        )
    return run
