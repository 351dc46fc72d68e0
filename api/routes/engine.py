"""
Engine API Routes

HTTP endpoints for pipeline verification, repair, approval and batch
summaries.

Example usage:
    POST /api/verify     - Run guardrail gates over a pipeline spec
    POST /api/repair     - One repair attempt, or a bounded repair loop
    POST /api/approve    - Approve a spec that passes verification
    POST /api/summarize  - Score extraction results against a blueprint
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from core.engine import approve_pipeline, repair as repair_once, repair_until_valid, summarize, verify
from core.logging import get_logger, log_with_context
from core.models import AuditBlueprint, AuditOutcome, FileResult, PipelineSpecDSL, VerificationResult
from core.providers import HttpPatchProvider, PatchProvider

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["engine"])


class RepairRequest(BaseModel):
    """Request model for pipeline repair."""
    spec: PipelineSpecDSL
    errors: Optional[List[str]] = Field(
        None, description="Verification errors to repair; defaults to the spec's current BLOCK messages"
    )
    max_attempts: Optional[int] = Field(
        None, ge=1, le=20, description="Run a verify/repair loop with this bound instead of a single attempt"
    )


class RepairResponse(BaseModel):
    """Response model for pipeline repair."""
    spec: PipelineSpecDSL
    verification: VerificationResult
    attempts: int
    versions: List[str]
    converged: bool


class SummarizeRequest(BaseModel):
    """Request model for batch summaries."""
    blueprint: AuditBlueprint
    results: List[FileResult] = Field(default_factory=list)


class ApproveRequest(BaseModel):
    spec: PipelineSpecDSL


def get_patch_provider() -> Optional[PatchProvider]:
    """Repair provider from settings; None selects the local fallback."""
    return HttpPatchProvider.from_settings()


@router.post("/verify", response_model=VerificationResult)
async def verify_spec(spec: PipelineSpecDSL) -> VerificationResult:
    """
    Run the three guardrail gates over a pipeline specification.

    Example:
        POST /api/verify
        {"pipeline_id": "pipe_001", "evidence_type": "ab", "input_schema": [], "output_metrics": []}
    """
    return verify(spec)


@router.post("/repair", response_model=RepairResponse)
async def repair_spec(
    body: RepairRequest,
    request: Request,
    provider: Optional[PatchProvider] = Depends(get_patch_provider)
) -> RepairResponse:
    """
    Repair a failing pipeline specification.

    Without ``max_attempts`` exactly one repair attempt is made. With it, the
    spec is re-verified after each attempt until it passes or the bound is hit.
    A provider failure returns 502 and the spec is left unchanged.
    """
    spec = body.spec

    if body.max_attempts is not None:
        run = await repair_until_valid(spec, body.max_attempts, provider)
        log_with_context(logger, "info", "Repair loop finished", request=request,
                         pipeline_id=spec.pipeline_id, attempts=run.attempts, converged=run.converged)
        return RepairResponse(spec=run.spec, verification=run.verification, attempts=run.attempts,
                              versions=run.versions, converged=run.converged)

    errors = body.errors if body.errors else verify(spec).errors
    if not errors:
        raise HTTPException(status_code=409, detail="Pipeline passes all gates; nothing to repair")

    repaired = await repair_once(spec, errors, provider)
    verification = verify(repaired)
    log_with_context(logger, "info", "Repair attempt applied", request=request,
                     pipeline_id=spec.pipeline_id, version=repaired.version)
    return RepairResponse(spec=repaired, verification=verification, attempts=1,
                          versions=[spec.version, repaired.version], converged=verification.is_valid)


@router.post("/approve", response_model=PipelineSpecDSL)
async def approve_spec(body: ApproveRequest) -> PipelineSpecDSL:
    """Approve a pipeline specification. Blocked specs are refused with 409."""
    verification = verify(body.spec)
    if not verification.is_valid:
        raise HTTPException(status_code=409, detail={"message": "Pipeline is blocked", "errors": verification.errors})
    return approve_pipeline(body.spec)


@router.post("/summarize", response_model=AuditOutcome)
async def summarize_batch(body: SummarizeRequest) -> AuditOutcome:
    """
    Score a resolved batch of extraction results against a blueprint.

    Example:
        POST /api/summarize
        {"blueprint": {"id": "bp_1", "required_metrics": [...]}, "results": [...]}
    """
    return summarize(body.blueprint, body.results)
