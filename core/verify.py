"""
AuditReady Pipeline Verification

Deterministic guardrail checks over a PipelineSpecDSL. Three independent
gates run in a fixed order; each starts PENDING and settles to PASS or
BLOCK. Gate order and BLOCK messages are part of the contract: callers route
remediation on them.

Example usage:
    from core.verify import verify_pipeline

    result = verify_pipeline(spec)
    if not result.is_valid:
        print(f"Blocked: {result.errors}")
"""

import logging
from typing import Callable, List, Tuple

from core.models import GateStatus, PipelineSpecDSL, VerificationResult

logger = logging.getLogger(__name__)


CLASSIFICATION_ERROR = "Invalid or missing evidence type classification."
SCHEMA_ERROR = "Input schema is empty. No fields detected for extraction."
POLICY_ERROR = "No output metrics defined. Pipeline will produce no results."

MIN_EVIDENCE_TYPE_LENGTH = 4


def check_classification(spec: PipelineSpecDSL) -> bool:
    return bool(spec.evidence_type) and len(spec.evidence_type) >= MIN_EVIDENCE_TYPE_LENGTH


def check_schema(spec: PipelineSpecDSL) -> bool:
    return len(spec.input_schema) >= 1


def check_policy(spec: PipelineSpecDSL) -> bool:
    return len(spec.output_metrics) >= 1


# (gate id, label, check, BLOCK message), in evaluation order
GATES: List[Tuple[str, str, Callable[[PipelineSpecDSL], bool], str]] = [
    ("gate_classification", "Classification Guardrail", check_classification, CLASSIFICATION_ERROR),
    ("gate_schema", "Schema Coverage Guardrail", check_schema, SCHEMA_ERROR),
    ("gate_policy", "Policy Alignment Guardrail", check_policy, POLICY_ERROR),
]


def pending_gates() -> List[GateStatus]:
    """Fresh gate list in its only valid initial state."""
    return [GateStatus(id=gate_id, label=label) for gate_id, label, _, _ in GATES]


def verify_pipeline(spec: PipelineSpecDSL) -> VerificationResult:
    """
    Run all guardrail gates over a specification.

    Args:
        spec: Pipeline specification to verify

    Returns:
        VerificationResult with settled gates, validity and ordered BLOCK messages
    """
    gates = pending_gates()
    errors: List[str] = []

    for index, (_, _, check, message) in enumerate(GATES):
        passed = check(spec)
        gates[index] = gates[index].settle(passed, message)
        if not passed:
            errors.append(message)

    result = VerificationResult(gates=gates, is_valid=not errors, errors=errors)

    if result.is_valid:
        logger.info(f"Pipeline {spec.pipeline_id} v{spec.version} passed all gates")
    else:
        logger.info(
            f"Pipeline {spec.pipeline_id} v{spec.version} blocked by {len(errors)} gate(s)",
            extra={"pipeline_id": spec.pipeline_id, "errors": errors},
        )
    return result
