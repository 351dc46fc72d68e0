"""
AuditReady Test Helper Utilities

Builders for extraction results and pipeline specs, plus deterministic
stand-ins for the external patch provider and extractor.

Example usage:
    result = make_result("f1", metrics={"m1": 100})
    spec = make_spec(input_schema=[])
    provider = StubPatchProvider({"input_schema": [{"key": "kwh"}]})
"""

import asyncio
from typing import Any, Dict, List, Optional, Sequence

from core.batch import EvidenceDocument
from core.errors import ProviderFailure
from core.models import FileResult, PipelineSpecDSL, ValidationOutcome


def make_result(
    file_id: str,
    success: bool = True,
    metrics: Optional[Dict[str, Any]] = None,
    errors: Optional[List[str]] = None,
    warnings: Optional[List[str]] = None,
    risks: Optional[List[str]] = None,
) -> FileResult:
    """
    Build a FileResult with optional validation data.

    Example:
        >>> make_result("f1", metrics={"m1": 5}).metrics
        {'m1': 5}
    """
    return FileResult(
        file_id=file_id,
        filename=f"{file_id}.pdf",
        pipeline_id="pipe_test",
        success=success,
        metrics=metrics or {},
        validation=ValidationOutcome(
            errors=errors or [],
            warnings=warnings or [],
            risks_flagged=risks or [],
        ),
        timing_ms=12.5,
    )


def make_spec(**overrides) -> PipelineSpecDSL:
    """Build a spec that passes verification unless overridden."""
    data: Dict[str, Any] = {
        "pipeline_id": "pipe_test",
        "topic": "Energy Consumption",
        "evidence_type": "utility_invoice",
        "input_schema": [{"key": "kwh", "type": "number", "required": True}],
        "calculations": ["total_energy_kwh = sum(kwh)"],
        "validations": ["kwh >= 0"],
        "output_metrics": ["total_energy_kwh"],
    }
    data.update(overrides)
    return PipelineSpecDSL.model_validate(data)


class StubPatchProvider:
    """Patch provider returning a fixed fragment and recording its calls."""

    name = "stub"

    def __init__(self, fragment: Any):
        self.fragment = fragment
        self.calls: List[Sequence[str]] = []

    async def patch(self, spec: PipelineSpecDSL, errors: Sequence[str]) -> Any:
        self.calls.append(list(errors))
        return self.fragment


class FailingPatchProvider:
    """Patch provider that always fails with the given exception."""

    name = "failing"

    def __init__(self, exc: Optional[Exception] = None):
        self.exc = exc or ProviderFailure("upstream timeout", provider=self.name)
        self.calls = 0

    async def patch(self, spec: PipelineSpecDSL, errors: Sequence[str]) -> Dict[str, Any]:
        self.calls += 1
        raise self.exc


class StubExtractor:
    """
    Extractor that reports ``metrics`` for every document.

    Documents whose file_id is in ``fail_ids`` raise instead. Tracks the
    peak number of concurrent extractions.
    """

    def __init__(self, metrics: Optional[Dict[str, Any]] = None, fail_ids: Sequence[str] = (),
                 delay_s: float = 0.0):
        self.metrics = metrics if metrics is not None else {"m1": 10}
        self.fail_ids = set(fail_ids)
        self.delay_s = delay_s
        self.in_flight = 0
        self.peak = 0

    async def extract(self, document: EvidenceDocument, spec: PipelineSpecDSL) -> FileResult:
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(self.delay_s)
            if document.file_id in self.fail_ids:
                raise RuntimeError(f"cannot read {document.file_id}")
            return FileResult(
                file_id=document.file_id,
                filename=document.filename,
                pipeline_id=spec.pipeline_id,
                success=True,
                metrics=dict(self.metrics),
            )
        finally:
            self.in_flight -= 1


def make_documents(count: int) -> List[EvidenceDocument]:
    return [EvidenceDocument(file_id=f"doc_{i}", filename=f"doc_{i}.pdf") for i in range(count)]
