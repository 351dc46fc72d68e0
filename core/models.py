"""
AuditReady Core Models

Pydantic v2 models for audit blueprints, extraction results, batch summaries
and versioned pipeline specifications. These models provide type validation,
serialization, and documentation for all AuditReady data contracts.

Example usage:
    from core.models import PipelineSpecDSL

    spec = PipelineSpecDSL(
        pipeline_id="pipe_001",
        topic="Energy",
        evidence_type="utility_invoice",
        input_schema=[{"key": "kwh", "type": "number", "required": True}],
        output_metrics=["total_energy_kwh"],
    )
    print(f"Pipeline {spec.pipeline_id} at v{spec.version}")
"""

from enum import Enum
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from core.errors import InvariantViolation


UNKNOWN_UNIT = "N/A"
INITIAL_SPEC_VERSION = "1.0.0"


class ComplianceOpinion(str, Enum):
    """Ternary compliance opinion for an audit batch."""
    PASS = "PASS"
    CONDITIONAL = "CONDITIONAL"
    FAIL = "FAIL"


class Priority(str, Enum):
    """Priority levels shared by topics and actions."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Confidence(str, Enum):
    """Confidence of a generated blueprint."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ActionType(str, Enum):
    """Kinds of remediation action."""
    REPROCESS = "reprocess"
    TICKET = "ticket"
    NOTIFY = "notify"


class GateState(str, Enum):
    """Guardrail gate states. PENDING is initial, PASS and BLOCK are terminal."""
    PENDING = "PENDING"
    PASS = "PASS"
    BLOCK = "BLOCK"


# ---------------------------------------------------------------------------
# Blueprint
# ---------------------------------------------------------------------------

class CompanyProfile(BaseModel):
    """Company identification used to scope an audit."""
    name: str = Field(..., min_length=1, description="Company name")
    industry: str = Field(..., min_length=1, description="Industry sector")
    region: str = Field("EU", description="Reporting region")
    size: Literal["SME", "Mid", "Large"] = Field("Mid", description="Company size band")
    listed: bool = Field(False, description="Whether the company is publicly listed")
    fiscal_year: str = Field(..., description="Fiscal year under audit")


class MaterialTopic(BaseModel):
    code: str
    reason: str = ""
    priority: Priority = Priority.MEDIUM


class RequiredDisclosure(BaseModel):
    topic: str
    disclosure: str
    why_required: str = ""


class EvidenceTypeRequirement(BaseModel):
    topic: str
    evidence_type: str
    required_fields: List[str] = Field(default_factory=list)


class MetricRequirement(BaseModel):
    """A metric the blueprint requires, with its reporting unit."""
    metric_id: str = Field(..., min_length=1, description="Metric identifier")
    formula_hint: str = Field("", description="Free-text hint on how the metric is computed")
    unit: str = Field(..., description="Reporting unit, e.g. kWh or tCO2e")


class AuditBlueprint(BaseModel):
    """
    Company-specific declaration of the audit scope.

    A blueprint is approved once by a human and never edited afterwards;
    approval produces a new instance with ``approved=True``.
    """
    id: str = Field(..., min_length=1, description="Blueprint identifier")
    company_profile: Optional[CompanyProfile] = None
    recommended_frameworks: List[str] = Field(default_factory=list)
    material_topics: List[MaterialTopic] = Field(default_factory=list)
    required_disclosures: List[RequiredDisclosure] = Field(default_factory=list)
    required_evidence_types: List[EvidenceTypeRequirement] = Field(default_factory=list)
    required_metrics: List[MetricRequirement] = Field(default_factory=list)
    assumptions: List[str] = Field(default_factory=list)
    risks: List[str] = Field(default_factory=list)
    confidence: Confidence = Confidence.MEDIUM
    approved: bool = False

    model_config = {
        "frozen": True,
        "use_enum_values": True,
        "extra": "ignore",
    }

    def unit_for(self, metric_id: str) -> Optional[str]:
        """Return the required unit for ``metric_id``, or None if not required."""
        for requirement in self.required_metrics:
            if requirement.metric_id == metric_id:
                return requirement.unit
        return None

    def approve(self) -> "AuditBlueprint":
        return self.model_copy(update={"approved": True})


# ---------------------------------------------------------------------------
# Extraction results and summaries
# ---------------------------------------------------------------------------

MetricValue = Union[bool, int, float, str, None]


class ValidationOutcome(BaseModel):
    """Per-file validation outcome. Errors are ordered; the first one classifies the failure."""
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    risks_flagged: List[str] = Field(default_factory=list)

    model_config = {"frozen": True}


class FileResult(BaseModel):
    """Outcome of running one evidence document through extraction."""
    file_id: str = Field(..., min_length=1, description="Evidence file identifier")
    filename: str = ""
    pipeline_id: str = ""
    success: bool
    metrics: Dict[str, MetricValue] = Field(default_factory=dict)
    validation: ValidationOutcome = Field(default_factory=ValidationOutcome)
    timing_ms: float = Field(0, ge=0)
    hash: str = ""

    model_config = {
        "frozen": True,
        "extra": "ignore",
    }

    @property
    def first_error(self) -> Optional[str]:
        return self.validation.errors[0] if self.validation.errors else None


class MetricAggregate(BaseModel):
    metric_id: str
    total: float = 0.0
    count: int = Field(0, ge=0)
    unit: str = UNKNOWN_UNIT
    anomalies_detected: int = Field(0, ge=0)

    model_config = {"frozen": True}


class QualitySummary(BaseModel):
    error_rate: float = Field(0.0, ge=0, le=1)
    anomalies: List[str] = Field(default_factory=list)

    model_config = {"frozen": True}


class RiskCount(BaseModel):
    risk: str
    count: int = Field(..., ge=1)

    model_config = {"frozen": True}


class BatchSummary(BaseModel):
    """
    Immutable snapshot of one aggregation pass over a batch.

    Recomputed from scratch on every pass; never mutated.
    """
    total_files: int = Field(..., ge=0)
    processed: int = Field(..., ge=0)
    success_count: int = Field(..., ge=0)
    fail_count: int = Field(..., ge=0)
    metric_aggregates: Dict[str, MetricAggregate] = Field(default_factory=dict)
    failure_breakdown: Dict[str, int] = Field(default_factory=dict)
    top_risks: List[RiskCount] = Field(default_factory=list, max_length=3)
    quality_summary: QualitySummary = Field(default_factory=QualitySummary)

    model_config = {"frozen": True}


class ActionPayload(BaseModel):
    type: ActionType
    description: str
    priority: Priority
    topic: str

    model_config = {
        "frozen": True,
        "use_enum_values": True,
    }


class AuditOutcome(BaseModel):
    """Result of summarizing a batch against a blueprint."""
    summary: BatchSummary
    readiness_score: float = Field(..., ge=0, le=100)
    opinion: ComplianceOpinion
    actions: List[ActionPayload] = Field(default_factory=list)

    model_config = {
        "frozen": True,
        "use_enum_values": True,
    }


# ---------------------------------------------------------------------------
# Pipeline specifications
# ---------------------------------------------------------------------------

class InputField(BaseModel):
    key: str = Field(..., min_length=1)
    type: str = "string"
    required: bool = False

    model_config = {"frozen": True}


class RepairEntry(BaseModel):
    """One append-only repair history entry. Timestamp is epoch milliseconds."""
    timestamp: int = Field(..., ge=0)
    error: str
    fix: str

    model_config = {"frozen": True}


class PipelineSpecDSL(BaseModel):
    """
    Versioned processing specification for one evidence type.

    Created at version 1.0.0 by upstream synthesis. Only repair (new version
    plus one history entry) and approval (flag flips true) produce successor
    instances; a spec is never edited in place.
    """
    pipeline_id: str = Field(..., min_length=1, description="Stable pipeline identity")
    topic: str = Field("", description="Reporting topic the pipeline serves")
    evidence_type: str = Field("", description="Evidence classification")
    input_schema: List[InputField] = Field(default_factory=list)
    transformations: List[str] = Field(default_factory=list)
    calculations: List[str] = Field(default_factory=list)
    validations: List[str] = Field(default_factory=list)
    output_metrics: List[str] = Field(default_factory=list)
    version: str = Field(INITIAL_SPEC_VERSION, description="Semantic version string")
    approved: bool = False
    repair_history: List[RepairEntry] = Field(default_factory=list)

    model_config = {
        "frozen": True,
        "extra": "ignore",
        "json_schema_extra": {
            "example": {
                "pipeline_id": "pipe_001",
                "topic": "Energy",
                "evidence_type": "utility_invoice",
                "input_schema": [{"key": "kwh", "type": "number", "required": True}],
                "transformations": [],
                "calculations": ["total_energy_kwh = sum(kwh)"],
                "validations": ["kwh >= 0"],
                "output_metrics": ["total_energy_kwh"],
                "version": "1.0.0",
                "approved": False,
                "repair_history": [],
            }
        },
    }

    @field_validator("evidence_type", "topic", mode="before")
    @classmethod
    def none_as_empty(cls, v):
        """Providers sometimes send null for missing classifications."""
        return "" if v is None else v

    def approve(self) -> "PipelineSpecDSL":
        return self.model_copy(update={"approved": True})


# Fields a repair provider may replace. Identity, version, history and
# approval are owned by the repair coordinator.
PATCHABLE_SPEC_FIELDS = (
    "topic",
    "evidence_type",
    "input_schema",
    "transformations",
    "calculations",
    "validations",
    "output_metrics",
)


class GateStatus(BaseModel):
    id: str
    label: str
    status: GateState = GateState.PENDING
    message: Optional[str] = None

    model_config = {
        "frozen": True,
        "use_enum_values": True,
    }

    def settle(self, passed: bool, message: Optional[str] = None) -> "GateStatus":
        """Resolve a pending gate to PASS or BLOCK."""
        if self.status != GateState.PENDING:
            raise InvariantViolation(
                f"Gate {self.id} already settled as {self.status}",
                details={"gate": self.id, "status": self.status},
            )
        if passed:
            return self.model_copy(update={"status": GateState.PASS.value, "message": None})
        return self.model_copy(update={"status": GateState.BLOCK.value, "message": message})


class VerificationResult(BaseModel):
    gates: List[GateStatus]
    is_valid: bool
    errors: List[str] = Field(default_factory=list)

    model_config = {"frozen": True}
