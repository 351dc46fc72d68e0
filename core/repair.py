"""
AuditReady Pipeline Repair

Patches a specification that failed verification. The patch body comes from
an external provider, or from a deterministic local fallback when no
provider is configured. Whatever the patch says, the coordinator owns the
fields that make a spec traceable:

- ``pipeline_id`` is always the pre-repair identity
- ``version`` is the pre-repair version plus 0.1, one decimal ("1.0.0" -> "1.1")
- ``repair_history`` gains exactly one entry per call
- ``approved`` is never changed by repair

Each call makes exactly one repair attempt. Re-verification and any retry
loop belong to the caller. A failing provider raises ProviderFailure and the
input spec is left untouched.

Example usage:
    from core.repair import RepairCoordinator

    coordinator = RepairCoordinator(provider=None)      # local fallback
    repaired = await coordinator.repair(spec, verification.errors)
    print(repaired.version, repaired.repair_history[-1].fix)
"""

import logging
import re
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP, localcontext
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError as PydanticValidationError

from core.errors import InvariantViolation, ProviderFailure
from core.models import PATCHABLE_SPEC_FIELDS, InputField, PipelineSpecDSL, RepairEntry
from core.providers import PatchProvider

logger = logging.getLogger(__name__)


VERSION_STEP = Decimal("0.1")
UNPARSABLE_VERSION_BASE = Decimal("1.0")
PROVIDER_FIX = "Provider-Generated Repair"
FALLBACK_FIX_PREFIX = "Deterministic Fallback"

PERMISSIVE_FIELD = InputField(key="raw_value", type="string", required=False)
SAFE_OUTPUT_METRICS = ["total_value"]
DEFAULT_EVIDENCE_TYPE = "generic_evidence"

_LEADING_NUMBER = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)")


def bump_version(version: str) -> str:
    """
    Advance a version by 0.1 and format it with one decimal.

    Only the leading numeric part is read, so "1.0.0" becomes "1.1" and
    "1.9" becomes "2.0". A version with no leading number is treated as 1.0.
    """
    match = _LEADING_NUMBER.match(version or "")
    if match is None:
        logger.warning(f"Unparsable spec version {version!r}; bumping from {UNPARSABLE_VERSION_BASE}")
        base = UNPARSABLE_VERSION_BASE
    else:
        base = Decimal(match.group(0).strip())

    # Precision must cover every integer digit plus the one decimal
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, len(base.as_tuple().digits) + 2)
        return str((base + VERSION_STEP).quantize(VERSION_STEP, rounding=ROUND_HALF_UP))


def _now_ms() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def _derive_evidence_type(spec: PipelineSpecDSL) -> str:
    slug = re.sub(r"[^a-z0-9]+", "_", spec.topic.lower()).strip("_")
    return slug if len(slug) > 3 else DEFAULT_EVIDENCE_TYPE


def fallback_patch(spec: PipelineSpecDSL, errors: Sequence[str]) -> Tuple[Dict[str, Any], str]:
    """
    Deterministic local repair keyed on verification error text.

    Returns:
        Tuple of (patch fragment, fix descriptor). Never raises.
    """
    text = " ".join(errors).lower()
    fragment: Dict[str, Any] = {}
    fixes: List[str] = []

    if "evidence type" in text:
        fragment["evidence_type"] = _derive_evidence_type(spec)
        fixes.append(f"set evidence_type to '{fragment['evidence_type']}'")

    if "schema" in text:
        schema = list(spec.input_schema)
        if all(field.key != PERMISSIVE_FIELD.key for field in schema):
            schema.append(PERMISSIVE_FIELD)
            fixes.append(f"appended permissive field '{PERMISSIVE_FIELD.key}'")
        fragment["input_schema"] = schema

    if "metrics" in text:
        fragment["output_metrics"] = list(SAFE_OUTPUT_METRICS)
        fixes.append(f"reset output_metrics to {SAFE_OUTPUT_METRICS}")

    if not fixes:
        fixes.append("no applicable rule")

    return fragment, f"{FALLBACK_FIX_PREFIX}: " + "; ".join(fixes)


def check_repair_invariants(before: PipelineSpecDSL, after: PipelineSpecDSL) -> None:
    """
    Verify a repaired spec against its predecessor.

    Raises:
        InvariantViolation: If identity, version, history or approval drifted
    """
    problems = []
    if after.pipeline_id != before.pipeline_id:
        problems.append(f"pipeline_id changed from {before.pipeline_id} to {after.pipeline_id}")
    if after.version != bump_version(before.version):
        problems.append(f"version {after.version} does not follow {before.version}")
    if (len(after.repair_history) != len(before.repair_history) + 1
            or after.repair_history[:-1] != before.repair_history):
        problems.append("repair_history was not extended by exactly one entry")
    if after.approved != before.approved:
        problems.append("approved flag changed during repair")

    if problems:
        raise InvariantViolation(
            f"Repair of {before.pipeline_id} broke invariants: " + "; ".join(problems),
            details={"pipeline_id": before.pipeline_id, "problems": problems},
        )


class RepairCoordinator:
    """
    Applies one repair attempt to a failing specification.

    Args:
        provider: Patch provider; None selects the deterministic fallback
    """

    def __init__(self, provider: Optional[PatchProvider] = None):
        self.provider = provider

    async def repair(self, spec: PipelineSpecDSL, errors: Sequence[str]) -> PipelineSpecDSL:
        """
        Produce the successor of ``spec`` that addresses ``errors``.

        Args:
            spec: Specification that failed verification
            errors: Ordered verification errors; the first is recorded in history

        Returns:
            New PipelineSpecDSL at the next version

        Raises:
            ValueError: If ``errors`` is empty
            ProviderFailure: If the provider fails or returns an unusable patch
            InvariantViolation: If the repaired spec breaks a repair invariant
        """
        errors = list(errors)
        if not errors:
            raise ValueError("repair requires at least one verification error")

        if self.provider is None:
            logger.warning(f"No repair provider configured; using deterministic fallback for {spec.pipeline_id}")
            fragment, fix = fallback_patch(spec, errors)
            repaired = self._apply(spec, fragment, errors[0], fix)
        else:
            fragment = await self._request_patch(spec, errors)
            try:
                repaired = self._apply(spec, fragment, errors[0], PROVIDER_FIX)
            except PydanticValidationError as e:
                raise ProviderFailure(
                    "Repair provider returned an invalid patch",
                    provider=self._provider_name,
                    details={"pipeline_id": spec.pipeline_id, "validation": e.errors(include_url=False)},
                ) from e

        check_repair_invariants(spec, repaired)
        logger.info(
            f"Pipeline {spec.pipeline_id} repaired v{spec.version} -> v{repaired.version}",
            extra={"pipeline_id": spec.pipeline_id, "fix": repaired.repair_history[-1].fix},
        )
        return repaired

    @property
    def _provider_name(self) -> str:
        return getattr(self.provider, "name", type(self.provider).__name__)

    async def _request_patch(self, spec: PipelineSpecDSL, errors: List[str]) -> Dict[str, Any]:
        try:
            fragment = await self.provider.patch(spec, errors)
        except ProviderFailure:
            logger.error(f"Repair provider failed for {spec.pipeline_id}; spec left at v{spec.version}")
            raise
        except Exception as e:
            logger.error(f"Repair provider raised for {spec.pipeline_id}: {e}", exc_info=True)
            raise ProviderFailure(
                f"Repair provider raised {type(e).__name__}: {e}",
                provider=self._provider_name,
                details={"pipeline_id": spec.pipeline_id},
            ) from e

        if not isinstance(fragment, dict):
            raise ProviderFailure(
                f"Repair provider returned {type(fragment).__name__}, expected a mapping",
                provider=self._provider_name,
                details={"pipeline_id": spec.pipeline_id},
            )
        return fragment

    def _apply(self, spec: PipelineSpecDSL, fragment: Dict[str, Any],
               first_error: str, fix: str) -> PipelineSpecDSL:
        owned = sorted(set(fragment) - set(PATCHABLE_SPEC_FIELDS))
        if owned:
            logger.debug(f"Ignoring non-patchable fields from repair patch: {owned}")

        data = spec.model_dump()
        for key in PATCHABLE_SPEC_FIELDS:
            if fragment.get(key) is not None:
                data[key] = fragment[key]

        entry = RepairEntry(timestamp=_now_ms(), error=first_error, fix=fix)
        data["pipeline_id"] = spec.pipeline_id
        data["version"] = bump_version(spec.version)
        data["approved"] = spec.approved
        data["repair_history"] = data["repair_history"] + [entry.model_dump()]

        return PipelineSpecDSL.model_validate(data)
