"""
AuditReady Test Configuration and Shared Fixtures

Provides pytest fixtures for blueprints, extraction results and pipeline
specifications used across the AuditReady test suite.

Example usage:
    def test_summary_counts(blueprint, make_results):
        results = make_results(success=3, failed=1)
        ...
"""

import logging

import pytest

from core.models import AuditBlueprint, MetricRequirement, PipelineSpecDSL
from tests.helpers import make_result, make_spec


ENGINE_ENV_VARS = (
    "LOG_LEVEL",
    "LOG_FORMAT",
    "REPAIR_PROVIDER_URL",
    "REPAIR_PROVIDER_API_KEY",
    "REPAIR_PROVIDER_TIMEOUT_S",
    "MAX_REPAIR_ATTEMPTS",
    "BATCH_MAX_CONCURRENCY",
)


@pytest.fixture(autouse=True)
def clean_engine_env(monkeypatch):
    """Run every test against default settings."""
    for name in ENGINE_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def restore_root_logging():
    """
    setup_logging replaces root handlers; put the originals back so pytest's
    capture handlers keep working between tests.
    """
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def blueprint() -> AuditBlueprint:
    """
    Approved blueprint requiring an energy and an emissions metric.

    Returns:
        AuditBlueprint: Blueprint with m1 in kWh and m2 in tCO2e
    """
    return AuditBlueprint(
        id="bp_test",
        required_metrics=[
            MetricRequirement(metric_id="m1", formula_hint="sum of invoice kWh", unit="kWh"),
            MetricRequirement(metric_id="m2", formula_hint="scope 2 emissions", unit="tCO2e"),
        ],
        approved=True,
    )


@pytest.fixture
def make_results():
    """
    Factory for batches of results.

    Successful results report m1=10; failed results carry the given error.
    """
    def _make(success: int = 0, failed: int = 0, error: str = "Missing invoice total"):
        results = [make_result(f"ok_{i}", metrics={"m1": 10}) for i in range(success)]
        results += [make_result(f"bad_{i}", success=False, errors=[error]) for i in range(failed)]
        return results
    return _make


@pytest.fixture
def valid_spec() -> PipelineSpecDSL:
    """Spec that passes all three gates."""
    return make_spec()


@pytest.fixture
def blocked_spec() -> PipelineSpecDSL:
    """Spec that fails all three gates."""
    return make_spec(evidence_type="ab", input_schema=[], output_metrics=[])
