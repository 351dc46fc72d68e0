"""
AuditReady Core Module

This module contains the deterministic decision logic for AuditReady:
- Metric aggregation and validation collection over extraction results
- Readiness scoring and compliance opinions
- Remediation action recommendations
- Guardrail verification and versioned repair of pipeline specifications

The engine functions can be called directly, without going through the web
interface or CLI.

Example usage:
    from core.engine import verify, repair, summarize
    from core.models import AuditBlueprint, FileResult, PipelineSpecDSL
"""

__version__ = "0.1.0"
__all__ = [
    "aggregate",
    "actions",
    "batch",
    "collect",
    "decide",
    "engine",
    "errors",
    "models",
    "policy",
    "providers",
    "repair",
    "verify",
]
