"""
AuditReady Validation Collection

Classifies failed results by their first error and gathers warnings and
risk flags from successful results into a flat anomaly log and a ranked
risk tally.

Example usage:
    from core.collect import collect_validation

    digest = collect_validation(results)
    print(digest.failure_breakdown)   # {"Missing invoice total": 2}
    print(digest.top_risks)           # [("Estimated reading", 3), ...]
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from core.models import FileResult

logger = logging.getLogger(__name__)

UNKNOWN_FAILURE = "Unknown Processing Error"
WARN_PREFIX = "[WARN] "
RISK_PREFIX = "[RISK] "
TOP_RISK_LIMIT = 3


@dataclass(frozen=True)
class ValidationDigest:
    """Validation statistics for one batch."""
    total_files: int
    success_count: int
    fail_count: int
    failure_breakdown: Dict[str, int] = field(default_factory=dict)
    anomalies: List[str] = field(default_factory=list)
    risk_counts: Dict[str, int] = field(default_factory=dict)
    top_risks: List[Tuple[str, int]] = field(default_factory=list)


def rank_by_frequency(counts: Dict[str, int], limit: Optional[int] = None) -> List[Tuple[str, int]]:
    """
    Order (key, count) pairs by count descending.

    ``sorted`` is stable and dicts keep insertion order, so ties stay in
    first-seen order.
    """
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return ranked if limit is None else ranked[:limit]


def collect_validation(results: Iterable[FileResult]) -> ValidationDigest:
    """
    Partition results by their ``success`` flag and collect validation data.

    Failed results contribute one count to the failure category named by
    their first error (or ``Unknown Processing Error``). Successful results
    contribute their warnings and risks to the anomaly log, and their risks
    to the risk tally.
    """
    results = list(results)
    failure_breakdown: Counter = Counter()
    risk_counts: Counter = Counter()
    anomalies: List[str] = []
    success_count = 0

    for result in results:
        if not result.success:
            failure_breakdown[result.first_error if result.first_error is not None else UNKNOWN_FAILURE] += 1
            continue

        success_count += 1
        anomalies.extend(WARN_PREFIX + warning for warning in result.validation.warnings)
        anomalies.extend(RISK_PREFIX + risk for risk in result.validation.risks_flagged)
        risk_counts.update(result.validation.risks_flagged)

    fail_count = len(results) - success_count
    if fail_count:
        logger.info(
            f"{fail_count} of {len(results)} results failed across "
            f"{len(failure_breakdown)} categories"
        )

    return ValidationDigest(
        total_files=len(results),
        success_count=success_count,
        fail_count=fail_count,
        failure_breakdown=dict(failure_breakdown),
        anomalies=anomalies,
        risk_counts=dict(risk_counts),
        top_risks=rank_by_frequency(risk_counts, TOP_RISK_LIMIT),
    )
