"""
AuditReady Remediation Actions

Derives an ordered list of remediation actions from failure and risk
statistics: a high-priority reprocess action when any file failed, then a
medium-priority ticket when risks were flagged.
"""

import logging
from typing import Dict, List, Sequence, Tuple

from core.collect import rank_by_frequency
from core.models import ActionPayload, ActionType, Priority

logger = logging.getLogger(__name__)

DATA_INTEGRITY_TOPIC = "Data Integrity"
DATA_QUALITY_TOPIC = "Data Quality"


def recommend_actions(fail_count: int, failure_breakdown: Dict[str, int],
                      top_risks: Sequence[Tuple[str, int]]) -> List[ActionPayload]:
    """
    Build remediation actions in fixed order: reprocess, then ticket.

    Args:
        fail_count: Number of failed results
        failure_breakdown: First-error category -> count
        top_risks: Ranked (risk, count) pairs, highest first

    Returns:
        List of ActionPayload, possibly empty
    """
    actions: List[ActionPayload] = []

    if fail_count > 0:
        ranked_failures = rank_by_frequency(failure_breakdown, limit=1)
        description = f"Investigate and re-upload {fail_count} failed documents."
        if ranked_failures:
            category, occurrences = ranked_failures[0]
            description += f" Most frequent failure: '{category}' ({occurrences} occurrences)."
        actions.append(ActionPayload(
            type=ActionType.REPROCESS,
            description=description,
            priority=Priority.HIGH,
            topic=DATA_INTEGRITY_TOPIC,
        ))

    if top_risks:
        risk, occurrences = top_risks[0]
        actions.append(ActionPayload(
            type=ActionType.TICKET,
            description=f"Resolve top flagged risk '{risk}' reported in {occurrences} documents.",
            priority=Priority.MEDIUM,
            topic=DATA_QUALITY_TOPIC,
        ))

    if actions:
        logger.debug(f"Recommended {len(actions)} remediation action(s)")
    return actions
