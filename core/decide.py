"""
AuditReady Decision Algorithm

Turns batch statistics into a 0-100 readiness score and a ternary compliance
opinion. Both are pure functions of their arguments.

Scoring:
    coverage_rate = success_count / total_files * 100   (0 when no files)
    error_penalty = fail_count / max(total_files, 1) * 50
    score         = clamp(coverage_rate - error_penalty, 0, 100)

Opinion (FAIL is evaluated first):
    FAIL         if score < 60 or fail_count > 20% of total_files
    CONDITIONAL  if score < 85 or any anomaly was logged
    PASS         otherwise

An empty batch scores 0 and is therefore a FAIL.

Example usage:
    from core.decide import calculate_readiness_score, classify_compliance

    score = calculate_readiness_score(total_files=10, success_count=9, fail_count=1)
    opinion = classify_compliance(score, fail_count=1, total_files=10, anomalies=[])
    print(f"{score:.1f} -> {opinion.value}")   # 85.0 -> PASS
"""

import logging
from typing import Sequence

import numpy as np

from core.models import ComplianceOpinion

logger = logging.getLogger(__name__)


MIN_SCORE = 0.0
MAX_SCORE = 100.0
ERROR_PENALTY_WEIGHT = 50.0
FAIL_SCORE_THRESHOLD = 60.0
PASS_SCORE_THRESHOLD = 85.0
MAX_FAILURE_RATIO = 0.2


def calculate_readiness_score(total_files: int, success_count: int, fail_count: int) -> float:
    """
    Calculate the readiness score for a batch.

    Args:
        total_files: Number of files resolved in the batch
        success_count: Number of successful results
        fail_count: Number of failed results

    Returns:
        Score in [0, 100]
    """
    coverage_rate = success_count * 100 / total_files if total_files > 0 else 0.0
    error_penalty = fail_count * ERROR_PENALTY_WEIGHT / max(total_files, 1)
    return float(np.clip(coverage_rate - error_penalty, MIN_SCORE, MAX_SCORE))


def classify_compliance(score: float, fail_count: int, total_files: int,
                        anomalies: Sequence[str]) -> ComplianceOpinion:
    """
    Classify a batch as PASS, CONDITIONAL or FAIL.

    Args:
        score: Readiness score from calculate_readiness_score
        fail_count: Number of failed results
        total_files: Number of files resolved in the batch
        anomalies: Flat anomaly log collected from successful results

    Returns:
        ComplianceOpinion
    """
    if score < FAIL_SCORE_THRESHOLD or fail_count > total_files * MAX_FAILURE_RATIO:
        return ComplianceOpinion.FAIL
    if score < PASS_SCORE_THRESHOLD or len(anomalies) > 0:
        return ComplianceOpinion.CONDITIONAL
    return ComplianceOpinion.PASS
