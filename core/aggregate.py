"""
AuditReady Metric Aggregation

Folds per-file metric values into per-metric totals and counts. The metric
key set is discovered from the observed data: a metric appears only if at
least one successful result reported a numeric value for it, so a metric the
blueprint requires but no file produced never shows up with a zero total.

Example usage:
    from core.aggregate import aggregate_metrics

    aggregates = aggregate_metrics(blueprint, results)
    for metric_id, agg in aggregates.items():
        print(f"{metric_id}: {agg.total} {agg.unit} over {agg.count} files")
"""

import logging
import numbers
from typing import Dict, Iterable, List

import numpy as np
import pandas as pd

from core.models import AuditBlueprint, FileResult, MetricAggregate, MetricValue, UNKNOWN_UNIT

logger = logging.getLogger(__name__)


def is_numeric_value(value: MetricValue) -> bool:
    """
    True for finite ints and floats. Booleans, strings and None are not numeric.

    Ints beyond float range count as non-numeric, since they cannot be totalled.
    """
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return False
    try:
        return bool(np.isfinite(np.float64(value)))
    except OverflowError:
        return False


def is_valid_metric_id(metric_id) -> bool:
    return isinstance(metric_id, str) and metric_id.strip() != ""


def _metric_rows(results: Iterable[FileResult]) -> List[dict]:
    rows = []
    for result in results:
        if not result.success:
            continue
        for metric_id, value in result.metrics.items():
            if not is_valid_metric_id(metric_id):
                logger.warning(
                    f"Dropping metric with invalid id {metric_id!r}",
                    extra={"file_id": result.file_id},
                )
                continue
            numeric = is_numeric_value(value)
            rows.append({
                "metric_id": metric_id,
                "value": float(value) if numeric else 0.0,
                "numeric": int(numeric),
                "anomaly": int(not numeric),
            })
    return rows


def aggregate_metrics(blueprint: AuditBlueprint, results: Iterable[FileResult]) -> Dict[str, MetricAggregate]:
    """
    Aggregate numeric metric values across successful results.

    Args:
        blueprint: Blueprint used only to look up reporting units
        results: Extraction results for the batch

    Returns:
        Mapping metric_id -> MetricAggregate, in first-seen order, covering
        exactly the metrics with at least one numeric value in a successful
        result. Non-numeric values are skipped for that file only and counted
        as ``anomalies_detected``.
    """
    rows = _metric_rows(results)
    if not rows:
        return {}

    frame = pd.DataFrame(rows, columns=["metric_id", "value", "numeric", "anomaly"])
    grouped = frame.groupby("metric_id", sort=False).agg(
        total=("value", "sum"),
        count=("numeric", "sum"),
        anomalies=("anomaly", "sum"),
    )
    observed = grouped[grouped["count"] > 0]

    aggregates: Dict[str, MetricAggregate] = {}
    for metric_id, row in observed.iterrows():
        unit = blueprint.unit_for(metric_id)
        if unit is None:
            logger.debug(f"Metric {metric_id} is not required by blueprint {blueprint.id}")
            unit = UNKNOWN_UNIT
        aggregates[metric_id] = MetricAggregate(
            metric_id=metric_id,
            total=float(row["total"]),
            count=int(row["count"]),
            unit=unit,
            anomalies_detected=int(row["anomalies"]),
        )

    skipped = len(grouped) - len(observed)
    if skipped:
        logger.debug(f"{skipped} metric(s) reported only non-numeric values and were omitted")

    return aggregates
