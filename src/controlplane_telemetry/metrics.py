"""Operational metrics over the control-plane action log.

Launch success rate, per-action-type latency percentiles, and failure
distribution by reason code.  Every report is recomputed from a fresh read
of the action store and contains only JSON-serialisable primitives.
"""

from __future__ import annotations

import logging
import math
from typing import Any

from .reason_codes import UNCLASSIFIED_REASON, UNKNOWN_REASON, category_for, classify
from .records import START_ORCHESTRATION, STATUS_COMPLETED, STATUS_FAILED, ControlPlaneAction
from .store import RecordStore

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "controlplane-metrics.v1"


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _median(sorted_values: list[int]) -> float:
    n = len(sorted_values)
    mid = n // 2
    if n % 2 == 0:
        return (sorted_values[mid - 1] + sorted_values[mid]) / 2
    return float(sorted_values[mid])


def _nearest_rank(sorted_values: list[int], pct: float) -> int:
    """Nearest-rank percentile, clamped so small samples stay in range."""
    n = len(sorted_values)
    idx = min(math.ceil(n * pct) - 1, n - 1)
    return sorted_values[max(idx, 0)]


def failure_reason(action: ControlPlaneAction) -> str:
    """Reason bucket for a failed action."""
    if action.result is None:
        return UNKNOWN_REASON
    return classify(action.result) or UNCLASSIFIED_REASON


class MetricsAggregator:
    """Read-only metrics reports over a record store."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def _actions_since(self, since: int) -> list[ControlPlaneAction]:
        return [a for a in self._store.list_actions() if a.created_at >= since]

    def launch_success_rate(self, since: int = 0) -> dict[str, Any]:
        """Fraction of ``start_orchestration`` actions that completed.

        The denominator is every launch attempted in the window, including
        launches still in flight, so ``succeeded + failed`` may be below
        ``total``.  ``rate`` is ``None`` when there were no launches.
        """
        launches = [a for a in self._actions_since(since) if a.action_type == START_ORCHESTRATION]
        total = len(launches)
        if total == 0:
            return {"total": 0, "succeeded": 0, "failed": 0, "rate": None}
        succeeded = sum(1 for a in launches if a.status == STATUS_COMPLETED)
        failed = sum(1 for a in launches if a.status == STATUS_FAILED)
        logger.debug("launch success rate since=%d: %d/%d", since, succeeded, total)
        return {
            "total": total,
            "succeeded": succeeded,
            "failed": failed,
            "rate": succeeded / total,
        }

    def action_latency(self, since: int = 0) -> dict[str, dict[str, int]]:
        """Median and p95 of ``completedAt - createdAt`` per action type."""
        by_type: dict[str, list[int]] = {}
        for action in self._actions_since(since):
            latency = action.latency_ms
            if latency is None:
                continue
            by_type.setdefault(action.action_type, []).append(latency)

        results: dict[str, dict[str, int]] = {}
        for action_type, latencies in sorted(by_type.items()):
            latencies.sort()
            results[action_type] = {
                "count": len(latencies),
                "medianMs": _round_half_up(_median(latencies)),
                "p95Ms": _round_half_up(_nearest_rank(latencies, 0.95)),
            }
        return results

    def failure_distribution(self, since: int = 0) -> dict[str, Any]:
        """Count failed actions by action type and reason code."""
        failed = [a for a in self._actions_since(since) if a.status == STATUS_FAILED]
        counts: dict[str, dict[str, int]] = {}
        for action in failed:
            by_reason = counts.setdefault(action.action_type, {})
            reason = failure_reason(action)
            by_reason[reason] = by_reason.get(reason, 0) + 1

        return {
            "totalFailed": len(failed),
            "byActionType": {
                action_type: dict(sorted(by_reason.items()))
                for action_type, by_reason in sorted(counts.items())
            },
        }

    def failure_categories(self, since: int = 0) -> dict[str, Any]:
        """Roll the failure distribution up to reason-code categories.

        The ``unknown`` and ``unclassified`` buckets have no category and are
        reported under their own names.
        """
        distribution = self.failure_distribution(since)
        by_category: dict[str, int] = {}
        for by_reason in distribution["byActionType"].values():
            for reason, count in by_reason.items():
                if reason in {UNKNOWN_REASON, UNCLASSIFIED_REASON}:
                    bucket = reason
                else:
                    bucket = category_for(reason)
                by_category[bucket] = by_category.get(bucket, 0) + count
        return {
            "totalFailed": distribution["totalFailed"],
            "byCategory": dict(sorted(by_category.items())),
        }

    def snapshot(self, since: int = 0) -> dict[str, Any]:
        return {
            "schema_version": SCHEMA_VERSION,
            "since": since,
            "launch_success_rate": self.launch_success_rate(since),
            "action_latency": self.action_latency(since),
            "failure_distribution": self.failure_distribution(since),
            "failure_categories": self.failure_categories(since),
        }
