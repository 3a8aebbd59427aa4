"""Unified activity feed for one orchestration.

Merges control-plane action requests and completions with orchestration
lifecycle events into a single newest-first sequence.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from .reason_codes import classify
from .records import STATUS_FAILED, ControlPlaneAction, OrchestrationEvent
from .store import RecordStore

logger = logging.getLogger(__name__)

SOURCE_CONTROL_ACTION = "control_action"
SOURCE_ACTION_COMPLETION = "action_completion"
SOURCE_EVENT = "event"

DEFAULT_TIMELINE_LIMIT = 100
DEFAULT_ACTIONS_LIMIT = 50


@dataclass(frozen=True)
class TimelineEntry:
    id: str
    timestamp: int
    source: str
    category: str
    summary: str
    detail: str | None = None
    status: str | None = None
    action_type: str | None = None
    reason_code: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "source": self.source,
            "category": self.category,
            "summary": self.summary,
            "detail": self.detail,
            "status": self.status,
            "actionType": self.action_type,
            "reasonCode": self.reason_code,
        }


def _in_window(timestamp: int, since: int | None) -> bool:
    return since is None or timestamp >= since


def request_entry(action: ControlPlaneAction) -> TimelineEntry:
    return TimelineEntry(
        id=f"cpa-req-{action.id}",
        timestamp=action.created_at,
        source=SOURCE_CONTROL_ACTION,
        category="request",
        summary=f"{action.action_type} requested by {action.requested_by}",
        detail=action.payload,
        status=action.status,
        action_type=action.action_type,
    )


def completion_entry(action: ControlPlaneAction) -> TimelineEntry:
    if action.completed_at is None:
        raise ValueError(f"action {action.id} has not completed")
    failed = action.status == STATUS_FAILED
    reason_code = classify(action.result) if failed and action.result is not None else None
    return TimelineEntry(
        id=f"cpa-done-{action.id}",
        timestamp=action.completed_at,
        source=SOURCE_ACTION_COMPLETION,
        category="failure" if failed else "success",
        summary=f"{action.action_type} {action.status}",
        detail=action.result,
        status=action.status,
        action_type=action.action_type,
        reason_code=reason_code,
    )


def event_entry(event: OrchestrationEvent) -> TimelineEntry:
    return TimelineEntry(
        id=f"evt-{event.id}",
        timestamp=event.recorded_at_ms,
        source=SOURCE_EVENT,
        category=event.event_type,
        summary=event.summary,
        detail=event.detail,
    )


class TimelineProjector:
    """Builds the unified timeline and action listings from a record store."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def get_unified_timeline(
        self,
        orchestration_id: str,
        limit: int = DEFAULT_TIMELINE_LIMIT,
        since: int | None = None,
    ) -> list[TimelineEntry]:
        """Return up to ``limit`` entries, newest first.

        Entries sharing a timestamp are ordered by ``id`` so the feed is
        reproducible regardless of store ordering.
        """
        entries: list[TimelineEntry] = []

        for action in self._store.list_actions(orchestration_id):
            if _in_window(action.created_at, since):
                entries.append(request_entry(action))
            if action.completed_at is not None and _in_window(action.completed_at, since):
                entries.append(completion_entry(action))

        for event in self._store.list_events(orchestration_id):
            if _in_window(event.recorded_at_ms, since):
                entries.append(event_entry(event))

        entries.sort(key=lambda e: e.id)
        entries.sort(key=lambda e: e.timestamp, reverse=True)
        logger.debug("timeline %s: %d entries before limit %d", orchestration_id, len(entries), limit)
        return entries[: max(limit, 0)]

    def list_control_actions(
        self, orchestration_id: str, limit: int = DEFAULT_ACTIONS_LIMIT
    ) -> list[ControlPlaneAction]:
        """Most recent actions for one orchestration, newest first."""
        actions = self._store.list_actions(orchestration_id)
        return list(reversed(actions))[: max(limit, 0)]
