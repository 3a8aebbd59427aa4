"""Record builders shared by the telemetry tests."""

from __future__ import annotations

import json
from typing import Any

from controlplane_telemetry.records import ControlPlaneAction, OrchestrationEvent

_counter = {"n": 0}


def _next_id(prefix: str) -> str:
    _counter["n"] += 1
    return f"{prefix}{_counter['n']}"


def make_action(
    action_type: str = "pause",
    status: str = "pending",
    created_at: int = 1000,
    completed_at: int | None = None,
    result: Any = None,
    orchestration_id: str | None = "orch-1",
    requested_by: str = "web-ui",
    payload: str = '{"feature":"demo"}',
    action_id: str | None = None,
) -> ControlPlaneAction:
    if isinstance(result, dict):
        result = json.dumps(result)
    return ControlPlaneAction(
        id=action_id or _next_id("a"),
        action_type=action_type,
        status=status,
        created_at=created_at,
        requested_by=requested_by,
        payload=payload,
        completed_at=completed_at,
        result=result,
        orchestration_id=orchestration_id,
    )


def make_event(
    recorded_at: str,
    event_type: str = "phase_transition",
    orchestration_id: str = "orch-1",
    summary: str = "phase 1 started",
    detail: str | None = None,
    event_id: str | None = None,
) -> OrchestrationEvent:
    return OrchestrationEvent.from_dict(
        {
            "id": event_id or _next_id("e"),
            "orchestrationId": orchestration_id,
            "eventType": event_type,
            "summary": summary,
            "detail": detail,
            "recordedAt": recorded_at,
        }
    )
