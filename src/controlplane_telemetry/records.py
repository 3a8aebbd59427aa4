"""Control-plane action and orchestration event records.

Both record kinds are written by external processes (the dispatcher and the
orchestration runtime) and are only ever read here.  Wire dicts use the
camelCase field names of the control-plane store; timestamps are normalised
to integer epoch milliseconds when a record is ingested.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

STATUS_PENDING = "pending"
STATUS_DISPATCHED = "dispatched"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"

START_ORCHESTRATION = "start_orchestration"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MS = timedelta(milliseconds=1)
_FRACTION = re.compile(r"([T ]\d{2}:\d{2}:\d{2})\.(\d+)")


def iso_to_epoch_ms(value: str) -> int:
    """Convert an ISO-8601 timestamp to epoch milliseconds.

    A trailing ``Z`` is accepted and naive timestamps are taken as UTC.
    Fractional seconds of any length are cut or padded to microseconds.
    """
    raw = str(value).strip()
    raw = _FRACTION.sub(lambda m: f"{m.group(1)}.{m.group(2)[:6].ljust(6, '0')}", raw, count=1)
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    parsed = datetime.fromisoformat(raw)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return (parsed - _EPOCH) // _ONE_MS


def _epoch_ms(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ValueError(f"{field_name} must be epoch milliseconds, got {value!r}")
    return int(value)


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def _required_str(payload: dict[str, Any], key: str) -> str:
    value = payload.get(key)
    if value is None or str(value).strip() == "":
        raise ValueError(f"record missing required field: {key}")
    return str(value)


@dataclass(frozen=True)
class ControlPlaneAction:
    """A command submitted to the execution daemon, tracked to its terminal outcome."""

    id: str
    action_type: str
    status: str
    created_at: int
    requested_by: str = ""
    payload: str = ""
    completed_at: int | None = None
    result: str | None = None
    orchestration_id: str | None = None
    node_id: str | None = None

    def __post_init__(self) -> None:
        if self.completed_at is not None and self.completed_at < self.created_at:
            raise ValueError(
                f"action {self.id}: completedAt {self.completed_at} precedes createdAt {self.created_at}"
            )

    @property
    def is_terminal(self) -> bool:
        return self.status in {STATUS_COMPLETED, STATUS_FAILED}

    @property
    def latency_ms(self) -> int | None:
        if self.completed_at is None:
            return None
        return self.completed_at - self.created_at

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "ControlPlaneAction":
        if not isinstance(payload, dict):
            raise ValueError("control action record must be an object")
        completed_raw = payload.get("completedAt")
        return cls(
            id=_required_str(payload, "id"),
            action_type=_required_str(payload, "actionType"),
            status=str(payload.get("status", STATUS_PENDING)),
            created_at=_epoch_ms(payload.get("createdAt"), "createdAt"),
            requested_by=str(payload.get("requestedBy", "")),
            payload=str(payload.get("payload", "")),
            completed_at=None if completed_raw is None else _epoch_ms(completed_raw, "completedAt"),
            result=_optional_str(payload.get("result")),
            orchestration_id=_optional_str(payload.get("orchestrationId")),
            node_id=_optional_str(payload.get("nodeId")),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "actionType": self.action_type,
            "status": self.status,
            "createdAt": self.created_at,
            "requestedBy": self.requested_by,
            "payload": self.payload,
        }
        if self.completed_at is not None:
            out["completedAt"] = self.completed_at
        if self.result is not None:
            out["result"] = self.result
        if self.orchestration_id is not None:
            out["orchestrationId"] = self.orchestration_id
        if self.node_id is not None:
            out["nodeId"] = self.node_id
        return out


@dataclass(frozen=True)
class OrchestrationEvent:
    """An immutable lifecycle event recorded by the orchestration process."""

    id: str
    orchestration_id: str
    event_type: str
    summary: str
    recorded_at: str
    recorded_at_ms: int
    phase_number: str | None = None
    detail: str | None = None
    source: str | None = None

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "OrchestrationEvent":
        if not isinstance(payload, dict):
            raise ValueError("orchestration event record must be an object")
        recorded_at = _required_str(payload, "recordedAt")
        try:
            recorded_at_ms = iso_to_epoch_ms(recorded_at)
        except ValueError as err:
            raise ValueError(f"invalid recordedAt {recorded_at!r}: {err}") from err
        return cls(
            id=_required_str(payload, "id"),
            orchestration_id=_required_str(payload, "orchestrationId"),
            event_type=str(payload.get("eventType", "")),
            summary=str(payload.get("summary", "")),
            recorded_at=recorded_at,
            recorded_at_ms=recorded_at_ms,
            phase_number=_optional_str(payload.get("phaseNumber")),
            detail=_optional_str(payload.get("detail")),
            source=_optional_str(payload.get("source")),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "orchestrationId": self.orchestration_id,
            "eventType": self.event_type,
            "summary": self.summary,
            "recordedAt": self.recorded_at,
        }
        if self.phase_number is not None:
            out["phaseNumber"] = self.phase_number
        if self.detail is not None:
            out["detail"] = self.detail
        if self.source is not None:
            out["source"] = self.source
        return out
