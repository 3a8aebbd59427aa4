"""Read-only record stores for control-plane actions and orchestration events."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Protocol

from .records import ControlPlaneAction, OrchestrationEvent

logger = logging.getLogger(__name__)


class RecordStore(Protocol):
    """Source of action and event snapshots.

    ``list_actions`` returns actions ordered by creation time, optionally
    scoped to one orchestration.  ``list_events`` returns the events of one
    orchestration ordered by recording time.
    """

    def list_actions(self, orchestration_id: str | None = None) -> list[ControlPlaneAction]: ...

    def list_events(self, orchestration_id: str) -> list[OrchestrationEvent]: ...


def _scoped_actions(
    actions: Iterable[ControlPlaneAction], orchestration_id: str | None
) -> list[ControlPlaneAction]:
    selected = [a for a in actions if orchestration_id is None or a.orchestration_id == orchestration_id]
    return sorted(selected, key=lambda a: a.created_at)


def _scoped_events(events: Iterable[OrchestrationEvent], orchestration_id: str) -> list[OrchestrationEvent]:
    selected = [e for e in events if e.orchestration_id == orchestration_id]
    return sorted(selected, key=lambda e: e.recorded_at_ms)


class InMemoryRecordStore:
    """Store over records already held in memory."""

    def __init__(
        self,
        actions: Iterable[ControlPlaneAction] = (),
        events: Iterable[OrchestrationEvent] = (),
    ) -> None:
        self._actions = tuple(actions)
        self._events = tuple(events)

    def list_actions(self, orchestration_id: str | None = None) -> list[ControlPlaneAction]:
        return _scoped_actions(self._actions, orchestration_id)

    def list_events(self, orchestration_id: str) -> list[OrchestrationEvent]:
        return _scoped_events(self._events, orchestration_id)


def read_ndjson(path: Path) -> list[dict[str, Any]]:
    """Read JSON objects from an NDJSON file, skipping lines that do not decode."""
    if not path.exists():
        return []
    raw = path.read_text(encoding="utf-8", errors="replace")
    out: list[dict[str, Any]] = []
    for lineno, line in enumerate(raw.splitlines(), start=1):
        line = line.strip()
        if not line:
            continue
        try:
            obj = json.loads(line)
        except json.JSONDecodeError as err:
            logger.warning("%s:%d: skipping undecodable line: %s", path, lineno, err)
            continue
        if not isinstance(obj, dict):
            logger.warning("%s:%d: skipping non-object line", path, lineno)
            continue
        out.append(obj)
    return out


class NdjsonRecordStore:
    """Store backed by two append-only NDJSON logs.

    Files are re-read on every call so each query sees the current snapshot.
    Malformed records are skipped with a warning.
    """

    def __init__(self, actions_file: Path, events_file: Path) -> None:
        self._actions_file = actions_file
        self._events_file = events_file

    @property
    def actions_file(self) -> Path:
        return self._actions_file

    @property
    def events_file(self) -> Path:
        return self._events_file

    def _load_actions(self) -> list[ControlPlaneAction]:
        actions: list[ControlPlaneAction] = []
        for item in read_ndjson(self._actions_file):
            try:
                actions.append(ControlPlaneAction.from_dict(item))
            except ValueError as err:
                logger.warning("skipping control action record %r: %s", item.get("id"), err)
        return actions

    def _load_events(self) -> list[OrchestrationEvent]:
        events: list[OrchestrationEvent] = []
        for item in read_ndjson(self._events_file):
            try:
                events.append(OrchestrationEvent.from_dict(item))
            except ValueError as err:
                logger.warning("skipping orchestration event record %r: %s", item.get("id"), err)
        return events

    def list_actions(self, orchestration_id: str | None = None) -> list[ControlPlaneAction]:
        return _scoped_actions(self._load_actions(), orchestration_id)

    def list_events(self, orchestration_id: str) -> list[OrchestrationEvent]:
        return _scoped_events(self._load_events(), orchestration_id)
