"""Telemetry and analytics over control-plane actions and orchestration events."""

from .metrics import MetricsAggregator
from .reason_codes import ReasonCode, category_for, classify
from .records import ControlPlaneAction, OrchestrationEvent
from .store import InMemoryRecordStore, NdjsonRecordStore, RecordStore
from .timeline import TimelineEntry, TimelineProjector

__all__ = [
    "ControlPlaneAction",
    "InMemoryRecordStore",
    "MetricsAggregator",
    "NdjsonRecordStore",
    "OrchestrationEvent",
    "ReasonCode",
    "RecordStore",
    "TimelineEntry",
    "TimelineProjector",
    "category_for",
    "classify",
]
