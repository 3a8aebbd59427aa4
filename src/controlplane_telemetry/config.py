"""Configuration for the telemetry layer, read from an env file and the environment."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from .store import NdjsonRecordStore
from .timeline import DEFAULT_ACTIONS_LIMIT, DEFAULT_TIMELINE_LIMIT

ENV_PREFIX = "CONTROLPLANE_TELEMETRY_"


def read_env_assignments(path: Path) -> dict[str, str]:
    """Parse ``KEY=value`` lines, ignoring comments and an ``export`` prefix."""
    if not path.exists():
        return {}
    assignments: dict[str, str] = {}
    for line in path.read_text(encoding="utf-8").splitlines():
        entry = line.strip()
        if entry.startswith("export "):
            entry = entry[7:].lstrip()
        name, sep, value = entry.partition("=")
        if not sep or not name or name.startswith("#"):
            continue
        assignments[name.strip()] = value.strip().strip("\"'")
    return assignments


class _PrefixedSettings:
    """Typed lookups of ``CONTROLPLANE_TELEMETRY_*`` keys; bad values yield the default."""

    def __init__(self, values: Mapping[str, str], root: Path) -> None:
        self._values = values
        self._root = root

    def text(self, key: str, default: str) -> str:
        return self._values.get(ENV_PREFIX + key, default).strip()

    def integer(self, key: str, default: int) -> int:
        try:
            return int(self._values[ENV_PREFIX + key])
        except (KeyError, ValueError):
            return default

    def path(self, key: str, default: Path) -> Path:
        raw = self.text(key, "")
        if not raw:
            return default.resolve()
        candidate = Path(raw).expanduser()
        return (candidate if candidate.is_absolute() else self._root / candidate).resolve()


@dataclass(frozen=True)
class TelemetryConfig:
    root_dir: Path
    env_file: Path
    actions_file: Path
    events_file: Path
    timeline_limit: int = DEFAULT_TIMELINE_LIMIT
    actions_limit: int = DEFAULT_ACTIONS_LIMIT
    log_level: str = "WARNING"

    @classmethod
    def from_root(cls, root: Path, env_file_override: Path | None = None) -> "TelemetryConfig":
        root = root.resolve()
        if env_file_override is not None:
            env_file = env_file_override.resolve()
        else:
            env_file = Path(os.environ.get(f"{ENV_PREFIX}ENV_FILE", str(root / ".env.telemetry"))).resolve()
        settings = _PrefixedSettings({**read_env_assignments(env_file), **os.environ}, root)

        level = settings.text("LOG_LEVEL", "WARNING").upper()
        if not isinstance(logging.getLevelName(level), int):
            level = "WARNING"

        return cls(
            root_dir=root,
            env_file=env_file,
            actions_file=settings.path("ACTIONS_FILE", root / "state" / "control_actions.ndjson"),
            events_file=settings.path("EVENTS_FILE", root / "state" / "orchestration_events.ndjson"),
            timeline_limit=settings.integer("TIMELINE_LIMIT", DEFAULT_TIMELINE_LIMIT),
            actions_limit=settings.integer("ACTIONS_LIMIT", DEFAULT_ACTIONS_LIMIT),
            log_level=level,
        )

    def record_store(self) -> NdjsonRecordStore:
        return NdjsonRecordStore(self.actions_file, self.events_file)
