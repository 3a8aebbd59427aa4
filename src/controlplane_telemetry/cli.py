"""CLI entrypoint for control-plane telemetry reports."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any

from .config import TelemetryConfig
from .metrics import MetricsAggregator
from .reason_codes import category_for, classify, reason_code_catalog
from .timeline import TimelineProjector


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, sort_keys=True))


def _non_negative_int(raw: str) -> int:
    value = int(raw)
    if value < 0:
        raise argparse.ArgumentTypeError(f"expected a non-negative integer, got {raw}")
    return value


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Control-plane telemetry reports")
    parser.add_argument("--root", default=".", help="control-plane state root directory")
    parser.add_argument("--env-file", default="", help="optional path to .env.telemetry")

    sub = parser.add_subparsers(dest="command", required=True)
    launch_rate = sub.add_parser("launch-rate")
    launch_rate.add_argument("--since", type=_non_negative_int, default=0)
    latency = sub.add_parser("latency")
    latency.add_argument("--since", type=_non_negative_int, default=0)
    failures = sub.add_parser("failures")
    failures.add_argument("--since", type=_non_negative_int, default=0)
    failures.add_argument("--by-category", action="store_true")
    snapshot = sub.add_parser("snapshot")
    snapshot.add_argument("--since", type=_non_negative_int, default=0)
    timeline = sub.add_parser("timeline")
    timeline.add_argument("orchestration_id")
    timeline.add_argument("--limit", type=_non_negative_int, default=None)
    timeline.add_argument("--since", type=_non_negative_int, default=None)
    actions = sub.add_parser("actions")
    actions.add_argument("orchestration_id")
    actions.add_argument("--limit", type=_non_negative_int, default=None)
    classify_cmd = sub.add_parser("classify")
    classify_cmd.add_argument("result_json")
    sub.add_parser("reason-codes")

    args = parser.parse_args(argv)
    env_file = Path(args.env_file).resolve() if args.env_file else None
    cfg = TelemetryConfig.from_root(Path(args.root), env_file)
    logging.basicConfig(level=cfg.log_level, format="%(levelname)s %(name)s: %(message)s")

    try:
        if args.command == "classify":
            code = classify(args.result_json)
            _print_json({"reasonCode": code, "category": category_for(code) if code else None})
            return 0
        if args.command == "reason-codes":
            _print_json(reason_code_catalog())
            return 0

        store = cfg.record_store()
        if args.command in {"launch-rate", "latency", "failures", "snapshot"}:
            metrics = MetricsAggregator(store)
            if args.command == "launch-rate":
                _print_json(metrics.launch_success_rate(args.since))
            elif args.command == "latency":
                _print_json(metrics.action_latency(args.since))
            elif args.command == "failures":
                if args.by_category:
                    _print_json(metrics.failure_categories(args.since))
                else:
                    _print_json(metrics.failure_distribution(args.since))
            else:
                _print_json(metrics.snapshot(args.since))
            return 0

        projector = TimelineProjector(store)
        if args.command == "timeline":
            limit = cfg.timeline_limit if args.limit is None else args.limit
            entries = projector.get_unified_timeline(args.orchestration_id, limit=limit, since=args.since)
            _print_json([entry.to_dict() for entry in entries])
            return 0
        # argparse exits with status 2 before reaching here for unknown commands, so this is "actions".
        limit = cfg.actions_limit if args.limit is None else args.limit
        listed = projector.list_control_actions(args.orchestration_id, limit=limit)
        _print_json([action.to_dict() for action in listed])
        return 0
    except (FileNotFoundError, RuntimeError, ValueError) as err:
        _print_json(
            {
                "ok": False,
                "error": str(err),
                "command": args.command,
                "root": str(cfg.root_dir),
            }
        )
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
