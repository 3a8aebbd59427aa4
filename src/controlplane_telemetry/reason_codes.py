"""Reason-code taxonomy for control-plane action failures.

Each code belongs to a category (validation, dispatch, execution) used for
dashboard rollups and operator diagnostics.  The classifier turns the raw
daemon dispatch result stored on an action into one of these codes.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any


class ReasonCode(str, Enum):
    """Stable failure reason codes."""

    # Validation failures (action rejected before queuing)
    VALIDATION_MISSING_FIELD = "validation_missing_field"
    VALIDATION_INVALID_PAYLOAD = "validation_invalid_payload"
    VALIDATION_UNKNOWN_ACTION = "validation_unknown_action"
    VALIDATION_REVISION_CONFLICT = "validation_revision_conflict"
    VALIDATION_INVALID_STATE = "validation_invalid_state"
    VALIDATION_ENTITY_NOT_FOUND = "validation_entity_not_found"
    VALIDATION_NODE_OFFLINE = "validation_node_offline"

    # Dispatch failures (daemon could not execute)
    DISPATCH_CLI_EXIT_NONZERO = "dispatch_cli_exit_nonzero"
    DISPATCH_CLI_SPAWN_FAILED = "dispatch_cli_spawn_failed"
    DISPATCH_PAYLOAD_INVALID = "dispatch_payload_invalid"
    DISPATCH_UNKNOWN_TYPE = "dispatch_unknown_type"

    # Execution failures (CLI ran but produced an error)
    EXECUTION_INIT_FAILED = "execution_init_failed"
    EXECUTION_ADVANCE_FAILED = "execution_advance_failed"
    EXECUTION_POLICY_WRITE_FAILED = "execution_policy_write_failed"
    EXECUTION_TASK_MUTATION_FAILED = "execution_task_mutation_failed"


# Buckets used by the failure distribution for records the classifier cannot speak for.
UNKNOWN_REASON = "unknown"
UNCLASSIFIED_REASON = "unclassified"

CATEGORY_VALIDATION = "validation"
CATEGORY_DISPATCH = "dispatch"
CATEGORY_EXECUTION = "execution"
CATEGORY_UNRECOGNIZED = "unrecognized"

_KNOWN_CODES = frozenset(code.value for code in ReasonCode)

# Daemon DispatchErrorCode values -> reason codes
DISPATCH_ERROR_CODE_MAP: dict[str, ReasonCode] = {
    "payload_missing_field": ReasonCode.DISPATCH_PAYLOAD_INVALID,
    "payload_invalid": ReasonCode.DISPATCH_PAYLOAD_INVALID,
    "unknown_action_type": ReasonCode.DISPATCH_UNKNOWN_TYPE,
    "cli_exit_non_zero": ReasonCode.DISPATCH_CLI_EXIT_NONZERO,
    "cli_spawn_failed": ReasonCode.DISPATCH_CLI_SPAWN_FAILED,
}


def is_known_code(code: str) -> bool:
    return str(code) in _KNOWN_CODES


def category_for(code: str, *, strict: bool = False) -> str:
    """Return the coarse category for a reason code.

    Codes are bucketed by prefix and anything without a ``validation_`` or
    ``dispatch_`` prefix lands in ``execution``, including codes outside the
    taxonomy.  With ``strict=True`` codes outside the taxonomy are reported
    as ``unrecognized`` instead.
    """
    code = str(code)
    if strict and code not in _KNOWN_CODES:
        return CATEGORY_UNRECOGNIZED
    if code.startswith("validation_"):
        return CATEGORY_VALIDATION
    if code.startswith("dispatch_"):
        return CATEGORY_DISPATCH
    return CATEGORY_EXECUTION


def from_dispatch_error_code(error_code: str) -> str:
    """Map a daemon error code to a reason code."""
    return DISPATCH_ERROR_CODE_MAP.get(error_code, ReasonCode.DISPATCH_PAYLOAD_INVALID).value


def classify(result_json: str) -> str | None:
    """Extract the reason code from a daemon dispatch result.

    Results have the shape ``{"success": bool, "error_code"?: str, "message": str}``.
    Returns ``None`` for successful results.  Text that does not decode, or
    decodes to ``null``, is itself a classified outcome
    (``dispatch_payload_invalid``).  Any other non-object value carries no
    success flag or error code and counts as a plain non-zero exit.
    """
    try:
        parsed: Any = json.loads(result_json)
    except (TypeError, ValueError, RecursionError):
        return ReasonCode.DISPATCH_PAYLOAD_INVALID.value
    if parsed is None:
        return ReasonCode.DISPATCH_PAYLOAD_INVALID.value
    if not isinstance(parsed, dict):
        return ReasonCode.DISPATCH_CLI_EXIT_NONZERO.value
    if parsed.get("success"):
        return None
    error_code = parsed.get("error_code")
    if error_code:
        if not isinstance(error_code, str):
            return ReasonCode.DISPATCH_PAYLOAD_INVALID.value
        return from_dispatch_error_code(error_code)
    return ReasonCode.DISPATCH_CLI_EXIT_NONZERO.value


def reason_code_catalog() -> dict[str, str]:
    """Return every known reason code with its category."""
    return {code.value: category_for(code.value) for code in sorted(ReasonCode, key=lambda c: c.value)}
