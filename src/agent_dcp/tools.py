"""Agent-callable tools: dcp_prune and dcp_distill.

Inputs are raw JSON tool arguments; results are JSON-ready dicts. Unknown
inventory IDs come back in ``unresolvedInventoryIDs``, never as errors.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

from pydantic import ValidationError

from .config import DcpConfig
from .core.engine import (
    create_distillation,
    get_prunable_inventory,
    prune_by_ids,
    prune_range,
    resolve_inventory_message_ids,
    sweep,
)
from .core.state import DcpState
from .core.types import Message, PruneResult, SweepResult
from .core.view import summarize_view
from .prompts import DCP_DISTILL_DESCRIPTION, DCP_PRUNE_DESCRIPTION, EMPTY_DISTILLATION

log = logging.getLogger(__name__)

DCP_PRUNE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "ids": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Inventory IDs to prune; when omitted, fallback is sweep mode.",
        },
        "reason": {
            "type": "string",
            "description": "Optional reason label for manual prune records.",
        },
        "start": {
            "type": "string",
            "description": "Text identifying the first message of a range to prune.",
        },
        "end": {
            "type": "string",
            "description": "Text identifying the last message of a range to prune.",
        },
    },
}

DCP_DISTILL_SCHEMA: dict[str, Any] = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "targets": {
            "type": "array",
            "description": "Inventory targets with per-item distillation text.",
            "items": {
                "type": "object",
                "additionalProperties": False,
                "properties": {
                    "id": {"type": "string"},
                    "distillation": {"type": "string"},
                },
                "required": ["id"],
            },
        },
    },
}

TOOL_DEFINITIONS: dict[str, dict[str, Any]] = {
    "dcp_prune": {"description": DCP_PRUNE_DESCRIPTION, "parameters": DCP_PRUNE_SCHEMA},
    "dcp_distill": {"description": DCP_DISTILL_DESCRIPTION, "parameters": DCP_DISTILL_SCHEMA},
}


def as_messages(raw: Sequence[Message | dict] | None) -> list[Message]:
    """Coerce host messages; entries without a string ID or that fail validation are dropped."""
    messages: list[Message] = []
    for item in raw or []:
        if isinstance(item, Message):
            messages.append(item)
        elif isinstance(item, dict) and isinstance(item.get("id"), str):
            try:
                messages.append(Message.model_validate(item))
            except ValidationError as e:
                log.warning("Skipping malformed message %s: %s", item["id"], e)
    return messages


def result_fields(result: PruneResult) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "prunedIDs": list(result.pruned_ids),
        "protectedIDs": list(result.protected_ids),
        "missingIDs": list(result.missing_ids),
    }
    if isinstance(result, SweepResult):
        fields["candidateCount"] = result.candidate_count
        fields["usedLimit"] = result.used_limit
    return fields


class DcpTools:
    """Tool handlers bound to one session's state."""

    def __init__(self, state: DcpState, config: DcpConfig) -> None:
        self._state = state
        self._config = config

    def dcp_prune(self, tool_input: Any, raw_messages: Sequence[Message | dict] | None) -> dict[str, Any]:
        messages = as_messages(raw_messages)
        get_prunable_inventory(messages, self._state, self._config)
        args = tool_input if isinstance(tool_input, dict) else {}
        ids = _normalize_ids(args.get("ids"))
        reason = args.get("reason") if isinstance(args.get("reason"), str) and args["reason"] else "manual"
        start, end = args.get("start"), args.get("end")

        if isinstance(start, str) and start and isinstance(end, str) and end:
            try:
                result = prune_range(messages, self._state, self._config, start, end, reason)
            except ValueError as e:
                return {"ok": False, "tool": "dcp_prune", "mode": "range", "error": str(e)}
            return self._respond("dcp_prune", messages, mode="range", **result_fields(result))

        if not ids:
            swept = sweep(messages, self._state, self._config)
            return self._respond("dcp_prune", messages, mode="sweep", **result_fields(swept))

        resolved = resolve_inventory_message_ids(self._state, ids)
        result = prune_by_ids(
            messages, self._state, self._config, resolved.resolved_message_ids, reason,
        )
        return self._respond(
            "dcp_prune",
            messages,
            mode="inventory",
            inventoryIDs=ids,
            unresolvedInventoryIDs=resolved.missing_ids,
            **result_fields(result),
        )

    def dcp_distill(self, tool_input: Any, raw_messages: Sequence[Message | dict] | None) -> dict[str, Any]:
        messages = as_messages(raw_messages)
        get_prunable_inventory(messages, self._state, self._config)
        args = tool_input if isinstance(tool_input, dict) else {}
        targets = _normalize_targets(args.get("targets"))

        distillations = []
        merged = PruneResult()
        unresolved: list[str] = []
        for target_id, text in targets:
            resolved = resolve_inventory_message_ids(self._state, [target_id])
            if resolved.missing_ids:
                unresolved.extend(resolved.missing_ids)
                continue
            message_id = resolved.resolved_message_ids[0]
            record = create_distillation(messages, self._state, [message_id], text)
            distillations.append(record.model_dump())

            result = prune_by_ids(
                messages, self._state, self._config, [message_id], "distilled", record.id,
            )
            merged.pruned_ids.extend(result.pruned_ids)
            merged.protected_ids.extend(result.protected_ids)
            merged.missing_ids.extend(result.missing_ids)

        if unresolved:
            log.info("dcp_distill: unresolved inventory IDs %s", unresolved)
        return self._respond(
            "dcp_distill",
            messages,
            distillations=distillations,
            targetsApplied=len(targets),
            unresolvedInventoryIDs=unresolved,
            **result_fields(merged),
        )

    def _respond(self, tool: str, messages: list[Message], **fields: Any) -> dict[str, Any]:
        view = summarize_view(messages, self._state, self._config)
        return {
            "ok": True,
            "tool": tool,
            **fields,
            "transformedView": {
                "totalMessages": view.total_messages,
                "prunedMessages": view.pruned_messages,
                "prunableInventorySize": view.prunable_inventory_size,
            },
        }


def _normalize_ids(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, str) and v]


def _normalize_targets(value: Any) -> list[tuple[str, str]]:
    """(inventory id, distillation) pairs, first occurrence of each id wins."""
    if not isinstance(value, list):
        return []
    targets: list[tuple[str, str]] = []
    seen: set[str] = set()
    for raw in value:
        if not isinstance(raw, dict):
            continue
        target_id = raw.get("id")
        if not isinstance(target_id, str) or not target_id or target_id in seen:
            continue
        text = raw.get("distillation")
        text = text.strip() if isinstance(text, str) and text.strip() else EMPTY_DISTILLATION
        seen.add(target_id)
        targets.append((target_id, text))
    return targets
