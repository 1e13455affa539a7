"""Prune/inventory engine — decide and record what gets pruned.

All operations take the message sequence, the session's ``DcpState`` and
the config explicitly. Missing and protected IDs are reported in the
result, never raised.
"""

from __future__ import annotations

import json
import logging
import math
import time
from typing import Any, Sequence

from ..config import DcpConfig
from .content import tool_call_ids
from .matching import collect_message_ids_in_range, resolve_range
from .protection import is_protected
from .state import DcpState
from .types import (
    DistillationRecord,
    InventoryEntry,
    InventoryResolution,
    Message,
    MessageRole,
    PrunedRecord,
    PruneResult,
    SweepResult,
)

log = logging.getLogger(__name__)

# Rough chars-per-token for estimation
_CHARS_PER_TOKEN = 4


def estimate_chars(value: Any) -> int:
    """Length of a string, or of its JSON serialization otherwise."""
    if isinstance(value, str):
        return len(value)
    if value is None:
        return 0
    try:
        return len(json.dumps(value, separators=(",", ":")))
    except (TypeError, ValueError):
        return 0


def estimate_tokens(chars: int) -> int:
    if chars <= 0:
        return 0
    return math.ceil(chars / _CHARS_PER_TOKEN)


def prune_by_ids(
    messages: Sequence[Message],
    state: DcpState,
    config: DcpConfig,
    message_ids: Sequence[str],
    reason: str,
    distillation_id: str | None = None,
) -> PruneResult:
    """Record a prune for each prunable ID. Already-pruned IDs are skipped silently."""
    by_id = {m.id: m for m in messages}
    result = PruneResult()

    for message_id in message_ids:
        message = by_id.get(message_id)
        if message is None:
            result.missing_ids.append(message_id)
            continue
        if state.is_pruned(message_id):
            continue
        if is_protected(message, config):
            result.protected_ids.append(message_id)
            continue

        chars = estimate_chars(message.content)
        state.pruned_by_id[message_id] = PrunedRecord(
            reason=reason,
            tool_name=message.tool_name,
            chars=chars,
            at=time.time(),
            distillation_id=distillation_id,
            tool_call_ids=tool_call_ids(message),
        )
        result.pruned_ids.append(message_id)
        state.counters.pruned_messages += 1
        state.counters.pruned_chars += chars

    if result.pruned_ids:
        log.debug("Pruned %d message(s) reason=%s", len(result.pruned_ids), reason)
    return result


def collect_sweep_candidates(
    messages: Sequence[Message], state: DcpState, config: DcpConfig
) -> list[str]:
    """Unpruned, unprotected tool-like messages after the last user message."""
    start = _last_user_index(messages) + 1
    return [
        m.id for m in messages[start:]
        if m.is_tool_like and not state.is_pruned(m.id) and not is_protected(m, config)
    ]


def sweep(
    messages: Sequence[Message],
    state: DcpState,
    config: DcpConfig,
    limit: int | None = None,
) -> SweepResult:
    """Prune sweep candidates; with ``limit``, only the last ``limit`` of them."""
    candidates = collect_sweep_candidates(messages, state, config)
    used_limit = limit if isinstance(limit, int) and limit > 0 else None
    capped = candidates[-used_limit:] if used_limit else candidates

    result = prune_by_ids(messages, state, config, capped, "sweep")
    if result.pruned_ids:
        state.counters.sweeps += 1

    return SweepResult(
        **result.model_dump(),
        candidate_count=len(candidates),
        used_limit=used_limit,
    )


def prune_range(
    messages: Sequence[Message],
    state: DcpState,
    config: DcpConfig,
    start_string: str,
    end_string: str,
    reason: str = "manual",
) -> PruneResult:
    """Prune tool-like messages between two text anchors, inclusive.

    Raises ``MatchError`` subclasses when an anchor is ambiguous or absent.
    """
    start, end = resolve_range(messages, start_string, end_string, config.fuzzy)
    in_range = set(collect_message_ids_in_range(messages, start, end))
    targets = [m.id for m in messages if m.id in in_range and m.is_tool_like]
    return prune_by_ids(messages, state, config, targets, reason)


def get_prunable_inventory(
    messages: Sequence[Message], state: DcpState, config: DcpConfig
) -> list[InventoryEntry]:
    """Numbered list of prunable messages, stable while the prunable set is unchanged.

    When the set changes, numbering restarts from "1" in document order;
    callers holding old numbers may see them shift.
    """
    current: list[tuple[Message, int]] = []
    for message in messages:
        if not message.is_tool_like or state.is_pruned(message.id):
            continue
        if is_protected(message, config):
            continue
        current.append((message, estimate_chars(message.content)))

    signature = "|".join(f"{m.id}:{chars}" for m, chars in current)
    cache = state.inventory
    if cache.signature == signature and len(cache.entries) == len(current):
        return cache.entries

    entries: list[InventoryEntry] = []
    for index, (message, chars) in enumerate(current, start=1):
        entries.append(InventoryEntry(
            id=str(index),
            message_id=message.id,
            role=message.role or "",
            tool_name=message.tool_name or "",
            chars=chars,
            estimated_tokens=estimate_tokens(chars),
        ))

    cache.signature = signature
    cache.entries = entries
    cache.numeric_to_message_id = {e.id: e.message_id for e in entries}
    cache.message_to_numeric_id = {e.message_id: e.id for e in entries}
    return entries


def resolve_inventory_message_ids(state: DcpState, ids: Sequence[str]) -> InventoryResolution:
    """Map numeric inventory IDs to message IDs against the current inventory."""
    resolution = InventoryResolution()
    for numeric_id in ids:
        message_id = state.inventory.numeric_to_message_id.get(numeric_id)
        if message_id is None:
            resolution.missing_ids.append(numeric_id)
        else:
            resolution.resolved_message_ids.append(message_id)
    return resolution


def create_distillation(
    messages: Sequence[Message],
    state: DcpState,
    message_ids: Sequence[str],
    summary: str,
) -> DistillationRecord:
    """Store ``summary`` for the given sources. Does not prune them."""
    record = DistillationRecord(
        id=f"distill-{state.counters.distillations + 1}",
        source_message_ids=list(message_ids),
        summary=summary,
        at=time.time(),
    )
    state.distillations.append(record)
    state.counters.distillations += 1
    for source_id in message_ids:
        state.distillation_by_source_id[source_id] = record.id
    return record


def _last_user_index(messages: Sequence[Message]) -> int:
    for index in range(len(messages) - 1, -1, -1):
        if messages[index].role == MessageRole.USER.value:
            return index
    return -1
