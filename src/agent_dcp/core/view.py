"""Transformed view — pruned messages rendered as placeholders, originals untouched."""

from __future__ import annotations

from typing import Sequence

from ..config import DcpConfig
from .engine import estimate_chars, estimate_tokens, get_prunable_inventory
from .state import DcpState
from .types import IdMapping, Message, PrunedRecord, ViewSummary


def format_placeholder(message_id: str, reason: str, distillation_id: str | None = None) -> str:
    distilled = f" distilled={distillation_id}" if distillation_id else ""
    return f"[dcp-pruned id={message_id} reason={reason}{distilled}]"


def placeholder_for(message_id: str, record: PrunedRecord) -> str:
    return format_placeholder(message_id, record.reason, record.distillation_id)


def create_transformed_view(messages: Sequence[Message], state: DcpState) -> list[Message]:
    """Project ``messages`` with pruned entries replaced by placeholders.

    Inputs are never mutated; only ``state.id_map`` is refreshed.
    """
    view: list[Message] = []
    for message in messages:
        record = state.pruned_by_id.get(message.id)
        state.id_map[message.id] = IdMapping(
            original_id=message.id,
            transformed_id=message.id,
            pruned=record is not None,
        )
        if record is None:
            view.append(message.model_copy(deep=True))
            continue

        meta = dict(message.meta or {})
        meta["dcp"] = {
            "pruned": True,
            "originalID": message.id,
            "reason": record.reason,
            "distillationID": record.distillation_id,
        }
        pruned = message.model_copy(
            deep=True,
            update={"content": placeholder_for(message.id, record), "meta": meta},
        )
        # host part lists carry the same output as content
        if pruned.model_extra:
            pruned.model_extra.pop("parts", None)
        view.append(pruned)
    return view


def is_pruned_view_message(message: Message) -> bool:
    dcp = (message.meta or {}).get("dcp")
    return isinstance(dcp, dict) and bool(dcp.get("pruned"))


def total_chars(messages: Sequence[Message]) -> int:
    return sum(estimate_chars(m.content) for m in messages)


def view_savings(messages: Sequence[Message], view: Sequence[Message]) -> tuple[int, int]:
    """(chars saved, estimated tokens saved) of ``view`` against the raw messages."""
    saved = total_chars(messages) - total_chars(view)
    return saved, estimate_tokens(saved)


def summarize_view(
    messages: Sequence[Message], state: DcpState, config: DcpConfig
) -> ViewSummary:
    view = create_transformed_view(messages, state)
    inventory = get_prunable_inventory(messages, state, config)
    return ViewSummary(
        total_messages=len(view),
        pruned_messages=sum(1 for m in view if is_pruned_view_message(m)),
        prunable_inventory_size=len(inventory),
    )
