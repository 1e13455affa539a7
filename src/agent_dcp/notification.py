"""Notification sink — tell the user what pruning did, without telling the model."""

from __future__ import annotations

import logging
from typing import Any, Callable, Sequence

from .core.types import Message

log = logging.getLogger(__name__)

NotificationSink = Callable[[str, dict[str, Any]], Any]


def get_current_params(messages: Sequence[Message | dict]) -> dict[str, Any]:
    """Agent/model of the latest user message, as the host expects them back."""
    for msg in reversed(messages):
        data = msg.model_dump(by_alias=True) if isinstance(msg, Message) else msg
        info = data.get("info") if isinstance(data.get("info"), dict) else data
        if info.get("role") != "user":
            continue
        meta = data.get("meta") or {}
        params = {
            "agent": info.get("agent", meta.get("agent")),
            "model": info.get("model", meta.get("model")),
        }
        return {k: v for k, v in params.items() if v is not None}
    return {}


def notify(sink: NotificationSink | None, text: str, params: dict[str, Any]) -> None:
    """Fire-and-forget. Sink failures are logged, never raised."""
    if sink is None or not text:
        return
    try:
        sink(text, params)
    except Exception as e:
        log.warning("Notification sink failed: %s", e)


def format_prune_notice(tool: str, result: dict[str, Any]) -> str:
    pruned = result.get("prunedIDs") or []
    if not pruned:
        return ""
    parts = [f"{tool}: pruned {len(pruned)} tool output(s)"]
    protected = result.get("protectedIDs") or []
    if protected:
        parts.append(f"{len(protected)} protected")
    unresolved = result.get("unresolvedInventoryIDs") or []
    if unresolved:
        parts.append(f"unresolved {', '.join('#' + i for i in unresolved)}")
    return ", ".join(parts)
