"""Session-level prune bookkeeping mirrored onto the wire request path."""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from .persistence import StateStore

log = logging.getLogger(__name__)


class ToolStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    ERROR = "error"


class ToolParameterEntry(BaseModel):
    """What a tool call was invoked with, cached from the request body."""

    tool: str
    parameters: Any = None
    status: ToolStatus | None = None
    error: str | None = None


class Prune(BaseModel):
    tool_ids: list[str] = Field(default_factory=list)


class SessionStats(BaseModel):
    tokens_saved: int = 0
    tools_pruned: int = 0


class SessionState(BaseModel):
    session_id: str | None = None
    prune: Prune = Field(default_factory=Prune)
    stats: SessionStats = Field(default_factory=SessionStats)
    tool_parameters: dict[str, ToolParameterEntry] = Field(default_factory=dict)

    def pruned_id_set(self) -> set[str]:
        return {tool_id.lower() for tool_id in self.prune.tool_ids}


class PersistedSessionState(BaseModel):
    """On-disk snapshot. Tool parameters are rebuilt from request bodies, not persisted."""

    session_id: str
    prune: Prune = Field(default_factory=Prune)
    stats: SessionStats = Field(default_factory=SessionStats)


def create_session_state() -> SessionState:
    return SessionState()


def reset_session_state(state: SessionState) -> None:
    state.session_id = None
    state.prune = Prune()
    state.stats = SessionStats()
    state.tool_parameters.clear()


def ensure_session_initialized(
    state: SessionState, session_id: str, store: StateStore | None = None
) -> bool:
    """Switch ``state`` to ``session_id``, rehydrating from ``store`` if possible.

    Returns True when the session changed.
    """
    if state.session_id == session_id:
        return False

    reset_session_state(state)
    state.session_id = session_id
    if store is None:
        return True

    persisted = store.load_session_state(session_id)
    if persisted is None:
        return True

    state.prune = Prune(tool_ids=list(persisted.prune.tool_ids))
    state.stats = persisted.stats.model_copy()
    log.debug("Rehydrated session %s with %d pruned IDs", session_id, len(state.prune.tool_ids))
    return True


def record_pruned_tools(state: SessionState, tool_ids: list[str], tokens: int) -> int:
    """Add newly pruned tool IDs (lower-cased, deduplicated). Returns how many were new."""
    known = state.pruned_id_set()
    added = 0
    for tool_id in tool_ids:
        key = tool_id.lower()
        if key in known:
            continue
        known.add(key)
        state.prune.tool_ids.append(key)
        added += 1
    if added:
        state.stats.tools_pruned += added
        state.stats.tokens_saved += tokens
    return added


def to_persisted(state: SessionState) -> PersistedSessionState:
    if state.session_id is None:
        raise ValueError("Session state has no session ID")
    return PersistedSessionState(
        session_id=state.session_id,
        prune=state.prune.model_copy(deep=True),
        stats=state.stats.model_copy(),
    )
