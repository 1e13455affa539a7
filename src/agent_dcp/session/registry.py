"""Session-keyed store of all mutable pruning state."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..core.state import DcpState
from ..formats.tracker import ToolTracker
from .persistence import StateStore
from .state import SessionState, ensure_session_initialized

log = logging.getLogger(__name__)


@dataclass
class SessionContext:
    """Everything one session owns: engine state, wire-side state, tracker."""

    session_id: str
    dcp: DcpState = field(default_factory=DcpState)
    session: SessionState = field(default_factory=SessionState)
    tracker: ToolTracker = field(default_factory=ToolTracker)


class StateRegistry:
    """Hands out one ``SessionContext`` per session ID.

    Sessions never share state; requests for a session are handled one at
    a time, so no locking is done here.
    """

    def __init__(self, store: StateStore | None = None) -> None:
        self._store = store
        self._contexts: dict[str, SessionContext] = {}

    def get(self, session_id: str) -> SessionContext | None:
        return self._contexts.get(session_id)

    def get_or_create(self, session_id: str) -> SessionContext:
        ctx = self._contexts.get(session_id)
        if ctx is None:
            ctx = SessionContext(session_id=session_id)
            ensure_session_initialized(ctx.session, session_id, self._store)
            self._contexts[session_id] = ctx
            log.debug("Created context for session %s", session_id)
        return ctx

    def reset(self, session_id: str) -> None:
        """Drop all in-memory state for a session."""
        self._contexts.pop(session_id, None)

    def save(self, session_id: str) -> None:
        ctx = self._contexts.get(session_id)
        if ctx is not None and self._store is not None:
            self._store.save_session_state(ctx.session)

    def session_ids(self) -> list[str]:
        return list(self._contexts)
