"""Host transport client — session listing, message fetch, ignored notices.

Every call is best-effort: transport failures are logged and degrade to an
empty or ``None`` result, never an exception.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, NamedTuple

import httpx

from ..config import DEFAULT_BASE_URL

if TYPE_CHECKING:
    from .registry import StateRegistry

log = logging.getLogger(__name__)


class HostClient:
    """Talks to the agent host's HTTP API."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 10.0,
        message_limit: int = 100,
    ) -> None:
        self._message_limit = message_limit
        self._client = httpx.Client(
            base_url=base_url,
            headers={"Content-Type": "application/json"},
            timeout=timeout,
        )

    def list_sessions(self) -> dict[str, list[dict]]:
        """``{"data": [session, ...]}``; ``{"data": []}`` on failure."""
        try:
            resp = self._client.get("/session")
            resp.raise_for_status()
            payload = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            log.warning("Session listing failed: %s", e)
            return {"data": []}
        data = payload.get("data") if isinstance(payload, dict) else payload
        return {"data": [s for s in data if isinstance(s, dict)] if isinstance(data, list) else []}

    def fetch_session_messages(self, session_id: str, limit: int | None = None) -> list[Any] | None:
        try:
            resp = self._client.get(
                f"/session/{session_id}/message",
                params={"limit": limit or self._message_limit},
            )
            resp.raise_for_status()
            payload = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            log.warning("Message fetch for session %s failed: %s", session_id, e)
            return None
        if isinstance(payload, dict) and isinstance(payload.get("data"), list):
            return payload["data"]
        return payload if isinstance(payload, list) else None

    def send_ignored_message(self, session_id: str, text: str, params: dict[str, Any]) -> bool:
        """Post a notice the model will not see. Returns False on failure."""
        body: dict[str, Any] = {
            "noReply": True,
            "parts": [{"type": "text", "text": text, "ignored": True}],
        }
        body.update({k: v for k, v in params.items() if v is not None})
        try:
            resp = self._client.post(f"/session/{session_id}/message", json=body)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            log.warning("Notification to session %s failed: %s", session_id, e)
            return False
        return True

    def close(self) -> None:
        self._client.close()


class PrunedIdData(NamedTuple):
    all_sessions: dict[str, list[dict]]
    all_pruned_ids: set[str]


def get_all_pruned_ids(client: HostClient, registry: StateRegistry) -> PrunedIdData:
    """Pruned tool IDs across every non-subagent session the registry knows."""
    all_sessions = client.list_sessions()
    pruned: set[str] = set()
    for session in all_sessions["data"]:
        if session.get("parentID"):
            continue
        ctx = registry.get(str(session.get("id", "")))
        if ctx is not None:
            pruned |= ctx.session.pruned_id_set()
    return PrunedIdData(all_sessions, pruned)


def get_most_recent_active_session(all_sessions: dict[str, list[dict]]) -> dict | None:
    """First session without a parent (hosts list most recent first)."""
    for session in all_sessions.get("data", []):
        if not session.get("parentID"):
            return session
    return None
