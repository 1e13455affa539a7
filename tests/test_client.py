"""Tests for HostClient and cross-session pruned-ID lookup."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import httpx

from agent_dcp.session.client import (
    HostClient,
    get_all_pruned_ids,
    get_most_recent_active_session,
)
from agent_dcp.session.registry import StateRegistry
from agent_dcp.session.state import record_pruned_tools


def _mock_response(payload) -> MagicMock:
    resp = MagicMock()
    resp.status_code = 200
    resp.raise_for_status = MagicMock()
    resp.json.return_value = payload
    return resp


def test_list_sessions() -> None:
    client = HostClient()
    resp = _mock_response([{"id": "s1"}, "junk", {"id": "s2", "parentID": "s1"}])
    with patch.object(client._client, "get", return_value=resp) as mock_get:
        sessions = client.list_sessions()
    mock_get.assert_called_once_with("/session")
    assert sessions == {"data": [{"id": "s1"}, {"id": "s2", "parentID": "s1"}]}


def test_list_sessions_degrades_on_transport_error() -> None:
    client = HostClient()
    with patch.object(client._client, "get", side_effect=httpx.ConnectError("refused")):
        assert client.list_sessions() == {"data": []}


def test_list_sessions_degrades_on_bad_json() -> None:
    client = HostClient()
    resp = _mock_response(None)
    resp.json.side_effect = ValueError("no json")
    with patch.object(client._client, "get", return_value=resp):
        assert client.list_sessions() == {"data": []}


def test_fetch_session_messages_uses_limit() -> None:
    client = HostClient(message_limit=25)
    resp = _mock_response({"data": [{"info": {"id": "m1"}}]})
    with patch.object(client._client, "get", return_value=resp) as mock_get:
        messages = client.fetch_session_messages("s1")
    assert messages == [{"info": {"id": "m1"}}]
    mock_get.assert_called_once_with("/session/s1/message", params={"limit": 25})


def test_fetch_session_messages_failure_is_none() -> None:
    client = HostClient()
    with patch.object(client._client, "get", side_effect=httpx.ReadTimeout("slow")):
        assert client.fetch_session_messages("s1", limit=5) is None


def test_send_ignored_message() -> None:
    client = HostClient()
    with patch.object(client._client, "post", return_value=_mock_response({})) as mock_post:
        ok = client.send_ignored_message("s1", "pruned 2", {"agent": "build", "model": None})
    assert ok is True
    _, kwargs = mock_post.call_args
    assert mock_post.call_args.args[0] == "/session/s1/message"
    assert kwargs["json"] == {
        "noReply": True,
        "parts": [{"type": "text", "text": "pruned 2", "ignored": True}],
        "agent": "build",
    }


def test_send_ignored_message_failure_is_false() -> None:
    client = HostClient()
    resp = _mock_response({})
    request = httpx.Request("POST", "http://host/session/s1/message")
    resp.raise_for_status.side_effect = httpx.HTTPStatusError(
        "boom", request=request, response=httpx.Response(500, request=request),
    )
    with patch.object(client._client, "post", return_value=resp):
        assert client.send_ignored_message("s1", "text", {}) is False


def test_get_all_pruned_ids_skips_subagents() -> None:
    registry = StateRegistry()
    record_pruned_tools(registry.get_or_create("main").session, ["call_1"], 1)
    record_pruned_tools(registry.get_or_create("child").session, ["call_2"], 1)

    client = HostClient()
    sessions = {"data": [{"id": "main"}, {"id": "child", "parentID": "main"}, {"id": "unknown"}]}
    with patch.object(client, "list_sessions", return_value=sessions):
        data = get_all_pruned_ids(client, registry)

    assert data.all_pruned_ids == {"call_1"}
    assert data.all_sessions is sessions


def test_most_recent_active_session() -> None:
    sessions = {"data": [{"id": "c", "parentID": "p"}, {"id": "p"}, {"id": "old"}]}
    assert get_most_recent_active_session(sessions) == {"id": "p"}
    assert get_most_recent_active_session({"data": []}) is None
