"""Facade — single entry point for using agent-dcp as a package."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Sequence

from .commands import CommandHandler
from .config import DcpConfig
from .core.engine import estimate_tokens
from .core.types import Message
from .core.view import create_transformed_view
from .fetch_handler import FetchHandlerContext, FetchHandlerResult, handle_request_body
from .notification import NotificationSink, format_prune_notice, get_current_params, notify
from .prompts import SynthPrompts
from .session.client import HostClient, get_all_pruned_ids
from .session.persistence import StateStore
from .session.registry import SessionContext, StateRegistry
from .session.state import record_pruned_tools
from .tools import DcpTools, as_messages

log = logging.getLogger(__name__)


class ContextPruner:
    """High-level facade wiring state, tools, commands and request rewriting.

    Usage::

        pruner = ContextPruner.from_config("CONFIG.yaml")

        # Agent invokes a pruning tool:
        result = pruner.prune(session_id, {"ids": ["2"]}, messages)

        # Before each LLM request goes out:
        outcome = pruner.handle_request(session_id, body, url)
        if outcome.modified:
            payload = json.dumps(outcome.body)

        # Host renders history:
        view = pruner.transform_messages(session_id, messages)
    """

    def __init__(
        self,
        config: DcpConfig | None = None,
        *,
        store: StateStore | None = None,
        client: HostClient | None = None,
        notification_sink: NotificationSink | None = None,
        prompts: SynthPrompts | None = None,
    ) -> None:
        self._config = config or DcpConfig()
        self._store = store
        self._client = client
        self._sink = notification_sink
        self._prompts = prompts or SynthPrompts()
        self._registry = StateRegistry(store)

    @classmethod
    def from_config(
        cls,
        config_path: str | Path | None = None,
        *,
        notification_sink: NotificationSink | None = None,
        connect: bool = False,
    ) -> ContextPruner:
        """Create a ContextPruner from a CONFIG.yaml file.

        With ``connect=True`` a ``HostClient`` is built from the ``host`` section
        so requests also honor prunes recorded in sibling sessions.
        """
        from . import load_config

        config = DcpConfig.from_dict(load_config(Path(config_path) if config_path else None))
        client = None
        if connect:
            client = HostClient(
                base_url=config.host.base_url,
                timeout=config.host.timeout,
                message_limit=config.host.message_limit,
            )
        return cls(
            config,
            store=StateStore(config.state_dir),
            client=client,
            notification_sink=notification_sink,
        )

    # -- Properties --

    @property
    def config(self) -> DcpConfig:
        return self._config

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    @property
    def registry(self) -> StateRegistry:
        return self._registry

    # -- Session state --

    def session(self, session_id: str) -> SessionContext:
        return self._registry.get_or_create(session_id)

    def reset(self, session_id: str) -> None:
        self._registry.reset(session_id)

    # -- Operations --

    def transform_messages(self, session_id: str, messages: Sequence[Message | dict]) -> list[Message]:
        """Read-only view with pruned messages replaced by placeholders."""
        parsed = as_messages(messages)
        if not self.enabled:
            return parsed
        return create_transformed_view(parsed, self.session(session_id).dcp)

    def prune(self, session_id: str, tool_input: Any, messages: Sequence[Message | dict]) -> dict[str, Any]:
        ctx = self.session(session_id)
        result = DcpTools(ctx.dcp, self._config).dcp_prune(tool_input, messages)
        self._after_prune(ctx, "dcp_prune", result, messages)
        return result

    def distill(self, session_id: str, tool_input: Any, messages: Sequence[Message | dict]) -> dict[str, Any]:
        ctx = self.session(session_id)
        result = DcpTools(ctx.dcp, self._config).dcp_distill(tool_input, messages)
        self._after_prune(ctx, "dcp_distill", result, messages)
        return result

    def command(self, session_id: str, text: str, messages: Sequence[Message | dict]) -> str:
        ctx = self.session(session_id)
        before = set(ctx.dcp.pruned_by_id)
        output = CommandHandler(ctx.dcp, self._config)(text, messages)
        swept = [mid for mid in ctx.dcp.pruned_by_id if mid not in before]
        if swept:
            self._mirror(ctx, swept)
        return output

    def handle_request(self, session_id: str, body: Any, url: str = "") -> FetchHandlerResult:
        """Apply pruning, synth instructions and nudges to an outgoing request body."""
        if not self.enabled:
            return FetchHandlerResult(modified=False, body=body)
        ctx = self.session(session_id)
        extra: set[str] = set()
        if self._client is not None:
            extra = get_all_pruned_ids(self._client, self._registry).all_pruned_ids
        handler_ctx = FetchHandlerContext(
            session=ctx, config=self._config, prompts=self._prompts, extra_pruned_ids=extra,
        )
        return handle_request_body(body, handler_ctx, url)

    def close(self) -> None:
        """Release the host transport."""
        if self._client is not None:
            self._client.close()

    # -- Internal --

    def _after_prune(
        self,
        ctx: SessionContext,
        tool: str,
        result: dict[str, Any],
        messages: Sequence[Message | dict],
    ) -> None:
        pruned = result.get("prunedIDs") or []
        if not pruned:
            return
        self._mirror(ctx, pruned)
        notify(self._sink_for(ctx.session_id), format_prune_notice(tool, result), get_current_params(messages))

    def _sink_for(self, session_id: str) -> NotificationSink | None:
        if self._sink is not None or self._client is None:
            return self._sink
        client = self._client
        return lambda text, params: client.send_ignored_message(session_id, text, params)

    def _mirror(self, ctx: SessionContext, message_ids: list[str]) -> None:
        """Copy fresh prunes into the wire-side session state and persist it."""
        records = [ctx.dcp.pruned_by_id[mid] for mid in message_ids if mid in ctx.dcp.pruned_by_id]
        # wire bodies key outputs by call ID, which may differ from the message ID
        tool_ids = list(message_ids)
        for record in records:
            tool_ids.extend(record.tool_call_ids)
        chars = sum(record.chars for record in records)
        added = record_pruned_tools(ctx.session, tool_ids, estimate_tokens(chars))
        if added:
            self._registry.save(ctx.session_id)
            log.info("Session %s: %d tool output(s) pruned", ctx.session_id, added)
