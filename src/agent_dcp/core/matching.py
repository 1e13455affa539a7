"""Anchor resolution — find the one message a search string refers to.

Exact substring hits win outright. Failing that, fuzzy partial-ratio scores
are computed and the best candidate must clear the runner-up by a minimum
gap. The final message is only consulted as a last resort, for exact hits.
"""

from __future__ import annotations

import logging
import re
from difflib import SequenceMatcher
from typing import NamedTuple, Sequence

from ..config import FuzzyConfig
from .content import extract_message_content, tool_call_ids
from .types import Message

log = logging.getLogger(__name__)

_NON_WORD = re.compile(r"[\W_]+")


class MatchError(ValueError):
    """Base for anchor resolution failures. The message is user-actionable."""

    def __init__(self, message: str, string_type: str) -> None:
        super().__init__(message)
        self.string_type = string_type


class AmbiguousMatchError(MatchError):
    """More than one message fits the search string."""


class MatchNotFoundError(MatchError):
    """No message fits the search string."""


class MatchResult(NamedTuple):
    message_id: str
    message_index: int
    score: int
    match_type: str


class Anchor(NamedTuple):
    message_id: str
    message_index: int


def message_id_of(message: Message | dict) -> str:
    if isinstance(message, dict):
        info = message.get("info")
        if isinstance(info, dict) and isinstance(info.get("id"), str):
            return info["id"]
        return str(message.get("id", ""))
    return message.id


def _full_process(text: str) -> str:
    return _NON_WORD.sub(" ", text.lower()).strip()


def partial_ratio(s1: str, s2: str) -> int:
    """Best-aligned substring similarity in 0..100.

    The shorter string is slid over the longer one at every position a
    matching block suggests; 100 means it is contained verbatim (after
    case and punctuation folding).
    """
    a = _full_process(s1)
    b = _full_process(s2)
    if not a or not b:
        return 0
    shorter, longer = (a, b) if len(a) <= len(b) else (b, a)
    if shorter in longer:
        return 100

    matcher = SequenceMatcher(None, shorter, longer, autojunk=False)
    best = 0.0
    for i, j, _size in matcher.get_matching_blocks():
        start = max(j - i, 0)
        window = longer[start:start + len(shorter)]
        ratio = SequenceMatcher(None, shorter, window, autojunk=False).ratio()
        if ratio > 0.995:
            return 100
        best = max(best, ratio)
    return int(round(100 * best))


def _find_exact_matches(messages: Sequence[Message | dict], search: str) -> list[MatchResult]:
    matches: list[MatchResult] = []
    for i, msg in enumerate(messages):
        if search in extract_message_content(msg):
            matches.append(MatchResult(message_id_of(msg), i, 100, "exact"))
    return matches


def _find_fuzzy_matches(
    messages: Sequence[Message | dict], search: str, min_score: int
) -> list[MatchResult]:
    matches: list[MatchResult] = []
    for i, msg in enumerate(messages):
        score = partial_ratio(search, extract_message_content(msg))
        if score >= min_score:
            matches.append(MatchResult(message_id_of(msg), i, score, "fuzzy"))
    return matches


def find_string_in_messages(
    messages: Sequence[Message | dict],
    search: str,
    string_type: str = "startString",
    fuzzy: FuzzyConfig | None = None,
) -> Anchor:
    """Resolve ``search`` to exactly one anchor message.

    Raises:
        AmbiguousMatchError: several exact hits, or fuzzy winner too close
            to the runner-up.
        MatchNotFoundError: nothing matched, including the last message.
    """
    fuzzy = fuzzy or FuzzyConfig()
    searchable = messages[:-1] if len(messages) > 1 else messages
    last = messages[-1] if messages else None

    exact = _find_exact_matches(searchable, search)
    if len(exact) == 1:
        return Anchor(exact[0].message_id, exact[0].message_index)
    if len(exact) > 1:
        raise AmbiguousMatchError(
            f"Found multiple matches for {string_type}. "
            "Provide more surrounding context to uniquely identify the intended match.",
            string_type,
        )

    candidates = _find_fuzzy_matches(searchable, search, fuzzy.min_score)
    if not candidates:
        if last is not None and search in extract_message_content(last):
            return Anchor(message_id_of(last), len(messages) - 1)
        raise MatchNotFoundError(
            f"{string_type} not found in conversation. "
            "Make sure the string exists and is spelled exactly as it appears.",
            string_type,
        )

    candidates.sort(key=lambda m: m.score, reverse=True)
    best = candidates[0]
    if len(candidates) > 1 and best.score - candidates[1].score < fuzzy.min_gap:
        raise AmbiguousMatchError(
            f"Found multiple matches for {string_type}. "
            "Provide more unique surrounding context to disambiguate.",
            string_type,
        )

    log.info(
        "Fuzzy matched %s with %d%% confidence at message index %d",
        string_type, best.score, best.message_index,
    )
    return Anchor(best.message_id, best.message_index)


def resolve_range(
    messages: Sequence[Message | dict],
    start_string: str,
    end_string: str,
    fuzzy: FuzzyConfig | None = None,
) -> tuple[int, int]:
    """Resolve a start/end anchor pair to an inclusive index range."""
    start = find_string_in_messages(messages, start_string, "startString", fuzzy)
    end = find_string_in_messages(messages, end_string, "endString", fuzzy)
    if end.message_index < start.message_index:
        raise ValueError(
            f"endString (message {end.message_index}) appears before "
            f"startString (message {start.message_index})"
        )
    return start.message_index, end.message_index


def collect_tool_ids_in_range(
    messages: Sequence[Message | dict], start_index: int, end_index: int
) -> list[str]:
    """Unique tool call IDs of ``tool`` parts within the inclusive range."""
    tool_ids: list[str] = []
    for msg in messages[start_index:end_index + 1]:
        for call_id in tool_call_ids(msg):
            if call_id not in tool_ids:
                tool_ids.append(call_id)
    return tool_ids


def collect_message_ids_in_range(
    messages: Sequence[Message | dict], start_index: int, end_index: int
) -> list[str]:
    message_ids: list[str] = []
    for msg in messages[start_index:end_index + 1]:
        msg_id = message_id_of(msg)
        if msg_id not in message_ids:
            message_ids.append(msg_id)
    return message_ids
