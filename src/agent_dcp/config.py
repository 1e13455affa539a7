"""Pruning configuration dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

DEFAULT_MIN_SCORE = 95
DEFAULT_MIN_GAP = 15
DEFAULT_NUDGE_FREQUENCY = 10
DEFAULT_STATE_DIR = "~/.agent-dcp/sessions"
DEFAULT_BASE_URL = "http://127.0.0.1:4096"


@dataclass
class CommandsConfig:
    """`/dcp` text command surface."""

    enabled: bool = True


@dataclass
class FuzzyConfig:
    """Thresholds for fuzzy anchor resolution."""

    min_score: int = DEFAULT_MIN_SCORE
    min_gap: int = DEFAULT_MIN_GAP


@dataclass
class NudgeConfig:
    """Periodic prune reminder injected into outgoing requests."""

    enabled: bool = True
    frequency: int = DEFAULT_NUDGE_FREQUENCY


@dataclass
class HostConfig:
    """Host transport endpoint."""

    base_url: str = DEFAULT_BASE_URL
    timeout: float = 10.0
    message_limit: int = 100


@dataclass
class DcpConfig:
    """Top-level pruning configuration."""

    enabled: bool = True
    protected_tools: list[str] = field(default_factory=list)
    protected_file_patterns: list[str] = field(default_factory=list)
    commands: CommandsConfig = field(default_factory=CommandsConfig)
    fuzzy: FuzzyConfig = field(default_factory=FuzzyConfig)
    nudge: NudgeConfig = field(default_factory=NudgeConfig)
    state_dir: str = DEFAULT_STATE_DIR
    host: HostConfig = field(default_factory=HostConfig)

    @classmethod
    def from_dict(cls, data: Any) -> DcpConfig:
        """Build from a config dict. Malformed values fall back to defaults."""
        if isinstance(data, DcpConfig):
            return data
        if not isinstance(data, dict):
            data = {}
        cmd = _as_dict(data.get("commands"))
        fz = _as_dict(data.get("fuzzy"))
        nd = _as_dict(data.get("nudge"))
        host = _as_dict(data.get("host"))
        return cls(
            enabled=_as_bool(data.get("enabled"), True),
            protected_tools=_as_str_list(_first(data, "protected_tools", "protectedTools")),
            protected_file_patterns=_as_str_list(
                _first(data, "protected_file_patterns", "protectedFilePatterns")
            ),
            commands=CommandsConfig(enabled=_as_bool(cmd.get("enabled"), True)),
            fuzzy=FuzzyConfig(
                min_score=_as_positive_int(_first(fz, "min_score", "minScore"), DEFAULT_MIN_SCORE),
                min_gap=_as_non_negative_int(_first(fz, "min_gap", "minGap"), DEFAULT_MIN_GAP),
            ),
            nudge=NudgeConfig(
                enabled=_as_bool(nd.get("enabled"), True),
                frequency=_as_positive_int(
                    _first(nd, "frequency", "freq"), DEFAULT_NUDGE_FREQUENCY
                ),
            ),
            state_dir=_as_str(_first(data, "state_dir", "stateDir"), DEFAULT_STATE_DIR),
            host=HostConfig(
                base_url=_as_str(_first(host, "base_url", "baseUrl"), DEFAULT_BASE_URL),
                timeout=_as_positive_float(host.get("timeout"), 10.0),
                message_limit=_as_positive_int(
                    _first(host, "message_limit", "messageLimit"), 100
                ),
            ),
        )


def _first(data: dict, *keys: str) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return None


def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _as_bool(value: Any, default: bool) -> bool:
    return value if isinstance(value, bool) else default


def _as_str(value: Any, default: str) -> str:
    return value if isinstance(value, str) and value else default


def _as_str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str) and item]


def _as_positive_int(value: Any, default: int) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return int(value) if value > 0 else default


def _as_non_negative_int(value: Any, default: int) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return int(value) if value >= 0 else default


def _as_positive_float(value: Any, default: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return float(value) if value > 0 else default
