"""agent-dcp — dynamic context pruning for LLM agent sessions."""

from pathlib import Path

import yaml

_CONFIG_PATH = Path(__file__).parent / "CONFIG.yaml"


def load_config(path: Path | None = None) -> dict:
    """Load and return the CONFIG.yaml as a dict."""
    p = path or _CONFIG_PATH
    with open(p) as f:
        return yaml.safe_load(f) or {}


# Public API
from .config import DcpConfig, FuzzyConfig, NudgeConfig  # noqa: E402
from .core.matching import AmbiguousMatchError, MatchError, MatchNotFoundError  # noqa: E402
from .core.state import DcpState  # noqa: E402
from .core.types import Message, MessageRole  # noqa: E402
from .facade import ContextPruner  # noqa: E402
from .formats.base import BodyFormat, detect_format  # noqa: E402
from .session.registry import StateRegistry  # noqa: E402

__all__ = [
    "ContextPruner",
    "load_config",
    "DcpConfig",
    "FuzzyConfig",
    "NudgeConfig",
    "DcpState",
    "StateRegistry",
    "Message",
    "MessageRole",
    "BodyFormat",
    "detect_format",
    "MatchError",
    "AmbiguousMatchError",
    "MatchNotFoundError",
]
