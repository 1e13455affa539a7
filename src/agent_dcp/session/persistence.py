"""JSON session-state snapshots on disk."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from pydantic import ValidationError

from .state import PersistedSessionState, SessionState, to_persisted

log = logging.getLogger(__name__)

_UNSAFE = re.compile(r"[^A-Za-z0-9_.-]")


class StateStore:
    """One ``<session_id>.json`` file per session under ``state_dir``."""

    def __init__(self, state_dir: str | Path) -> None:
        self._dir = Path(state_dir).expanduser()
        self._dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, session_id: str) -> Path:
        return self._dir / f"{_UNSAFE.sub('_', session_id)}.json"

    def load_session_state(self, session_id: str) -> PersistedSessionState | None:
        """Load a snapshot. Missing or unreadable files mean "no prior state"."""
        path = self.path_for(session_id)
        if not path.is_file():
            return None
        try:
            return PersistedSessionState.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            log.warning("Could not load session state %s: %s", path, e)
            return None

    def save_session_state(self, state: SessionState) -> Path | None:
        """Write a snapshot atomically. Returns the path, or None on failure."""
        if state.session_id is None:
            return None
        path = self.path_for(state.session_id)
        tmp = path.with_suffix(".json.tmp")
        try:
            tmp.write_text(to_persisted(state).model_dump_json(indent=2), encoding="utf-8")
            tmp.replace(path)
        except OSError as e:
            log.warning("Could not save session state %s: %s", path, e)
            return None
        return path

    def list_session_ids(self) -> list[str]:
        return sorted(f.stem for f in self._dir.glob("*.json"))
