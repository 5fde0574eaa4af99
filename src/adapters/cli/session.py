"""
adapters.cli.session - Local CLI state.

The id of the last conversation is stored in ~/.toolchat/session.json so
`chat --resume` can continue it in a later invocation.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, asdict
from pathlib import Path

logger = logging.getLogger(__name__)

_SESSION_DIR  = Path.home() / ".toolchat"
_SESSION_FILE = _SESSION_DIR / "session.json"


@dataclass
class CliState:
    thread_id: str
    model: str = ""


def load_state(path: Path = _SESSION_FILE) -> CliState | None:
    """Return the stored state, or None if there is none (or it is unreadable)."""
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return CliState(**data)
    except (OSError, ValueError, TypeError) as exc:
        logger.warning("Ignoring unreadable CLI state %s: %s", path, exc)
        return None


def save_state(state: CliState, path: Path = _SESSION_FILE) -> None:
    """Persist the CLI state to disk."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(asdict(state), indent=2), encoding="utf-8")


def clear_state(path: Path = _SESSION_FILE) -> None:
    if path.exists():
        path.unlink()
