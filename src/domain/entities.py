"""
domain.entities - Persistence-aware types (have IDs, timestamps).

Decoupled from any persistence strategy: no SQL concerns, no DB imports.
Timestamps are set by the repository implementations, not by the entities
themselves.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Session:
    """Metadata for a conversation session (sidebar entry)."""
    id: str = ""
    name: str = ""
    created_at: str = ""


@dataclass
class StoredMessage:
    """One row of a conversation's append-only message log."""
    thread_id: str = ""
    seq: int = 0
    message: str = ""  # JSON, LangChain message dict
    created_at: str = ""
