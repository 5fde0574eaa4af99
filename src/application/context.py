"""
application.context - Request-scoped turn context.

Every layer receives its context explicitly. Two concurrent requests
get two different TurnContext instances.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional
from uuid import uuid4


@dataclass
class TurnContext:
    """Per-request context passed from the adapters down to the executor.

    Attributes:
        thread_id:       Session identifier (client-supplied or generated).
        model_id:        "provider:model" id; None means the default model.
        tool_names:      Tools the client asked for, in request order.
        request_id:      Unique per request, for tracing/logging.
        is_new_session:  True when the session record was created for this turn.
    """
    thread_id: str = field(default_factory=lambda: str(uuid4()))
    model_id: Optional[str] = None
    tool_names: list[str] = field(default_factory=list)
    request_id: str = field(default_factory=lambda: uuid4().hex)
    is_new_session: bool = False
