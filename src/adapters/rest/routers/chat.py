"""Streaming chat endpoint and history retrieval."""

from __future__ import annotations

import logging
from typing import Optional, Union
from uuid import uuid4

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from agent.executor import AgentExecutor
from agent.messages import build_user_message
from application.context import TurnContext
from application.services.sessions import SessionService
from infrastructure.config import APP_VERSION
from adapters.rest.dependencies import get_executor, get_session_service
from adapters.rest.schemas import ChatRequest, HistoryOut, ServiceInfoOut

router = APIRouter(prefix="/api/chat", tags=["chat"])
logger = logging.getLogger(__name__)

NDJSON_MEDIA_TYPE = "application/x-ndjson"


@router.post("")
async def submit_turn(
    body: ChatRequest,
    executor: AgentExecutor = Depends(get_executor),
    sessions: SessionService = Depends(get_session_service),
):
    """
    Submit one user message and stream the turn as NDJSON.

    Every line is one JSON event: chunk, tool_calls, tool_result,
    tool_error, then exactly one terminal end or error. Request problems
    (bad message, unknown model provider) are answered with 400 before
    the stream opens.
    """
    message = build_user_message(body.message)
    ctx = TurnContext(
        thread_id=body.thread_id or str(uuid4()),
        model_id=body.model,
        tool_names=list(body.tools),
    )
    graph = await executor.prepare(ctx)
    await sessions.ensure_session(ctx, message)

    logger.info(
        "Chat request %s: thread=%s%s model=%s tools=%s",
        ctx.request_id, ctx.thread_id, " (new session)" if ctx.is_new_session else "",
        graph.config.model_id, list(graph.tool_names),
    )
    return StreamingResponse(
        executor.stream_turn(ctx, graph, message),
        media_type=NDJSON_MEDIA_TYPE,
        headers={"Cache-Control": "no-cache", "X-Thread-Id": ctx.thread_id},
    )


@router.get("", response_model=Union[HistoryOut, ServiceInfoOut])
async def get_history(
    thread_id: Optional[str] = Query(default=None),
    executor: AgentExecutor = Depends(get_executor),
):
    """History of one session, or the service descriptor without thread_id."""
    if not thread_id:
        return ServiceInfoOut(
            message="toolchat streaming chat API",
            version=APP_VERSION,
            endpoints={
                "POST /api/chat": "Submit a message; streams NDJSON events",
                "GET /api/chat?thread_id=": "Fetch the message history of a session",
                "GET /api/chat/sessions": "List sessions",
                "PATCH /api/chat/sessions": "Rename a session",
                "DELETE /api/chat/sessions": "Delete a session and its history",
                "GET /api/tools": "List registered tools",
            },
        )
    history = await executor.get_history(thread_id)
    return HistoryOut(thread_id=thread_id, history=history)
