"""Pydantic models for REST API request/response validation."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


# --- Chat ---

class ChatRequest(BaseModel):
    """Submit-turn body.

    message is a string, a list of content parts, or a message object;
    its shape is checked by agent.messages.build_user_message.
    """
    message: Any = Field(...)
    thread_id: Optional[str] = None
    tools: list[str] = Field(default_factory=list)
    model: Optional[str] = None


class HistoryOut(BaseModel):
    thread_id: str
    history: list[dict[str, Any]]


class ServiceInfoOut(BaseModel):
    message: str
    version: str
    endpoints: dict[str, str]


# --- Sessions ---

class SessionOut(BaseModel):
    id: str
    name: str
    created_at: str


class SessionListOut(BaseModel):
    sessions: list[SessionOut]


class RenameSessionBody(BaseModel):
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=200)


class DeleteSessionBody(BaseModel):
    id: str = Field(..., min_length=1)


class SuccessOut(BaseModel):
    success: bool = True


# --- Tools ---

class ToolOut(BaseModel):
    name: str
    description: str
    enabled: bool
    parameters: dict[str, Any]
    options: dict[str, Any]


class ToolListOut(BaseModel):
    tools: list[ToolOut]


# --- Errors ---

class ErrorOut(BaseModel):
    error: str
    detail: str = ""
