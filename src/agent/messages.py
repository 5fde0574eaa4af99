"""
agent.messages - Converting request payloads into chat messages.

The submit-turn body accepts a plain string, a list of content parts
(text and image references), or a message object. Everything is
normalized into a HumanMessage before it enters the turn graph.
"""

from __future__ import annotations

from typing import Any

from langchain_core.messages import BaseMessage, HumanMessage, messages_from_dict

from domain.exceptions import ValidationError

SESSION_NAME_LIMIT = 60
DEFAULT_SESSION_NAME = "New chat"

_PART_TYPES = ("text", "image_url")


def build_user_message(raw: Any) -> BaseMessage:
    """Normalize a request's ``message`` field into a HumanMessage.

    Raises:
        ValidationError: If the payload is empty or not one of the
            accepted shapes.
    """
    if isinstance(raw, str):
        if not raw.strip():
            raise ValidationError("Message must not be empty")
        _require_utf8(raw)
        return HumanMessage(content=raw)

    if isinstance(raw, list):
        return HumanMessage(content=_validate_parts(raw))

    if isinstance(raw, dict):
        # Stored form: {"type": "human", "data": {...}}
        if "type" in raw and isinstance(raw.get("data"), dict):
            try:
                message = messages_from_dict([raw])[0]
            except (KeyError, TypeError, ValueError) as exc:
                raise ValidationError(f"Invalid message object: {exc}") from exc
            if message.type != "human":
                raise ValidationError("Only user messages can be submitted")
            _require_utf8(first_text(message))
            return message

        content = raw.get("content")
        if content is None and isinstance(raw.get("kwargs"), dict):
            content = raw["kwargs"].get("content")
        if content is None:
            raise ValidationError("Message object has no content")
        return build_user_message(content)

    raise ValidationError(
        "Message must be a string, a list of content parts, or a message object"
    )


def _validate_parts(parts: list) -> list[dict[str, Any]]:
    if not parts:
        raise ValidationError("Message content list must not be empty")
    for part in parts:
        if not isinstance(part, dict) or part.get("type") not in _PART_TYPES:
            raise ValidationError(
                f"Content parts must be objects with type in {_PART_TYPES}"
            )
        if part["type"] == "text" and not isinstance(part.get("text"), str):
            raise ValidationError("Text parts require a 'text' string")
        if part["type"] == "image_url" and not part.get("image_url"):
            raise ValidationError("Image parts require an 'image_url'")
        if part["type"] == "text":
            _require_utf8(part["text"])
    return parts


def _require_utf8(text: str) -> None:
    # JSON allows lone surrogates ("\ud800"); storage and the stream do not
    try:
        text.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise ValidationError("Message contains invalid Unicode text") from exc


def first_text(message: BaseMessage) -> str:
    """Return the text of a message, joining text parts."""
    content = message.content
    if isinstance(content, str):
        return content
    return " ".join(
        part.get("text", "") for part in content
        if isinstance(part, dict) and part.get("type") == "text"
    ).strip()


def session_name_for(message: BaseMessage) -> str:
    """Display name for a new session: the message text, truncated."""
    text = " ".join(first_text(message).split())
    if not text:
        return DEFAULT_SESSION_NAME
    if len(text) > SESSION_NAME_LIMIT:
        return text[:SESSION_NAME_LIMIT] + "…"
    return text
