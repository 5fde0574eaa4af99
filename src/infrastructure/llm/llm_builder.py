"""
infrastructure.llm.llm_builder - Centralized chat model construction.

Single source of truth for turning a model identifier ("provider:model")
into a LangChain chat model. Each provider contributes the keyword
arguments it needs (credentials, endpoints); the model itself is created
by langchain's init_chat_model.

Supported providers:
    - "openai"  → langchain_openai.ChatOpenAI (optionally an OpenAI-compatible base URL)
    - "groq"    → langchain_groq.ChatGroq
    - "ollama"  → langchain_ollama.ChatOllama
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict

from langchain.chat_models import init_chat_model

from domain.exceptions import ModelConfigurationError
from infrastructure.config import Settings
from infrastructure.llm.chat_model import LangChainChatModel

logger = logging.getLogger(__name__)


def _openai_kwargs(settings: Settings) -> Dict[str, Any]:
    if not settings.openai_api_key:
        raise ModelConfigurationError("OPENAI_API_KEY is required for 'openai' models")
    kwargs: Dict[str, Any] = {"api_key": settings.openai_api_key, "streaming": True}
    if settings.openai_base_url:
        kwargs["base_url"] = settings.openai_base_url
    return kwargs


def _groq_kwargs(settings: Settings) -> Dict[str, Any]:
    if not settings.groq_api_key:
        raise ModelConfigurationError("GROQ_API_KEY is required for 'groq' models")
    return {"api_key": settings.groq_api_key}


def _ollama_kwargs(settings: Settings) -> Dict[str, Any]:
    return {"base_url": settings.ollama_base_url}


PROVIDERS: Dict[str, Callable[[Settings], Dict[str, Any]]] = {
    "openai": _openai_kwargs,
    "groq": _groq_kwargs,
    "ollama": _ollama_kwargs,
}


def parse_model_id(model_id: str, default_provider: str) -> tuple[str, str]:
    """Split "provider:model" into its parts.

    Only the first colon separates the provider, so Ollama tags like
    "ollama:llama3.2:3b" keep their suffix.
    """
    model_id = (model_id or "").strip()
    if not model_id:
        raise ModelConfigurationError("Model identifier must not be empty")

    provider, sep, model = model_id.partition(":")
    if not sep:
        return default_provider.lower().strip(), model_id
    if not model:
        raise ModelConfigurationError(f"Model identifier '{model_id}' has no model name")
    return provider.lower().strip(), model


def create_chat_model(model_id: str, settings: Settings) -> LangChainChatModel:
    """Build the chat model adapter for *model_id*.

    Raises:
        ModelConfigurationError: If the provider is unknown, required
            credentials are missing, or the provider package rejects the
            configuration.
    """
    provider, model = parse_model_id(model_id, settings.llm_provider)
    provider_kwargs = PROVIDERS.get(provider)
    if provider_kwargs is None:
        raise ModelConfigurationError(
            f"Unsupported model provider: '{provider}'. "
            f"Must be one of: {', '.join(sorted(PROVIDERS))}."
        )

    kwargs = provider_kwargs(settings)
    logger.info("Building chat model (provider=%s, model=%s)", provider, model)
    try:
        chat_model = init_chat_model(
            model,
            model_provider=provider,
            temperature=settings.temperature,
            **kwargs,
        )
    except (ImportError, ValueError) as exc:
        raise ModelConfigurationError(f"Cannot build model '{model_id}': {exc}") from exc
    return LangChainChatModel(chat_model, model_id=model_id)
