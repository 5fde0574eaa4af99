"""
Run the toolchat REST API.

Usage:
    python run_api.py

Environment variables (all optional):
    DEFAULT_MODEL         Model id used when a request names none (default: ollama:llama3.2)
    LLM_PROVIDER          Provider for model ids without a "provider:" prefix
    OPENAI_API_KEY        Required for openai:* models
    OPENAI_BASE_URL       OpenAI-compatible endpoint
    GROQ_API_KEY          Required for groq:* models
    OLLAMA_BASE_URL       Ollama server URL (default: http://localhost:11434/)
    DB_PATH               SQLite database file path (default: chat_history.db)
    AGENT_MAX_ITERATIONS  Model calls allowed per turn (default: 10)
    ENABLED_TOOLS         Comma-separated tools enabled at startup
    LOG_LEVEL             Logging level (default: INFO)
    HOST / PORT           Bind address (default: 0.0.0.0:8000)
"""

import os
import sys
from pathlib import Path

# Ensure src/ is importable
sys.path.insert(0, str(Path(__file__).parent / "src"))

import uvicorn

if __name__ == "__main__":
    uvicorn.run(
        "adapters.rest.app:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=True,
    )
