"""
Run the toolchat CLI.

Usage:
    python run_cli.py [COMMAND] [OPTIONS]

Commands:
    chat       Interactive streaming chat session (--thread, --model, --tool, --resume)
    history    Print the stored messages of a session
    sessions   List sessions
    rename     Rename a session
    delete     Delete a session and its history
    tools      List registered tools

Examples:
    python run_cli.py chat --tool calculator --tool current_time
    python run_cli.py chat --resume
    python run_cli.py sessions

Environment variables (all optional):
    DEFAULT_MODEL       Model id used when --model is not given (default: ollama:llama3.2)
    LLM_PROVIDER        Provider for model ids without a "provider:" prefix
    OPENAI_API_KEY      Required for openai:* models
    GROQ_API_KEY        Required for groq:* models
    OLLAMA_BASE_URL     Ollama server URL (default: http://localhost:11434/)
    DB_PATH             SQLite database file path (default: chat_history.db)
    ENABLED_TOOLS       Comma-separated tools enabled at startup
"""

import sys
from pathlib import Path

# Ensure src/ is importable
sys.path.insert(0, str(Path(__file__).parent / "src"))

from adapters.cli.main import main

if __name__ == "__main__":
    main()
