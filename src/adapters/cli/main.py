"""
adapters.cli.main - CLI adapter for the toolchat service.

Mirrors src/adapters/rest/ but for terminal use. Uses the same
ServiceFactory and AgentExecutor as the REST API and renders the same
NDJSON events, so behaviour is identical.

Commands
--------
  chat       Interactive streaming chat session
  history    Print the stored messages of a session
  sessions   List sessions
  rename     Rename a session
  delete     Delete a session and its history
  tools      List registered tools

Usage
-----
  python run_cli.py chat --tool calculator --tool weather
  python run_cli.py chat --resume
  python run_cli.py history 3f0c...
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional
from uuid import uuid4

# ── Ensure src/ is on the path ──
_SRC = Path(__file__).resolve().parent.parent.parent
sys.path.insert(0, str(_SRC))

import typer
from langchain_core.messages import messages_from_dict
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from adapters.cli.session import CliState, load_state, save_state
from agent.events import decode_line
from agent.messages import build_user_message, first_text
from application.context import TurnContext
from domain.exceptions import DomainError, SessionNotFoundError, ValidationError
from factory import ServiceFactory
from infrastructure.config import APP_VERSION, Settings

console = Console()
app = typer.Typer(
    help="toolchat: streaming tool-calling chat agent",
    add_completion=False,
    no_args_is_help=True,
)


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, rich_tracebacks=True)],
        force=True,
    )


async def _make_factory() -> ServiceFactory:
    factory = ServiceFactory(Settings.from_env())
    await factory.initialize()
    return factory


def _render_event(event: dict[str, Any]) -> None:
    """Print one wire event."""
    kind = event.get("type")
    if kind == "chunk":
        console.print(event["content"], end="", markup=False, highlight=False)
    elif kind == "tool_calls":
        for call in event["tool_calls"]:
            args = json.dumps(call.get("args", {}), ensure_ascii=False)
            console.print(f"\n[dim]→ {call['name']}({args})[/dim]", highlight=False)
    elif kind == "tool_result":
        output = event["output"]
        if not isinstance(output, str):
            output = json.dumps(output, ensure_ascii=False)
        console.print(f"[green]✓ {event['name']}:[/green] {output}", highlight=False)
    elif kind == "tool_error":
        console.print(f"[red]✗ {event['name']}:[/red] {event['error']}", highlight=False)
    elif kind == "end":
        console.print()
    elif kind == "error":
        console.print()
        console.print(Panel(event.get("message", "Unknown error"), title="Error", border_style="red"))


async def _run_turn(factory: ServiceFactory, ctx: TurnContext, text: str) -> bool:
    """Stream one turn to the console. Returns False if the request was rejected."""
    executor = factory.get_executor()
    try:
        message = build_user_message(text)
        graph = await executor.prepare(ctx)
    except ValidationError as exc:
        console.print(f"[bold red]Rejected:[/bold red] {exc}")
        return False
    await factory.create_session_service().ensure_session(ctx, message)

    console.print("[bold green]Assistant[/bold green]")
    async for line in executor.stream_turn(ctx, graph, message):
        event = decode_line(line)
        if event is not None:
            _render_event(event)
    return True


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"toolchat v{APP_VERSION}")
        raise typer.Exit()


# ---------------------------------------------------------------------------
# Commands: Chat
# ---------------------------------------------------------------------------

@app.command()
def chat(
    thread: Optional[str] = typer.Option(None, "--thread", "-t", help="Session id to continue."),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model id, e.g. openai:gpt-4.1-mini."),
    tool: list[str] = typer.Option([], "--tool", help="Enable a tool for this chat (repeatable)."),
    resume: bool = typer.Option(False, "--resume", "-r", help="Continue the last CLI session."),
) -> None:
    """Start an interactive streaming chat session."""
    if resume and not thread:
        state = load_state()
        if state is None:
            console.print("[yellow]No previous session to resume, starting a new one.[/yellow]")
        else:
            thread = state.thread_id
            model = model or state.model or None

    async def _run() -> None:
        factory = await _make_factory()
        ctx = TurnContext(thread_id=thread or str(uuid4()), model_id=model, tool_names=list(tool))

        console.print(Panel(
            f"[bold]toolchat[/bold]\n"
            f"Session [bold]{ctx.thread_id}[/bold]\n"
            f"Model: {model or factory.config.default_model}   "
            f"Tools: {', '.join(tool) if tool else 'none'}\n"
            "Type your message, or [bold]exit[/bold] / [bold]quit[/bold] to stop.",
            border_style="cyan",
        ))

        try:
            while True:
                try:
                    user_input = Prompt.ask("\n[bold cyan]You[/bold cyan]")
                except (KeyboardInterrupt, EOFError):
                    console.print("\n[dim]Goodbye![/dim]")
                    break

                if user_input.strip().lower() in ("exit", "quit", "q", "bye"):
                    console.print("[dim]Goodbye![/dim]")
                    break
                if not user_input.strip():
                    continue

                ctx.request_id = uuid4().hex
                if await _run_turn(factory, ctx, user_input):
                    save_state(CliState(thread_id=ctx.thread_id, model=model or ""))
        finally:
            await factory.shutdown()

    asyncio.run(_run())


@app.command()
def history(thread_id: str = typer.Argument(..., help="Session id.")) -> None:
    """Print the stored messages of a session."""
    async def _run() -> None:
        factory = await _make_factory()
        messages = messages_from_dict(await factory.get_executor().get_history(thread_id))
        if not messages:
            console.print(f"[dim]No messages for session {thread_id}.[/dim]")
            return

        for msg in messages:
            if msg.type == "human":
                console.print(Panel(first_text(msg), title="You", border_style="cyan"))
            elif msg.type == "ai":
                for call in getattr(msg, "tool_calls", None) or []:
                    console.print(f"[dim]→ {call['name']}({json.dumps(call['args'])})[/dim]")
                if first_text(msg):
                    console.print(Panel(Markdown(first_text(msg)), title="Assistant", border_style="green"))
            elif msg.type == "tool":
                style = "red" if getattr(msg, "status", "success") == "error" else "green"
                console.print(f"[{style}]{msg.name}:[/{style}] {first_text(msg)}", highlight=False)

    asyncio.run(_run())


# ---------------------------------------------------------------------------
# Commands: Sessions
# ---------------------------------------------------------------------------

@app.command()
def sessions() -> None:
    """List sessions, newest first."""
    async def _run() -> None:
        factory = await _make_factory()
        rows = await factory.create_session_service().list_sessions()
        if not rows:
            console.print("[dim]No sessions yet.[/dim]")
            return
        t = Table(box=box.SIMPLE, padding=(0, 2))
        t.add_column("Id", style="bold")
        t.add_column("Name")
        t.add_column("Created", style="dim")
        for s in rows:
            t.add_row(s.id, s.name, s.created_at)
        console.print(t)

    asyncio.run(_run())


@app.command()
def rename(
    session_id: str = typer.Argument(..., help="Session id."),
    name: str = typer.Argument(..., help="New display name."),
) -> None:
    """Rename a session."""
    async def _run() -> None:
        factory = await _make_factory()
        try:
            await factory.create_session_service().rename(session_id, name)
        except (SessionNotFoundError, ValidationError) as exc:
            console.print(f"[bold red]{exc}[/bold red]")
            raise typer.Exit(code=1)
        console.print(f"[green]Renamed to[/green] [bold]{name}[/bold]")

    asyncio.run(_run())


@app.command()
def delete(
    session_id: str = typer.Argument(..., help="Session id."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation."),
) -> None:
    """Delete a session and its message history."""
    if not yes and not Confirm.ask(f"Delete session [bold]{session_id}[/bold]?"):
        return

    async def _run() -> None:
        factory = await _make_factory()
        if await factory.create_session_service().delete(session_id):
            console.print("[green]Deleted.[/green]")
        else:
            console.print(f"[dim]Nothing stored under {session_id}.[/dim]")

    asyncio.run(_run())


# ---------------------------------------------------------------------------
# Commands: Tools
# ---------------------------------------------------------------------------

@app.command()
def tools() -> None:
    """List registered tools and whether they are enabled."""
    async def _run() -> None:
        factory = await _make_factory()
        t = Table(box=box.SIMPLE, padding=(0, 2))
        t.add_column("Tool", style="bold")
        t.add_column("Enabled")
        t.add_column("Parameters")
        t.add_column("Description")
        for info in factory.get_tool_registry().tool_info():
            params = ", ".join(info["parameters"].get("properties", {}).keys())
            t.add_row(
                info["name"],
                "[green]yes[/green]" if info["enabled"] else "[red]no[/red]",
                params,
                info["description"],
            )
        console.print(t)

    asyncio.run(_run())


# ---------------------------------------------------------------------------
# Global options
# ---------------------------------------------------------------------------

@app.callback()
def _callback(
    version: bool = typer.Option(
        False, "--version", "-v",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Show debug logs."),
) -> None:
    """toolchat CLI"""
    _setup_logging(verbose)


def main() -> None:
    try:
        app()
    except DomainError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        sys.exit(1)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    main()
