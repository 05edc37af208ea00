"""
Thin CLI layer - orchestrates library components without business logic.

Copyright (c) 2026 Andrew Hundt
Licensed under the Apache License, Version 2.0
"""

import contextlib
import logging
import os
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from .config import load_config, resolve_projects_dir
from .engine import ConversationEngine
from .errors import AmbiguousSessionError, ConversationSearchError
from .formatters import (
    EntryFormatter,
    JsonFormatter,
    MessageFormatter,
    OutputOptions,
    StatisticsFormatter,
    make_console,
)
from .models import MessageShape, SearchCriteria

app = typer.Typer(
    help=(
        "Search Claude Code conversation history stored in ~/.claude/projects/.\n\n"
        "Each project directory holds one JSONL log per conversation and, usually, a "
        "sessions-index.json summarizing some of them. Conversations missing from the "
        "index are still listed, with metadata read from the log itself.\n\n"
        "Override default paths with environment variables:\n\n"
        "  CLAUDE_CONFIG_DIR             Path to Claude config dir (default: ~/.claude)\n\n"
        "  CONVERSATION_SEARCH_PROJECTS  Path to Claude projects dir (default: ~/.claude/projects)\n\n"
        "  NO_COLOR                      Disable colored output"
    ),
)

# Module-level overrides set by global options
_g_claude_dir: Optional[str] = None
_g_config_path: Optional[str] = None
_g_no_color: bool = False


def _output_options() -> OutputOptions:
    """Colour only on a terminal, and never with --no-color or $NO_COLOR."""
    color = not _g_no_color and not os.getenv("NO_COLOR") and sys.stdout.isatty()
    return OutputOptions(color=color, home=str(Path.home()))


def _configure_logging(verbose: bool) -> None:
    """Route package logs to stderr through Rich; DEBUG with --verbose, else WARNING."""
    pkg_logger = logging.getLogger("conversation_search")
    for handler in list(pkg_logger.handlers):
        pkg_logger.removeHandler(handler)
    handler = RichHandler(
        console=make_console(_output_options(), stderr=True), show_time=False, show_path=False
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    pkg_logger.addHandler(handler)
    pkg_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    pkg_logger.propagate = False


# ── Root app callback (global options) ────────────────────────────────────────

@app.callback(invoke_without_command=True)
def app_callback(
    ctx: typer.Context,
    claude_dir: Optional[str] = typer.Option(
        None, "--claude-dir",
        help=(
            "Path to the Claude configuration directory. "
            "Default: $CLAUDE_CONFIG_DIR if set, otherwise ~/.claude. "
            "Example: --claude-dir /Volumes/External/.claude"
        ),
        envvar="CLAUDE_CONFIG_DIR",
    ),
    config: Optional[str] = typer.Option(
        None, "--config",
        help=(
            "Path to the conversation_search config JSON file (keys: default_limit, max_messages). "
            "Default: OS config dir / conversation_search / config.json. "
            "Also overridable via CONVERSATION_SEARCH_CONFIG env var."
        ),
        envvar="CONVERSATION_SEARCH_CONFIG",
    ),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colored output."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log skipped files and records to stderr."),
) -> None:
    global _g_claude_dir, _g_config_path, _g_no_color
    _g_claude_dir = claude_dir
    _g_config_path = config
    _g_no_color = no_color
    _configure_logging(verbose)
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(0)


# ── Engine factory ────────────────────────────────────────────────────────────

def get_engine(projects_dir: Optional[str] = None) -> ConversationEngine:
    """
    Create a conversation engine for this invocation.

    Priority for the projects dir: explicit argument > $CONVERSATION_SEARCH_PROJECTS >
    --claude-dir / $CLAUDE_CONFIG_DIR + /projects > ~/.claude/projects
    """
    return ConversationEngine(resolve_projects_dir(projects_dir, _g_claude_dir))


@contextlib.contextmanager
def _reported_errors(err_console: Console):
    """Turn engine failures into a red stderr message and exit code 1."""
    try:
        yield
    except AmbiguousSessionError as exc:
        err_console.print(f"[red]Multiple matches for '{escape(exc.candidate)}':[/red]")
        for candidate in exc.candidates:
            err_console.print(f"  {escape(candidate)}")
        if exc.total > len(exc.candidates):
            err_console.print(f"  ... and {exc.total - len(exc.candidates)} more")
        err_console.print("Please provide a more specific session ID.")
        raise typer.Exit(code=1)
    except ConversationSearchError as exc:
        err_console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1)


def _write_json(text: str) -> None:
    # Bypass Rich so JSON is never markup-rendered or coloured
    sys.stdout.write(text + "\n")


def _criteria(topic, after, before, branch, project) -> SearchCriteria:
    return SearchCriteria(topic=topic, after=after, before=before, branch=branch, project=project)


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("list")
def list_conversations(
    topic: Optional[str] = typer.Option(None, "--topic", help="Keyword in first prompt or summary (case-insensitive)."),
    after: Optional[str] = typer.Option(None, "--after", help="Created on/after this date (YYYY-MM-DD or ISO 8601)."),
    before: Optional[str] = typer.Option(None, "--before", help="Created on/before this date (YYYY-MM-DD or ISO 8601)."),
    branch: Optional[str] = typer.Option(None, "--branch", help="Git branch substring."),
    project: Optional[str] = typer.Option(None, "--project", help="Project path substring."),
    limit: Optional[int] = typer.Option(None, "--limit", min=1, help="Max results. Default: 20 (config: default_limit)."),
    as_json: bool = typer.Option(False, "--json", help="Output as JSON (for agent consumption)."),
) -> None:
    """List recent conversations across all projects, newest first.

    Examples:
        conversation-search list
        conversation-search list --limit 5 --project tiny-vacation
    """
    options = _output_options()
    console, err_console = make_console(options), make_console(options, stderr=True)
    limit = limit or load_config(_g_config_path)["default_limit"]

    with _reported_errors(err_console):
        entries = get_engine().list_entries(_criteria(topic, after, before, branch, project))

    if as_json:
        _write_json(JsonFormatter().format_many(entries[:limit]))
        return
    console.print(EntryFormatter(options).format_many(entries, limit=limit))


@app.command("search")
def search_conversations(
    topic: Optional[str] = typer.Option(None, "--topic", help="Keyword in first prompt or summary (case-insensitive)."),
    after: Optional[str] = typer.Option(None, "--after", help="Created on/after this date (YYYY-MM-DD or ISO 8601)."),
    before: Optional[str] = typer.Option(None, "--before", help="Created on/before this date (YYYY-MM-DD or ISO 8601)."),
    branch: Optional[str] = typer.Option(None, "--branch", help="Git branch substring."),
    project: Optional[str] = typer.Option(None, "--project", help="Project path substring."),
    deep: bool = typer.Option(False, "--deep", help="Also search inside conversation JSONL content (slower)."),
    regex: bool = typer.Option(False, "--regex", help="With --deep: treat --topic as a regular expression."),
    limit: Optional[int] = typer.Option(None, "--limit", min=1, help="Max results. Default: 20 (config: default_limit)."),
    as_json: bool = typer.Option(False, "--json", help="Output as JSON (for agent consumption)."),
) -> None:
    """Search conversations by criteria. At least one criterion is required.

    Examples:
        conversation-search search --topic catalog --after 2025-06-01
        conversation-search search --topic deploy --deep --branch main
    """
    options = _output_options()
    console, err_console = make_console(options), make_console(options, stderr=True)
    limit = limit or load_config(_g_config_path)["default_limit"]

    with _reported_errors(err_console):
        entries = get_engine().search_entries(
            _criteria(topic, after, before, branch, project), deep=deep, regex=regex
        )

    if as_json:
        _write_json(JsonFormatter().format_many(entries[:limit]))
        return
    label = "index + content" if deep else "index"
    console.print(f"[dim]Search mode: {label}[/dim]\n")
    console.print(EntryFormatter(options).format_many(entries, limit=limit))


@app.command("show")
def show_conversation(
    session_id: str = typer.Argument(..., help="Session ID or unique prefix (e.g. 0be99c26)."),
    max_messages: Optional[int] = typer.Option(
        None, "--max-messages", min=1, help="Max messages to extract. Default: 200 (config: max_messages)."
    ),
    messages_only: bool = typer.Option(False, "--messages-only", help="Only show user/assistant text (no metadata header)."),
    as_json: bool = typer.Option(False, "--json", help="Output as JSON (for agent consumption)."),
) -> None:
    """Show the messages of one conversation.

    Examples:
        conversation-search show 0be99c26-dc3c-4d3d-a45a-c6ba07978586
        conversation-search show 0be99c26 --max-messages 50 --json
    """
    options = _output_options()
    console, err_console = make_console(options), make_console(options, stderr=True)
    max_messages = max_messages or load_config(_g_config_path)["max_messages"]
    engine = get_engine()

    with _reported_errors(err_console):
        path = engine.resolve_session(session_id)
        actual_sid = path.stem
        metadata = engine.lookup_metadata(actual_sid) if (as_json or not messages_only) else None
        shape = MessageShape.STRUCTURED if as_json else MessageShape.DISPLAY
        messages = engine.extract_messages(path, max_messages, shape)

    if as_json:
        _write_json(JsonFormatter().format({
            "sessionId": metadata.session_id if metadata else actual_sid,
            "metadata": metadata.to_dict() if metadata else None,
            "messages": [m.to_dict() for m in messages],
            "totalExtracted": len(messages),
            "maxMessages": max_messages,
        }))
        return

    if metadata is not None:
        console.print(EntryFormatter(options).format_header(metadata, max_messages))
    console.print(MessageFormatter().format_many(messages))


@app.command("stats")
def stats(
    as_json: bool = typer.Option(False, "--json", help="Output as JSON (for agent consumption)."),
) -> None:
    """Show conversation statistics: totals, date range, top branches."""
    options = _output_options()
    console, err_console = make_console(options), make_console(options, stderr=True)

    with _reported_errors(err_console):
        statistics = get_engine().get_statistics()

    if as_json:
        _write_json(JsonFormatter().format(statistics))
        return
    console.print(StatisticsFormatter().format(statistics))


# ── Entry point ───────────────────────────────────────────────────────────────

def cli_main():
    """CLI entry point."""
    app()
