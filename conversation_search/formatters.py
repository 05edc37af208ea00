"""
Output formatters: Rich-markup text blocks and JSON.

Colour is never decided here: callers pass an OutputOptions value and print
through the Console built from it.

Copyright (c) 2026 Andrew Hundt
Licensed under the Apache License, Version 2.0
"""

import json
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, List, Optional

from rich.console import Console
from rich.markup import escape

from .models import ConversationEntry, ConversationStatistics, MessageRecord, MessageRole


@dataclass(frozen=True)
class OutputOptions:
    """Presentation settings resolved once by the CLI."""

    color: bool = True
    home: Optional[str] = None


def make_console(options: OutputOptions, stderr: bool = False) -> Console:
    """Console honouring options.color (no ANSI codes at all when disabled)."""
    return Console(
        stderr=stderr,
        color_system="auto" if options.color else None,
        no_color=not options.color,
        highlight=False,
        soft_wrap=True,
    )


def _tilde(path: str, home: Optional[str]) -> str:
    home = home if home is not None else os.path.expanduser("~")
    if home and home != "/" and path.startswith(home):
        return "~" + path[len(home):]
    return path


def _to_dict(item: Any) -> Any:
    return item.to_dict() if hasattr(item, "to_dict") else item


class ResultFormatter(ABC):
    """Base formatter protocol."""

    @abstractmethod
    def format(self, data: Any) -> str:
        """Format data for output."""
        pass

    @abstractmethod
    def format_many(self, items: List[Any]) -> str:
        """Format multiple items."""
        pass


class JsonFormatter(ResultFormatter):
    """Format entries, messages or statistics as indented JSON."""

    def format(self, data: Any) -> str:
        return json.dumps(_to_dict(data), indent=2, ensure_ascii=False)

    def format_many(self, items: List[Any]) -> str:
        return json.dumps([_to_dict(item) for item in items], indent=2, ensure_ascii=False)


class EntryFormatter(ResultFormatter):
    """Rich-markup text blocks for conversation entries."""

    def __init__(self, options: Optional[OutputOptions] = None):
        self.options = options or OutputOptions()

    def format(self, data: ConversationEntry) -> str:
        """Header line plus branch/project/prompt, and summary when indexed."""
        created = (data.created or "unknown")[:19]
        project = _tilde(data.project_path or "unknown", self.options.home)
        lines = [
            f"[bold cyan]{escape(data.session_id):<36}[/bold cyan]  "
            f"[dim]{escape(created)}[/dim]  [yellow]{data.message_count} msgs[/yellow]",
            f"  [green]Branch:[/green]  {escape(data.git_branch or 'unknown')}",
            f"  [green]Project:[/green] {escape(project)}",
            f"  [green]Prompt:[/green]  {escape((data.first_prompt or '(no prompt)')[:120])}",
        ]
        if data.has_summary:
            lines.append(f"  [green]Summary:[/green] {escape(data.summary[:200])}")
        return "\n".join(lines) + "\n"

    def format_many(self, items: List[ConversationEntry], limit: Optional[int] = None) -> str:
        """Count header plus the first ``limit`` entries (all when None)."""
        if not items:
            return "No conversations found."
        shown = items if limit is None else items[:limit]
        header = f"[bold]Found {len(items)} conversations (showing {len(shown)}):[/bold]\n"
        return "\n".join([header] + [self.format(entry) for entry in shown])

    def format_header(self, data: ConversationEntry, max_messages: int) -> str:
        """Metadata block printed above a conversation's messages."""
        project = _tilde(data.project_path or "unknown", self.options.home)
        return "\n".join([
            f"[bold cyan]Conversation: {escape(data.session_id)}[/bold cyan]",
            f"[green]Created:[/green]  {escape((data.created or 'unknown')[:19])}",
            f"[green]Modified:[/green] {escape((data.modified or 'unknown')[:19])}",
            f"[green]Branch:[/green]   {escape(data.git_branch or 'unknown')}",
            f"[green]Project:[/green]  {escape(project)}",
            f"[green]Messages:[/green] {data.message_count}",
            f"[green]Summary:[/green]  {escape(data.summary if data.has_summary else '(none)')}",
            "",
            f"[bold]Showing up to {max_messages} messages:[/bold]",
        ])


class MessageFormatter(ResultFormatter):
    """Conversation transcript view: one banner line per turn, then its text."""

    def __init__(self, max_chars: int = 0):
        """Initialize with max_chars. 0 = full content (no truncation)."""
        self.max_chars = max_chars

    def format(self, data: MessageRecord) -> str:
        label = "USER" if data.role is MessageRole.USER else "ASSISTANT"
        timestamp = (data.timestamp or "unknown")[:19]
        content = data.content[: self.max_chars] if self.max_chars else data.content
        banner = escape(f"━━━ {label} [{timestamp}] ━━━")
        return f"\n[bold]{banner}[/bold]\n{escape(content)}"

    def format_many(self, items: List[MessageRecord]) -> str:
        return "\n".join(self.format(message) for message in items)


class StatisticsFormatter(ResultFormatter):
    """Human-readable statistics report."""

    def format(self, data: ConversationStatistics) -> str:
        lines = [
            "[bold]Claude Code Conversation Statistics[/bold]",
            "═" * 39,
            f"[green]Total conversations:[/green]   {data.total_conversations}",
            f"[green]Total messages:[/green]        {data.total_messages}",
            f"[green]Projects tracked:[/green]      {data.projects_tracked}",
            f"[green]Avg msgs/conversation:[/green] {data.avg_messages_per_conversation}",
            f"[green]Date range:[/green]            {escape(data.earliest)} to {escape(data.latest)}",
            "",
            "[bold]Top branches:[/bold]",
        ]
        lines.extend(f"  {escape(branch)}: {count} conversations" for branch, count in data.top_branches)
        return "\n".join(lines)

    def format_many(self, items: List[ConversationStatistics]) -> str:
        return "\n\n".join(self.format(item) for item in items)
