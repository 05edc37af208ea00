"""
Data models for conversation reconciliation - using modern Python patterns.

Includes dataclasses, enums, and timestamp helpers shared by the engine.

Copyright (c) 2026 Andrew Hundt
Licensed under the Apache License, Version 2.0
"""

import dataclasses
import datetime
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .config import NO_PROMPT, UNKNOWN_PROJECT
from .errors import MalformedRecordError

#: Sentinel summary for entries that no index file describes.
NO_SUMMARY = "(no index)"


def parse_timestamp(value: Any) -> Optional[datetime.datetime]:
    """Parse an ISO 8601 string or epoch-milliseconds number to a naive UTC datetime.

    Aware values are converted to UTC before the tzinfo is dropped, so
    "2026-01-24T10:00:00Z" and "2026-01-24T10:00:00+00:00" compare equal.
    A bare date ("2026-01-24") parses to midnight of that day.

    Returns:
        datetime, or None for missing or unparseable input.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.datetime.fromtimestamp(
                value / 1000, tz=datetime.timezone.utc
            ).replace(tzinfo=None)
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(datetime.timezone.utc).replace(tzinfo=None)
    return parsed


def timestamp_string(value: Any) -> Optional[str]:
    """Index timestamps may be ISO strings or epoch milliseconds; keep strings as-is."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        return value or None
    if isinstance(value, (int, float)):
        parsed = parse_timestamp(value)
        if parsed is None:
            return None
        return parsed.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"
    return None


class MessageRole(str, Enum):
    """Roles retained by message extraction."""

    USER = "user"
    ASSISTANT = "assistant"


class MessageShape(str, Enum):
    """Output shape for extracted messages.

    STRUCTURED keeps raw timestamps (None when absent); DISPLAY trims them to
    "YYYY-MM-DDTHH:MM:SS" and substitutes "unknown".
    """

    STRUCTURED = "structured"
    DISPLAY = "display"


@dataclass
class ConversationEntry:
    """Metadata for one conversation, from an index file or synthesized from its log.

    Attributes:
        session_id: Log file stem (UUID in practice)
        project_path: Working directory of the conversation, or "unknown"
        first_prompt: First ~120 characters of the first user message
        summary: Index-provided synopsis, or NO_SUMMARY
        git_branch: Branch at conversation start (may be empty)
        created: ISO 8601 timestamp string, or None
        modified: ISO 8601 timestamp string, or None
        message_count: Exact when indexed, line-count heuristic when synthesized
        is_orphan: True only for synthesized entries
    """

    session_id: str
    project_path: str = UNKNOWN_PROJECT
    first_prompt: str = NO_PROMPT
    summary: str = NO_SUMMARY
    git_branch: str = ""
    created: Optional[str] = None
    modified: Optional[str] = None
    message_count: int = 0
    is_orphan: bool = False

    @property
    def has_prompt(self) -> bool:
        """True when first_prompt holds real text rather than the NO_PROMPT placeholder."""
        return bool(self.first_prompt) and self.first_prompt != NO_PROMPT

    @property
    def has_summary(self) -> bool:
        """True when the summary came from an index rather than the sentinel."""
        return bool(self.summary) and self.summary != NO_SUMMARY

    @property
    def date(self) -> Optional[str]:
        """Timestamp used by date filters: created, falling back to modified."""
        return self.created or self.modified

    @property
    def recency(self) -> Optional[datetime.datetime]:
        """Sort key: parsed modified, falling back to created. None if neither parses."""
        return parse_timestamp(self.modified) or parse_timestamp(self.created)

    @classmethod
    def from_index_dict(cls, data: Any) -> "ConversationEntry":
        """Build an entry from one ``sessions-index.json`` record.

        Raises:
            MalformedRecordError: If data is not an object or lacks a string sessionId.
        """
        if not isinstance(data, dict):
            raise MalformedRecordError(f"index entry is not an object: {type(data).__name__}")
        session_id = data.get("sessionId")
        if not isinstance(session_id, str) or not session_id:
            raise MalformedRecordError("index entry has no sessionId")

        count = data.get("messageCount")
        if not isinstance(count, int) or isinstance(count, bool) or count < 0:
            count = 0
        summary = data.get("summary")
        return cls(
            session_id=session_id,
            project_path=_str_or(data.get("projectPath"), UNKNOWN_PROJECT),
            first_prompt=_str_or(data.get("firstPrompt"), NO_PROMPT),
            summary=summary if isinstance(summary, str) and summary else NO_SUMMARY,
            git_branch=_str_or(data.get("gitBranch"), ""),
            created=timestamp_string(data.get("created")),
            modified=timestamp_string(data.get("modified")),
            message_count=count,
            is_orphan=False,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase index schema for JSON output."""
        return {
            "sessionId": self.session_id,
            "projectPath": self.project_path,
            "firstPrompt": self.first_prompt,
            "summary": self.summary,
            "gitBranch": self.git_branch,
            "created": self.created,
            "modified": self.modified,
            "messageCount": self.message_count,
            "isOrphan": self.is_orphan,
        }


def _str_or(value: Any, default: str) -> str:
    return value if isinstance(value, str) and value else default


@dataclass
class MessageRecord:
    """One user or assistant turn extracted from a log file."""

    role: MessageRole
    timestamp: Optional[str]
    content: str

    def to_dict(self) -> Dict[str, Any]:
        return {"role": self.role.value, "timestamp": self.timestamp, "content": self.content}


@dataclass
class SearchCriteria:
    """Optional, independently-applied search constraints.

    Empty strings count as absent. Dates accept "YYYY-MM-DD" or full ISO 8601.
    """

    topic: Optional[str] = None
    after: Optional[str] = None
    before: Optional[str] = None
    branch: Optional[str] = None
    project: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        """True when no constraint is set."""
        return not (self.topic or self.after or self.before or self.branch or self.project)

    def without_topic(self) -> "SearchCriteria":
        """Same criteria minus the topic (used to re-filter deep-search hits)."""
        return dataclasses.replace(self, topic=None)


@dataclass
class ConversationStatistics:
    """Aggregate counts over the merged conversation list."""

    total_conversations: int = 0
    total_messages: int = 0
    projects_tracked: int = 0
    earliest: str = "unknown"
    latest: str = "unknown"
    top_branches: List[Tuple[str, int]] = field(default_factory=list)

    @property
    def avg_messages_per_conversation(self) -> int:
        """Integer average; 0 when there are no conversations."""
        if self.total_conversations == 0:
            return 0
        return self.total_messages // self.total_conversations

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "totalConversations": self.total_conversations,
            "totalMessages": self.total_messages,
            "projectsTracked": self.projects_tracked,
            "avgMessagesPerConversation": self.avg_messages_per_conversation,
            "dateRange": {"earliest": self.earliest, "latest": self.latest},
            "topBranches": [{"branch": b, "count": c} for b, c in self.top_branches],
        }
