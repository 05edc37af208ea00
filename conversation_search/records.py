"""
Raw JSONL record parsing, tolerant of malformed lines.

Copyright (c) 2026 Andrew Hundt
Licensed under the Apache License, Version 2.0
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Optional

import orjson

from .errors import MalformedRecordError
from .models import MessageRole, timestamp_string

logger = logging.getLogger(__name__)

_MESSAGE_TYPES = frozenset(role.value for role in MessageRole)


def flatten_content(content: Any, separator: str = "\n") -> str:
    """Flatten a message content field to plain text.

    Handles two content formats:
      - string content (returned unchanged)
      - list of typed blocks: only ``{"type": "text"}`` blocks are kept,
        joined with ``separator``; tool_use, tool_result, thinking, images
        and anything else are dropped
    """
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return separator.join(
            block.get("text", "")
            for block in content
            if isinstance(block, dict)
            and block.get("type") == "text"
            and isinstance(block.get("text", ""), str)
        )
    return ""


@dataclass
class LogRecord:
    """One parsed line of a conversation log."""

    type: str
    timestamp: Optional[str] = None
    cwd: Optional[str] = None
    git_branch: Optional[str] = None
    content: Any = None

    @property
    def is_message(self) -> bool:
        """True for user and assistant records."""
        return self.type in _MESSAGE_TYPES

    def text(self, separator: str = "\n") -> str:
        """Flattened text content (see flatten_content)."""
        return flatten_content(self.content, separator)


def parse_record(line: str) -> LogRecord:
    """Parse one JSONL line into a LogRecord.

    Raises:
        MalformedRecordError: If the line is blank, not JSON, or not a JSON object.
    """
    if not line.strip():
        raise MalformedRecordError("blank line")
    try:
        data = orjson.loads(line)
    except orjson.JSONDecodeError as exc:
        raise MalformedRecordError(f"invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise MalformedRecordError(f"record is not an object: {type(data).__name__}")

    msg = data.get("message")
    if isinstance(msg, dict):
        content = msg.get("content")
    elif isinstance(msg, str):
        content = msg
    else:
        content = None

    record_type = data.get("type")
    return LogRecord(
        type=record_type if isinstance(record_type, str) else "",
        timestamp=timestamp_string(data.get("timestamp")),
        cwd=_opt_str(data.get("cwd")),
        git_branch=_opt_str(data.get("gitBranch")),
        content=content,
    )


def _opt_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def iter_lines(path: Path, limit: Optional[int] = None) -> Iterator[str]:
    """Yield raw lines of a text file, at most ``limit`` when given.

    Handles OSError (permission denied, missing file) by logging and returning nothing.
    """
    try:
        with open(path, encoding="utf-8", errors="replace") as f:
            for n, line in enumerate(f):
                if limit is not None and n >= limit:
                    return
                yield line
    except OSError as exc:
        logger.warning("Skipping unreadable log file %s: %s", path, exc)
        return


def iter_records(path: Path, limit: Optional[int] = None) -> Iterator[LogRecord]:
    """Yield parsed records from a JSONL file, skipping malformed lines.

    Args:
        path: JSONL log file
        limit: Read at most this many lines (malformed lines count). None = whole file.
    """
    for lineno, line in enumerate(iter_lines(path, limit), start=1):
        try:
            yield parse_record(line)
        except MalformedRecordError as exc:
            if line.strip():
                logger.debug("%s:%d: skipping malformed record (%s)", path, lineno, exc)
            continue
