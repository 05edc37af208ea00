"""
Extraction of readable message sequences from conversation logs.

Copyright (c) 2026 Andrew Hundt
Licensed under the Apache License, Version 2.0
"""

from pathlib import Path
from typing import Iterator, List, Optional

from .config import DEFAULT_MAX_MESSAGES
from .models import MessageRecord, MessageRole, MessageShape
from .records import iter_records


def _display_timestamp(timestamp: Optional[str]) -> str:
    return timestamp[:19] if timestamp else "unknown"


class MessageExtractor:
    """Extract user/assistant turns from one JSONL log file."""

    def __init__(self, max_messages: int = DEFAULT_MAX_MESSAGES, shape: MessageShape = MessageShape.STRUCTURED):
        """Initialize with the head limit and output shape."""
        self.max_messages = max_messages
        self.shape = MessageShape(shape)

    def iter_messages(self, path: Path) -> Iterator[MessageRecord]:
        """Yield every non-empty user/assistant turn in file order (no limit)."""
        for record in iter_records(path):
            if not record.is_message:
                continue
            content = record.text(separator="\n")
            if not content:
                continue
            if self.shape is MessageShape.DISPLAY:
                timestamp = _display_timestamp(record.timestamp)
            else:
                timestamp = record.timestamp
            yield MessageRecord(role=MessageRole(record.type), timestamp=timestamp, content=content)

    def extract(self, path: Path) -> List[MessageRecord]:
        """First ``max_messages`` retained turns, in original order.

        The limit applies after role and empty-content filtering, so tool-only
        records interleaved in the log never consume the budget.
        """
        messages: List[MessageRecord] = []
        if self.max_messages <= 0:
            return messages
        for message in self.iter_messages(path):
            messages.append(message)
            if len(messages) >= self.max_messages:
                break
        return messages
