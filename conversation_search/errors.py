"""
Exception types raised by the conversation engine.

Copyright (c) 2026 Andrew Hundt
Licensed under the Apache License, Version 2.0
"""

from typing import List


class ConversationSearchError(Exception):
    """Base exception for conversation engine operations."""
    pass


class MissingSourceError(ConversationSearchError):
    """Raised when the projects root directory does not exist."""

    def __init__(self, path):
        self.path = path
        super().__init__(f"Conversation log directory not found: {path}")


class SessionNotFoundError(ConversationSearchError):
    """Raised when no log file matches a session ID or prefix."""

    def __init__(self, candidate: str):
        self.candidate = candidate
        super().__init__(f"No conversation found matching session ID: {candidate}")


class AmbiguousSessionError(ConversationSearchError):
    """Raised when a session ID prefix matches more than one log file.

    ``candidates`` holds at most the configured cap of matching IDs;
    ``total`` is the number of matches before capping.
    """

    def __init__(self, candidate: str, candidates: List[str], total: int):
        self.candidate = candidate
        self.candidates = candidates
        self.total = total
        more = f" (+{total - len(candidates)} more)" if total > len(candidates) else ""
        super().__init__(
            f"Multiple matches for '{candidate}': {', '.join(candidates)}{more}"
        )


class InvalidSearchError(ConversationSearchError, ValueError):
    """Raised for unusable search input: no criteria, bad date, bad pattern."""
    pass


class MalformedRecordError(ConversationSearchError, ValueError):
    """Raised when a single JSONL line or index entry cannot be parsed.

    Always recovered by the caller: the record is skipped.
    """
    pass
