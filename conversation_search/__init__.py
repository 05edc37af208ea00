"""
Conversation Search - reconcile and query a local archive of Claude Code conversation logs.

Merges per-project sessions-index.json metadata with metadata synthesized from
unindexed JSONL logs, filters and deep-searches the result, resolves session ID
prefixes, and extracts readable message transcripts. A thin CLI sits on top.

Copyright (c) 2026 Andrew Hundt
Licensed under the Apache License, Version 2.0

Example usage as library:
    from conversation_search import ConversationEngine, SearchCriteria

    engine = ConversationEngine(projects_dir)
    hits = engine.search_entries(SearchCriteria(topic="deploy", branch="main"), deep=True)
    path = engine.resolve_session(hits[0].session_id[:8])
    messages = engine.extract_messages(path, max_messages=50)
"""

try:
    from importlib.metadata import version
    __version__ = version("conversation-search")
except Exception:
    __version__ = "1.0.0"

__author__ = "Andrew Hundt"

from .engine import ConversationEngine
from .errors import (
    AmbiguousSessionError,
    ConversationSearchError,
    InvalidSearchError,
    MalformedRecordError,
    MissingSourceError,
    SessionNotFoundError,
)
from .extractors import MessageExtractor
from .filters import EntryFilter, filter_entries, normalize_date
from .formatters import (
    EntryFormatter,
    JsonFormatter,
    MessageFormatter,
    OutputOptions,
    ResultFormatter,
    StatisticsFormatter,
)
from .index import IndexLoader, IndexLoadResult
from .models import (
    NO_SUMMARY,
    ConversationEntry,
    ConversationStatistics,
    MessageRecord,
    MessageRole,
    MessageShape,
    SearchCriteria,
)
from .records import LogRecord, flatten_content, parse_record
from .synthesizer import synthesize_entry
from .types import ComposableSearch, EntryMatcher, Formatter, Searchable

__all__ = [
    "AmbiguousSessionError",
    "ComposableSearch",
    "ConversationEngine",
    "ConversationEntry",
    "ConversationSearchError",
    "ConversationStatistics",
    "EntryFilter",
    "EntryFormatter",
    "EntryMatcher",
    "Formatter",
    "IndexLoader",
    "IndexLoadResult",
    "InvalidSearchError",
    "JsonFormatter",
    "LogRecord",
    "MalformedRecordError",
    "MessageExtractor",
    "MessageFormatter",
    "MessageRecord",
    "MessageRole",
    "MessageShape",
    "MissingSourceError",
    "NO_SUMMARY",
    "OutputOptions",
    "ResultFormatter",
    "Searchable",
    "SearchCriteria",
    "SessionNotFoundError",
    "StatisticsFormatter",
    "filter_entries",
    "flatten_content",
    "normalize_date",
    "parse_record",
    "synthesize_entry",
]
