"""
Core conversation engine - reconciles index metadata with raw logs and queries the result.

Copyright (c) 2026 Andrew Hundt
Licensed under the Apache License, Version 2.0
"""

import datetime
import functools
import logging
import re
from collections import Counter
from pathlib import Path
from typing import Iterator, List, Optional, Set

from .config import AMBIGUOUS_CANDIDATE_CAP, DEFAULT_MAX_MESSAGES, LOG_SUFFIX
from .errors import (
    AmbiguousSessionError,
    InvalidSearchError,
    MissingSourceError,
    SessionNotFoundError,
)
from .extractors import MessageExtractor
from .filters import EntryFilter
from .index import IndexLoader
from .models import (
    ConversationEntry,
    ConversationStatistics,
    MessageRecord,
    MessageShape,
    SearchCriteria,
)
from .records import iter_lines
from .synthesizer import synthesize_entry

logger = logging.getLogger(__name__)


def sort_by_recency(entries: List[ConversationEntry]) -> List[ConversationEntry]:
    """Stable sort, newest first by modified (falling back to created).

    Entries with no parseable timestamp go last. Ties keep their input order.
    """
    return sorted(entries, key=lambda e: e.recency or datetime.datetime.min, reverse=True)


def dedup_entries(entries: List[ConversationEntry]) -> List[ConversationEntry]:
    """Keep the first entry for each session_id, preserving order."""
    seen: Set[str] = set()
    unique = []
    for entry in entries:
        if entry.session_id in seen:
            continue
        seen.add(entry.session_id)
        unique.append(entry)
    return unique


class ConversationEngine:
    """Reconciliation and query engine over a Claude Code projects directory.

    One instance corresponds to one invocation: the list of log files and the
    merged entry list are computed lazily and reused until ``refresh()``.
    """

    def __init__(self, projects_dir: Path):
        """Initialize engine with the projects root.

        Args:
            projects_dir: Directory holding one subdirectory per project, each
                          with ``<session-id>.jsonl`` logs and an optional
                          ``sessions-index.json``.
        """
        self.projects_dir = Path(projects_dir)
        self._entries: Optional[List[ConversationEntry]] = None

    # ── Private scanning helpers ─────────────────────────────────────────────

    def _require_root(self) -> None:
        if not self.projects_dir.is_dir():
            raise MissingSourceError(self.projects_dir)

    @functools.cached_property
    def _log_files(self) -> List[Path]:
        """All ``<project>/<id>.jsonl`` files in sorted path order, scanned once per engine."""
        self._require_root()
        files = []
        for project_dir in sorted(self.projects_dir.iterdir()):
            if not project_dir.is_dir():
                continue
            files.extend(sorted(p for p in project_dir.glob(f"*{LOG_SUFFIX}") if p.is_file()))
        return files

    def _iter_all_jsonl(self) -> Iterator[Path]:
        """Yield every log file path in sorted order."""
        for path in self._log_files:
            yield path

    def refresh(self) -> None:
        """Drop cached scans so the next call re-reads the filesystem."""
        self.__dict__.pop("_log_files", None)
        self._entries = None

    # ── Merge ────────────────────────────────────────────────────────────────

    def gather_entries(self) -> List[ConversationEntry]:
        """All known conversations: indexed entries plus synthesized orphans.

        Entries are sorted newest first and deduplicated by session_id; on a
        duplicate the first entry after the stable sort wins (index files in
        sorted path order come before synthesized entries).

        Raises:
            MissingSourceError: If projects_dir does not exist.
        """
        if self._entries is None:
            self._require_root()
            loaded = IndexLoader(self.projects_dir).load()
            entries = list(loaded.entries)
            for path in self._iter_all_jsonl():
                if path.stem in loaded.covered_ids:
                    continue
                entry = synthesize_entry(path)
                if entry is not None:
                    entries.append(entry)
            self._entries = dedup_entries(sort_by_recency(entries))
            logger.debug(
                "Merged %d conversations (%d indexed)", len(self._entries), len(loaded.covered_ids)
            )
        return list(self._entries)

    # ── Queries ──────────────────────────────────────────────────────────────

    def list_entries(self, criteria: Optional[SearchCriteria] = None) -> List[ConversationEntry]:
        """Merged entries, optionally filtered. No criterion is required.

        Raises:
            InvalidSearchError: If a date bound cannot be parsed.
            MissingSourceError: If projects_dir does not exist.
        """
        entry_filter = EntryFilter.from_criteria(criteria)
        return entry_filter.apply(self.gather_entries())

    def search_entries(
        self,
        criteria: SearchCriteria,
        deep: bool = False,
        regex: bool = False,
    ) -> List[ConversationEntry]:
        """Search merged entries; with ``deep`` also scan raw log content for the topic.

        Deep hits are re-filtered with the non-topic criteria and unioned with
        the index-based result, so deep search only ever adds entries.

        Args:
            criteria: At least one field must be set.
            deep: Also grep raw log files for criteria.topic (no effect without a topic).
            regex: Treat the topic as a regular expression during the deep scan.

        Raises:
            InvalidSearchError: If criteria is empty, a date is invalid, or the pattern is invalid.
            MissingSourceError: If projects_dir does not exist.
        """
        if criteria is None or criteria.is_empty:
            raise InvalidSearchError(
                "At least one search criterion required (topic, after, before, branch, project)"
            )
        # Build filters first: raise on bad dates before any I/O.
        index_filter = EntryFilter.from_criteria(criteria)
        rest_filter = EntryFilter.from_criteria(criteria.without_topic())

        entries = self.gather_entries()
        results = index_filter.apply(entries)

        if deep and criteria.topic:
            deep_ids = self.deep_search(criteria.topic, regex=regex)
            deep_entries = rest_filter.apply([e for e in entries if e.session_id in deep_ids])
            results = dedup_entries(sort_by_recency(results + deep_entries))
        return results

    def deep_search(self, topic: str, regex: bool = False) -> Set[str]:
        """Session IDs whose raw log text contains topic (case-insensitive).

        Scans every line of every log file, including tool records. Literal
        matching unless ``regex`` is set.

        Raises:
            InvalidSearchError: If topic is empty or an invalid regex.
            MissingSourceError: If projects_dir does not exist.
        """
        if not topic:
            raise InvalidSearchError("Deep search requires a non-empty topic")
        if regex:
            try:
                pattern = re.compile(topic, re.IGNORECASE)
            except re.error as exc:
                raise InvalidSearchError(f"Invalid search pattern {topic!r}: {exc}") from exc
            matches = pattern.search
        else:
            needle = topic.lower()

            def matches(line: str) -> bool:
                return needle in line.lower()

        found: Set[str] = set()
        for path in self._iter_all_jsonl():
            if path.stem in found:
                continue
            if any(matches(line) for line in iter_lines(path)):
                found.add(path.stem)
        return found

    def resolve_session(self, candidate: str) -> Path:
        """Map a full session ID or unique prefix to its log file.

        A unique exact match wins even when longer IDs share the prefix.

        Raises:
            InvalidSearchError: If candidate is empty.
            SessionNotFoundError: If nothing matches.
            AmbiguousSessionError: If several files match (candidate list capped).
            MissingSourceError: If projects_dir does not exist.
        """
        candidate = (candidate or "").strip()
        if not candidate:
            raise InvalidSearchError("Session ID is required")

        matches = [p for p in self._iter_all_jsonl() if p.stem.startswith(candidate)]
        exact = [p for p in matches if p.stem == candidate]
        if len(exact) == 1:
            return exact[0]
        if len(matches) == 1:
            return matches[0]
        if not matches:
            raise SessionNotFoundError(candidate)

        stem_counts = Counter(p.stem for p in matches)
        labels = sorted(
            f"{p.parent.name}/{p.stem}" if stem_counts[p.stem] > 1 else p.stem
            for p in matches
        )
        raise AmbiguousSessionError(candidate, labels[:AMBIGUOUS_CANDIDATE_CAP], len(labels))

    def extract_messages(
        self,
        path: Path,
        max_messages: int = DEFAULT_MAX_MESSAGES,
        shape: MessageShape = MessageShape.STRUCTURED,
    ) -> List[MessageRecord]:
        """First ``max_messages`` non-empty user/assistant turns of a log file, in order."""
        return MessageExtractor(max_messages=max_messages, shape=shape).extract(Path(path))

    def lookup_metadata(self, session_id: str) -> Optional[ConversationEntry]:
        """Merged entry for session_id; else the newest entry it prefixes; else None."""
        if not session_id:
            return None
        entries = self.gather_entries()
        for entry in entries:
            if entry.session_id == session_id:
                return entry
        for entry in entries:
            if entry.session_id.startswith(session_id):
                return entry
        return None

    def get_statistics(self) -> ConversationStatistics:
        """Counts, date range and top branches over the merged list."""
        entries = self.gather_entries()
        if not entries:
            return ConversationStatistics()

        branch_counts = Counter(e.git_branch or "unknown" for e in entries)
        top_branches = sorted(branch_counts.items(), key=lambda kv: (-kv[1], kv[0]))[:5]
        return ConversationStatistics(
            total_conversations=len(entries),
            total_messages=sum(e.message_count for e in entries),
            projects_tracked=len({e.project_path for e in entries}),
            earliest=(entries[-1].date or "unknown")[:10],
            latest=(entries[0].date or "unknown")[:10],
            top_branches=top_branches,
        )
