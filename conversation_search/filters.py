"""
Composable filter implementations over conversation entries.

Copyright (c) 2026 Andrew Hundt
Licensed under the Apache License, Version 2.0
"""

import datetime
import re
from typing import Callable, List, Optional

from .errors import InvalidSearchError
from .models import ConversationEntry, SearchCriteria, parse_timestamp

_BARE_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def normalize_date(value: str) -> datetime.datetime:
    """Parse a date bound. A bare "YYYY-MM-DD" means midnight of that day.

    Raises:
        InvalidSearchError: If value is not a date or ISO 8601 datetime.
    """
    text = value.strip()
    if _BARE_DATE_RE.match(text):
        text = f"{text}T00:00:00"
    parsed = parse_timestamp(text)
    if parsed is None:
        raise InvalidSearchError(
            f"Invalid date format {value!r}: expected YYYY-MM-DD or ISO 8601 (e.g. 2025-06-01T12:00:00)"
        )
    return parsed


def _entry_date(entry: ConversationEntry) -> Optional[datetime.datetime]:
    return parse_timestamp(entry.created) or parse_timestamp(entry.modified)


class EntryFilter:
    """Composable conversation filter: every added predicate must pass (AND)."""

    def __init__(self):
        """Initialize filter."""
        self._predicates: List[Callable[[ConversationEntry], bool]] = []

    def by_topic(self, topic: str) -> "EntryFilter":
        """Case-insensitive substring of a real first_prompt or an index-provided summary.

        The "(no prompt)" and "(no index)" placeholders never match.
        """
        needle = topic.lower()

        def predicate(e: ConversationEntry) -> bool:
            if e.has_prompt and needle in e.first_prompt.lower():
                return True
            return e.has_summary and needle in e.summary.lower()

        self._predicates.append(predicate)
        return self

    def by_after(self, after: str) -> "EntryFilter":
        """Created-or-modified on or after the bound. Unparseable dates never pass."""
        bound = normalize_date(after)

        def predicate(e: ConversationEntry) -> bool:
            ts = _entry_date(e)
            return ts is not None and ts >= bound

        self._predicates.append(predicate)
        return self

    def by_before(self, before: str) -> "EntryFilter":
        """Created-or-modified on or before the bound. Unparseable dates never pass."""
        bound = normalize_date(before)

        def predicate(e: ConversationEntry) -> bool:
            ts = _entry_date(e)
            return ts is not None and ts <= bound

        self._predicates.append(predicate)
        return self

    def by_branch(self, branch: str) -> "EntryFilter":
        """Case-insensitive substring of git_branch."""
        needle = branch.lower()
        self._predicates.append(lambda e: needle in (e.git_branch or "").lower())
        return self

    def by_project(self, project: str) -> "EntryFilter":
        """Case-insensitive substring of project_path."""
        needle = project.lower()
        self._predicates.append(lambda e: needle in (e.project_path or "").lower())
        return self

    def custom(self, predicate: Callable[[ConversationEntry], bool]) -> "EntryFilter":
        """Add custom filter predicate."""
        self._predicates.append(predicate)
        return self

    @classmethod
    def from_criteria(cls, criteria: Optional[SearchCriteria]) -> "EntryFilter":
        """Build a filter with one predicate per present criterion.

        Raises:
            InvalidSearchError: If a date bound cannot be parsed.
        """
        f = cls()
        if criteria is None:
            return f
        if criteria.topic:
            f.by_topic(criteria.topic)
        if criteria.after:
            f.by_after(criteria.after)
        if criteria.before:
            f.by_before(criteria.before)
        if criteria.branch:
            f.by_branch(criteria.branch)
        if criteria.project:
            f.by_project(criteria.project)
        return f

    def matches(self, entry: ConversationEntry) -> bool:
        """True when every predicate passes (vacuously true with none)."""
        return all(predicate(entry) for predicate in self._predicates)

    def apply(self, entries: List[ConversationEntry]) -> List[ConversationEntry]:
        """Apply all filters, preserving input order."""
        return [e for e in entries if self.matches(e)]

    def __call__(self, entries: List[ConversationEntry]) -> List[ConversationEntry]:
        """Support callable interface."""
        return self.apply(entries)


def filter_entries(
    entries: List[ConversationEntry], criteria: Optional[SearchCriteria]
) -> List[ConversationEntry]:
    """Filter entries by criteria (AND of present fields), order preserved."""
    return EntryFilter.from_criteria(criteria).apply(entries)
