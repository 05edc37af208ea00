"""
Type protocols for composable, extensible architecture.

Protocols allow dependency injection and multiple implementations.

Copyright (c) 2026 Andrew Hundt
Licensed under the Apache License, Version 2.0
"""

from typing import Any, List, Optional, Protocol, runtime_checkable

from .models import ConversationEntry, SearchCriteria


@runtime_checkable
class Searchable(Protocol):
    """Protocol for conversation search backends."""

    def search_entries(
        self, criteria: SearchCriteria, deep: bool = False, regex: bool = False
    ) -> List[ConversationEntry]:
        """Search conversations matching criteria."""
        ...


@runtime_checkable
class EntryMatcher(Protocol):
    """Protocol for single-entry predicates."""

    def matches(self, entry: ConversationEntry) -> bool:
        """Check if entry matches."""
        ...


@runtime_checkable
class Formatter(Protocol):
    """Protocol for output formatting."""

    def format(self, data: Any) -> str:
        """Format data for output."""
        ...

    def format_many(self, items: List[Any]) -> str:
        """Format multiple items."""
        ...


class ComposableSearch:
    """Composable search builder with chaining."""

    def __init__(self, searcher: Searchable):
        """Initialize with searcher."""
        self._searcher = searcher
        self._criteria = SearchCriteria()
        self._deep = False

    def topic(self, topic: str) -> "ComposableSearch":
        self._criteria.topic = topic
        return self

    def between(self, after: Optional[str] = None, before: Optional[str] = None) -> "ComposableSearch":
        self._criteria.after = after
        self._criteria.before = before
        return self

    def on_branch(self, branch: str) -> "ComposableSearch":
        self._criteria.branch = branch
        return self

    def in_project(self, project: str) -> "ComposableSearch":
        self._criteria.project = project
        return self

    def deep(self, enabled: bool = True) -> "ComposableSearch":
        """Also scan raw log content for the topic."""
        self._deep = enabled
        return self

    def execute(self) -> List[ConversationEntry]:
        """Execute the search."""
        return self._searcher.search_entries(self._criteria, deep=self._deep)

    def __iter__(self):
        """Support iteration."""
        return iter(self.execute())

    def __len__(self):
        """Support len()."""
        return len(self.execute())
