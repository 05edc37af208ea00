"""
Per-project ``sessions-index.json`` loading.

Copyright (c) 2026 Andrew Hundt
Licensed under the Apache License, Version 2.0
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Set

import orjson

from .config import INDEX_FILENAME
from .errors import MalformedRecordError
from .models import ConversationEntry

logger = logging.getLogger(__name__)


@dataclass
class IndexLoadResult:
    """Entries from every readable index file, plus the session IDs they cover."""

    entries: List[ConversationEntry] = field(default_factory=list)
    covered_ids: Set[str] = field(default_factory=set)


def find_index_files(projects_dir: Path) -> List[Path]:
    """Return ``<projects_dir>/*/sessions-index.json`` paths, sorted for a stable merge order."""
    if not projects_dir.is_dir():
        return []
    return sorted(p for p in projects_dir.glob(f"*/{INDEX_FILENAME}") if p.is_file())


def load_index_file(index_file: Path) -> List[ConversationEntry]:
    """Load entries from one index file.

    Accepts ``{"entries": [...]}`` and the older bare-list layout. An
    unreadable or corrupt file contributes nothing; a malformed entry is
    skipped without affecting its neighbours.
    """
    try:
        data = orjson.loads(index_file.read_bytes())
    except OSError as exc:
        logger.warning("Skipping unreadable index %s: %s", index_file, exc)
        return []
    except orjson.JSONDecodeError as exc:
        logger.warning("Skipping corrupt index %s: %s", index_file, exc)
        return []

    # Handle both old (list) and new (dict with entries) formats
    if isinstance(data, dict):
        raw_entries = data.get("entries") or []
    elif isinstance(data, list):
        raw_entries = data
    else:
        raw_entries = []
    if not isinstance(raw_entries, list):
        logger.warning("Skipping index %s: 'entries' is not a list", index_file)
        return []

    entries = []
    for position, raw in enumerate(raw_entries):
        try:
            entries.append(ConversationEntry.from_index_dict(raw))
        except MalformedRecordError as exc:
            logger.debug("%s: skipping entry %d (%s)", index_file, position, exc)
    return entries


class IndexLoader:
    """Reads every per-project index file under a projects root."""

    def __init__(self, projects_dir: Path):
        self.projects_dir = Path(projects_dir)

    def load(self) -> IndexLoadResult:
        """Union of all index entries in sorted index-file order, plus covered IDs.

        Duplicates across index files are kept here; the merge step removes them.
        """
        result = IndexLoadResult()
        for index_file in find_index_files(self.projects_dir):
            for entry in load_index_file(index_file):
                result.entries.append(entry)
                result.covered_ids.add(entry.session_id)
        return result
