"""
Metadata synthesis for log files that no index covers.

Copyright (c) 2026 Andrew Hundt
Licensed under the Apache License, Version 2.0
"""

import datetime
import logging
import re
from pathlib import Path
from typing import Optional

from .config import HEAD_RECORDS, NO_PROMPT, PROMPT_CHARS, UNKNOWN_PROJECT
from .models import NO_SUMMARY, ConversationEntry, MessageRole
from .records import iter_lines, iter_records

logger = logging.getLogger(__name__)

#: Raw-line heuristic for message counting: no JSON parsing on the full pass.
_MESSAGE_LINE_RE = re.compile(r'"type"\s*:\s*"(?:user|assistant)"')


def count_message_lines(path: Path) -> int:
    """Approximate message count: lines that mention a user/assistant type."""
    return sum(1 for line in iter_lines(path) if _MESSAGE_LINE_RE.search(line))


def file_mtime(path: Path) -> Optional[str]:
    """File modification time as "YYYY-MM-DDTHH:MM:SSZ" (UTC), or None if stat fails."""
    try:
        mtime = path.stat().st_mtime
    except OSError:
        return None
    return datetime.datetime.fromtimestamp(
        mtime, tz=datetime.timezone.utc
    ).strftime("%Y-%m-%dT%H:%M:%SZ")


def synthesize_entry(path: Path, head_records: int = HEAD_RECORDS) -> Optional[ConversationEntry]:
    """Build a ConversationEntry from a raw log file.

    Only the first ``head_records`` lines are parsed: project path, branch and
    first prompt are set at conversation start. ``modified`` comes from the
    file mtime and ``message_count`` from a separate raw-line pass.

    Returns:
        ConversationEntry with is_orphan=True, or None if the file cannot be stat'ed.
    """
    path = Path(path)
    modified = file_mtime(path)
    if modified is None:
        logger.warning("Skipping log file that cannot be stat'ed: %s", path)
        return None

    cwd: Optional[str] = None
    branch: Optional[str] = None
    created: Optional[str] = None
    prompt: Optional[str] = None

    for record in iter_records(path, limit=head_records):
        if cwd is None and record.cwd:
            cwd = record.cwd
        if branch is None and record.git_branch:
            branch = record.git_branch
        if created is None and record.timestamp:
            created = record.timestamp
        if prompt is None and record.type == MessageRole.USER.value:
            # first user record decides, even when its text is empty
            prompt = record.text(separator=" ")[:PROMPT_CHARS]
        if cwd and branch and created and prompt is not None:
            break

    return ConversationEntry(
        session_id=path.stem,
        project_path=cwd or UNKNOWN_PROJECT,
        first_prompt=prompt or NO_PROMPT,
        summary=NO_SUMMARY,
        git_branch=branch or "",
        created=created,
        modified=modified,
        message_count=count_message_lines(path),
        is_orphan=True,
    )
