"""
Configuration constants and path/config resolution.

Copyright (c) 2026 Andrew Hundt
Licensed under the Apache License, Version 2.0
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional

import typer

logger = logging.getLogger(__name__)

APP_NAME = "conversation_search"

# Source layout
INDEX_FILENAME = "sessions-index.json"
LOG_SUFFIX = ".jsonl"

# Synthesis
HEAD_RECORDS = 50
PROMPT_CHARS = 120
NO_PROMPT = "(no prompt)"
UNKNOWN_PROJECT = "unknown"

# Query defaults
DEFAULT_LIMIT = 20
DEFAULT_MAX_MESSAGES = 200
AMBIGUOUS_CANDIDATE_CAP = 10

# Environment overrides
PROJECTS_ENV = "CONVERSATION_SEARCH_PROJECTS"
CLAUDE_DIR_ENV = "CLAUDE_CONFIG_DIR"
CONFIG_ENV = "CONVERSATION_SEARCH_CONFIG"

#: Keys accepted from config.json and their fallbacks.
CONFIG_DEFAULTS = {
    "default_limit": DEFAULT_LIMIT,
    "max_messages": DEFAULT_MAX_MESSAGES,
}


def resolve_projects_dir(
    projects_dir: Optional[str] = None,
    claude_dir: Optional[str] = None,
) -> Path:
    """Resolve the conversation log root.

    Priority: explicit ``projects_dir`` > $CONVERSATION_SEARCH_PROJECTS >
    ``claude_dir`` / $CLAUDE_CONFIG_DIR + "/projects" > ~/.claude/projects
    """
    if projects_dir is None:
        projects_dir = os.getenv(PROJECTS_ENV)
    if projects_dir is None:
        claude_dir = claude_dir or os.getenv(CLAUDE_DIR_ENV)
        base = Path(claude_dir).expanduser() if claude_dir else Path.home() / ".claude"
        return base / "projects"
    # expanduser() so that env var values like "~/.claude/projects" work correctly
    return Path(projects_dir).expanduser()


def config_file_path(config_path: Optional[str] = None) -> Path:
    """Return the config file path: --config > $CONVERSATION_SEARCH_CONFIG > app dir."""
    if config_path:
        return Path(config_path).expanduser()
    env_val = os.getenv(CONFIG_ENV)
    if env_val:
        return Path(env_val).expanduser()
    return Path(typer.get_app_dir(APP_NAME)) / "config.json"


def load_config(config_path: Optional[str] = None) -> dict:
    """Load the optional JSON config file merged over ``CONFIG_DEFAULTS``.

    Missing file → defaults. Unreadable or invalid file → warning + defaults.
    Unknown keys are ignored; values of the wrong type fall back to defaults.

    Example ``config.json``::

        {
            "default_limit": 50,
            "max_messages": 500
        }
    """
    config = dict(CONFIG_DEFAULTS)
    config_file = config_file_path(config_path)
    if not config_file.exists():
        return config

    try:
        with open(config_file, encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Could not load config %s: %s", config_file, exc)
        return config

    if not isinstance(data, dict):
        logger.warning("Ignoring config %s: top level must be an object", config_file)
        return config

    for key, default in CONFIG_DEFAULTS.items():
        value = data.get(key)
        if isinstance(value, int) and not isinstance(value, bool) and value > 0:
            config[key] = value
        elif key in data:
            logger.warning("Ignoring invalid %s=%r in %s", key, value, config_file)
            config[key] = default
    return config
