"""Centralized environment-driven settings.

Keep this module lightweight: stdlib only, no app imports, to avoid circular deps.
"""

from __future__ import annotations

import os


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


# Default page sizes for list endpoints (?limit= overrides, capped at MAX_PAGE_SIZE)
BLOG_PAGE_SIZE: int = _int_env("BLOG_PAGE_SIZE", 10)
COMMENT_PAGE_SIZE: int = _int_env("COMMENT_PAGE_SIZE", 20)
USER_PAGE_SIZE: int = _int_env("USER_PAGE_SIZE", 20)
MAX_PAGE_SIZE: int = _int_env("MAX_PAGE_SIZE", 100)

# Reading speed used for Blog.read_time
READ_WORDS_PER_MINUTE: int = _int_env("READ_WORDS_PER_MINUTE", 200)
