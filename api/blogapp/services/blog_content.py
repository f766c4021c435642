"""Fields derived from a blog's content: read time and excerpt."""

from __future__ import annotations

import math
import re
from typing import TYPE_CHECKING

from .. import settings

if TYPE_CHECKING:
    from ..models import Blog

EXCERPT_MAX_LENGTH = 300

_TAG_RE = re.compile(r"<[^>]*>")
_WHITESPACE_RE = re.compile(r"\s+")


def calculate_read_time(content: str) -> int:
    """Minutes to read ``content`` at READ_WORDS_PER_MINUTE, rounded up."""
    word_count = len(_WHITESPACE_RE.split(content))
    return math.ceil(word_count / settings.READ_WORDS_PER_MINUTE)


def generate_excerpt(content: str) -> str:
    """Plain-text excerpt: HTML tags stripped, truncated to 300 chars with an ellipsis."""
    plain_text = _TAG_RE.sub("", content)
    if len(plain_text) > EXCERPT_MAX_LENGTH:
        return plain_text[: EXCERPT_MAX_LENGTH - 3] + "..."
    return plain_text


def set_blog_content(blog: "Blog", content: str) -> None:
    """Set content and recompute everything derived from it."""
    blog.content = content
    blog.read_time = calculate_read_time(content)
    blog.excerpt = generate_excerpt(content)
