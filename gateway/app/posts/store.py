"""
Local posts store and tokenized search.

Posts live in a JSON array on disk and are re-read on every call so edits
to the file show up without a restart.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Union

from ..models import Post

logger = logging.getLogger(__name__)


def normalize_post(raw: Dict[str, Any]) -> Post:
    title = str(raw.get("title") or "")
    link = str(raw.get("link") or "")
    tags = raw.get("tags") or ""
    if isinstance(tags, list):
        tags = ", ".join(str(tag) for tag in tags)

    post_id = raw.get("id") or link or title[:24]
    return Post(id=str(post_id), title=title, tags=str(tags), link=link)


def load_posts(path: Union[str, Path]) -> List[Post]:
    """
    Load and normalize posts from a JSON file.

    A missing or malformed file is logged and yields an empty list.
    """
    try:
        with open(path, encoding="utf-8") as fh:
            items = json.load(fh)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to load posts from {path}: {e}")
        return []

    if not isinstance(items, list):
        logger.error(f"Posts file {path} does not hold a JSON array")
        return []

    return [normalize_post(item) for item in items if isinstance(item, dict)]


def search_posts(posts: Iterable[Post], query: str) -> List[Post]:
    """
    Return posts whose title, tags or link contain every query token.

    Matching is case-insensitive; an empty query matches nothing.
    """
    tokens = (query or "").strip().lower().split()
    if not tokens:
        return []

    results = []
    for post in posts:
        haystack = f"{post.title} {post.tags} {post.link}".lower()
        if all(token in haystack for token in tokens):
            results.append(post)
    return results
