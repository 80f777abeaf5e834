from datetime import datetime, timezone
from typing import Any, List, Optional

from reliva.sync.records import Comment


def parse_timestamp(value: Any) -> float:
    """Seconds since the epoch, or 0.0 when the value can't be read."""
    if value is None or isinstance(value, bool):
        return 0.0

    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.timestamp()

    if isinstance(value, (int, float)):
        # JavaScript clients send epoch milliseconds.
        return value / 1000.0 if abs(value) > 1e12 else float(value)

    if not isinstance(value, str) or not value.strip():
        return 0.0

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return 0.0

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()


def sort_feed(comments: List[Comment]) -> List[Comment]:
    """Oldest first, applied to every level of the tree in place."""
    ordered = sorted(comments, key=lambda c: parse_timestamp(c.timestamp))
    for comment in ordered:
        if comment.children:
            comment.children = sort_feed(comment.children)
    return ordered


def sort_thread_replies(replies: List[Comment], viewer_id: Optional[str]) -> List[Comment]:
    """Viewer's own replies first, newest first within each group.

    Only the given level is reordered; nested replies keep their order.
    """
    return sorted(
        replies,
        key=lambda c: (
            0 if viewer_id is not None and c.author.id == viewer_id else 1,
            -parse_timestamp(c.timestamp),
        ),
    )
