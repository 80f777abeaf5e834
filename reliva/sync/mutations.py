"""Optimistic changes applied to local state before the server confirms them.

Nothing here waits for, or rolls back on, a server acknowledgment. The
authoritative echo arriving later is applied on top by the session.
"""
import time
from datetime import datetime, timezone
from threading import Lock
from typing import List, Optional, Set

from reliva.sync.records import Author, Comment, Post

_id_lock = Lock()
_last_id_ms = 0
_same_ms_count = 0


def new_local_id(prefix: str = "reply") -> str:
    """``<prefix>_<epoch ms>``, suffixed when one millisecond yields several."""
    global _last_id_ms, _same_ms_count

    now_ms = int(time.time() * 1000)
    with _id_lock:
        if now_ms <= _last_id_ms:
            _same_ms_count += 1
            return f"{prefix}_{_last_id_ms}_{_same_ms_count}"
        _last_id_ms = now_ms
        _same_ms_count = 0
    return f"{prefix}_{now_ms}"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def build_local_reply(post_id: str, content: str, viewer: Author,
                      parent_comment_id: Optional[str] = None) -> Comment:
    return Comment(
        id=new_local_id("reply"),
        post_id=post_id,
        parent_comment_id=parent_comment_id,
        author=Author(id=viewer.id, username=viewer.username),
        content=content,
        timestamp=_now_iso(),
        like_count=0,
        is_liked=False,
    )


def build_local_post(content: str, viewer: Author, author_type: str = "user", **media) -> Post:
    return Post(
        id=new_local_id("post"),
        content=content,
        author=Author(id=viewer.id, username=viewer.username),
        author_type=author_type,
        timestamp=_now_iso(),
        **media,
    )


def apply_like(target, liked_ids: Set[str]) -> bool:
    """Flip the viewer's like on ``target``; returns the new liked state."""
    if target.id in liked_ids:
        liked_ids.discard(target.id)
        target.like_count = max(target.like_count - 1, 0)
        target.is_liked = False
    else:
        liked_ids.add(target.id)
        target.like_count += 1
        target.is_liked = True
    return target.is_liked


def add_unique(items: List, item, prepend: bool = False) -> bool:
    """Add ``item`` unless an entry with the same id is already there."""
    if any(existing.id == item.id for existing in items):
        return False
    if prepend:
        items.insert(0, item)
    else:
        items.append(item)
    return True
