"""Dedicated page for one comment and the replies under it."""
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Callable, List, Optional

from reliva.sync.api import ApiError
from reliva.sync.messages import (
    AuthIntent,
    CommentEvent,
    ErrorEvent,
    InitEvent,
    LikeUpdateEvent,
    NewReplyIntent,
)
from reliva.sync.mutations import add_unique, build_local_reply
from reliva.sync.records import Author, Comment, Post
from reliva.sync.session import ViewSession
from reliva.sync.sorting import sort_thread_replies
from reliva.sync.tree import find_comment

logger = logging.getLogger(__name__)

PLACEHOLDER_CONTENT = "Comment not found - this may be a reply to a deleted comment"


class PostNotFoundError(LookupError):
    pass


@dataclass
class ThreadView:
    post: Post
    parent_comment: Comment
    found: bool = True

    @property
    def replies(self) -> List[Comment]:
        return self.parent_comment.children

    def replies_for(self, comment_id: str) -> List[Comment]:
        """Replies to any comment in the post, straight from the flat list."""
        return [
            replace(c, children=[])
            for c in self.post.comments
            if c.parent_comment_id == comment_id and c.id != comment_id
        ]

    def total_replies(self, comment_id: Optional[str] = None) -> int:
        """Count every reply below ``comment_id`` at any depth."""
        pending = [comment_id or self.parent_comment.id]
        seen = set(pending)
        total = 0

        while pending:
            current = pending.pop()
            for reply in self.post.comments:
                if reply.parent_comment_id == current and reply.id not in seen:
                    seen.add(reply.id)
                    pending.append(reply.id)
                    total += 1
        return total


def placeholder_comment(post_id: str, comment_id: str, viewer: Optional[Author] = None) -> Comment:
    author = Author(
        id=viewer.id if viewer else "unknown",
        username=(viewer.username if viewer else "") or "Unknown User",
    )
    return Comment(
        id=comment_id,
        post_id=post_id,
        parent_comment_id=None,
        author=author,
        content=PLACEHOLDER_CONTENT,
        timestamp=datetime.now(timezone.utc).isoformat(),
        like_count=0,
        is_liked=False,
    )


def _with_nested_replies(post: Post, reply: Comment) -> Comment:
    nested = [
        replace(c, children=[])
        for c in post.comments
        if c.parent_comment_id == reply.id and c.id != reply.id
    ]
    return replace(reply, children=nested)


def reconstruct_thread(post: Post, comment_id: str,
                       fetch_comment: Optional[Callable[[str], Optional[Comment]]] = None,
                       viewer: Optional[Author] = None) -> ThreadView:
    target = find_comment(post.comments, comment_id)

    if target is None and fetch_comment is not None:
        logger.debug("Comment %s not in post %s, fetching it", comment_id, post.id)
        target = fetch_comment(comment_id)

    if target is None:
        logger.info("Comment %s not found, showing placeholder", comment_id)
        return ThreadView(post=post, parent_comment=placeholder_comment(post.id, comment_id, viewer),
                          found=False)

    direct = [
        _with_nested_replies(post, reply)
        for reply in post.comments
        if reply.parent_comment_id == comment_id and reply.id != comment_id
    ]
    parent = replace(target, children=sort_thread_replies(direct, viewer.id if viewer else None))
    return ThreadView(post=post, parent_comment=parent)


class ThreadSession(ViewSession):
    def __init__(self, viewer, post_id: str, comment_id: str, **kwargs):
        super().__init__(viewer, **kwargs)
        self.post_id = post_id
        self.comment_id = comment_id
        self.view: Optional[ThreadView] = None

    def handshake(self) -> AuthIntent:
        return AuthIntent(
            user_id=self.viewer.id,
            post_id=self.post_id,
            comment_id=self.comment_id,
            username=self.viewer.username or None,
        )

    def _locate_post(self) -> Post:
        post = self.cache.find_post(self.post_id)
        if post is not None:
            return post

        try:
            posts = self.api.fetch_posts(self.viewer.id if self.viewer else None)
        except ApiError as e:
            raise PostNotFoundError("Failed to fetch post data") from e
        self.cache.write_posts(posts)

        for candidate in posts:
            if candidate.id == self.post_id:
                return candidate
        raise PostNotFoundError("Post not found")

    def load(self) -> ThreadView:
        post = self._locate_post()
        view = reconstruct_thread(post, self.comment_id, self.api.fetch_comment, self.viewer)
        with self._lock:
            self.view = view
        return view

    def handle_event(self, event):
        with self._lock:
            if self.view is None:
                logger.debug("Thread not loaded yet, %s dropped", event.type)
                return
            if isinstance(event, CommentEvent) and event.post_id == self.post_id:
                self._apply_comment(event.comment)
            elif isinstance(event, LikeUpdateEvent):
                self._apply_like_count(event.target_id, event.like_count)
            elif isinstance(event, InitEvent):
                self._apply_snapshot(event.posts)
            elif isinstance(event, ErrorEvent):
                logger.warning("Server rejected a request: %s", event.error)

    def _attach(self, comment: Comment) -> bool:
        """Place a flat-list reply into the visible part of the thread."""
        node = replace(comment, children=[])
        # live replies go to the end; thread order is applied on load only
        if comment.parent_comment_id == self.comment_id:
            return add_unique(self.view.replies, node)

        parent = next((r for r in self.view.replies if r.id == comment.parent_comment_id), None)
        if parent is not None:
            return add_unique(parent.children, node)
        return False

    def _apply_comment(self, comment: Comment):
        comment.children = []
        if not add_unique(self.view.post.comments, comment):
            return
        self._attach(comment)
        self.cache.append_comment(self.post_id, comment)

        if comment.parent_comment_id == self.comment_id:
            self.notify("New reply!", f"{comment.author.username} replied to the thread.")

    def _apply_like_count(self, target_id: str, like_count: int):
        if self.view.post.id == target_id:
            self.view.post.like_count = like_count
        for comment in self.view.post.comments:
            if comment.id == target_id:
                comment.like_count = like_count
        visible = find_comment([self.view.parent_comment], target_id)
        if visible is not None:
            visible.like_count = like_count

    def _apply_snapshot(self, posts: List[Post]):
        post = next((p for p in posts if p.id == self.post_id), None)
        if post is None or find_comment(post.comments, self.comment_id) is None:
            return
        self.view = reconstruct_thread(post, self.comment_id, viewer=self.viewer)

    def submit_reply(self, content: str, parent_comment_id: Optional[str] = None) -> Comment:
        """Reply to the thread's comment, or to any reply shown under it."""
        if self.view is None:
            raise RuntimeError("Thread is not loaded")

        content = (content or "").strip()
        if not content:
            raise ValueError("Reply content is required")

        parent_id = parent_comment_id or self.view.parent_comment.id
        with self._lock:
            reply = build_local_reply(self.post_id, content, self.viewer, parent_id)
            self.view.post.comments.append(reply)
            self._attach(reply)
            self.cache.splice_reply(self.post_id, reply)

        sent = self.send(NewReplyIntent(
            post_id=self.post_id,
            parent_reply_id=parent_id,
            content=content,
            author_id=self.viewer.id,
        ))
        if sent:
            self.notify("Reply sent!", "Your reply is being processed...")
        else:
            self.notify("Reply added!", "Your reply has been added to the thread.")
        return reply
