"""The main reviews feed: snapshot, live events and optimistic edits."""
import logging
from typing import Iterable, List, Optional, Set

from reliva.sync.api import ApiError
from reliva.sync.messages import (
    AuthIntent,
    CommentEvent,
    ErrorEvent,
    InitEvent,
    InitLikesEvent,
    LikeIntent,
    LikeUpdateEvent,
    NewPostIntent,
    NewReplyIntent,
    PostEvent,
)
from reliva.sync.mutations import add_unique, apply_like, build_local_post, build_local_reply
from reliva.sync.records import Comment, Post
from reliva.sync.session import ViewSession
from reliva.sync.sorting import sort_feed
from reliva.sync.tree import build_comment_tree

logger = logging.getLogger(__name__)


class FeedSession(ViewSession):
    def __init__(self, viewer, page: int = 1, limit: Optional[int] = None, **kwargs):
        super().__init__(viewer, **kwargs)
        self.page = page
        self.limit = limit or self.config.FEED_PAGE_LIMIT
        self.posts: List[Post] = []
        self.liked_posts: Set[str] = set()
        self.liked_replies: Set[str] = set()
        self.error: Optional[str] = None

    def handshake(self) -> AuthIntent:
        return AuthIntent(
            user_id=self.viewer.id,
            page=self.page,
            limit=self.limit,
            username=self.viewer.username or None,
        )

    def load(self) -> List[Post]:
        posts = self.cache.read_posts()
        if posts is None:
            try:
                posts = self.api.fetch_posts(self.viewer.id if self.viewer else None)
            except ApiError as e:
                logger.warning("Could not load feed: %s", e)
                self.error = "Failed to fetch posts"
                return self.posts
            self.cache.write_posts(posts)

        with self._lock:
            self.error = None
            self.posts = posts
            self.liked_posts = {p.id for p in posts if p.is_liked}
            self.liked_replies = {
                c.id for p in posts for c in p.comments if c.is_liked
            }
        return self.posts

    def find_post(self, post_id: str) -> Optional[Post]:
        with self._lock:
            for post in self.posts:
                if post.id == post_id:
                    return post
        return None

    def _require_post(self, post_id: str) -> Post:
        post = self.find_post(post_id)
        if post is None:
            raise ValueError("Post not found")
        return post

    def comment_tree(self, post_id: str) -> List[Comment]:
        post = self._require_post(post_id)
        with self._lock:
            return sort_feed(build_comment_tree(post.comments))

    # --- live events -------------------------------------------------------

    def handle_event(self, event):
        with self._lock:
            if isinstance(event, InitEvent):
                self.posts = list(event.posts)
                self._refresh_like_flags()
                self.cache.write_posts(self.posts)
            elif isinstance(event, InitLikesEvent):
                self.liked_posts = set(event.liked_posts)
                self.liked_replies = set(event.liked_replies)
                self._refresh_like_flags()
            elif isinstance(event, PostEvent):
                event.post.is_liked = event.post.id in self.liked_posts
                if add_unique(self.posts, event.post, prepend=True):
                    self.cache.prepend_post(event.post)
            elif isinstance(event, CommentEvent):
                self._apply_comment(event)
            elif isinstance(event, LikeUpdateEvent):
                self._apply_like_count(event.target_id, event.like_count)
            elif isinstance(event, ErrorEvent):
                logger.warning("Server rejected a request: %s", event.error)
            else:
                logger.debug("Ignoring %s event", getattr(event, "type", event))

    def _apply_comment(self, event: CommentEvent):
        post = self.find_post(event.post_id)
        if post is None:
            logger.debug("Comment for unknown post %s dropped", event.post_id)
            return

        comment = event.comment
        comment.children = []
        comment.is_liked = comment.id in self.liked_replies
        if add_unique(post.comments, comment):
            self.cache.append_comment(post.id, comment)

    def _apply_like_count(self, target_id: str, like_count: int):
        for target in self._like_targets(target_id):
            target.like_count = like_count
        self.cache.set_like_count(target_id, like_count)

    def _like_targets(self, target_id: str) -> Iterable:
        for post in self.posts:
            if post.id == target_id:
                yield post
            for comment in post.comments:
                if comment.id == target_id:
                    yield comment

    def _refresh_like_flags(self):
        for post in self.posts:
            post.is_liked = post.id in self.liked_posts
            for comment in post.comments:
                comment.is_liked = comment.id in self.liked_replies

    # --- user actions ------------------------------------------------------

    def submit_reply(self, post_id: str, content: str,
                     parent_comment_id: Optional[str] = None) -> Comment:
        content = (content or "").strip()
        if not content:
            raise ValueError("Reply content is required")

        with self._lock:
            post = self._require_post(post_id)
            reply = build_local_reply(post.id, content, self.viewer, parent_comment_id)
            post.comments.append(reply)
            self.cache.splice_reply(post.id, reply)

        sent = self.send(NewReplyIntent(
            post_id=post.id,
            parent_reply_id=parent_comment_id,
            content=content,
            author_id=self.viewer.id,
        ))
        if sent:
            self.notify("Reply sent!", "Your reply is being processed...")
        else:
            self.notify("Reply added!", "Your reply has been added to the thread.")
        return reply

    def submit_post(self, content: str, author_type: str = "user", **media) -> Optional[Post]:
        """Publish a review. Returns the local post when working offline."""
        content = (content or "").strip()
        if not content:
            raise ValueError("Post content is required")

        intent = NewPostIntent(
            author_id=self.viewer.id,
            content=content,
            author_type=author_type,
            **media,
        )
        if self.send(intent):
            self.notify("Review posted!", "Your review is being shared...")
            return None

        post = build_local_post(content, self.viewer, author_type=author_type, **media)
        with self._lock:
            self.posts.insert(0, post)
            self.cache.prepend_post(post)
        self.notify("Review posted!", "Your review has been added to the feed.")
        return post

    def toggle_post_like(self, post_id: str) -> bool:
        with self._lock:
            post = self._require_post(post_id)
            liked = apply_like(post, self.liked_posts)
            self.cache.set_like_count(post.id, post.like_count)

        self.send(LikeIntent(
            type="likePost" if liked else "unlikePost",
            user_id=self.viewer.id,
            post_id=post.id,
        ))
        return liked

    def toggle_reply_like(self, post_id: str, reply_id: str) -> bool:
        with self._lock:
            post = self._require_post(post_id)
            reply = next((c for c in post.comments if c.id == reply_id), None)
            if reply is None:
                raise ValueError("Reply not found")
            liked = apply_like(reply, self.liked_replies)
            self.cache.set_like_count(reply.id, reply.like_count)

        self.send(LikeIntent(
            type="likeReply" if liked else "unlikeReply",
            user_id=self.viewer.id,
            post_id=post.id,
            reply_id=reply.id,
        ))
        return liked
