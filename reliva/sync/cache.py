"""Session-scoped snapshot of the feed, kept next to the live state.

The snapshot is a fast path on mount and is kept in step with local
mutations on a best-effort basis: a broken or unreachable cache is logged and
then behaves as an empty one.
"""
import json
import logging
from typing import Callable, List, Optional

import redis
from marshmallow import ValidationError

from reliva.config import Config
from reliva.sync.records import (
    Comment,
    Post,
    comment_to_wire,
    posts_from_wire,
    posts_to_wire,
)

logger = logging.getLogger(__name__)


class MemoryStorage:
    def __init__(self):
        self._values = {}

    def get(self, key):
        return self._values.get(key)

    def set(self, key, value):
        self._values[key] = value

    def delete(self, key):
        self._values.pop(key, None)


class RedisStorage:
    def __init__(self, client, ttl: Optional[int] = None):
        self.client = client
        self.ttl = ttl

    @classmethod
    def from_url(cls, url: str, ttl: Optional[int] = None):
        return cls(redis.Redis.from_url(url), ttl=ttl)

    def get(self, key):
        value = self.client.get(key)
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    def set(self, key, value):
        if self.ttl:
            self.client.set(key, value, ex=self.ttl)
        else:
            self.client.set(key, value)

    def delete(self, key):
        self.client.delete(key)


def storage_from_config(config=Config):
    if config.REDIS_URL:
        return RedisStorage.from_url(config.REDIS_URL, ttl=config.SESSION_CACHE_TTL)
    return MemoryStorage()


class SessionCache:
    def __init__(self, storage=None, key: Optional[str] = None):
        self.storage = storage if storage is not None else MemoryStorage()
        self.key = key or Config.SESSION_CACHE_KEY

    @classmethod
    def from_config(cls, config=Config):
        return cls(storage_from_config(config), key=config.SESSION_CACHE_KEY)

    def _read_raw(self) -> Optional[list]:
        try:
            stored = self.storage.get(self.key)
        except redis.RedisError as e:
            logger.warning("Session cache unavailable: %s", e)
            return None

        if not stored:
            return None

        try:
            payload = json.loads(stored)
        except ValueError:
            logger.warning("Could not parse stored posts under %r", self.key)
            return None

        if not isinstance(payload, list):
            logger.warning("Stored posts under %r are not a list", self.key)
            return None
        return payload

    def _write_raw(self, payload: list) -> bool:
        try:
            self.storage.set(self.key, json.dumps(payload, default=str))
        except (redis.RedisError, TypeError, ValueError) as e:
            logger.warning("Could not update session cache: %s", e)
            return False
        return True

    def read_posts(self) -> Optional[List[Post]]:
        payload = self._read_raw()
        if payload is None:
            return None
        try:
            return posts_from_wire(payload)
        except ValidationError as e:
            logger.warning("Stored posts failed validation: %s", e.messages)
            return None

    def write_posts(self, posts: List[Post]) -> bool:
        return self._write_raw(posts_to_wire(posts))

    def find_post(self, post_id: str) -> Optional[Post]:
        for post in self.read_posts() or []:
            if post.id == post_id:
                return post
        return None

    def clear(self):
        try:
            self.storage.delete(self.key)
        except redis.RedisError as e:
            logger.warning("Could not clear session cache: %s", e)

    def _update_post(self, post_id: str, update: Callable[[dict], None]) -> bool:
        payload = self._read_raw()
        if payload is None:
            return False

        for raw_post in payload:
            if isinstance(raw_post, dict) and (raw_post.get("_id") or raw_post.get("id")) == post_id:
                update(raw_post)
                return self._write_raw(payload)
        return False

    def append_comment(self, post_id: str, comment: Comment) -> bool:
        record = comment_to_wire(comment)
        record["comments"] = []

        def _append(raw_post):
            raw_post["comments"] = list(raw_post.get("comments") or []) + [record]

        return self._update_post(post_id, _append)

    def splice_reply(self, post_id: str, reply: Comment) -> bool:
        """Hang ``reply`` under its parent inside the cached post.

        Replies to the post itself, or to a parent the cache doesn't hold,
        go on the post's own comment list.
        """
        record = comment_to_wire(reply)
        record["comments"] = []

        def _splice(raw_post):
            comments = list(raw_post.get("comments") or [])
            if reply.parent_comment_id and _splice_under(comments, reply.parent_comment_id, record):
                raw_post["comments"] = comments
                return
            raw_post["comments"] = comments + [record]

        return self._update_post(post_id, _splice)

    def prepend_post(self, post: Post) -> bool:
        payload = self._read_raw()
        if payload is None:
            payload = []
        payload.insert(0, posts_to_wire([post])[0])
        return self._write_raw(payload)

    def set_like_count(self, target_id: str, like_count: int) -> bool:
        payload = self._read_raw()
        if payload is None:
            return False

        changed = False
        for raw_post in payload:
            if not isinstance(raw_post, dict):
                continue
            if (raw_post.get("_id") or raw_post.get("id")) == target_id:
                raw_post["likeCount"] = like_count
                changed = True
            if _set_comment_like_count(raw_post.get("comments") or [], target_id, like_count):
                changed = True

        if not changed:
            return False
        return self._write_raw(payload)


def _splice_under(comments: list, parent_id: str, record: dict) -> bool:
    for raw_comment in comments:
        if not isinstance(raw_comment, dict):
            continue
        if (raw_comment.get("_id") or raw_comment.get("id")) == parent_id:
            raw_comment["comments"] = list(raw_comment.get("comments") or []) + [record]
            return True
        if _splice_under(raw_comment.get("comments") or [], parent_id, record):
            return True
    return False


def _set_comment_like_count(comments: list, target_id: str, like_count: int) -> bool:
    changed = False
    for raw_comment in comments:
        if not isinstance(raw_comment, dict):
            continue
        if (raw_comment.get("_id") or raw_comment.get("id")) == target_id:
            raw_comment["likeCount"] = like_count
            changed = True
        if _set_comment_like_count(raw_comment.get("comments") or [], target_id, like_count):
            changed = True
    return changed
