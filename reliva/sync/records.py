"""Comment and post records as they travel between the backend and the client.

The wire format is camelCase JSON. Records are decoded once, here, into
dataclasses; nothing past this module handles raw payload dicts.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from marshmallow import EXCLUDE, Schema, fields, post_load, pre_load


@dataclass
class Author:
    id: str
    username: str = ""


@dataclass
class Comment:
    id: str
    post_id: str
    content: str
    author: Author
    parent_comment_id: Optional[str] = None
    timestamp: Any = None
    like_count: int = 0
    is_liked: bool = False
    children: List["Comment"] = field(default_factory=list)


@dataclass
class Post:
    id: str
    content: str
    author: Author
    author_type: Optional[str] = None
    media_id: Optional[str] = None
    media_title: Optional[str] = None
    media_cover: Optional[str] = None
    media_type: Optional[str] = None
    media_year: Optional[str] = None
    media_author: Optional[str] = None
    media_artist: Optional[str] = None
    media_sub_type: Optional[str] = None
    rating: Optional[float] = None
    timestamp: Any = None
    like_count: int = 0
    is_liked: bool = False
    comments: List[Comment] = field(default_factory=list)


def _normalize_id(data):
    if isinstance(data, dict) and "_id" not in data and "id" in data:
        data = dict(data)
        data["_id"] = data.pop("id")
    return data


def _normalize_author(value):
    if isinstance(value, dict):
        return _normalize_id(value)
    if value is None:
        return {"_id": "unknown", "username": "Unknown User"}
    return {"_id": str(value), "username": str(value)}


class AuthorSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    id = fields.Str(data_key="_id", required=True)
    username = fields.Str(load_default="", allow_none=True)

    @pre_load
    def normalize(self, data, **kwargs):
        return _normalize_id(data)

    @post_load
    def make_author(self, data, **kwargs):
        data["username"] = data.get("username") or ""
        return Author(**data)


class CommentSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    id = fields.Str(data_key="_id", required=True)
    post_id = fields.Str(data_key="postId", required=True)
    parent_comment_id = fields.Str(
        data_key="parentCommentId", load_default=None, allow_none=True
    )
    author = fields.Nested(AuthorSchema, data_key="authorId", required=True)
    content = fields.Str(required=True)
    timestamp = fields.Raw(load_default=None, allow_none=True)
    like_count = fields.Int(data_key="likeCount", load_default=0)
    is_liked = fields.Bool(data_key="isLiked", load_default=False)
    children = fields.List(
        fields.Nested(lambda: CommentSchema()),
        data_key="comments",
        load_default=list,
    )

    @pre_load
    def normalize(self, data, **kwargs):
        data = _normalize_id(data)
        if isinstance(data, dict):
            data = dict(data)
            data["authorId"] = _normalize_author(data.get("authorId"))
            if data.get("likeCount") is None:
                data.pop("likeCount", None)
            if data.get("comments") is None:
                data.pop("comments", None)
        return data

    @post_load
    def make_comment(self, data, **kwargs):
        return Comment(**data)


class PostSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    id = fields.Str(data_key="_id", required=True)
    content = fields.Str(load_default="")
    author = fields.Nested(AuthorSchema, data_key="authorId", required=True)
    author_type = fields.Str(data_key="authorType", load_default=None, allow_none=True)
    media_id = fields.Str(data_key="mediaId", load_default=None, allow_none=True)
    media_title = fields.Str(data_key="mediaTitle", load_default=None, allow_none=True)
    media_cover = fields.Str(data_key="mediaCover", load_default=None, allow_none=True)
    media_type = fields.Str(data_key="mediaType", load_default=None, allow_none=True)
    media_year = fields.Str(data_key="mediaYear", load_default=None, allow_none=True)
    media_author = fields.Str(data_key="mediaAuthor", load_default=None, allow_none=True)
    media_artist = fields.Str(data_key="mediaArtist", load_default=None, allow_none=True)
    media_sub_type = fields.Str(data_key="mediaSubType", load_default=None, allow_none=True)
    rating = fields.Float(load_default=None, allow_none=True)
    timestamp = fields.Raw(load_default=None, allow_none=True)
    like_count = fields.Int(data_key="likeCount", load_default=0)
    is_liked = fields.Bool(data_key="isLiked", load_default=False)
    comments = fields.List(fields.Nested(CommentSchema), load_default=list)

    @pre_load
    def normalize(self, data, **kwargs):
        data = _normalize_id(data)
        if isinstance(data, dict):
            data = dict(data)
            data["authorId"] = _normalize_author(data.get("authorId"))
            if data.get("mediaYear") is not None:
                data["mediaYear"] = str(data["mediaYear"])
            for key in ("likeCount", "comments", "content"):
                if data.get(key) is None:
                    data.pop(key, None)
        return data

    @post_load
    def make_post(self, data, **kwargs):
        data["comments"] = flatten_comments(data.get("comments", []))
        return Post(**data)


def flatten_comments(comments: List[Comment]) -> List[Comment]:
    """Collapse nested ``children`` into one flat list, first id wins."""
    flat = []
    seen = set()
    stack = list(reversed(comments))

    while stack:
        comment = stack.pop()
        stack.extend(reversed(comment.children))
        if comment.id in seen:
            continue
        seen.add(comment.id)
        comment.children = []
        flat.append(comment)

    return flat


_comment_schema = CommentSchema()
_post_schema = PostSchema()


def comment_from_wire(payload: Dict[str, Any]) -> Comment:
    return _comment_schema.load(payload)


def comment_to_wire(comment: Comment) -> Dict[str, Any]:
    return _comment_schema.dump(comment)


def post_from_wire(payload: Dict[str, Any]) -> Post:
    return _post_schema.load(payload)


def post_to_wire(post: Post) -> Dict[str, Any]:
    return _post_schema.dump(post)


def posts_from_wire(payloads: List[Dict[str, Any]]) -> List[Post]:
    return _post_schema.load(payloads, many=True)


def posts_to_wire(posts: List[Post]) -> List[Dict[str, Any]]:
    return _post_schema.dump(posts, many=True)
