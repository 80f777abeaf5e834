"""Frames exchanged over the live update channel.

Every frame is a JSON object with a ``type`` discriminator. Inbound events and
outbound intents are decoded once into the dataclasses below; the rest of the
code only ever sees those.
"""
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from marshmallow import EXCLUDE, Schema, ValidationError, fields, post_load, validate

from reliva.sync.records import Comment, CommentSchema, Post, PostSchema


class MessageError(ValueError):
    pass


# --- inbound events --------------------------------------------------------


@dataclass
class InitEvent:
    posts: List[Post]
    type: str = "init"


@dataclass
class InitLikesEvent:
    liked_posts: List[str]
    liked_replies: List[str]
    type: str = "initLikes"


@dataclass
class PostEvent:
    post: Post
    type: str = "post"


@dataclass
class CommentEvent:
    post_id: str
    comment: Comment
    type: str = "comment"


@dataclass
class LikeUpdateEvent:
    target_id: str
    like_count: int
    target_type: Optional[str] = None
    type: str = "likeUpdate"


@dataclass
class ErrorEvent:
    error: str
    type: str = "error"


Event = Union[InitEvent, InitLikesEvent, PostEvent, CommentEvent, LikeUpdateEvent, ErrorEvent]


# --- outbound intents ------------------------------------------------------


@dataclass
class AuthIntent:
    user_id: str
    post_id: Optional[str] = None
    comment_id: Optional[str] = None
    page: Optional[int] = None
    limit: Optional[int] = None
    username: Optional[str] = None
    type: str = "auth"


@dataclass
class NewPostIntent:
    author_id: str
    content: str
    author_type: str = "user"
    media_id: Optional[str] = None
    media_title: Optional[str] = None
    media_cover: Optional[str] = None
    media_type: Optional[str] = None
    media_year: Optional[str] = None
    media_author: Optional[str] = None
    media_artist: Optional[str] = None
    media_sub_type: Optional[str] = None
    rating: Optional[float] = None
    type: str = "newPost"


@dataclass
class NewReplyIntent:
    post_id: str
    content: str
    author_id: str
    parent_reply_id: Optional[str] = None
    type: str = "newReply"


POST_LIKE_TYPES = ("likePost", "unlikePost")
REPLY_LIKE_TYPES = ("likeReply", "unlikeReply")


@dataclass
class LikeIntent:
    type: str
    user_id: str
    post_id: Optional[str] = None
    reply_id: Optional[str] = None
    target_type: str = field(default="")

    def __post_init__(self):
        if not self.target_type:
            self.target_type = "Post" if self.type in POST_LIKE_TYPES else "Comment"

    @property
    def is_like(self) -> bool:
        return self.type in ("likePost", "likeReply")

    @property
    def target_id(self) -> Optional[str]:
        return self.post_id if self.target_type == "Post" else self.reply_id


Intent = Union[AuthIntent, NewPostIntent, NewReplyIntent, LikeIntent]


# --- schemas ---------------------------------------------------------------


class _FrameSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    type = fields.Str(required=True)


class InitEventSchema(_FrameSchema):
    posts = fields.List(fields.Nested(PostSchema), load_default=list)

    @post_load
    def make(self, data, **kwargs):
        return InitEvent(**data)


class InitLikesEventSchema(_FrameSchema):
    liked_posts = fields.List(fields.Str(), data_key="likedPosts", load_default=list)
    liked_replies = fields.List(fields.Str(), data_key="likedReplies", load_default=list)

    @post_load
    def make(self, data, **kwargs):
        return InitLikesEvent(**data)


class PostEventSchema(_FrameSchema):
    post = fields.Nested(PostSchema, required=True)

    @post_load
    def make(self, data, **kwargs):
        return PostEvent(**data)


class CommentEventSchema(_FrameSchema):
    post_id = fields.Str(data_key="postId", required=True)
    comment = fields.Nested(CommentSchema, required=True)

    @post_load
    def make(self, data, **kwargs):
        return CommentEvent(**data)


class LikeUpdateEventSchema(_FrameSchema):
    target_id = fields.Str(data_key="targetId", required=True)
    like_count = fields.Int(data_key="likeCount", required=True, validate=validate.Range(min=0))
    target_type = fields.Str(data_key="targetType", load_default=None, allow_none=True)

    @post_load
    def make(self, data, **kwargs):
        return LikeUpdateEvent(**data)


class ErrorEventSchema(_FrameSchema):
    error = fields.Str(load_default="Unknown error")

    @post_load
    def make(self, data, **kwargs):
        return ErrorEvent(**data)


class AuthIntentSchema(_FrameSchema):
    user_id = fields.Str(data_key="userId", required=True, validate=validate.Length(min=1))
    post_id = fields.Str(data_key="postId", load_default=None)
    comment_id = fields.Str(data_key="commentId", load_default=None)
    page = fields.Int(load_default=None, validate=validate.Range(min=1))
    limit = fields.Int(load_default=None, validate=validate.Range(min=1))
    username = fields.Str(load_default=None, allow_none=True)

    @post_load
    def make(self, data, **kwargs):
        return AuthIntent(**data)


class NewPostIntentSchema(_FrameSchema):
    author_id = fields.Str(data_key="authorId", required=True, validate=validate.Length(min=1))
    content = fields.Str(required=True)
    author_type = fields.Str(data_key="authorType", load_default="user")
    media_id = fields.Str(data_key="mediaId", load_default=None)
    media_title = fields.Str(data_key="mediaTitle", load_default=None)
    media_cover = fields.Str(data_key="mediaCover", load_default=None)
    media_type = fields.Str(data_key="mediaType", load_default=None)
    media_year = fields.Str(data_key="mediaYear", load_default=None)
    media_author = fields.Str(data_key="mediaAuthor", load_default=None)
    media_artist = fields.Str(data_key="mediaArtist", load_default=None)
    media_sub_type = fields.Str(data_key="mediaSubType", load_default=None)
    rating = fields.Float(load_default=None)

    @post_load
    def make(self, data, **kwargs):
        return NewPostIntent(**data)


class NewReplyIntentSchema(_FrameSchema):
    post_id = fields.Str(data_key="postId", required=True)
    parent_reply_id = fields.Str(data_key="parentReplyId", load_default=None, allow_none=True)
    content = fields.Str(required=True)
    author_id = fields.Str(data_key="authorId", required=True, validate=validate.Length(min=1))

    @post_load
    def make(self, data, **kwargs):
        return NewReplyIntent(**data)


class LikeIntentSchema(_FrameSchema):
    user_id = fields.Str(data_key="userId", required=True, validate=validate.Length(min=1))
    post_id = fields.Str(data_key="postId", load_default=None)
    reply_id = fields.Str(data_key="replyId", load_default=None)
    target_type = fields.Str(
        data_key="targetType", load_default="", validate=validate.OneOf(["", "Post", "Comment"])
    )

    @post_load
    def make(self, data, **kwargs):
        intent = LikeIntent(**data)
        if intent.target_id is None:
            raise ValidationError("Missing like target")
        return intent


EVENT_SCHEMAS = {
    "init": InitEventSchema(),
    "initLikes": InitLikesEventSchema(),
    "post": PostEventSchema(),
    "comment": CommentEventSchema(),
    "likeUpdate": LikeUpdateEventSchema(),
    "error": ErrorEventSchema(),
}

INTENT_SCHEMAS = {
    "auth": AuthIntentSchema(),
    "newPost": NewPostIntentSchema(),
    "newReply": NewReplyIntentSchema(),
}
for _like_type in POST_LIKE_TYPES + REPLY_LIKE_TYPES:
    INTENT_SCHEMAS[_like_type] = LikeIntentSchema()


def _load_frame(raw: Any, schemas: Dict[str, Schema]):
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError as e:
            raise MessageError(f"Malformed frame: {e}") from e

    if not isinstance(raw, dict):
        raise MessageError("Frame must be a JSON object")

    frame_type = raw.get("type")
    if not isinstance(frame_type, str):
        raise MessageError(f"Frame type must be a string, got {frame_type!r}")

    schema = schemas.get(frame_type)
    if schema is None:
        raise MessageError(f"Unknown frame type: {frame_type!r}")

    try:
        return schema.load(raw)
    except ValidationError as e:
        raise MessageError(f"Invalid {frame_type} frame: {e.messages}") from e


def decode_event(raw: Any) -> Event:
    return _load_frame(raw, EVENT_SCHEMAS)


def decode_intent(raw: Any) -> Intent:
    return _load_frame(raw, INTENT_SCHEMAS)


def encode(message: Union[Event, Intent]) -> Dict[str, Any]:
    schemas = EVENT_SCHEMAS if message.type in EVENT_SCHEMAS else INTENT_SCHEMAS
    payload = schemas[message.type].dump(message)
    return {key: value for key, value in payload.items() if value is not None}
