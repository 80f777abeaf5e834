from flask import current_app, session
from flask_socketio import emit

from reliva.db import db
from reliva.extensions.extensions import socketio
from reliva.repositories import user_repository
from reliva.repositories.like_repository import get_liked_ids
from reliva.services import comment_service, like_service, post_service
from reliva.sync.messages import (
    AuthIntent,
    LikeIntent,
    MessageError,
    NewPostIntent,
    NewReplyIntent,
    decode_intent,
)

FRAME_EVENT = "message"

_registered = False


def _send_error(error):
    emit(FRAME_EVENT, {"type": "error", "error": error})


def _handle_auth(intent: AuthIntent):
    session["user_id"] = intent.user_id
    if intent.username:
        user_repository.upsert_user(intent.user_id, intent.username)

    if intent.post_id:
        post = post_service.get_post_payload(intent.post_id, intent.user_id)
        posts = [post] if post else []
    else:
        feed = post_service.get_feed(
            intent.user_id,
            intent.page or 1,
            intent.limit or current_app.config["FEED_PAGE_LIMIT"],
            current_app.config["FEED_MAX_LIMIT"],
        )
        posts = feed["posts"]

    emit(FRAME_EVENT, {"type": "init", "posts": posts})
    emit(FRAME_EVENT, {
        "type": "initLikes",
        "likedPosts": sorted(get_liked_ids(intent.user_id, "Post")),
        "likedReplies": sorted(get_liked_ids(intent.user_id, "Comment")),
    })


def _handle_new_post(intent: NewPostIntent):
    media = {
        field: getattr(intent, field)
        for field in post_service.MEDIA_FIELDS
        if getattr(intent, field) is not None
    }
    post = post_service.add_post(
        intent.author_id,
        intent.content,
        intent.author_type,
        **media
    )

    socketio.emit(FRAME_EVENT, {
        "type": "post",
        "post": post_service.serialize_post(post),
    })


def _handle_new_reply(intent: NewReplyIntent):
    comment = comment_service.add_comment(
        author_id=intent.author_id,
        post_id=intent.post_id,
        content=intent.content,
        parent_id=intent.parent_reply_id
    )
    user_by_id = user_repository.get_users_by_ids({comment.author_id})

    socketio.emit(FRAME_EVENT, {
        "type": "comment",
        "postId": comment.post_id,
        "comment": comment_service.serialize_comment(comment, user_by_id),
    })


def _handle_like(intent: LikeIntent):
    like_count = like_service.set_like(
        intent.user_id,
        intent.target_type,
        intent.target_id,
        intent.is_like
    )

    socketio.emit(FRAME_EVENT, {
        "type": "likeUpdate",
        "targetId": intent.target_id,
        "targetType": intent.target_type,
        "likeCount": like_count,
    })


def _acting_user_id(intent):
    if isinstance(intent, (NewPostIntent, NewReplyIntent)):
        return intent.author_id
    if isinstance(intent, LikeIntent):
        return intent.user_id
    return None


_HANDLERS = {
    AuthIntent: _handle_auth,
    NewPostIntent: _handle_new_post,
    NewReplyIntent: _handle_new_reply,
    LikeIntent: _handle_like,
}


def register_socket_events():
    global _registered
    if _registered:
        return

    @socketio.on(FRAME_EVENT)
    def handle_frame(data):
        try:
            intent = decode_intent(data)
        except MessageError as exc:
            current_app.logger.warning("Dropped malformed frame: %s", exc)
            _send_error(str(exc))
            return

        if not isinstance(intent, AuthIntent) and not session.get("user_id"):
            _send_error("Unauthorized")
            return

        acting_user_id = _acting_user_id(intent)
        if acting_user_id is not None and acting_user_id != session["user_id"]:
            current_app.logger.warning(
                "Socket authenticated as %s tried to act as %s",
                session["user_id"],
                acting_user_id
            )
            _send_error("Forbidden")
            return

        try:
            _HANDLERS[type(intent)](intent)
        except ValueError as exc:
            db.session.rollback()
            _send_error(str(exc))

    _registered = True
