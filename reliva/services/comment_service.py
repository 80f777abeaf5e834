from reliva.db import db
from reliva.repositories import user_repository
from reliva.repositories.comment_repository import create_comment, get_comment
from reliva.repositories.like_repository import get_liked_ids


def add_comment(author_id, post_id, content, parent_id=None):
    if not content or not content.strip():
        raise ValueError("Comment content is required")

    comment = create_comment(
        author_id=author_id,
        post_id=post_id,
        content=content,
        parent_id=parent_id
    )

    db.session.commit()
    return comment


def serialize_timestamp(value):
    if value is None:
        return None
    return value.isoformat() + "Z" if value.tzinfo is None else value.isoformat()


def serialize_author(author_id, user_by_id=None):
    user = (user_by_id or {}).get(author_id)
    if user:
        return user.to_dict()
    return {"_id": author_id, "username": f"user-{author_id}"}


def serialize_comment(comment, user_by_id=None, liked_ids=None):
    liked_ids = liked_ids or set()

    return {
        "_id": comment.id,
        "postId": comment.post_id,
        "parentCommentId": comment.parent_id,
        "authorId": serialize_author(comment.author_id, user_by_id),
        "content": comment.content,
        "timestamp": serialize_timestamp(comment.created_at),
        "likeCount": comment.like_count,
        "isLiked": comment.id in liked_ids,
        "comments": [],
    }


def get_comment_payload(comment_id, viewer_id=None):
    comment = get_comment(comment_id)
    if not comment:
        return None

    user_by_id = user_repository.get_users_by_ids({comment.author_id})
    liked_ids = get_liked_ids(viewer_id, "Comment", [comment.id]) if viewer_id else set()
    return serialize_comment(comment, user_by_id, liked_ids)
