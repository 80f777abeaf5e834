from reliva.db import db
from reliva.models.comment_model import Comment
from reliva.models.post_model import Post
from reliva.repositories.like_repository import add_like, count_likes, remove_like

TARGET_MODELS = {
    "Post": Post,
    "Comment": Comment,
}


def set_like(user_id: str, target_type: str, target_id: str, liked: bool) -> int:
    """Record or withdraw a like and return the target's like count."""
    model = TARGET_MODELS.get(target_type)
    if model is None:
        raise ValueError("Invalid target type")

    if not user_id:
        raise ValueError("User is required")

    target = db.session.get(model, target_id)
    if not target:
        raise ValueError(f"{target_type} not found")

    if liked:
        changed = add_like(user_id, target_type, target_id)
    else:
        changed = remove_like(user_id, target_type, target_id)

    if changed:
        target.like_count = count_likes(target_type, target_id)

    db.session.commit()
    return target.like_count
