from sqlalchemy import func

from reliva.db import db
from reliva.models.like_model import Like


def add_like(user_id, target_type, target_id):
    like = Like.query.filter_by(
        user_id=user_id,
        target_type=target_type,
        target_id=target_id
    ).first()

    if like:
        return False

    db.session.add(Like(
        user_id=user_id,
        target_type=target_type,
        target_id=target_id
    ))
    db.session.flush()
    return True


def remove_like(user_id, target_type, target_id):
    deleted = Like.query.filter_by(
        user_id=user_id,
        target_type=target_type,
        target_id=target_id
    ).delete()

    db.session.flush()
    return deleted > 0


def count_likes(target_type: str, target_id: str) -> int:
    count = (
        db.session.query(func.count(Like.id))
        .filter(
            Like.target_type == target_type,
            Like.target_id == target_id
        )
        .scalar()
    )
    return int(count or 0)


def get_liked_ids(user_id, target_type, target_ids=None):
    query = db.session.query(Like.target_id).filter(
        Like.user_id == user_id,
        Like.target_type == target_type
    )
    if target_ids is not None:
        if not target_ids:
            return set()
        query = query.filter(Like.target_id.in_(target_ids))

    return {row[0] for row in query.all()}
