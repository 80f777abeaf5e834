from reliva.db import db
from reliva.models.user_model import User


def get_by_id(user_id: str):
    return db.session.get(User, user_id)


def get_users_by_ids(user_ids):
    if not user_ids:
        return {}
    users = User.query.filter(User.id.in_(user_ids)).all()
    return {user.id: user for user in users}


def upsert_user(user_id: str, username: str):
    user = get_by_id(user_id)
    if user:
        user.username = username
    else:
        user = User(id=user_id, username=username)
        db.session.add(user)

    db.session.commit()
    return user
