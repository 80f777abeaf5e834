import uuid
from datetime import datetime

from reliva.db import db


class Post(db.Model):
    __tablename__ = "posts"

    id = db.Column(db.String(32), primary_key=True, default=lambda: uuid.uuid4().hex)
    author_id = db.Column(db.String(64), nullable=False, index=True)
    author_type = db.Column(db.String(20), default="user", nullable=False)
    content = db.Column(db.Text, nullable=False)

    media_id = db.Column(db.String(128))
    media_title = db.Column(db.String(255))
    media_cover = db.Column(db.String(512))
    media_type = db.Column(db.String(20))  # movie | series | music | book
    media_year = db.Column(db.String(10))
    media_author = db.Column(db.String(255))
    media_artist = db.Column(db.String(255))
    media_sub_type = db.Column(db.String(20))
    rating = db.Column(db.Float)

    like_count = db.Column(db.Integer, default=0, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    comments = db.relationship(
        "Comment",
        backref="post",
        lazy="select",
        cascade="all, delete-orphan",
        order_by="Comment.created_at",
    )
