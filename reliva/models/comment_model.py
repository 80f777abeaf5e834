import uuid
from datetime import datetime

from reliva.db import db


class Comment(db.Model):
    __tablename__ = "comments"

    id = db.Column(db.String(32), primary_key=True, default=lambda: uuid.uuid4().hex)

    post_id = db.Column(
        db.String(32),
        db.ForeignKey("posts.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    author_id = db.Column(db.String(64), nullable=False)

    parent_id = db.Column(
        db.String(32),
        db.ForeignKey("comments.id"),
        nullable=True
    )

    content = db.Column(db.Text, nullable=False)

    like_count = db.Column(db.Integer, default=0, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # replies
    replies = db.relationship(
        "Comment",
        backref=db.backref("parent", remote_side=[id]),
        cascade="all, delete-orphan"
    )
