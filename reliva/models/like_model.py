from datetime import datetime

from reliva.db import db


class Like(db.Model):
    __tablename__ = "likes"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.String(64), nullable=False, index=True)

    target_type = db.Column(
        db.String(20), nullable=False
    )  # "Post" | "Comment"

    target_id = db.Column(db.String(32), nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint(
            "user_id", "target_type", "target_id",
            name="unique_user_like"
        ),
    )
