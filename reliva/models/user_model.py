from reliva.db import db


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.String(64), primary_key=True)
    username = db.Column(db.String(80), nullable=False)

    def to_dict(self):
        return {
            "_id": self.id,
            "username": self.username,
        }
