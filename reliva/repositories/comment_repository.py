from reliva.db import db
from reliva.models.comment_model import Comment
from reliva.models.post_model import Post


def create_comment(author_id, post_id, content, parent_id=None):
    post = db.session.get(Post, post_id)
    if not post:
        raise ValueError("Post not found")

    if parent_id:
        parent = db.session.get(Comment, parent_id)
        if not parent or parent.post_id != post_id:
            raise ValueError("Invalid parent comment")

    comment = Comment(
        author_id=author_id,
        post_id=post_id,
        parent_id=parent_id,
        content=content.strip()
    )

    db.session.add(comment)
    return comment


def get_comment(comment_id):
    return db.session.get(Comment, comment_id)
