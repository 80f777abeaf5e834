from sqlalchemy.orm import selectinload

from reliva.db import db
from reliva.models.post_model import Post


def create_post(author_id, content, author_type="user", **media):
    post = Post(
        author_id=author_id,
        author_type=author_type or "user",
        content=content.strip(),
        **media
    )
    db.session.add(post)
    db.session.flush()

    return post


def get_post(post_id):
    return db.session.get(Post, post_id)


def get_posts_page(page, limit):
    query = (
        Post.query
        .options(selectinload(Post.comments))
        .order_by(Post.created_at.desc(), Post.id.desc())
    )
    total = query.count()
    posts = query.offset((page - 1) * limit).limit(limit).all()
    return posts, total
