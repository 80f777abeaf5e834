from reliva.db import db
from reliva.repositories import user_repository
from reliva.repositories.like_repository import get_liked_ids
from reliva.repositories.post_repository import create_post, get_post, get_posts_page
from reliva.services.comment_service import (
    serialize_timestamp,
    serialize_author,
    serialize_comment,
)


MEDIA_FIELDS = (
    "media_id",
    "media_title",
    "media_cover",
    "media_type",
    "media_year",
    "media_author",
    "media_artist",
    "media_sub_type",
    "rating",
)


def add_post(author_id, content, author_type="user", **media):
    if not author_id:
        raise ValueError("Author is required")
    if not content or not content.strip():
        raise ValueError("Post content is required")

    media = {key: value for key, value in media.items() if key in MEDIA_FIELDS}
    post = create_post(author_id, content, author_type, **media)
    db.session.commit()
    return post


def _author_ids(posts):
    ids = set()
    for post in posts:
        ids.add(post.author_id)
        ids.update(comment.author_id for comment in post.comments)
    return ids


def _serialize_post(post, user_by_id, liked_posts, liked_comments):
    return {
        "_id": post.id,
        "content": post.content,
        "authorId": serialize_author(post.author_id, user_by_id),
        "authorType": post.author_type,
        "mediaId": post.media_id,
        "mediaTitle": post.media_title,
        "mediaCover": post.media_cover,
        "mediaType": post.media_type,
        "mediaYear": post.media_year,
        "mediaAuthor": post.media_author,
        "mediaArtist": post.media_artist,
        "mediaSubType": post.media_sub_type,
        "rating": post.rating,
        "timestamp": serialize_timestamp(post.created_at),
        "likeCount": post.like_count,
        "isLiked": post.id in liked_posts,
        "comments": [
            serialize_comment(comment, user_by_id, liked_comments)
            for comment in post.comments
        ],
    }


def serialize_posts(posts, viewer_id=None):
    user_by_id = user_repository.get_users_by_ids(_author_ids(posts))

    liked_posts = set()
    liked_comments = set()
    if viewer_id:
        liked_posts = get_liked_ids(viewer_id, "Post", [p.id for p in posts])
        liked_comments = get_liked_ids(
            viewer_id,
            "Comment",
            [c.id for p in posts for c in p.comments]
        )

    return [
        _serialize_post(post, user_by_id, liked_posts, liked_comments)
        for post in posts
    ]


def serialize_post(post, viewer_id=None):
    return serialize_posts([post], viewer_id)[0]


def get_feed(viewer_id, page, limit, max_limit=50):
    page = max(page or 1, 1)
    limit = min(max(limit or 10, 1), max_limit)

    posts, total = get_posts_page(page, limit)
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "posts": serialize_posts(posts, viewer_id),
    }


def get_post_payload(post_id, viewer_id=None):
    post = get_post(post_id)
    if not post:
        return None
    return serialize_post(post, viewer_id)
