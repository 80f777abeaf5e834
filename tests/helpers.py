from reliva.config import Config
from reliva.sync.records import Author, Comment, Post


def make_comment(comment_id, parent_id=None, author="alice", timestamp=None,
                 post_id="p1", content=None, like_count=0):
    return Comment(
        id=comment_id,
        post_id=post_id,
        parent_comment_id=parent_id,
        author=Author(id=author, username=author),
        content=content or f"comment {comment_id}",
        timestamp=timestamp,
        like_count=like_count,
    )


def make_post(post_id="p1", comments=None, like_count=0, author="alice"):
    return Post(
        id=post_id,
        content=f"review {post_id}",
        author=Author(id=author, username=author),
        media_title="Dune",
        media_type="movie",
        timestamp="2024-05-01T10:00:00Z",
        like_count=like_count,
        comments=list(comments or []),
    )


def tree_shape(nodes):
    return {node.id: tree_shape(node.children) for node in nodes}


class FakeChannel:
    """Stands in for LiveUpdateChannel."""

    def __init__(self, on_event, connected=True):
        self.on_event = on_event
        self.connected = connected
        self.handshake = None
        self.sent = []
        self.closed = False
        self.open_calls = 0

    @property
    def is_open(self):
        return self.connected and not self.closed

    def open(self, handshake):
        self.open_calls += 1
        self.handshake = handshake
        return self.is_open

    def send(self, intent):
        if not self.is_open:
            return False
        self.sent.append(intent)
        return True

    def close(self):
        self.closed = True


class FakeApi:
    def __init__(self, posts=None, comments=None, error=None):
        self.posts = posts or []
        self.comments = comments or {}
        self.error = error
        self.post_requests = []
        self.comment_requests = []

    def fetch_posts(self, user_id):
        self.post_requests.append(user_id)
        if self.error:
            raise self.error
        return list(self.posts)

    def fetch_comment(self, comment_id):
        self.comment_requests.append(comment_id)
        return self.comments.get(comment_id)


class FakeRedis:
    def __init__(self):
        self._values = {}
        self.expiries = {}

    def clear(self):
        self._values.clear()
        self.expiries.clear()

    def get(self, key):
        value = self._values.get(key)
        return value.encode("utf-8") if value is not None else None

    def set(self, key, value, ex=None):
        self._values[key] = value
        if ex:
            self.expiries[key] = ex

    def delete(self, key):
        self._values.pop(key, None)


def make_test_config(db_path):
    return type("TestConfig", (Config,), {
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
        "FEED_PAGE_LIMIT": 10,
        "FEED_MAX_LIMIT": 50,
    })
