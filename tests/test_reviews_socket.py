import os
import tempfile
import unittest

from tests.helpers import make_test_config


class TestReviewsSocketFlow(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        db_fd, cls.db_path = tempfile.mkstemp(suffix=".db")
        os.close(db_fd)

        from reliva import create_app
        from reliva.db import db
        from reliva.extensions.extensions import socketio
        from reliva.repositories import user_repository
        from reliva.services import comment_service, like_service, post_service

        cls.app = create_app(make_test_config(cls.db_path))
        cls.db = db
        cls.socketio = socketio

        with cls.app.app_context():
            user_repository.upsert_user("u1", "alice")
            user_repository.upsert_user("u2", "bob")

            post = post_service.add_post("u1", "A slow burn", media_title="Dune")
            comment = comment_service.add_comment("u2", post.id, "Agreed")
            like_service.set_like("u1", "Comment", comment.id, True)
            cls.post_id = post.id
            cls.comment_id = comment.id

    @classmethod
    def tearDownClass(cls):
        with cls.app.app_context():
            cls.db.session.remove()
            cls.db.engine.dispose()

        if os.path.exists(cls.db_path):
            os.remove(cls.db_path)

    def setUp(self):
        self.clients = []

    def tearDown(self):
        for client in self.clients:
            if client.is_connected():
                client.disconnect()

    def _connect(self):
        client = self.socketio.test_client(
            self.app,
            flask_test_client=self.app.test_client(),
        )
        self.clients.append(client)
        self.assertTrue(client.is_connected())
        return client

    def _auth(self, user_id, **extra):
        client = self._connect()
        client.emit("message", {"type": "auth", "userId": user_id, **extra})
        return client

    def _frames(self, client, frame_type=None):
        frames = [
            event["args"] for event in client.get_received()
            if event["name"] == "message"
        ]
        if frame_type:
            frames = [frame for frame in frames if frame["type"] == frame_type]
        return frames

    def test_auth_sends_snapshot_then_likes(self):
        alice = self._auth("u1", page=1, limit=5)

        frames = self._frames(alice)

        self.assertEqual([f["type"] for f in frames], ["init", "initLikes"])
        posts = frames[0]["posts"]
        self.assertIn(self.post_id, [p["_id"] for p in posts])
        self.assertEqual(frames[1]["likedPosts"], [])
        self.assertEqual(frames[1]["likedReplies"], [self.comment_id])

    def test_thread_auth_gets_one_post(self):
        alice = self._auth("u1", postId=self.post_id, commentId=self.comment_id)

        init = self._frames(alice, "init")[0]

        self.assertEqual([p["_id"] for p in init["posts"]], [self.post_id])
        self.assertEqual(init["posts"][0]["comments"][0]["_id"], self.comment_id)

    def test_reply_is_broadcast_to_everyone(self):
        alice = self._auth("u1")
        bob = self._auth("u2")
        alice.get_received()
        bob.get_received()

        alice.emit("message", {
            "type": "newReply",
            "postId": self.post_id,
            "parentReplyId": self.comment_id,
            "content": "  Thanks!  ",
            "authorId": "u1",
        })

        for client in (alice, bob):
            comments = self._frames(client, "comment")
            self.assertEqual(len(comments), 1)
            self.assertEqual(comments[0]["postId"], self.post_id)
            comment = comments[0]["comment"]
            self.assertEqual(comment["content"], "Thanks!")
            self.assertEqual(comment["parentCommentId"], self.comment_id)
            self.assertEqual(comment["authorId"], {"_id": "u1", "username": "alice"})

    def test_new_post_is_broadcast(self):
        alice = self._auth("u1")
        bob = self._auth("u2")
        alice.get_received()
        bob.get_received()

        bob.emit("message", {
            "type": "newPost",
            "authorId": "u2",
            "content": "Great album",
            "mediaTitle": "Blue",
            "mediaType": "music",
            "rating": 5,
        })

        posts = self._frames(alice, "post")
        self.assertEqual(len(posts), 1)
        self.assertEqual(posts[0]["post"]["mediaTitle"], "Blue")
        self.assertEqual(posts[0]["post"]["authorId"]["username"], "bob")
        self.assertEqual(posts[0]["post"]["comments"], [])
        self.assertEqual(len(self._frames(bob, "post")), 1)

    def test_like_updates_carry_authoritative_count(self):
        bob = self._auth("u2")
        bob.get_received()
        like = {"type": "likePost", "userId": "u2", "postId": self.post_id}

        bob.emit("message", like)
        bob.emit("message", like)
        bob.emit("message", {"type": "unlikePost", "userId": "u2", "postId": self.post_id})

        updates = self._frames(bob, "likeUpdate")
        self.assertEqual([u["likeCount"] for u in updates], [1, 1, 0])
        self.assertEqual(updates[0]["targetId"], self.post_id)
        self.assertEqual(updates[0]["targetType"], "Post")

    def test_reply_like(self):
        bob = self._auth("u2")
        bob.get_received()

        bob.emit("message", {"type": "likeReply", "userId": "u2", "replyId": self.comment_id})
        bob.emit("message", {"type": "unlikeReply", "userId": "u2", "replyId": self.comment_id})

        updates = self._frames(bob, "likeUpdate")
        self.assertEqual([u["likeCount"] for u in updates], [2, 1])
        self.assertEqual(updates[0]["targetType"], "Comment")

    def test_intent_before_auth_is_rejected(self):
        client = self._connect()

        client.emit("message", {
            "type": "newReply", "postId": self.post_id, "content": "hi", "authorId": "u1",
        })

        self.assertEqual(self._frames(client), [{"type": "error", "error": "Unauthorized"}])

    def test_malformed_frame_keeps_connection(self):
        alice = self._auth("u1")
        alice.get_received()

        alice.emit("message", "{not json")
        alice.emit("message", {"type": "teleport"})

        errors = self._frames(alice, "error")
        self.assertEqual(len(errors), 2)
        self.assertTrue(alice.is_connected())

    def test_non_string_type_gets_error_frame(self):
        alice = self._auth("u1")
        alice.get_received()

        alice.emit("message", {"type": ["auth"], "userId": "u1"})

        errors = self._frames(alice, "error")
        self.assertEqual(len(errors), 1)
        self.assertIn("type", errors[0]["error"])
        self.assertTrue(alice.is_connected())

    def test_cannot_act_as_another_user(self):
        alice = self._auth("u1")
        bob = self._auth("u2")
        alice.get_received()
        bob.get_received()

        alice.emit("message", {
            "type": "newReply",
            "postId": self.post_id,
            "content": "not mine",
            "authorId": "u2",
        })
        alice.emit("message", {"type": "likePost", "userId": "u2", "postId": self.post_id})

        self.assertEqual(self._frames(alice), [
            {"type": "error", "error": "Forbidden"},
            {"type": "error", "error": "Forbidden"},
        ])
        self.assertEqual(self._frames(bob), [])

    def test_auth_username_names_the_author(self):
        carol = self._auth("u3", username="carol")
        carol.get_received()

        carol.emit("message", {
            "type": "newReply",
            "postId": self.post_id,
            "content": "Hello from carol",
            "authorId": "u3",
        })

        comment = self._frames(carol, "comment")[0]["comment"]
        self.assertEqual(comment["authorId"], {"_id": "u3", "username": "carol"})

    def test_invalid_parent_is_reported(self):
        alice = self._auth("u1")
        alice.get_received()

        alice.emit("message", {
            "type": "newReply",
            "postId": self.post_id,
            "parentReplyId": "nope",
            "content": "lost",
            "authorId": "u1",
        })

        frames = self._frames(alice)
        self.assertEqual(frames, [{"type": "error", "error": "Invalid parent comment"}])


if __name__ == "__main__":
    unittest.main()
