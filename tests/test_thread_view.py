import unittest

from reliva.sync.api import ApiError
from reliva.sync.cache import MemoryStorage, SessionCache
from reliva.sync.messages import AuthIntent, CommentEvent, InitEvent, LikeUpdateEvent, NewReplyIntent
from reliva.sync.records import Author
from reliva.sync.thread import (
    PLACEHOLDER_CONTENT,
    PostNotFoundError,
    ThreadSession,
    reconstruct_thread,
)
from tests.helpers import FakeApi, FakeChannel, make_comment, make_post


def chain_post():
    return make_post("P1", comments=[
        make_comment("c1", post_id="P1"),
        make_comment("c2", parent_id="c1", post_id="P1"),
        make_comment("c3", parent_id="c2", post_id="P1"),
    ])


class TestReconstructThread(unittest.TestCase):
    def test_direct_replies_come_from_flat_list(self):
        view = reconstruct_thread(chain_post(), "c2")

        self.assertTrue(view.found)
        self.assertEqual(view.parent_comment.id, "c2")
        self.assertEqual([r.id for r in view.replies], ["c3"])
        self.assertEqual(view.replies[0].children, [])

    def test_one_level_of_nested_replies(self):
        post = chain_post()
        post.comments.append(make_comment("c4", parent_id="c3", post_id="P1"))
        post.comments.append(make_comment("c5", parent_id="c4", post_id="P1"))

        view = reconstruct_thread(post, "c2")

        self.assertEqual([c.id for c in view.replies[0].children], ["c4"])
        self.assertEqual(view.replies[0].children[0].children, [])
        self.assertEqual([c.id for c in view.replies_for("c4")], ["c5"])
        self.assertEqual(view.total_replies(), 3)

    def test_thread_order_puts_viewer_first(self):
        post = make_post("P1", comments=[
            make_comment("root", post_id="P1"),
            make_comment("a", parent_id="root", author="u", timestamp=5, post_id="P1"),
            make_comment("b", parent_id="root", author="v", timestamp=10, post_id="P1"),
            make_comment("c", parent_id="root", author="u", timestamp=1, post_id="P1"),
        ])

        view = reconstruct_thread(post, "root", viewer=Author(id="u", username="u"))

        self.assertEqual([r.id for r in view.replies], ["a", "c", "b"])

    def test_missing_comment_is_fetched(self):
        fetched = make_comment("gone", parent_id="c1", post_id="P1")
        requests = []

        def fetch(comment_id):
            requests.append(comment_id)
            return fetched

        view = reconstruct_thread(chain_post(), "gone", fetch_comment=fetch)

        self.assertEqual(requests, ["gone"])
        self.assertTrue(view.found)
        self.assertEqual(view.parent_comment.content, fetched.content)

    def test_missing_everywhere_gives_placeholder(self):
        view = reconstruct_thread(chain_post(), "nope", fetch_comment=lambda comment_id: None)

        self.assertFalse(view.found)
        self.assertEqual(view.parent_comment.id, "nope")
        self.assertEqual(view.parent_comment.content, PLACEHOLDER_CONTENT)
        self.assertEqual(view.replies, [])

    def test_reconstruct_does_not_touch_post(self):
        post = chain_post()

        reconstruct_thread(post, "c1")

        self.assertTrue(all(c.children == [] for c in post.comments))


class ThreadSessionTestCase(unittest.TestCase):
    def setUp(self):
        self.viewer = Author(id="u1", username="alice")
        self.api = FakeApi(posts=[chain_post()])
        self.cache = SessionCache(MemoryStorage())
        self.notifications = []
        self.channels = []
        self.session = ThreadSession(
            self.viewer,
            "P1",
            "c1",
            api=self.api,
            cache=self.cache,
            channel_factory=self._make_channel,
            notifier=lambda title, description: self.notifications.append(title),
        )

    def _make_channel(self, on_event):
        channel = FakeChannel(on_event)
        self.channels.append(channel)
        return channel


class TestThreadSessionLoad(ThreadSessionTestCase):
    def test_load_falls_back_to_api_and_caches(self):
        view = self.session.load()

        self.assertEqual([r.id for r in view.replies], ["c2"])
        self.assertEqual(self.api.post_requests, ["u1"])
        self.assertIsNotNone(self.cache.find_post("P1"))

    def test_load_uses_cache_first(self):
        self.cache.write_posts([chain_post()])

        self.session.load()

        self.assertEqual(self.api.post_requests, [])

    def test_unknown_comment_asks_the_api(self):
        self.session.comment_id = "zz"
        self.api.comments["zz"] = make_comment("zz", post_id="P1")

        view = self.session.load()

        self.assertEqual(self.api.comment_requests, ["zz"])
        self.assertTrue(view.found)

    def test_unknown_post_raises(self):
        self.session.post_id = "missing"

        with self.assertRaises(PostNotFoundError):
            self.session.load()

    def test_api_failure_raises(self):
        self.api.error = ApiError("down")

        with self.assertRaises(PostNotFoundError):
            self.session.load()

    def test_handshake_names_the_thread(self):
        self.session.connect()

        self.assertEqual(
            self.channels[0].handshake,
            AuthIntent(user_id="u1", post_id="P1", comment_id="c1", username="alice"),
        )


class TestThreadSessionUpdates(ThreadSessionTestCase):
    def setUp(self):
        super().setUp()
        self.session.load()
        self.session.connect()

    def test_direct_reply_event_joins_thread(self):
        self.session.handle_event(CommentEvent(
            post_id="P1", comment=make_comment("n1", parent_id="c1", post_id="P1"),
        ))

        self.assertIn("n1", [r.id for r in self.session.view.replies])
        self.assertEqual(self.notifications, ["New reply!"])
        self.assertEqual(self.cache.find_post("P1").comments[-1].id, "n1")

    def test_nested_reply_event_attaches_to_reply(self):
        self.session.handle_event(CommentEvent(
            post_id="P1", comment=make_comment("n2", parent_id="c2", post_id="P1"),
        ))

        c2 = self.session.view.replies[0]
        self.assertEqual([c.id for c in c2.children], ["c3", "n2"])
        self.assertEqual(self.notifications, [])

    def test_duplicate_event_is_ignored(self):
        event = CommentEvent(post_id="P1", comment=make_comment("n1", parent_id="c1", post_id="P1"))

        self.session.handle_event(event)
        self.session.handle_event(CommentEvent(
            post_id="P1", comment=make_comment("n1", parent_id="c1", post_id="P1"),
        ))

        self.assertEqual([r.id for r in self.session.view.replies].count("n1"), 1)

    def test_other_post_events_are_ignored(self):
        self.session.handle_event(CommentEvent(
            post_id="P2", comment=make_comment("x", parent_id="c1", post_id="P2"),
        ))

        self.assertEqual(len(self.session.view.post.comments), 3)

    def test_like_update_reaches_visible_reply(self):
        self.session.handle_event(LikeUpdateEvent(target_id="c2", like_count=4))

        self.assertEqual(self.session.view.replies[0].like_count, 4)

    def test_init_snapshot_rebuilds_view(self):
        post = chain_post()
        post.comments.append(make_comment("c9", parent_id="c1", post_id="P1",
                                          timestamp="2030-01-01T00:00:00Z"))

        self.session.handle_event(InitEvent(posts=[post]))

        self.assertEqual([r.id for r in self.session.view.replies], ["c9", "c2"])

    def test_submit_reply_to_thread(self):
        reply = self.session.submit_reply("  thanks  ")

        self.assertEqual(reply.parent_comment_id, "c1")
        self.assertIn(reply, self.session.view.replies)
        self.assertEqual(self.channels[0].sent, [NewReplyIntent(
            post_id="P1", content="thanks", author_id="u1", parent_reply_id="c1",
        )])
        self.assertEqual(self.notifications, ["Reply sent!"])
        self.assertIn(reply.id, [c.id for c in self.cache.find_post("P1").comments])

    def test_submit_reply_to_nested_reply(self):
        reply = self.session.submit_reply("deeper", parent_comment_id="c2")

        self.assertIn(reply.id, [c.id for c in self.session.view.replies[0].children])
        self.assertEqual([c.id for c in self.session.view.replies_for("c2")], ["c3", reply.id])

    def test_empty_reply_is_rejected(self):
        with self.assertRaises(ValueError):
            self.session.submit_reply("")

        self.assertEqual(self.channels[0].sent, [])

    def test_reply_before_load(self):
        session = ThreadSession(self.viewer, "P1", "c1", api=self.api, cache=self.cache)

        with self.assertRaises(RuntimeError):
            session.submit_reply("too early")


if __name__ == "__main__":
    unittest.main()
