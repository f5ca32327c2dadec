import pytest
from sqlalchemy import func, select

from rssagg.core.exceptions import DuplicateFeedURLError, FeedNotFoundError
from rssagg.models import Feed, Post
from rssagg.services.feed_registry import FeedRegistry
from rssagg.services.post_store import PostStore


class TestFeedRegistry:
    async def test_add_and_list_in_insertion_order(self, db, alice):
        first = await FeedRegistry.add_feed(db, alice.id, "Blog", "http://x/feed.xml")
        second = await FeedRegistry.add_feed(db, alice.id, "News", "http://y/rss")

        feeds = await FeedRegistry.list_feeds(db, alice.id)
        assert [feed.id for feed in feeds] == [first.id, second.id]
        assert feeds[0].name == "Blog"
        assert feeds[0].user_id == alice.id
        assert feeds[0].last_fetched is None

    async def test_list_is_scoped_to_owner(self, db, alice, bob):
        await FeedRegistry.add_feed(db, alice.id, "Blog", "http://x/feed.xml")
        await FeedRegistry.add_feed(db, bob.id, "News", "http://y/rss")

        feeds = await FeedRegistry.list_feeds(db, bob.id)
        assert [feed.url for feed in feeds] == ["http://y/rss"]

    async def test_feed_url_is_unique_across_users(self, db, alice, bob):
        bob_id = bob.id
        await FeedRegistry.add_feed(db, alice.id, "Blog", "http://x/feed.xml")

        with pytest.raises(DuplicateFeedURLError):
            await FeedRegistry.add_feed(db, bob_id, "Same blog", "http://x/feed.xml")

        assert await FeedRegistry.list_feeds(db, bob_id) == []

    async def test_delete_removes_feed_and_posts(self, db, alice):
        alice_id = alice.id
        feed = await FeedRegistry.add_feed(db, alice_id, "Blog", "http://x/feed.xml")
        feed_id = feed.id
        await PostStore.insert(db, feed_id, "Hello", "http://x/hello", None)

        await FeedRegistry.delete_feed(db, alice_id, feed_id)

        assert await FeedRegistry.list_feeds(db, alice_id) == []
        assert not await PostStore.exists(db, "http://x/hello")
        assert await db.scalar(select(func.count(Post.id))) == 0

    async def test_cannot_delete_another_users_feed(self, db, alice, bob):
        alice_id, bob_id = alice.id, bob.id
        feed = await FeedRegistry.add_feed(db, alice_id, "Blog", "http://x/feed.xml")
        feed_id = feed.id

        with pytest.raises(FeedNotFoundError):
            await FeedRegistry.delete_feed(db, bob_id, feed_id)

        assert await db.scalar(select(func.count(Feed.id))) == 1

    async def test_delete_missing_feed(self, db, alice):
        with pytest.raises(FeedNotFoundError):
            await FeedRegistry.delete_feed(db, alice.id, 12345)

    async def test_list_all_feeds_spans_users(self, db, alice, bob):
        a = await FeedRegistry.add_feed(db, alice.id, "Blog", "http://x/feed.xml")
        b = await FeedRegistry.add_feed(db, bob.id, "News", "http://y/rss")

        assert await FeedRegistry.list_all_feeds(db) == [
            (a.id, "http://x/feed.xml"),
            (b.id, "http://y/rss"),
        ]
