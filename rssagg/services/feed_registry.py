import logging
from datetime import datetime
from typing import List, Tuple

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from rssagg.core.exceptions import DuplicateFeedURLError, FeedNotFoundError
from rssagg.models import Feed

logger = logging.getLogger(__name__)


class FeedRegistry:
    """Service layer for a user's feed subscriptions"""

    @staticmethod
    async def list_feeds(db: AsyncSession, user_id: int) -> List[Feed]:
        """List a user's feeds in insertion order"""
        result = await db.execute(
            select(Feed).where(Feed.user_id == user_id).order_by(Feed.id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def add_feed(db: AsyncSession, user_id: int, name: str, url: str) -> Feed:
        """
        Subscribe a user to a feed URL.

        Raises:
            DuplicateFeedURLError: If any user already registered the URL
        """
        feed = Feed(user_id=user_id, name=name, url=url)
        db.add(feed)
        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            logger.info(f"Feed URL already registered: {url}")
            raise DuplicateFeedURLError(url) from e

        await db.refresh(feed)
        logger.info(f"Added feed '{name}' (ID: {feed.id}) for user {user_id}")
        return feed

    @staticmethod
    async def delete_feed(db: AsyncSession, user_id: int, feed_id: int) -> None:
        """
        Delete a feed owned by the user. Its posts go with it via the
        ON DELETE CASCADE foreign key.

        Raises:
            FeedNotFoundError: If the feed does not exist or belongs to another user
        """
        result = await db.execute(
            delete(Feed).where(Feed.id == feed_id, Feed.user_id == user_id)
        )
        if result.rowcount == 0:
            await db.rollback()
            logger.warning(f"User {user_id} attempted to delete missing or foreign feed {feed_id}")
            raise FeedNotFoundError(feed_id)

        await db.commit()
        logger.info(f"Deleted feed {feed_id} for user {user_id}")

    @staticmethod
    async def list_all_feeds(db: AsyncSession) -> List[Tuple[int, str]]:
        """(id, url) for every feed of every user"""
        result = await db.execute(select(Feed.id, Feed.url).order_by(Feed.id))
        return [(feed_id, url) for feed_id, url in result.all()]

    @staticmethod
    async def mark_fetched(db: AsyncSession, feed_id: int, fetched_at: datetime) -> None:
        """Record a successful fetch. Concurrent runs simply overwrite each other."""
        await db.execute(
            update(Feed).where(Feed.id == feed_id).values(last_fetched=fetched_at)
        )
        await db.commit()
