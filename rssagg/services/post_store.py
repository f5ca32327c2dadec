import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from rssagg.core.config import settings
from rssagg.core.exceptions import DuplicatePostURLError
from rssagg.models import Feed, Post

logger = logging.getLogger(__name__)


class PostStore:
    """Append-only storage for ingested posts, keyed by URL"""

    @staticmethod
    async def list_recent(
        db: AsyncSession,
        user_id: int,
        limit: int = settings.RECENT_POSTS_LIMIT,
    ) -> List[Post]:
        """
        Newest posts across all of a user's feeds.

        Ordered by publish time descending. Posts without a publish time
        sort after every dated post.
        """
        result = await db.execute(
            select(Post)
            .join(Feed, Post.feed_id == Feed.id)
            .where(Feed.user_id == user_id)
            .order_by(Post.published_at.desc().nulls_last(), Post.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    @staticmethod
    async def exists(db: AsyncSession, url: str) -> bool:
        result = await db.execute(select(Post.id).where(Post.url == url).limit(1))
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def insert(
        db: AsyncSession,
        feed_id: int,
        title: str,
        url: str,
        published_at: Optional[datetime] = None,
    ) -> Post:
        """
        Store and commit a new post.

        The unique constraint on posts.url is what guarantees a URL is only
        ingested once; callers may skip the insert after exists() but do not
        have to.

        Raises:
            DuplicatePostURLError: If a post with this URL is already stored
        """
        post = Post(feed_id=feed_id, title=title, url=url, published_at=published_at)
        db.add(post)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            if await PostStore.exists(db, url):
                raise DuplicatePostURLError(url)
            # Not a duplicate, e.g. the feed was deleted mid-run
            raise

        return post
