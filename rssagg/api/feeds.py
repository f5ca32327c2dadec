from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
import logging

from rssagg.api.deps import get_current_user_id, get_feed_poller
from rssagg.core.database import get_db
from rssagg.core.exceptions import ConflictError, DuplicateFeedURLError, FeedNotFoundError, NotFoundError
from rssagg.schemas import FeedCreate, FeedResponse
from rssagg.services.feed_poller import FeedPoller
from rssagg.services.feed_registry import FeedRegistry

router = APIRouter(prefix="/feeds", tags=["Feeds"])
logger = logging.getLogger(__name__)

# Largest value a PostgreSQL INTEGER primary key can hold
MAX_FEED_ID = 2**31 - 1


@router.get(
    "",
    response_model=List[FeedResponse],
    summary="List Feeds",
    description="Retrieve the authenticated user's feeds in the order they were added.",
)
async def list_feeds(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await FeedRegistry.list_feeds(db, user_id)


@router.post(
    "",
    response_model=FeedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add Feed",
    description="""
Subscribe to a feed URL.

Feed URLs are unique across all users. Adding a feed queues a poll of
**all** feeds in the background so the new feed's posts show up without
waiting for the next scheduled run. The response does not wait for it.
    """,
    responses={409: {"description": "Feed URL already registered"}},
)
async def add_feed(
    feed: FeedCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    poller: FeedPoller = Depends(get_feed_poller),
):
    try:
        db_feed = await FeedRegistry.add_feed(db, user_id, feed.name, feed.url)
    except DuplicateFeedURLError:
        raise ConflictError("Feed URL already registered")

    poller.trigger()
    return db_feed


@router.delete(
    "/{feed_id}",
    summary="Delete Feed",
    description="Delete one of the user's feeds together with all of its posts.",
    responses={404: {"description": "Feed does not exist or belongs to another user"}},
)
async def delete_feed(
    feed_id: int = Path(ge=1, le=MAX_FEED_ID),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    try:
        await FeedRegistry.delete_feed(db, user_id, feed_id)
    except FeedNotFoundError:
        raise NotFoundError("Feed not found")

    return {"feed_id": feed_id, "message": "Feed deleted successfully"}
