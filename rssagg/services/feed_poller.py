import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rssagg.core.config import settings
from rssagg.core.exceptions import DuplicatePostURLError
from rssagg.services.feed_parser import FeedParser
from rssagg.services.feed_registry import FeedRegistry
from rssagg.services.post_store import PostStore

logger = logging.getLogger(__name__)

FetchFeed = Callable[[str], Awaitable[Optional[Dict[str, Any]]]]


@dataclass
class PollRunResult:
    feeds_total: int = 0
    feeds_failed: int = 0
    posts_inserted: int = 0


class FeedPoller:
    """
    Polls every registered feed and stores posts it has not seen before.

    Runs come from two places: an APScheduler interval job (first run fires
    at start-up) and a bounded trigger queue that request handlers push to.
    Runs may overlap. That is safe because last_fetched is last-writer-wins
    and posts.url is unique in the database; the exists() lookup before each
    insert only saves work.
    """

    def __init__(
        self,
        get_db_session: Callable[[], AsyncSession],
        fetch_feed: FetchFeed = FeedParser.fetch_feed,
        interval_minutes: int = settings.FETCH_INTERVAL_MINUTES,
        fetch_timeout: float = settings.FEED_FETCH_TIMEOUT_SECONDS,
        max_pending_runs: int = settings.MAX_PENDING_POLL_RUNS,
        check_existing: bool = True,
    ):
        if max_pending_runs < 1:
            raise ValueError("max_pending_runs must be at least 1")

        self.scheduler = AsyncIOScheduler()
        self.get_db_session = get_db_session
        self.fetch_feed = fetch_feed
        self.interval_minutes = interval_minutes
        self.fetch_timeout = fetch_timeout
        self.max_pending_runs = max_pending_runs
        self.check_existing = check_existing
        self.is_running = False
        self._triggers: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None
        self._scheduled_runs: Set[asyncio.Task] = set()

    def start(self, schedule: bool = True):
        """Start the trigger worker and, unless disabled, the interval job"""
        if self.is_running:
            return

        self._triggers = asyncio.Queue(maxsize=self.max_pending_runs)
        self._worker = asyncio.create_task(self._consume_triggers())

        if schedule:
            self.scheduler.add_job(
                self._scheduled_poll,
                'interval',
                minutes=self.interval_minutes,
                id='poll_feeds',
                replace_existing=True,
                coalesce=True,
                next_run_time=datetime.now(timezone.utc),  # Immediate first run
            )
            self.scheduler.start()
            logger.info(f"Feed poller started. Polling feeds every {self.interval_minutes} minutes")

        self.is_running = True

    async def shutdown(self):
        """Stop scheduling runs and cancel every run still in progress"""
        if not self.is_running:
            return

        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)

        # The scheduler does not wait for coroutine jobs, so stop them here
        in_flight = list(self._scheduled_runs)
        for task in in_flight:
            task.cancel()
        if in_flight:
            await asyncio.gather(*in_flight, return_exceptions=True)
            logger.info(f"Cancelled {len(in_flight)} scheduled poll run(s) in progress")
        self._scheduled_runs.clear()

        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass

        self._worker = None
        self._triggers = None
        self.is_running = False
        logger.info("Feed poller stopped")

    def trigger(self) -> bool:
        """
        Request an extra poll run without waiting for it.

        Returns False when the poller is not running or enough runs are
        already queued; a queued run will pick up whatever prompted this one.
        """
        if self._triggers is None:
            logger.warning("Poll run requested but the poller is not running")
            return False

        try:
            self._triggers.put_nowait(datetime.now(timezone.utc))
        except asyncio.QueueFull:
            logger.info("Poll run already pending, dropping trigger")
            return False

        logger.info("Queued poll run")
        return True

    async def wait_for_triggered_runs(self):
        """Block until every queued poll run has finished"""
        if self._triggers is not None:
            await self._triggers.join()

    async def _scheduled_poll(self):
        task = asyncio.current_task()
        self._scheduled_runs.add(task)
        try:
            await self.poll_all_feeds()
        finally:
            self._scheduled_runs.discard(task)

    async def _consume_triggers(self):
        while True:
            requested_at = await self._triggers.get()
            try:
                logger.info(f"Running poll requested at {requested_at.isoformat()}")
                await self.poll_all_feeds()
            except Exception as e:
                logger.error(f"Error in triggered poll run: {e}")
            finally:
                self._triggers.task_done()

    async def poll_all_feeds(self) -> PollRunResult:
        """Poll every feed of every user, one after another"""
        logger.info("Starting feed poll run")
        result = PollRunResult()

        try:
            async with self.get_db_session() as db:
                feeds = await FeedRegistry.list_all_feeds(db)
        except SQLAlchemyError as e:
            logger.error(f"Error listing feeds for poll run: {e}")
            return result

        result.feeds_total = len(feeds)
        logger.info(f"Found {len(feeds)} feeds to poll")

        for index, (feed_id, url) in enumerate(feeds):
            logger.info(f"Polling feed {index + 1}/{len(feeds)}: {url}")
            inserted = await self.poll_feed(feed_id, url)
            if inserted is None:
                result.feeds_failed += 1
            else:
                result.posts_inserted += inserted

        logger.info(
            f"Feed poll run completed: {result.posts_inserted} new posts, "
            f"{result.feeds_failed}/{result.feeds_total} feeds failed"
        )
        return result

    async def poll_feed(self, feed_id: int, url: str) -> Optional[int]:
        """
        Fetch one feed and store its new posts.

        Returns:
            Number of posts inserted, or None if the feed could not be
            fetched. A failed fetch leaves the feed untouched.
        """
        try:
            feed_data = await asyncio.wait_for(self.fetch_feed(url), timeout=self.fetch_timeout)
        except asyncio.TimeoutError:
            logger.error(f"Timed out after {self.fetch_timeout}s fetching feed {url}")
            return None
        except Exception as e:
            logger.error(f"Error fetching feed {url}: {e}")
            return None

        if not feed_data:
            logger.warning(f"Failed to fetch feed: {url}")
            return None

        async with self.get_db_session() as db:
            try:
                await FeedRegistry.mark_fetched(db, feed_id, datetime.now(timezone.utc))
            except SQLAlchemyError as e:
                await db.rollback()
                logger.error(f"Error updating last_fetched for feed {feed_id}: {e}")
                return None

            inserted = 0
            for item in feed_data["items"]:
                if await self._ingest_item(db, feed_id, item):
                    inserted += 1

        logger.info(f"Stored {inserted} new posts from {url} ({len(feed_data['items'])} items)")
        return inserted

    async def _ingest_item(self, db: AsyncSession, feed_id: int, item: Dict[str, Any]) -> bool:
        url = item["link"]
        try:
            if self.check_existing and await PostStore.exists(db, url):
                return False

            await PostStore.insert(db, feed_id, item["title"], url, item.get("published_at"))
            return True

        except DuplicatePostURLError:
            logger.debug(f"Post already ingested by another run: {url}")
            return False
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Error inserting post {url}: {e}")
            return False
