import feedparser
import httpx
from typing import Optional, Dict, Any
from datetime import datetime, timezone
import logging

from rssagg.core.config import settings

logger = logging.getLogger(__name__)

USER_AGENT = "rssagg/1.0 (+feed poller)"


class FeedParser:
    """Service to download and parse RSS/Atom feeds"""

    @staticmethod
    def parse_document(document: str) -> Optional[Dict[str, Any]]:
        """
        Parse a feed document that was already downloaded.

        Returns:
            dict with keys: feed (dict), items (list), or None when the
            document is not a usable feed
        """
        feed = feedparser.parse(document)

        # bozo with no entries means nothing usable came out of the document
        if feed.bozo and not feed.entries:
            bozo_msg = str(feed.bozo_exception) if hasattr(feed, 'bozo_exception') else "Invalid feed format"
            logger.error(f"Invalid feed document: {bozo_msg}")
            return None

        feed_info = {
            "title": feed.feed.get('title', 'Untitled Feed'),
            "link": feed.feed.get('link', ''),
        }

        items = []
        for entry in feed.entries:
            item = FeedParser._parse_entry(entry)
            if item:
                items.append(item)

        return {
            "feed": feed_info,
            "items": items,
        }

    @staticmethod
    async def fetch_feed(
        url: str,
        timeout: float = settings.FEED_FETCH_TIMEOUT_SECONDS,
    ) -> Optional[Dict[str, Any]]:
        """
        Fetch and parse a feed, returning its items in document order.

        Never raises: network, HTTP and parse failures are logged and
        reported as None.

        Returns:
            dict with keys: feed (dict), items (list)
        """
        try:
            async with httpx.AsyncClient(
                timeout=timeout,
                follow_redirects=True,
                headers={"User-Agent": USER_AGENT},
            ) as client:
                response = await client.get(url)
                response.raise_for_status()

            parsed = FeedParser.parse_document(response.text)
            if parsed is None:
                logger.error(f"Failed to parse feed: {url}")
                return None

            logger.info(f"Fetched feed: {parsed['feed']['title']} ({len(parsed['items'])} items)")
            return parsed

        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP {e.response.status_code} fetching feed {url}")
            return None
        except httpx.RequestError as e:
            logger.error(f"Network error fetching feed {url}: {type(e).__name__}: {e}")
            return None
        except Exception as e:
            logger.error(f"Error fetching RSS feed {url}: {e}")
            return None

    @staticmethod
    def _parse_entry(entry: Any) -> Optional[Dict[str, Any]]:
        """Parse a single feed entry into an item dict"""
        link = entry.get('link', '')
        if not link:
            logger.warning(f"Skipping feed entry without link: {entry.get('title', '')[:60]}")
            return None

        # Get published date, unset when the feed gives none we can read
        published_at = None
        if entry.get('published_parsed'):
            published_at = datetime(*entry.published_parsed[:6], tzinfo=timezone.utc)
        elif entry.get('updated_parsed'):
            published_at = datetime(*entry.updated_parsed[:6], tzinfo=timezone.utc)

        return {
            "title": entry.get('title', ''),
            "link": link,
            "published_at": published_at,
        }
