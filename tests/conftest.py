"""Pytest fixtures shared by the test suite."""

import asyncio
import os

# Settings are read at import time
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rssagg.core.database import build_engine, get_db, init_db
from rssagg.main import create_app
from rssagg.services.credential_store import CredentialStore
from rssagg.services.feed_poller import FeedPoller
from rssagg.services.session_issuer import SessionIssuer

TEST_SECRET = "test-secret"


class StubFetcher:
    """Stands in for FeedParser.fetch_feed; maps URL to parsed feed, None or an exception"""

    def __init__(self):
        self.feeds = {}
        self.calls = []
        self.gate = None

    async def __call__(self, url):
        self.calls.append(url)
        if self.gate is not None:
            await self.gate.wait()
        result = self.feeds.get(url)
        if isinstance(result, Exception):
            raise result
        return result


def make_feed(*items):
    """Build parsed feed data from (title, link, published_at) tuples"""
    return {
        "feed": {"title": "Test Feed", "link": "https://example.com"},
        "items": [
            {"title": title, "link": link, "published_at": published_at}
            for title, link, published_at in items
        ],
    }


@pytest.fixture
async def engine(tmp_path):
    db_engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_db(db_engine)
    yield db_engine
    await db_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def alice(db):
    return await CredentialStore.register(db, "alice", "pw123")


@pytest.fixture
async def bob(db):
    return await CredentialStore.register(db, "bob", "hunter2")


@pytest.fixture
def fetcher():
    return StubFetcher()


@pytest.fixture
def poller(session_factory, fetcher):
    return FeedPoller(session_factory, fetch_feed=fetcher, fetch_timeout=5.0)


@pytest.fixture
def session_issuer():
    return SessionIssuer(TEST_SECRET)


@pytest.fixture
async def app(session_factory, session_issuer, poller):
    application = create_app(lifespan=None)

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application.dependency_overrides[get_db] = override_get_db
    application.state.session_issuer = session_issuer
    application.state.feed_poller = poller
    poller.start(schedule=False)

    yield application

    # Let a gated fetch finish so shutdown does not cancel mid-write
    if poller.fetch_feed.gate is not None:
        poller.fetch_feed.gate.set()
    await asyncio.sleep(0)
    await poller.shutdown()


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as test_client:
        yield test_client


@pytest.fixture
def mock_rss_xml():
    return """<?xml version="1.0" encoding="UTF-8" ?>
    <rss version="2.0">
    <channel>
        <title>Test RSS</title>
        <link>https://example.com</link>
        <description>Test description</description>
        <item>
            <title>Article 1</title>
            <link>https://example.com/1</link>
            <pubDate>Mon, 01 Jan 2024 12:00:00 +0000</pubDate>
            <guid>https://example.com/1</guid>
        </item>
        <item>
            <title>Article 2</title>
            <link>https://example.com/2</link>
        </item>
        <item>
            <title>No link</title>
            <description>Entry without a link</description>
        </item>
    </channel>
    </rss>"""
