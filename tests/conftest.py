"""测试配置和 fixtures."""

from collections.abc import AsyncGenerator
from datetime import datetime, timezone
from email.utils import format_datetime
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from feedpager.core.store import FeedStore
from feedpager.models.chat import Chat
from feedpager.models.database import build_engine, create_tables
from feedpager.models.feed import Feed

CHAT_ID = 1001
OTHER_CHAT_ID = 2002
FEED_URL = "https://example.com/feed.xml"


def make_rss(
    items: list[tuple[str | None, str | None, datetime | str | None]],
    title: str = "Example Feed",
) -> bytes:
    """生成 RSS 2.0 文档，items 为 (标题, 链接, 发布时间)."""
    entries = []
    for item_title, link, published in items:
        parts = []
        if item_title is not None:
            parts.append(f"<title>{item_title}</title>")
        if link is not None:
            parts.append(f"<link>{link}</link>")
        if isinstance(published, datetime):
            published = format_datetime(published.astimezone(timezone.utc), usegmt=True)
        if published is not None:
            parts.append(f"<pubDate>{published}</pubDate>")
        entries.append(f"<item>{''.join(parts)}</item>")

    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<rss version="2.0"><channel>'
        f"<title>{title}</title>"
        "<link>https://example.com/</link>"
        "<description>Example</description>"
        f"{''.join(entries)}"
        "</channel></rss>"
    ).encode()


@pytest_asyncio.fixture
async def session_factory(tmp_path: Path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """创建测试用的临时 SQLite 数据库."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await create_tables(engine)

    yield async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    await engine.dispose()


@pytest.fixture
def store(session_factory: async_sessionmaker[AsyncSession]) -> FeedStore:
    """FeedStore 实例."""
    return FeedStore(session_factory)


@pytest_asyncio.fixture
async def chat(store: FeedStore) -> Chat:
    """已注册的 Chat."""
    return await store.create_chat(CHAT_ID)


@pytest_asyncio.fixture
async def feed(store: FeedStore, chat: Chat) -> Feed:
    """chat 名下的一个订阅."""
    return await store.create_feed(chat.id, FEED_URL, "Example Feed")
