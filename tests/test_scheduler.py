"""测试轮询调度."""

import asyncio
import logging
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, call

import pytest

from conftest import CHAT_ID, FEED_URL, OTHER_CHAT_ID
from feedpager.core.errors import DeliveryError, NetworkError
from feedpager.core.store import FeedStore
from feedpager.fetcher.document import FeedDocument, FeedItem
from feedpager.models.feed import Feed
from feedpager.scheduler.tasks import PollScheduler, SchedulerState


def _document(*items: FeedItem) -> FeedDocument:
    return FeedDocument(title="Example Feed", link=FEED_URL, items=list(items))


@pytest.fixture
def fetcher() -> MagicMock:
    mock = MagicMock()
    mock.fetch = AsyncMock(return_value=_document())
    return mock


@pytest.fixture
def notifier() -> MagicMock:
    mock = MagicMock()
    mock.notify = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def scheduler(store: FeedStore, fetcher: MagicMock, notifier: MagicMock) -> PollScheduler:
    return PollScheduler(store, fetcher, notifier, interval_seconds=30, concurrency=2)


async def _stored(store: FeedStore, feed: Feed) -> Feed:
    feeds = await store.list_feeds(feed.chat_id)
    return next(f for f in feeds if f.id == feed.id)


class TestSweepFeed:
    """测试单个 Feed 的处理."""

    async def test_items_before_subscription_are_not_notified(
        self, scheduler: PollScheduler, store: FeedStore, feed: Feed,
        fetcher: MagicMock, notifier: MagicMock,
    ) -> None:
        """订阅前发布的条目不通知，水位线不变."""
        fetcher.fetch.return_value = _document(
            FeedItem(title="old", link="https://example.com/old",
                     published=feed.created_at - timedelta(days=1)),
        )

        result = await scheduler.sweep_feed(feed)

        assert result.delivered == 0
        notifier.notify.assert_not_awaited()
        assert (await _stored(store, feed)).updated_at == feed.created_at

    async def test_new_items_notified_in_order(
        self, scheduler: PollScheduler, store: FeedStore, feed: Feed,
        fetcher: MagicMock, notifier: MagicMock,
    ) -> None:
        """两条新条目按时间先后通知，水位线推进到较新的一条."""
        t1 = feed.updated_at + timedelta(minutes=1)
        t2 = feed.updated_at + timedelta(minutes=2)
        second = FeedItem(title="second", link="https://example.com/2", published=t2)
        first = FeedItem(title="first", link="https://example.com/1", published=t1)
        fetcher.fetch.return_value = _document(second, first)

        result = await scheduler.sweep_feed(feed)

        assert result.delivered == 2
        assert notifier.notify.await_args_list == [
            call(CHAT_ID, "Example Feed", first),
            call(CHAT_ID, "Example Feed", second),
        ]
        assert (await _stored(store, feed)).updated_at == t2

    async def test_summary_logs_committed_watermark(
        self, scheduler: PollScheduler, feed: Feed, fetcher: MagicMock,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """处理结果日志包含提交后的水位线."""
        published = feed.updated_at + timedelta(minutes=1)
        fetcher.fetch.return_value = _document(
            FeedItem(title="new", link="https://example.com/new", published=published),
        )

        with caplog.at_level(logging.INFO, logger="feedpager.scheduler.tasks"):
            await scheduler.sweep_feed(feed)

        assert f"水位线={published.isoformat()}" in caplog.text

    async def test_items_are_notified_only_once(
        self, scheduler: PollScheduler, store: FeedStore, feed: Feed,
        fetcher: MagicMock, notifier: MagicMock,
    ) -> None:
        """再次扫描同一文档不会重复通知."""
        item = FeedItem(title="new", link="https://example.com/new",
                        published=feed.updated_at + timedelta(minutes=1))
        fetcher.fetch.return_value = _document(item)

        await scheduler.sweep_feed(feed)
        await scheduler.sweep_feed(await _stored(store, feed))

        assert notifier.notify.await_count == 1

    async def test_all_deliveries_fail_keeps_watermark(
        self, scheduler: PollScheduler, store: FeedStore, feed: Feed,
        fetcher: MagicMock, notifier: MagicMock,
    ) -> None:
        """全部发送失败时水位线不变，下次扫描重试."""
        fetcher.fetch.return_value = _document(
            FeedItem(title="a", link="https://example.com/a",
                     published=feed.updated_at + timedelta(minutes=1)),
            FeedItem(title="b", link="https://example.com/b",
                     published=feed.updated_at + timedelta(minutes=2)),
        )
        notifier.notify.side_effect = DeliveryError("blocked by user")

        result = await scheduler.sweep_feed(feed)

        assert result.failed == 2
        assert notifier.notify.await_count == 2
        assert (await _stored(store, feed)).updated_at == feed.created_at

    async def test_partial_failure_retries_failed_item(
        self, scheduler: PollScheduler, store: FeedStore, feed: Feed,
        fetcher: MagicMock, notifier: MagicMock,
    ) -> None:
        """中间一条失败时，后续条目仍尝试发送，水位线停在失败条目之前."""
        t1, t2, t3 = (feed.updated_at + timedelta(minutes=m) for m in (1, 2, 3))
        items = [
            FeedItem(title="1", link="https://example.com/1", published=t1),
            FeedItem(title="2", link="https://example.com/2", published=t2),
            FeedItem(title="3", link="https://example.com/3", published=t3),
        ]
        fetcher.fetch.return_value = _document(*items)
        notifier.notify.side_effect = [None, DeliveryError("timeout"), None]

        result = await scheduler.sweep_feed(feed)

        assert (result.delivered, result.failed) == (2, 1)
        assert notifier.notify.await_count == 3
        assert (await _stored(store, feed)).updated_at == t1

    async def test_fetch_error_propagates_without_writes(
        self, scheduler: PollScheduler, store: FeedStore, feed: Feed, fetcher: MagicMock,
    ) -> None:
        """抓取失败时抛出错误，水位线不变."""
        fetcher.fetch.side_effect = NetworkError("timeout")

        with pytest.raises(NetworkError):
            await scheduler.sweep_feed(feed)

        assert (await _stored(store, feed)).updated_at == feed.created_at


class TestSweep:
    """测试整轮扫描."""

    async def test_one_failing_feed_does_not_stop_others(
        self, scheduler: PollScheduler, store: FeedStore, feed: Feed,
        fetcher: MagicMock, notifier: MagicMock,
    ) -> None:
        """一个 Feed 抓取失败不影响其他 Feed."""
        await store.create_chat(OTHER_CHAT_ID)
        other = await store.create_feed(OTHER_CHAT_ID, "https://other.example/rss", "Other")
        item = FeedItem(title="new", link="https://other.example/new",
                        published=other.updated_at + timedelta(minutes=1))

        async def fetch(url: str) -> FeedDocument:
            if url == FEED_URL:
                raise NetworkError("connection refused")
            return _document(item)

        fetcher.fetch.side_effect = fetch

        stats = await scheduler.sweep()

        assert stats is not None
        assert stats.total == 2
        assert stats.failed_feeds == 1
        assert stats.notified == 1
        notifier.notify.assert_awaited_once_with(OTHER_CHAT_ID, "Other", item)
        assert scheduler.state is SchedulerState.IDLE

    async def test_overlapping_sweep_is_skipped(
        self, scheduler: PollScheduler, feed: Feed, fetcher: MagicMock,
    ) -> None:
        """上一轮未结束时，新的触发被丢弃."""
        release = asyncio.Event()

        async def slow_fetch(url: str) -> FeedDocument:
            await release.wait()
            return _document()

        fetcher.fetch.side_effect = slow_fetch

        first = asyncio.create_task(scheduler.sweep())
        await asyncio.sleep(0.05)
        assert scheduler.state is SchedulerState.SWEEPING

        assert await scheduler.sweep() is None

        release.set()
        stats = await first
        assert stats is not None
        assert fetcher.fetch.await_count == 1
        assert scheduler.state is SchedulerState.IDLE

    async def test_stop_waits_for_current_feed(
        self, scheduler: PollScheduler, store: FeedStore, feed: Feed,
        fetcher: MagicMock, notifier: MagicMock,
    ) -> None:
        """stop() 等待正在处理的 Feed 完成，之后不再开始新的 Feed."""
        scheduler.concurrency = 1
        await store.create_feed(CHAT_ID, "https://second.example/rss", "Second")
        item = FeedItem(title="new", link="https://example.com/new",
                        published=feed.updated_at + timedelta(minutes=1))
        release = asyncio.Event()

        async def slow_fetch(url: str) -> FeedDocument:
            await release.wait()
            return _document(item)

        fetcher.fetch.side_effect = slow_fetch

        sweep = asyncio.create_task(scheduler.sweep())
        await asyncio.sleep(0.05)
        stop = asyncio.create_task(scheduler.stop())
        await asyncio.sleep(0.05)
        assert not stop.done()

        release.set()
        await stop
        stats = await sweep

        assert stats is not None
        assert stats.skipped == 1
        assert fetcher.fetch.await_count == 1
        assert (await _stored(store, feed)).updated_at == item.published

    async def test_sweep_after_stop_does_nothing(
        self, scheduler: PollScheduler, feed: Feed, fetcher: MagicMock,
    ) -> None:
        """关闭后不再扫描."""
        await scheduler.stop()
        assert await scheduler.sweep() is None
        fetcher.fetch.assert_not_awaited()


class TestLifecycle:
    """测试启动和关闭."""

    async def test_start_and_stop(self, scheduler: PollScheduler) -> None:
        """start() 注册定时任务，stop() 关闭."""
        scheduler.start()
        assert scheduler.is_running is True
        assert scheduler._scheduler is not None
        assert scheduler._scheduler.get_job(PollScheduler.JOB_ID) is not None

        await scheduler.stop()
        assert scheduler.is_running is False
