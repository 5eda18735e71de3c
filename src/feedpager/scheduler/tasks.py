"""定时轮询任务.

PollScheduler 按固定间隔扫描所有订阅：抓取 → 检测新条目 → 逐条通知 → 推进水位线。
各 Feed 之间相互独立，单个 Feed 的失败只记录日志，不影响本轮其他 Feed。
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from feedpager.bot.notifier import Notifier
from feedpager.core.detector import NewItem, committed_watermark, detect_updates
from feedpager.core.errors import DeliveryError, FeedPagerError
from feedpager.core.store import FeedStore
from feedpager.fetcher.client import FeedFetcher
from feedpager.models.feed import Feed
from feedpager.models.types import utcnow

logger = logging.getLogger(__name__)


class SchedulerState(str, Enum):
    """调度器状态."""

    IDLE = "idle"
    SWEEPING = "sweeping"


@dataclass
class FeedSweepResult:
    """单个 Feed 的处理结果."""

    delivered: int = 0
    failed: int = 0


@dataclass
class SweepStats:
    """一轮扫描的统计."""

    total: int = 0
    notified: int = 0
    failed_deliveries: int = 0
    failed_feeds: int = 0
    skipped: int = 0
    started_at: datetime = field(default_factory=utcnow)
    completed_at: datetime | None = None


class PollScheduler:
    """订阅轮询调度器."""

    JOB_ID = "poll_sweep"

    def __init__(
        self,
        store: FeedStore,
        fetcher: FeedFetcher,
        notifier: Notifier,
        interval_seconds: int = 30,
        concurrency: int = 4,
    ) -> None:
        self.store = store
        self.fetcher = fetcher
        self.notifier = notifier
        self.interval_seconds = interval_seconds
        self.concurrency = concurrency
        self.state = SchedulerState.IDLE
        self._scheduler: AsyncIOScheduler | None = None
        self._stopping = False
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None

    def start(self) -> None:
        """启动定时扫描，并立即执行一次."""
        if self._scheduler is not None:
            return

        self._stopping = False
        self._scheduler = AsyncIOScheduler()
        # max_instances=1：上一轮未结束时丢弃本次触发
        self._scheduler.add_job(
            self.sweep,
            "interval",
            seconds=self.interval_seconds,
            id=self.JOB_ID,
            name="订阅轮询",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.add_job(
            self.sweep,
            "date",
            id=f"{self.JOB_ID}_initial",
            name="初始轮询",
        )
        self._scheduler.start()
        logger.info(f"轮询调度器已启动，间隔: {self.interval_seconds} 秒")

    async def stop(self) -> None:
        """停止调度；正在处理的 Feed 会处理完再返回."""
        self._stopping = True
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None

        await self._idle.wait()
        logger.info("轮询调度器已关闭")

    async def sweep(self) -> SweepStats | None:
        """扫描全部订阅；已有扫描在进行或正在关闭时跳过."""
        if self.state is SchedulerState.SWEEPING:
            logger.info("上一轮扫描尚未结束，跳过本次调度")
            return None
        if self._stopping:
            return None

        self.state = SchedulerState.SWEEPING
        self._idle.clear()
        stats = SweepStats()

        try:
            feeds = await self.store.list_all_feeds()
            stats.total = len(feeds)

            semaphore = asyncio.Semaphore(self.concurrency)

            async def sweep_with_semaphore(feed: Feed) -> None:
                async with semaphore:
                    if self._stopping:
                        stats.skipped += 1
                        return
                    await self._sweep_safely(feed, stats)

            await asyncio.gather(*(sweep_with_semaphore(feed) for feed in feeds))

        except FeedPagerError as e:
            logger.error(f"读取订阅列表失败: {e}")
        finally:
            stats.completed_at = utcnow()
            self.state = SchedulerState.IDLE
            self._idle.set()

        logger.info(
            f"扫描完成: 订阅={stats.total}, 通知={stats.notified}, "
            f"发送失败={stats.failed_deliveries}, 失败订阅={stats.failed_feeds}, "
            f"跳过={stats.skipped}"
        )
        return stats

    async def _sweep_safely(self, feed: Feed, stats: SweepStats) -> None:
        """处理单个 Feed，吞掉并记录它的所有错误."""
        try:
            result = await self.sweep_feed(feed)
        except FeedPagerError as e:
            stats.failed_feeds += 1
            logger.warning(f"Feed {feed.id} ({feed.url}) 本轮跳过: {e}")
            return
        except Exception as e:
            stats.failed_feeds += 1
            logger.exception(f"Feed {feed.id} ({feed.url}) 处理异常: {e}")
            return

        stats.notified += result.delivered
        stats.failed_deliveries += result.failed

    async def sweep_feed(self, feed: Feed) -> FeedSweepResult:
        """
        处理单个 Feed.

        新条目按发布时间从旧到新逐条发送；全部发送尝试结束后才提交水位线，
        且只推进到最早一条失败条目之前，失败条目留给下一轮重试。

        Raises:
            NetworkError / DecodeError: 抓取失败，水位线不变
            StorageError: 水位线写入失败
        """
        document = await self.fetcher.fetch(feed.url)
        update = detect_updates(feed.updated_at, document.items)
        if not update.has_updates:
            return FeedSweepResult()

        delivered: list[NewItem] = []
        failed: list[NewItem] = []
        for new in update.new_items:
            try:
                await self.notifier.notify(feed.chat_id, feed.title, new.item)
            except DeliveryError as e:
                failed.append(new)
                logger.warning(f"Feed {feed.id} 条目发送失败: {e}")
            else:
                delivered.append(new)

        watermark = committed_watermark(feed.updated_at, delivered, failed)
        if watermark > feed.updated_at:
            await self.store.advance_watermark(feed.id, watermark)
            feed.updated_at = watermark

        logger.info(
            f"Feed {feed.id} 新条目 {len(update.new_items)} 条: "
            f"成功={len(delivered)}, 失败={len(failed)}, 水位线={watermark.isoformat()}"
        )
        return FeedSweepResult(delivered=len(delivered), failed=len(failed))
