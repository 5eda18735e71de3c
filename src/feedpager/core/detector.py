"""新条目检测.

纯函数，不做任何 I/O：根据 Feed 的水位线（已通知的最新发布时间）
从刚抓取的文档中挑出新条目，并计算提交后的水位线。
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone

from feedpager.fetcher.document import FeedItem

# 没有发布时间或无法解析的条目视为已读，永远不会被通知
EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class NewItem:
    """待通知的新条目."""

    item: FeedItem
    published: datetime


@dataclass
class UpdateResult:
    """检测结果."""

    new_items: list[NewItem] = field(default_factory=list)
    watermark: datetime = EARLIEST

    @property
    def has_updates(self) -> bool:
        return bool(self.new_items)


def resolve_published(item: FeedItem) -> datetime:
    """条目的发布时间，缺失时取最早时间."""
    return item.published or EARLIEST


def detect_updates(watermark: datetime, items: Iterable[FeedItem]) -> UpdateResult:
    """
    找出发布时间严格晚于水位线的条目.

    Args:
        watermark: Feed 当前水位线 (updated_at)
        items: 文档中的条目，顺序不限

    Returns:
        UpdateResult: 新条目按发布时间升序排列；水位线取新条目最大发布时间，
        没有新条目时保持不变
    """
    new_items: list[NewItem] = []
    for item in items:
        published = resolve_published(item)
        if published > watermark:
            new_items.append(NewItem(item=item, published=published))
    new_items.sort(key=lambda new: new.published)

    new_watermark = max([new.published for new in new_items], default=watermark)
    return UpdateResult(new_items=new_items, watermark=max(new_watermark, watermark))


def committed_watermark(
    watermark: datetime,
    delivered: Sequence[NewItem],
    failed: Sequence[NewItem],
) -> datetime:
    """
    根据发送结果计算可以提交的水位线.

    只推进到成功发送、且早于最早一条失败条目的发布时间，
    失败条目（以及与其同一时刻或更晚的条目）下次轮询会重试。
    """
    cutoff = min((new.published for new in failed), default=None)
    committed = [
        new.published
        for new in delivered
        if cutoff is None or new.published < cutoff
    ]
    return max([watermark, *committed])
