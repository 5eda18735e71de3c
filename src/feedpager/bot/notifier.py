"""新条目通知发送."""

import logging

from telegram import Bot
from telegram.error import TelegramError

from feedpager.bot.messages import NOTIFICATION, UNTITLED
from feedpager.core.errors import DeliveryError
from feedpager.fetcher.document import FeedItem

logger = logging.getLogger(__name__)


def format_notification(feed_title: str, item: FeedItem) -> str:
    """通知文本：Feed 标题 + 条目标题 + 链接."""
    return NOTIFICATION.format(
        feed_title=feed_title,
        title=item.title or UNTITLED,
        link=item.link or "",
    ).rstrip()


class Notifier:
    """向 Feed 所属 Chat 发送新条目消息."""

    def __init__(self, bot: Bot) -> None:
        self._bot = bot

    async def notify(self, chat_id: int, feed_title: str, item: FeedItem) -> None:
        """发送一条通知，失败时抛出 DeliveryError."""
        try:
            await self._bot.send_message(
                chat_id=chat_id,
                text=format_notification(feed_title, item),
            )
        except TelegramError as e:
            raise DeliveryError(f"发送到 Chat {chat_id} 失败: {e}") from e
