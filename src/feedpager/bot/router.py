"""命令路由.

每条入站消息先按 Chat 是否已注册分成两种授权状态，再按命令类型分发：
未注册只接受 help / register，已注册接受订阅管理命令。
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from functools import partial
from typing import Literal

from feedpager.bot import messages
from feedpager.bot.commands import (
    Command,
    CommandParseError,
    CommandTable,
    DeleteAccount,
    Exit,
    Help,
    ListFeeds,
    Register,
    Subscribe,
    Unsubscribe,
    format_help,
    parse_callback,
    parse_command,
)
from feedpager.core.errors import DuplicateChat, FeedPagerError, StorageError
from feedpager.core.store import FeedStore
from feedpager.fetcher.client import FeedFetcher

logger = logging.getLogger(__name__)

USAGES = {
    "subscribe": messages.SUBSCRIBE_USAGE,
    "unsubscribe": messages.UNSUBSCRIBE_USAGE,
}


@dataclass
class Reply:
    """回复内容，buttons 为内联键盘 (文字, 回调数据)."""

    text: str
    buttons: list[tuple[str, str]] = field(default_factory=list)


class CommandRouter:
    """按注册状态和命令类型分发消息."""

    def __init__(
        self,
        store: FeedStore,
        fetcher: FeedFetcher,
        unregistered_reply: Literal["prompt", "ignore"] = "prompt",
    ) -> None:
        self.store = store
        self.fetcher = fetcher
        self.unregistered_reply = unregistered_reply

    @property
    def unregistered_help(self) -> str:
        return format_help(CommandTable.UNREGISTERED, messages.COMMANDS_HEADER)

    @property
    def registered_help(self) -> str:
        return format_help(CommandTable.REGISTERED, messages.COMMANDS_HEADER)

    async def handle(
        self,
        chat_id: int,
        text: str,
        is_group: bool = False,
        bot_username: str | None = None,
    ) -> Reply | None:
        """
        处理一条用户输入的消息.

        Args:
            chat_id: 消息来源 Chat
            text: 消息文本，只有 "/" 开头的才按命令处理
            is_group: 是否来自群聊或频道
            bot_username: 本 bot 的用户名，用于忽略发给其他 bot 的命令

        Returns:
            需要回复的内容；None 表示不回复
        """
        return await self._route(chat_id, partial(parse_command, text, bot_username), is_group)

    async def handle_callback(
        self, chat_id: int, data: str, is_group: bool = False
    ) -> Reply | None:
        """处理内联键盘回调数据（取消订阅菜单）."""
        return await self._route(chat_id, partial(parse_callback, data), is_group)

    async def _route(
        self,
        chat_id: int,
        parse: Callable[[], Command | None],
        is_group: bool,
    ) -> Reply | None:
        try:
            registered = await self.store.chat_exists(chat_id)
        except StorageError:
            logger.exception(f"查询 Chat {chat_id} 注册状态失败")
            return Reply(messages.ERROR_GENERIC)

        try:
            command = parse()
        except CommandParseError as e:
            if not registered:
                return self._unrecognized(registered, is_group)
            return Reply(USAGES[e.keyword])

        if registered:
            return await self._handle_registered(chat_id, command, is_group)
        return await self._handle_unregistered(chat_id, command, is_group)

    async def _handle_unregistered(
        self, chat_id: int, command: Command | None, is_group: bool
    ) -> Reply | None:
        match command:
            case Help():
                return Reply(self.unregistered_help)
            case Register():
                return await self._register(chat_id)
            case _:
                return self._unrecognized(False, is_group)

    async def _handle_registered(
        self, chat_id: int, command: Command | None, is_group: bool
    ) -> Reply | None:
        try:
            match command:
                case Help():
                    return Reply(self.registered_help)
                case Subscribe(url=url):
                    return await self._subscribe(chat_id, url)
                case ListFeeds():
                    return await self._list(chat_id)
                case Unsubscribe(feed_id=None):
                    return await self._unsubscribe_menu(chat_id)
                case Unsubscribe(feed_id=feed_id):
                    return await self._unsubscribe(chat_id, feed_id)
                case DeleteAccount():
                    return await self._delete_account(chat_id)
                case Exit():
                    return Reply(messages.MENU_CLOSED)
                case _:
                    return self._unrecognized(True, is_group)
        except StorageError:
            logger.exception(f"Chat {chat_id} 的命令执行失败: {command}")
            return Reply(messages.ERROR_GENERIC)
        except FeedPagerError as e:
            return Reply(messages.ERROR.format(error=e))

    def _unrecognized(self, registered: bool, is_group: bool) -> Reply | None:
        """无法识别的消息：群聊不回复，私聊回复当前状态的帮助."""
        if is_group:
            return None
        if registered:
            return Reply(self.registered_help)
        if self.unregistered_reply == "ignore":
            return None
        return Reply(f"{messages.REGISTER_PROMPT}\n\n{self.unregistered_help}")

    async def _register(self, chat_id: int) -> Reply:
        try:
            chat = await self.store.create_chat(chat_id)
        except DuplicateChat as e:
            return Reply(messages.REGISTER_FAILED.format(error=e))
        except StorageError:
            logger.exception(f"注册 Chat {chat_id} 失败")
            return Reply(messages.ERROR_GENERIC)

        created_at = chat.created_at.strftime("%Y-%m-%d %H:%M:%S")
        return Reply(messages.REGISTER_DONE.format(created_at=created_at))

    async def _subscribe(self, chat_id: int, url: str) -> Reply:
        try:
            document = await self.fetcher.fetch_valid(url)
        except FeedPagerError as e:
            logger.info(f"Chat {chat_id} 订阅 {url} 失败: {e}")
            return Reply(messages.ERROR.format(error=e))

        await self.store.create_feed(chat_id, url, document.title)
        return Reply(messages.SUBSCRIBE_DONE.format(title=document.title, link=document.link))

    async def _list(self, chat_id: int) -> Reply:
        feeds = await self.store.list_feeds(chat_id)
        if not feeds:
            return Reply(messages.FEED_LIST_EMPTY)

        lines = [messages.FEED_LIST_HEADER]
        lines.extend(
            messages.FEED_LIST_LINE.format(id=feed.id, title=feed.title) for feed in feeds
        )
        return Reply("\n".join(lines))

    async def _unsubscribe_menu(self, chat_id: int) -> Reply:
        feeds = await self.store.list_feeds(chat_id)
        if not feeds:
            return Reply(messages.FEED_LIST_EMPTY)

        buttons = [(feed.title, f"unsubscribe:{feed.id}") for feed in feeds]
        buttons.append((messages.UNSUBSCRIBE_EXIT_BUTTON, "exit"))
        return Reply(messages.FEED_LIST_HEADER, buttons=buttons)

    async def _unsubscribe(self, chat_id: int, feed_id: int) -> Reply:
        count = await self.store.delete_feed(chat_id, feed_id)
        logger.info(f"Chat {chat_id} 取消订阅 {feed_id}: 删除 {count} 条")
        return Reply(messages.UNSUBSCRIBE_DONE.format(count=count))

    async def _delete_account(self, chat_id: int) -> Reply:
        await self.store.delete_chat(chat_id)
        return Reply(messages.ACCOUNT_DELETED)
