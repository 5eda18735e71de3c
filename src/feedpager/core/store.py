"""Chat / Feed 持久化存储.

每个操作独立开一个短会话；所有按 Feed 的读写都同时过滤 feed id 和 chat id，
保证一个 Chat 只能看到和修改自己的订阅。
"""

import logging
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from feedpager.core.errors import DuplicateChat, NotFound, StorageError
from feedpager.models.chat import Chat
from feedpager.models.feed import Feed
from feedpager.models.types import utcnow

logger = logging.getLogger(__name__)


class FeedStore:
    """Chat 和 Feed 的增删改查."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def create_chat(self, chat_id: int) -> Chat:
        """注册 Chat，已存在时抛出 DuplicateChat."""
        chat = Chat(id=chat_id, created_at=utcnow())
        async with self._session_factory() as session:
            session.add(chat)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise DuplicateChat(f"Chat {chat_id} 已注册") from e
            except SQLAlchemyError as e:
                await session.rollback()
                raise StorageError(str(e)) from e
        logger.info(f"新注册 Chat {chat_id}")
        return chat

    async def get_chat(self, chat_id: int) -> Chat:
        """获取 Chat，不存在时抛出 NotFound."""
        async with self._session_factory() as session:
            try:
                chat = await session.get(Chat, chat_id)
            except SQLAlchemyError as e:
                raise StorageError(str(e)) from e
        if chat is None:
            raise NotFound(f"Chat {chat_id} 不存在")
        return chat

    async def chat_exists(self, chat_id: int) -> bool:
        """判断 Chat 是否已注册."""
        try:
            await self.get_chat(chat_id)
        except NotFound:
            return False
        return True

    async def delete_chat(self, chat_id: int) -> int:
        """删除 Chat 及其全部订阅，返回删除的 Chat 数量."""
        async with self._session_factory() as session:
            try:
                # 同一事务内删除订阅，不依赖数据库是否执行外键级联
                await session.execute(delete(Feed).where(Feed.chat_id == chat_id))
                result = await session.execute(delete(Chat).where(Chat.id == chat_id))
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise StorageError(str(e)) from e
        if result.rowcount:
            logger.info(f"已删除 Chat {chat_id}")
        return result.rowcount

    async def create_feed(self, chat_id: int, url: str, title: str) -> Feed:
        """新增订阅，水位线初始化为创建时间."""
        now = utcnow()
        feed = Feed(chat_id=chat_id, url=url, title=title, created_at=now, updated_at=now)
        async with self._session_factory() as session:
            session.add(feed)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise NotFound(f"Chat {chat_id} 不存在") from e
            except SQLAlchemyError as e:
                await session.rollback()
                raise StorageError(str(e)) from e
            await session.refresh(feed)
        logger.info(f"Chat {chat_id} 订阅了 {url} (id={feed.id})")
        return feed

    async def list_feeds(self, chat_id: int) -> Sequence[Feed]:
        """获取某个 Chat 的订阅，按 id 升序."""
        stmt = select(Feed).where(Feed.chat_id == chat_id).order_by(Feed.id)
        return await self._fetch_all(stmt)

    async def list_all_feeds(self) -> Sequence[Feed]:
        """获取所有订阅（仅供轮询调度使用）."""
        return await self._fetch_all(select(Feed).order_by(Feed.id))

    async def delete_feed(self, chat_id: int, feed_id: int) -> int:
        """删除订阅，不属于该 Chat 或不存在时返回 0."""
        stmt = delete(Feed).where(Feed.id == feed_id, Feed.chat_id == chat_id)
        async with self._session_factory() as session:
            try:
                result = await session.execute(stmt)
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise StorageError(str(e)) from e
        return result.rowcount

    async def advance_watermark(self, feed_id: int, timestamp: datetime) -> None:
        """推进水位线；行已删除或水位线不小于 timestamp 时为空操作."""
        stmt = (
            update(Feed)
            .where(Feed.id == feed_id, Feed.updated_at < timestamp)
            .values(updated_at=timestamp)
        )
        async with self._session_factory() as session:
            try:
                await session.execute(stmt)
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise StorageError(str(e)) from e

    async def _fetch_all(self, stmt: Any) -> Sequence[Feed]:
        async with self._session_factory() as session:
            try:
                result = await session.execute(stmt)
            except SQLAlchemyError as e:
                raise StorageError(str(e)) from e
            return result.scalars().all()
