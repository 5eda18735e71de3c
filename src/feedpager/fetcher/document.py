"""Feed 文档解析与校验."""

import time
from datetime import datetime, timezone
from typing import Any

import feedparser
from pydantic import BaseModel

from feedpager.core.errors import DecodeError, ValidationError


class FeedItem(BaseModel):
    """Feed 中的一条条目."""

    title: str | None = None
    link: str | None = None
    published: datetime | None = None  # UTC，无法解析时为 None


class FeedDocument(BaseModel):
    """解析后的 Feed 文档."""

    title: str
    link: str
    items: list[FeedItem] = []


def _to_datetime(value: time.struct_time | None) -> datetime | None:
    """feedparser 给出的 UTC struct_time 转为带时区的 UTC datetime."""
    if not value:
        return None
    try:
        return datetime(*value[:6], tzinfo=timezone.utc)
    except (TypeError, ValueError):
        return None


def _parse_entry(entry: Any) -> FeedItem:
    published = entry.get("published_parsed") or entry.get("updated_parsed")
    return FeedItem(
        title=entry.get("title") or None,
        link=entry.get("link") or None,
        published=_to_datetime(published),
    )


def parse(content: bytes, url: str = "") -> FeedDocument:
    """解析 RSS/Atom 文档，无法识别时抛出 DecodeError.

    文档的 link 统一设为订阅地址。
    """
    parsed = feedparser.parse(content)

    if not parsed.get("version"):
        if parsed.get("bozo"):
            msg = f"无法解析 Feed: {parsed.get('bozo_exception')}"
        else:
            msg = "无法识别的 Feed 格式"
        raise DecodeError(msg)

    return FeedDocument(
        title=(parsed.feed.get("title") or "").strip(),
        link=url or parsed.feed.get("link", ""),
        items=[_parse_entry(entry) for entry in parsed.entries],
    )


def validate(document: FeedDocument) -> FeedDocument:
    """结构校验：必须有标题和链接，每个条目至少有标题或链接."""
    if not document.title:
        msg = "Feed 缺少标题"
        raise ValidationError(msg)
    if not document.link:
        msg = "Feed 缺少链接"
        raise ValidationError(msg)

    for index, item in enumerate(document.items, 1):
        if not item.title and not item.link:
            msg = f"第 {index} 个条目既没有标题也没有链接"
            raise ValidationError(msg)

    return document
