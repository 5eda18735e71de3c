"""Feed 抓取模块."""

from feedpager.fetcher.client import FeedFetcher
from feedpager.fetcher.document import FeedDocument, FeedItem, parse, validate

__all__ = [
    "FeedDocument",
    "FeedFetcher",
    "FeedItem",
    "parse",
    "validate",
]
