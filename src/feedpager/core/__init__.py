"""核心业务逻辑."""

from feedpager.core.store import FeedStore

__all__ = [
    "FeedStore",
]
