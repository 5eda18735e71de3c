"""数据模型."""

from feedpager.models.chat import Chat
from feedpager.models.database import close_db, init_db
from feedpager.models.feed import Feed
from feedpager.models.types import UTCDateTime, utcnow

__all__ = [
    "Chat",
    "Feed",
    "close_db",
    "init_db",
    "UTCDateTime",
    "utcnow",
]
