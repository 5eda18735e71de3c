"""列类型."""

from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlalchemy.types import TypeDecorator


def utcnow() -> datetime:
    """当前 UTC 时间（带时区）."""
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """带时区的 UTC 时间.

    写入前统一换算到 UTC 再去掉时区，读出时补回 UTC，
    SQLite 这类不保存时区的数据库也能原样往返。
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError(f"时间缺少时区信息: {value!r}")
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return None
        return value.replace(tzinfo=timezone.utc)
