"""Chat 会话模型."""

from datetime import datetime

from sqlalchemy import BigInteger, Column
from sqlmodel import Field, SQLModel

from feedpager.models.types import UTCDateTime, utcnow


class Chat(SQLModel, table=True):
    """已注册的聊天会话."""

    __tablename__ = "chats"  # type: ignore[assignment]

    # id 由 Telegram 提供，不自增
    id: int = Field(
        sa_column=Column(BigInteger, primary_key=True, autoincrement=False),
        description="Telegram chat ID",
    )
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
