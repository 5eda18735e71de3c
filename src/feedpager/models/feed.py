"""Feed 订阅源模型."""

from datetime import datetime

from sqlalchemy import BigInteger, Column, ForeignKey
from sqlmodel import Field, SQLModel

from feedpager.models.types import UTCDateTime, utcnow


class Feed(SQLModel, table=True):
    """某个聊天订阅的 RSS 源."""

    __tablename__ = "feeds"  # type: ignore[assignment]

    id: int | None = Field(default=None, primary_key=True)
    chat_id: int = Field(
        sa_column=Column(
            BigInteger,
            ForeignKey("chats.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        description="所属 Chat",
    )
    url: str = Field(description="Feed URL")
    title: str = Field(description="订阅时的 Feed 标题")
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    # 水位线：最近一条已通知条目的发布时间
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
