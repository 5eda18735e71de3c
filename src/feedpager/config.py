"""应用配置管理."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """应用配置（环境变量）."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Telegram 配置
    bot_token: str = ""
    bot_token_file: Path = Path("/run/secrets/bot_token")

    # 数据库配置
    database_url: str = "sqlite+aiosqlite:///./feedpager.db"

    # 轮询配置
    poll_interval_seconds: int = 30
    poll_concurrency: int = 4
    fetch_timeout_seconds: int = 30

    # 未注册私聊发来未知消息时：prompt 提示注册，ignore 不回复
    unregistered_reply: Literal["prompt", "ignore"] = "prompt"

    log_level: str = "INFO"

    def resolve_bot_token(self) -> str:
        """获取 Bot token，环境变量优先，其次读取 secrets 文件."""
        if self.bot_token:
            return self.bot_token.strip()

        if self.bot_token_file.is_file():
            token = self.bot_token_file.read_text(encoding="utf-8").strip()
            if token:
                return token

        msg = f"未配置 BOT_TOKEN，且无法从 {self.bot_token_file} 读取"
        raise RuntimeError(msg)


@lru_cache
def get_settings() -> Settings:
    """获取应用配置（带缓存）."""
    return Settings()
