"""Telegram Bot：命令路由与通知."""

from feedpager.bot.notifier import Notifier
from feedpager.bot.router import CommandRouter, Reply

__all__ = [
    "CommandRouter",
    "Notifier",
    "Reply",
]
