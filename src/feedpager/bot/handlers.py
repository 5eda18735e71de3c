"""Telegram 消息处理.

把 python-telegram-bot 的 Update 转成 (chat_id, text, is_group)，交给 CommandRouter，
再把 Reply 渲染为文本和内联键盘。
"""

import logging

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.constants import ChatType
from telegram.ext import (
    Application,
    CallbackQueryHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from feedpager.bot import messages
from feedpager.bot.router import CommandRouter, Reply

logger = logging.getLogger(__name__)

ROUTER_KEY = "router"
# 多人会话：无法识别的消息不回复
GROUP_CHAT_TYPES = (ChatType.GROUP, ChatType.SUPERGROUP, ChatType.CHANNEL)
# 只处理新消息，编辑过的消息和频道帖子不处理
MESSAGE_FILTER = filters.UpdateType.MESSAGE & filters.TEXT


def _keyboard(reply: Reply) -> InlineKeyboardMarkup | None:
    if not reply.buttons:
        return None
    return InlineKeyboardMarkup(
        [[InlineKeyboardButton(label, callback_data=data)] for label, data in reply.buttons]
    )


def _router(context: ContextTypes.DEFAULT_TYPE) -> CommandRouter:
    return context.bot_data[ROUTER_KEY]


async def handle_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """处理新的文本消息，"/" 开头的按命令处理."""
    message = update.effective_message
    chat = update.effective_chat
    if not message or not chat or not message.text:
        return

    reply = await _router(context).handle(
        chat.id,
        message.text,
        is_group=chat.type in GROUP_CHAT_TYPES,
        bot_username=context.bot.username,
    )
    if reply is None:
        return

    await message.reply_text(
        reply.text,
        reply_markup=_keyboard(reply),
    )


async def handle_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """处理内联键盘回调."""
    query = update.callback_query
    chat = update.effective_chat
    if not query or not chat or not query.data:
        return

    await query.answer()
    reply = await _router(context).handle_callback(
        chat.id,
        query.data,
        is_group=chat.type in GROUP_CHAT_TYPES,
    )
    if reply is None:
        return

    await query.edit_message_text(reply.text, reply_markup=_keyboard(reply))


async def handle_error(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    """未预期异常：记录日志并尽量给用户一个通用回复."""
    logger.error("处理 Update 时出错", exc_info=context.error)

    if isinstance(update, Update) and update.effective_message:
        try:
            await update.effective_message.reply_text(messages.ERROR_GENERIC)
        except Exception as e:
            logger.warning(f"发送错误提示失败: {e}")


def register_handlers(app: Application, router: CommandRouter) -> None:
    """注册所有 handler."""
    app.bot_data[ROUTER_KEY] = router
    app.add_handler(MessageHandler(MESSAGE_FILTER, handle_message))
    app.add_handler(CallbackQueryHandler(handle_callback))
    app.add_error_handler(handle_error)
