"""FeedPager 主应用入口."""

import logging

from telegram.ext import Application

from feedpager.bot.handlers import register_handlers
from feedpager.bot.notifier import Notifier
from feedpager.bot.router import CommandRouter
from feedpager.config import Settings, get_settings
from feedpager.core.store import FeedStore
from feedpager.fetcher.client import FeedFetcher
from feedpager.models.database import close_db, init_db
from feedpager.scheduler.tasks import PollScheduler

logger = logging.getLogger(__name__)

SCHEDULER_KEY = "scheduler"


def configure_logging(settings: Settings) -> None:
    """配置日志."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # httpx 每个请求都会打 INFO 日志
    logging.getLogger("httpx").setLevel(logging.WARNING)


def build_application(settings: Settings) -> Application:
    """创建 Telegram Application，启动/关闭时初始化和释放资源."""
    token = settings.resolve_bot_token()
    fetcher = FeedFetcher(timeout=settings.fetch_timeout_seconds)

    async def post_init(application: Application) -> None:
        logger.info("正在初始化数据库...")
        session_factory = await init_db(settings.database_url)
        store = FeedStore(session_factory)

        router = CommandRouter(store, fetcher, settings.unregistered_reply)
        register_handlers(application, router)

        logger.info("正在启动轮询调度...")
        scheduler = PollScheduler(
            store,
            fetcher,
            Notifier(application.bot),
            interval_seconds=settings.poll_interval_seconds,
            concurrency=settings.poll_concurrency,
        )
        scheduler.start()
        application.bot_data[SCHEDULER_KEY] = scheduler
        logger.info("FeedPager 启动完成！")

    async def post_shutdown(application: Application) -> None:
        logger.info("正在关闭...")
        scheduler: PollScheduler | None = application.bot_data.get(SCHEDULER_KEY)
        if scheduler is not None:
            await scheduler.stop()
        await fetcher.close()
        await close_db()
        logger.info("FeedPager 已关闭")

    application = (
        Application.builder()
        .token(token)
        .post_init(post_init)
        .post_shutdown(post_shutdown)
        .build()
    )
    return application


def main() -> None:
    """启动 Bot（长轮询模式），Ctrl+C / SIGTERM 时优雅退出."""
    settings = get_settings()
    configure_logging(settings)

    application = build_application(settings)
    application.run_polling()


if __name__ == "__main__":
    main()
