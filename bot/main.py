import asyncio
import logging
import sys
import os
import signal
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from aiogram import Bot, Dispatcher
from aiogram.types import BotCommand
from data.config import BOT_TOKEN, LOG_LEVEL
from data.database import db
from bot.aggregator import StatsAggregator
from bot.dashboard import Dashboard
from bot.handlers import router

logger = logging.getLogger(__name__)


async def set_bot_commands(bot: Bot):
    """Set up bot commands menu"""
    commands = [
        BotCommand(command="start", description="🔔 알림 켜기"),
        BotCommand(command="shops", description="🏪 매장 선택"),
        BotCommand(command="orders", description="🧾 주문 목록"),
        BotCommand(command="stats", description="📊 매출 통계"),
        BotCommand(command="toggle", description="🔁 화면 전환"),
        BotCommand(command="reset", description="🗑 주문 초기화"),
        BotCommand(command="help", description="❓ 도움말"),
    ]
    await bot.set_my_commands(commands)

async def shutdown_handler(bot: Bot, dashboard: Dashboard):
    """Handle graceful shutdown"""
    logger.info("Shutting down, closing connections...")

    await dashboard.stop()

    # Close bot session
    try:
        await bot.session.close()
    except Exception as e:
        logger.warning("Failed to close bot session: %s", e)

    await db.disconnect()
    logger.info("Bot stopped")

async def main():
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Connect to MongoDB
    await db.connect()
    await db.ensure_indexes()

    # Finish aggregations interrupted by a previous crash
    resumed = await StatsAggregator().resume_pending()
    if resumed:
        logger.warning("Resumed %d partially aggregated orders", resumed)

    # Initialize bot
    bot = Bot(token=BOT_TOKEN)
    dp = Dispatcher()
    dp.include_router(router)
    dashboard = Dashboard(bot=bot)

    await set_bot_commands(bot)

    logger.info("Shop dashboard bot is running, watching %s", dashboard.state.shop)

    try:
        await dashboard.start()
        # Handlers receive the dashboard through dispatcher workflow data
        await dp.start_polling(bot, dashboard=dashboard)
    except asyncio.CancelledError:
        # This is expected when shutting down gracefully
        pass
    finally:
        await shutdown_handler(bot, dashboard)

def signal_handler(signum, frame):
    """Handle Ctrl+C gracefully"""
    logger.info("Received signal %s, stopping...", signum)

if __name__ == "__main__":
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Bot stopped by user")
    except Exception as e:
        logger.critical("Fatal error: %s", e)
        sys.exit(1)
