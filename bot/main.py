"""
Главный файл Discord бота уведомлений о новых эмодзи.
"""

import asyncio
import logging
import signal
import sys

import discord

from bot.client import EmojiNotifierBot
from bot.config import BotConfig
from bot.env_validator import EnvValidator
from bot.health_check import HealthCheckServer
from bot.logger import auto_setup_logging
from emoji_notifier.monitoring import Monitoring

logger = logging.getLogger(__name__)


def _install_signal_handlers(stop_event: asyncio.Event):
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows: остается KeyboardInterrupt
            pass


async def run_bot(monitoring: Monitoring):
    """Запуск бота до сигнала остановки или отключения клиента."""
    bot = EmojiNotifierBot(
        notify_window=BotConfig.NOTIFY_WINDOW,
        channels_file=BotConfig.CHANNELS_FILE,
        monitoring=monitoring
    )

    health = None
    if BotConfig.HEALTH_CHECK_PORT:
        health = HealthCheckServer(port=BotConfig.HEALTH_CHECK_PORT, stats_provider=bot.get_stats)
        await health.start()
        health.update("config", "ok")
        health.update("sentry", "ok" if monitoring.enabled else "disabled")

    stop_event = asyncio.Event()
    _install_signal_handlers(stop_event)

    bot_task = asyncio.create_task(bot.start(BotConfig.BOT_TOKEN), name="discord-client")
    stop_task = asyncio.create_task(stop_event.wait(), name="stop-signal")

    if health:
        health.update("bot", "running")

    logger.info("🤖 Бот запускается...")

    try:
        done, _ = await asyncio.wait({bot_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)

        if bot_task in done:
            error = bot_task.exception()
            if isinstance(error, discord.LoginFailure):
                logger.error(f"❌ Неверный BOT_TOKEN: {error}")
            elif error is not None:
                logger.error(f"❌ Ошибка Discord клиента: {error}", exc_info=error)
                monitoring.capture_exception(error, level="fatal", tags={"component": "main"})
            if health:
                health.update("bot", f"error: {error}" if error else "stopped")
        else:
            logger.info("🛑 Получен сигнал остановки")
    finally:
        stop_task.cancel()
        await bot.shutdown()
        if not bot_task.done():
            bot_task.cancel()
            try:
                await bot_task
            except asyncio.CancelledError:
                pass
        if health:
            await health.stop()


async def main():
    """Главная функция запуска бота."""
    auto_setup_logging()

    logger.info("🔍 Проверка переменных окружения...")
    EnvValidator.validate_and_exit_if_invalid(strict=False)

    try:
        BotConfig.validate()
    except ValueError as e:
        logger.error(f"❌ Ошибка конфигурации: {e}")
        sys.exit(1)

    with Monitoring(dsn=BotConfig.SENTRY_DSN or None, environment=BotConfig.ENVIRONMENT) as monitoring:
        await run_bot(monitoring)


def cli():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("🛑 Бот остановлен пользователем")


if __name__ == "__main__":
    cli()
