"""
Discord клиент Emoji Notifier.

Связывает события gateway и slash-команды с ядром emoji_notifier.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import discord
from discord import app_commands

from bot.handlers import COMMANDS
from emoji_notifier.directory import DestinationDirectory
from emoji_notifier.ingestor import EventIngestor
from emoji_notifier.models import Asset
from emoji_notifier.monitoring import Monitoring
from emoji_notifier.notifications import DiscordNotifier
from emoji_notifier.registry import AssetRegistry
from emoji_notifier.worker import AggregationWorker, DEFAULT_NOTIFY_WINDOW

logger = logging.getLogger(__name__)


def asset_from_emoji(guild_id: int, emoji: discord.Emoji) -> Asset:
    return Asset(
        id=str(emoji.id),
        name=emoji.name,
        tenant_id=str(guild_id),
        animated=bool(emoji.animated),
    )


def assets_from_emojis(guild_id: int, emojis: Iterable[discord.Emoji]) -> List[Asset]:
    return [asset_from_emoji(guild_id, emoji) for emoji in emojis]


class EmojiNotifierBot(discord.Client):
    """
    Бот уведомлений о новых эмодзи.

    Жизненный цикл:
    - setup_hook: загрузка каналов, регистрация команд, запуск воркера
    - on_ready / on_guild_join: начальная синхронизация эмодзи
    - on_guild_emojis_update: новые эмодзи -> воркер
    - shutdown: остановка воркера, сохранение каналов, удаление команд
    """

    def __init__(
        self,
        notify_window: float = DEFAULT_NOTIFY_WINDOW,
        channels_file: Optional[Path] = None,
        monitoring: Optional[Monitoring] = None
    ):
        intents = discord.Intents.none()
        intents.guilds = True
        intents.emojis_and_stickers = True
        super().__init__(intents=intents)

        self.monitoring = monitoring or Monitoring()
        self.tree = app_commands.CommandTree(self)

        self.notifier = DiscordNotifier(self, monitoring=self.monitoring)
        self.registry = AssetRegistry(monitoring=self.monitoring)
        self.directory = DestinationDirectory(
            resolver=self.notifier.is_reachable,
            path=channels_file,
            monitoring=self.monitoring
        )
        self.worker = AggregationWorker(
            registry=self.registry,
            directory=self.directory,
            notifier=self.notifier,
            notify_window=notify_window,
            monitoring=self.monitoring
        )
        self.ingestor = EventIngestor(self.registry, self.worker)

        self._worker_task: Optional[asyncio.Task] = None
        self._commands_registered = False
        self._directory_loaded = False

    async def load_state(self):
        """Загрузка карты каналов; до нее сохранение при остановке запрещено."""
        await self.directory.load()
        self._directory_loaded = True

    async def setup_hook(self):
        await self.load_state()

        for command in COMMANDS:
            self.tree.add_command(command)
        try:
            synced = await self.tree.sync()
            self._commands_registered = True
            logger.info(f"✅ Команды зарегистрированы: {', '.join(c.name for c in synced)}")
        except discord.HTTPException as e:
            logger.error(f"❌ cannot create commands: {e}")
            self.monitoring.capture_exception(e, tags={"component": "commands"})

        # shutdown() мог отработать, пока ждали tree.sync()
        if self.is_closed():
            logger.info("ℹ️  Клиент уже остановлен, воркер не запускается")
            return

        self._worker_task = asyncio.create_task(self.worker.run(), name="aggregation-worker")

    async def on_ready(self):
        logger.info(f"🤖 bot launched as {self.user}")
        logger.info(f"available guilds: {len(self.guilds)}")

        # on_ready повторяется после неудачного RESUME
        for guild in self.guilds:
            self.backfill_guild(guild)

    async def on_guild_join(self, guild: discord.Guild):
        logger.info(f"🏢 Бот добавлен в гильдию '{guild.name}' (id={guild.id})")
        self.backfill_guild(guild)

    def backfill_guild(self, guild: discord.Guild) -> bool:
        """
        Начальная синхронизация: существующие эмодзи не вызывают уведомлений.

        Выполняется один раз на гильдию, по кэшу guild.emojis (заполняется
        при GUILD_CREATE), без await: событие обновления не может вклиниться.

        Returns:
            True если гильдия синхронизирована сейчас, False если уже была
        """
        tenant_id = str(guild.id)
        if self.registry.is_tracked(tenant_id):
            return False

        self.ingestor.backfill(tenant_id, assets_from_emojis(guild.id, guild.emojis))
        return True

    async def on_guild_emojis_update(
        self,
        guild: discord.Guild,
        before: List[discord.Emoji],
        after: List[discord.Emoji]
    ):
        # gateway присылает полный список эмодзи гильдии
        submitted = self.ingestor.on_assets_changed(
            str(guild.id),
            assets_from_emojis(guild.id, after),
            previous=assets_from_emojis(guild.id, before)
        )
        if submitted:
            logger.info(f"📥 Гильдия {guild.id}: новых эмодзи в очереди: {submitted}")

    async def _unregister_commands(self):
        if not self._commands_registered:
            return

        self.tree.clear_commands(guild=None)
        try:
            await self.tree.sync()
            logger.info("deleted commands: register, unregister")
        except discord.HTTPException as e:
            logger.error(f"❌ cannot delete commands: {e}")
        self._commands_registered = False

    async def shutdown(self):
        """
        Кооперативная остановка.

        Текущий тик воркера завершается, ожидающие события отбрасываются,
        карта каналов сохраняется синхронно до выхода.
        """
        logger.info("🛑 Остановка Emoji Notifier...")

        if self._worker_task and not self._worker_task.done():
            await self.worker.stop()
            await self._worker_task

        # без загрузки сохранение затерло бы файл пустой картой
        if self._directory_loaded:
            await self.directory.save()
        else:
            logger.info("ℹ️  Карта каналов не загружалась, сохранение пропущено")

        if not self.is_closed():
            await self._unregister_commands()
            await self.close()

        self._print_stats()

    def get_stats(self) -> Dict[str, Any]:
        return {
            'worker': self.worker.get_stats(),
            'notifier': self.notifier.get_stats(),
            'guilds_tracked': len(self.registry.tenants()),
            'channels_registered': len(self.directory),
        }

    def _print_stats(self):
        stats = self.get_stats()
        worker_stats = stats['worker']

        logger.info("=" * 70)
        logger.info("📊 СТАТИСТИКА EMOJI NOTIFIER")
        logger.info("=" * 70)
        logger.info(f"⏱️  Тиков: {worker_stats['ticks']}")
        logger.info(f"📥 Получено событий: {worker_stats['events_received']}")
        logger.info(f"📱 Отправлено сводок: {worker_stats['summaries_sent']}")
        logger.info(f"🗑️  Отброшено пачек: {worker_stats['batches_dropped']}")
        logger.info(f"❌ Ошибок отправки: {stats['notifier']['notifications_failed']}")
        logger.info("=" * 70)
