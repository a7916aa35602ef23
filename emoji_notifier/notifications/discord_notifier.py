"""
Discord Notification Service для Emoji Notifier.

Отправляет сводку о новых эмодзи в зарегистрированный канал гильдии.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

import discord

from emoji_notifier.models import Asset, Summary
from emoji_notifier.monitoring import Monitoring
from emoji_notifier.notifications.summary import build_summary, split_description

logger = logging.getLogger(__name__)


def summary_to_embeds(summary: Summary) -> List[discord.Embed]:
    """Один embed на страницу описания; номер страницы в заголовке."""
    pages = split_description(summary)
    embeds = []
    for number, description in enumerate(pages, start=1):
        title = summary.title if len(pages) == 1 else f"{summary.title} ({number}/{len(pages)})"
        embed = discord.Embed(
            title=title,
            description=description,
            color=summary.color,
            timestamp=summary.timestamp,
        )
        embed.set_footer(text=summary.footer)
        embeds.append(embed)
    return embeds


class DiscordNotifier:
    """
    Транспорт доставки сводок в Discord.

    Особенности:
    - Гильдия берется из текущей сессии бота
    - Канал ищется в кэше, затем через API
    - Ошибки транспорта не пробрасываются: пишутся в лог, возвращается False
    """

    def __init__(self, client: discord.Client, monitoring: Optional[Monitoring] = None):
        """
        Args:
            client: Подключенный discord.Client
            monitoring: Observability sink
        """
        self.client = client
        self._monitoring = monitoring or Monitoring()

        self.stats = {
            'notifications_sent': 0,
            'notifications_failed': 0,
        }

    async def _resolve_channel(self, destination_id: str) -> Optional[discord.abc.Messageable]:
        try:
            channel_id = int(destination_id)
        except ValueError:
            logger.warning(f"⚠️ Некорректный id канала: {destination_id!r}")
            return None

        channel = self.client.get_channel(channel_id)
        if channel is not None:
            return channel

        try:
            return await self.client.fetch_channel(channel_id)
        except (discord.NotFound, discord.Forbidden) as e:
            logger.warning(f"⚠️ Канал {destination_id} недоступен: {e}")
            return None
        except discord.HTTPException as e:
            logger.error(f"❌ Ошибка получения канала {destination_id}: {e}")
            return None

    async def is_reachable(self, destination_id: str) -> bool:
        """Проверка, что бот видит канал (используется при /register)."""
        return await self._resolve_channel(destination_id) is not None

    async def send_summary(
        self,
        tenant_id: str,
        destination_id: str,
        assets: Sequence[Asset]
    ) -> bool:
        """
        Отправка сводки о новых эмодзи.

        Args:
            tenant_id: ID гильдии
            destination_id: ID канала уведомлений
            assets: Новые эмодзи (уже без дубликатов)

        Returns:
            True если успешно отправлено, False иначе
        """
        guild = self.client.get_guild(int(tenant_id))
        if guild is None:
            logger.warning(f"⚠️ the guild (id:{tenant_id}) is not included in bot session. ignoring")
            self.stats['notifications_failed'] += 1
            return False

        channel = await self._resolve_channel(destination_id)
        if channel is None:
            self.stats['notifications_failed'] += 1
            return False

        embeds = summary_to_embeds(build_summary(guild.name, assets))

        # по сообщению на страницу: общий лимит сообщения 6000 символов
        try:
            for embed in embeds:
                await channel.send(embed=embed)
        except discord.Forbidden:
            self.stats['notifications_failed'] += 1
            logger.warning(f"⛔ Нет прав на отправку в канал {destination_id} (guild {tenant_id})")
            return False
        except discord.HTTPException as e:
            self.stats['notifications_failed'] += 1
            logger.error(f"❌ failed on sending embed to channel {destination_id}: {e}")
            self._monitoring.capture_exception(e, tags={"component": "notifier", "guild_id": tenant_id})
            return False

        self.stats['notifications_sent'] += 1
        logger.info(f"✅ Сводка о {len(assets)} эмодзи отправлена: guild {tenant_id} -> channel {destination_id}")
        return True

    def get_stats(self) -> Dict[str, Any]:
        """Получение статистики уведомлений."""
        return self.stats.copy()
