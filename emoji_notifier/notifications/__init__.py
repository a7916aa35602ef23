"""
Notification Service

- summary.py          - формирование сводки о новых эмодзи
- discord_notifier.py - отправка сводки в канал Discord
"""

from emoji_notifier.notifications.summary import build_summary, format_asset_line
from emoji_notifier.notifications.discord_notifier import DiscordNotifier, summary_to_embeds

__all__ = ['build_summary', 'format_asset_line', 'DiscordNotifier', 'summary_to_embeds']
