"""
Модели данных Emoji Notifier.

Asset - кастомный эмодзи гильдии, NotificationEvent - заявка на уведомление,
Summary - готовая сводка для отправки в канал.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List


@dataclass(frozen=True)
class Asset:
    """Кастомный эмодзи, принадлежащий гильдии (tenant)."""

    id: str
    name: str
    tenant_id: str
    animated: bool = False

    def render(self) -> str:
        """Формат сообщения Discord: <:name:id> или <a:name:id>."""
        prefix = 'a' if self.animated else ''
        return f"<{prefix}:{self.name}:{self.id}>"


@dataclass(frozen=True)
class NotificationEvent:
    """Новый эмодзи, ожидающий включения в сводку."""

    tenant_id: str
    asset: Asset

    @property
    def asset_id(self) -> str:
        return self.asset.id


@dataclass
class Summary:
    """Структурированная сводка о новых эмодзи для одной гильдии."""

    title: str
    count: int
    lines: List[str]
    footer: str
    timestamp: datetime
    color: int = 0x5ae9ff
    header: str = ''

    @property
    def description(self) -> str:
        return f"{self.header}\n\n" + "\n".join(self.lines)
