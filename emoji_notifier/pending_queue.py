"""
PendingQueue - очередь ожидающих уведомлений по гильдиям.

Все операции проходят под собственной asyncio.Lock очереди, поэтому
drain никогда не видит частично добавленное событие, а событие не может
одновременно остаться в очереди и попасть в выгрузку.
"""

import asyncio
from typing import Dict, Iterable, List, Optional, Set

from emoji_notifier.models import Asset, NotificationEvent


class PendingQueue:
    """tenant_id -> упорядоченный список NotificationEvent."""

    def __init__(self):
        self._queues: Dict[str, List[NotificationEvent]] = {}
        self._lock = asyncio.Lock()

    async def enqueue(self, event: NotificationEvent):
        async with self._lock:
            self._queues.setdefault(event.tenant_id, []).append(event)

    async def drain_and_clear(self, tenant_id: str) -> List[NotificationEvent]:
        """Атомарно забирает события гильдии. Неизвестная гильдия -> []."""
        async with self._lock:
            return self._drain_locked(tenant_id)

    async def drain_all(self) -> Dict[str, List[NotificationEvent]]:
        """Атомарно забирает события всех гильдий с непустой очередью."""
        async with self._lock:
            return {
                tenant_id: self._drain_locked(tenant_id)
                for tenant_id in self._non_empty_locked()
            }

    async def tenants(self) -> Set[str]:
        """Гильдии с непустой очередью на момент вызова."""
        async with self._lock:
            return self._non_empty_locked()

    async def size(self, tenant_id: Optional[str] = None) -> int:
        async with self._lock:
            if tenant_id is not None:
                return len(self._queues.get(tenant_id, []))
            return sum(len(events) for events in self._queues.values())

    def _non_empty_locked(self) -> Set[str]:
        return {tenant_id for tenant_id, events in self._queues.items() if events}

    def _drain_locked(self, tenant_id: str) -> List[NotificationEvent]:
        # пустые списки удаляем, чтобы словарь не рос от разовых гильдий
        return self._queues.pop(tenant_id, [])


def deduplicate(events: Iterable[NotificationEvent]) -> List[Asset]:
    """
    Убирает повторы по asset_id, оставляя ПОСЛЕДНЕЕ состояние эмодзи.

    Эмодзи могли загрузить и сразу переименовать до конца окна агрегации -
    в сводку попадает последнее состояние. Позиция в результате - первое
    появление id.
    """
    unique: Dict[str, Asset] = {}
    for event in events:
        unique[event.asset_id] = event.asset
    return list(unique.values())
