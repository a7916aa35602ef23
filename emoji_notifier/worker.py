"""
AggregationWorker - агрегация уведомлений о новых эмодзи.

Один долгоживущий consumer: ждет одновременно срабатывания таймера и события
из hand-off очереди, что наступит раньше. Все изменения PendingQueue
происходят только внутри этой задачи.

Workflow тика:
1. Атомарно забираем очереди всех гильдий
2. Убираем дубликаты (побеждает последнее состояние эмодзи)
3. Отбрасываем эмодзи, уже записанные в AssetRegistry
4. Ищем канал в DestinationDirectory и отправляем сводку
5. При успехе записываем отправленные эмодзи в AssetRegistry

Неудачная отправка не повторяется: пачка гильдии отбрасывается, чтобы
неверно настроенная гильдия не копила бесконечный бэклог.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol, Sequence

from emoji_notifier.directory import DestinationDirectory
from emoji_notifier.models import Asset, NotificationEvent
from emoji_notifier.monitoring import Monitoring
from emoji_notifier.pending_queue import PendingQueue, deduplicate
from emoji_notifier.registry import AssetRegistry

logger = logging.getLogger(__name__)

DEFAULT_NOTIFY_WINDOW = 300  # 5 минут

# сигнал остановки в hand-off очереди
_STOP = object()


class SummaryNotifier(Protocol):
    async def send_summary(
        self,
        tenant_id: str,
        destination_id: str,
        assets: Sequence[Asset]
    ) -> bool:
        ...


class AggregationWorker:
    """
    Владелец PendingQueue: таймер + hand-off канал.

    Состояния: idle (ждем таймер или событие) -> draining -> idle.
    """

    def __init__(
        self,
        registry: AssetRegistry,
        directory: DestinationDirectory,
        notifier: SummaryNotifier,
        notify_window: float = DEFAULT_NOTIFY_WINDOW,
        monitoring: Optional[Monitoring] = None
    ):
        """
        Args:
            registry: Реестр уже известных эмодзи
            directory: Карта гильдия -> канал
            notifier: Транспорт доставки сводок
            notify_window: Окно агрегации в секундах
            monitoring: Observability sink
        """
        if notify_window <= 0:
            raise ValueError(f"notify_window must be positive, got {notify_window}")

        self.registry = registry
        self.directory = directory
        self.notifier = notifier
        self.notify_window = notify_window
        self._monitoring = monitoring or Monitoring()

        self._pending = PendingQueue()
        self._inbox: asyncio.Queue = asyncio.Queue()
        self._running = False
        self._state = 'idle'

        self.stats = {
            'started_at': None,
            'ticks': 0,
            'events_received': 0,
            'summaries_sent': 0,
            'batches_dropped': 0,
            'assets_notified': 0,
        }

    @property
    def state(self) -> str:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def pending(self) -> PendingQueue:
        return self._pending

    def submit(self, event: NotificationEvent):
        """Hand-off события от EventIngestor (не блокирует)."""
        self._inbox.put_nowait(event)

    async def run(self):
        """Главный цикл. Возвращается после stop()."""
        self._running = True
        self.stats['started_at'] = datetime.now().isoformat()
        loop = asyncio.get_running_loop()
        next_tick = loop.time() + self.notify_window

        logger.info(f"🚀 AggregationWorker запущен (окно {self.notify_window}с)")

        while True:
            timeout = max(0.0, next_tick - loop.time())
            try:
                item = await asyncio.wait_for(self._inbox.get(), timeout=timeout)
            except asyncio.TimeoutError:
                await self.flush()
                next_tick = loop.time() + self.notify_window
                continue

            if item is _STOP:
                break

            await self._pending.enqueue(item)
            self.stats['events_received'] += 1
            logger.debug(f"append to notifyQueue: guild {item.tenant_id} emoji {item.asset_id}")

        dropped = await self._pending.size()
        if dropped:
            logger.info(f"ℹ️  Остановка: {dropped} ожидающих событий отброшено")
        self._running = False
        logger.info("🛑 AggregationWorker остановлен")

    async def stop(self):
        """Кооперативная остановка: текущий тик завершается, очередь не сохраняется."""
        self._inbox.put_nowait(_STOP)

    async def flush(self) -> Dict[str, int]:
        """
        Один тик агрегации.

        Returns:
            Статистика тика {'tenants': int, 'delivered': int, 'dropped': int}
        """
        self._state = 'draining'
        self.stats['ticks'] += 1
        result = {'tenants': 0, 'delivered': 0, 'dropped': 0}

        try:
            batches = await self._pending.drain_all()
            result['tenants'] = len(batches)
            logger.info(f"ticked: гильдий с новыми эмодзи: {len(batches)}")

            for tenant_id, events in batches.items():
                try:
                    delivered = await self._flush_tenant(tenant_id, events)
                except Exception as e:
                    # сбой одной гильдии не влияет на остальные
                    delivered = False
                    logger.error(f"❌ Ошибка обработки гильдии {tenant_id}: {e}", exc_info=True)
                    self._monitoring.capture_exception(
                        e, tags={"component": "worker", "guild_id": tenant_id}
                    )

                if delivered:
                    result['delivered'] += 1
                elif delivered is False:
                    result['dropped'] += 1
                    self.stats['batches_dropped'] += 1
        finally:
            self._state = 'idle'

        return result

    async def _flush_tenant(self, tenant_id: str, events: List[NotificationEvent]) -> Optional[bool]:
        """
        Returns:
            True - сводка отправлена, False - пачка отброшена,
            None - отправлять нечего (все эмодзи уже известны)
        """
        logger.info(f"current queue size for guild id {tenant_id} is {len(events)}")

        # эмодзи могли попасть в реестр между drain и record прошлого тика
        assets = [
            asset for asset in deduplicate(events)
            if not self.registry.contains(tenant_id, asset.id)
        ]
        if not assets:
            logger.debug(f"Гильдия {tenant_id}: все эмодзи уже известны, пропускаем")
            return None

        destination_id = await self.directory.lookup(tenant_id)
        if destination_id is None:
            logger.warning(
                f"⚠️ the guild (id:{tenant_id}) does not registered notify channel. "
                f"dropping {len(assets)} emoji(s)"
            )
            return False

        success = await self.notifier.send_summary(tenant_id, destination_id, assets)
        if not success:
            logger.warning(f"⚠️ failed on notifyNewEmoji: guild {tenant_id}, {len(assets)} emoji(s) dropped")
            return False

        for asset in assets:
            self.registry.record(tenant_id, asset)

        self.stats['summaries_sent'] += 1
        self.stats['assets_notified'] += len(assets)
        return True

    def get_stats(self) -> Dict[str, Any]:
        """Накопленная статистика воркера."""
        stats = self.stats.copy()
        stats['state'] = self._state
        stats['running'] = self._running
        stats['inbox_size'] = self._inbox.qsize()
        return stats
