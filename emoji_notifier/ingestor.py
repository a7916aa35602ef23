"""
EventIngestor - классификация новых эмодзи.

Gateway присылает ПОЛНЫЙ текущий список эмодзи гильдии при любом изменении,
без указания что именно изменилось. Новыми считаются эмодзи, которых нет
в AssetRegistry; для каждого из них в воркер уходит NotificationEvent.
"""

import logging
from typing import Iterable, Optional

from emoji_notifier.models import Asset, NotificationEvent
from emoji_notifier.registry import AssetRegistry
from emoji_notifier.worker import AggregationWorker

logger = logging.getLogger(__name__)


class EventIngestor:

    def __init__(self, registry: AssetRegistry, worker: AggregationWorker):
        self.registry = registry
        self.worker = worker

    def on_assets_changed(
        self,
        tenant_id: str,
        assets: Iterable[Asset],
        previous: Optional[Iterable[Asset]] = None
    ) -> int:
        """
        Args:
            tenant_id: ID гильдии
            assets: Текущий полный список эмодзи
            previous: Список до изменения; для еще не синхронизированной
                гильдии он считается существующим

        Returns:
            Количество переданных в воркер событий
        """
        if previous is not None and not self.registry.is_tracked(tenant_id):
            self.backfill(tenant_id, previous)

        submitted = 0
        for asset in assets:
            if self.registry.contains(tenant_id, asset.id):
                continue
            logger.info(f"new emoji!!! guild={tenant_id} id={asset.id} name={asset.name}")
            self.worker.submit(NotificationEvent(tenant_id=tenant_id, asset=asset))
            submitted += 1
        return submitted

    def backfill(self, tenant_id: str, assets: Iterable[Asset]) -> int:
        """Начальная синхронизация: существующие эмодзи не должны вызывать уведомлений."""
        added = self.registry.backfill(tenant_id, assets)
        logger.info(f"✅ Гильдия {tenant_id}: известно эмодзи {self.registry.known_count(tenant_id)} (+{added})")
        return added
