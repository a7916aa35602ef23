"""
AssetRegistry - реестр уже известных эмодзи по гильдиям.

Наличие id в реестре означает: об эмодзи уже уведомили, либо он существовал
на момент начальной синхронизации. Записи не удаляются до конца процесса.

Реестр не защищен блокировкой: пишут в него только задача AggregationWorker
и backfill, оба в одном event loop.
"""

import logging
from typing import Dict, Iterable, Optional, Set

from emoji_notifier.models import Asset
from emoji_notifier.monitoring import Monitoring

logger = logging.getLogger(__name__)


class AssetRegistry:
    """Per-tenant множество известных эмодзи: tenant_id -> {asset_id -> Asset}."""

    def __init__(self, monitoring: Optional[Monitoring] = None):
        self._assets: Dict[str, Dict[str, Asset]] = {}
        self._monitoring = monitoring or Monitoring()

    def contains(self, tenant_id: str, asset_id: str) -> bool:
        return asset_id in self._assets.get(tenant_id, {})

    def record(self, tenant_id: str, asset: Asset):
        """
        Идемпотентная запись эмодзи (insert/overwrite).

        При первой записи id выпускается observability-событие: по нему
        диагностируется корректность подавления дубликатов.
        """
        known = self._assets.setdefault(tenant_id, {})
        is_new = asset.id not in known
        known[asset.id] = asset

        if is_new:
            logger.info(f"new emoji registered: guild={tenant_id} id={asset.id} name={asset.name}")
            self._monitoring.add_breadcrumb(
                "emoji registered",
                category="registry",
                data={'tenant_id': tenant_id, 'asset_id': asset.id, 'name': asset.name}
            )

    def backfill(self, tenant_id: str, assets: Iterable[Asset]) -> int:
        """
        Массовая запись полного списка эмодзи гильдии.

        Гильдия считается синхронизированной даже при пустом списке.

        Returns:
            Количество ранее неизвестных id
        """
        self._assets.setdefault(tenant_id, {})
        added = 0
        for asset in assets:
            if not self.contains(tenant_id, asset.id):
                added += 1
            self.record(tenant_id, asset)
        return added

    def is_tracked(self, tenant_id: str) -> bool:
        return tenant_id in self._assets

    def known_count(self, tenant_id: str) -> int:
        return len(self._assets.get(tenant_id, {}))

    def tenants(self) -> Set[str]:
        return set(self._assets)
