"""
Emoji Notifier - агрегированные уведомления о новых эмодзи гильдий.

Components:
- models.py         - Asset, NotificationEvent, Summary
- registry.py       - AssetRegistry: уже известные эмодзи по гильдиям
- pending_queue.py  - PendingQueue + дедупликация (последнее состояние побеждает)
- worker.py         - AggregationWorker: таймер + hand-off очередь, flush
- directory.py      - DestinationDirectory: гильдия -> канал, JSON-персистентность
- ingestor.py       - EventIngestor: diff полного списка эмодзи с реестром
- notifications/    - сводка и отправка в Discord
- monitoring.py     - Monitoring: Sentry observability sink

Quick Start:
    registry = AssetRegistry()
    directory = DestinationDirectory(resolver=notifier.is_reachable, path=Path('channels.json'))
    worker = AggregationWorker(registry, directory, notifier, notify_window=300)
    ingestor = EventIngestor(registry, worker)

    task = asyncio.create_task(worker.run())
    ingestor.on_assets_changed(guild_id, assets)
"""

from emoji_notifier.models import Asset, NotificationEvent, Summary
from emoji_notifier.registry import AssetRegistry
from emoji_notifier.pending_queue import PendingQueue, deduplicate
from emoji_notifier.directory import (
    DestinationDirectory,
    DirectoryError,
    DestinationUnreachable,
    NotRegistered,
    DestinationMismatch,
)
from emoji_notifier.worker import AggregationWorker
from emoji_notifier.ingestor import EventIngestor
from emoji_notifier.monitoring import Monitoring

__version__ = '0.1.0'

__all__ = [
    'Asset',
    'NotificationEvent',
    'Summary',
    'AssetRegistry',
    'PendingQueue',
    'deduplicate',
    'DestinationDirectory',
    'DirectoryError',
    'DestinationUnreachable',
    'NotRegistered',
    'DestinationMismatch',
    'AggregationWorker',
    'EventIngestor',
    'Monitoring',
    '__version__',
]
