"""
DestinationDirectory - карта guild_id -> id канала для уведомлений.

Изменяется командами /register и /unregister, читается AggregationWorker
во время flush. Сохраняется в JSON-файл при остановке и загружается
при старте.
"""

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Awaitable, Callable, Dict, Optional

from emoji_notifier.monitoring import Monitoring

logger = logging.getLogger(__name__)

# (destination_id) -> доступен ли канал боту
DestinationResolver = Callable[[str], Awaitable[bool]]


class DirectoryError(Exception):
    """Базовая ошибка регистрации канала; текст показывается пользователю."""


class DestinationUnreachable(DirectoryError):
    def __init__(self, destination_id: str):
        super().__init__(
            "could not find out the channel you've requested (might be wrong permissions?)"
        )
        self.destination_id = destination_id


class NotRegistered(DirectoryError):
    def __init__(self, tenant_id: str):
        super().__init__("no channel registered")
        self.tenant_id = tenant_id


class DestinationMismatch(DirectoryError):
    def __init__(self, tenant_id: str, destination_id: str):
        super().__init__("this channel is not registered as the notification channel")
        self.tenant_id = tenant_id
        self.destination_id = destination_id


class DestinationDirectory:
    """
    Потокобезопасная (в рамках event loop) карта tenant -> destination.

    Все операции, включая lookup, взаимно исключены одной asyncio.Lock.
    """

    def __init__(
        self,
        resolver: DestinationResolver,
        path: Optional[Path] = None,
        monitoring: Optional[Monitoring] = None
    ):
        """
        Args:
            resolver: Проверка доступности канала через транспорт доставки
            path: JSON-файл для сохранения карты (None - без персистентности)
            monitoring: Observability sink
        """
        self._resolver = resolver
        self.path = Path(path) if path else None
        self._monitoring = monitoring or Monitoring()
        self._destinations: Dict[str, str] = {}
        self._lock = asyncio.Lock()

    async def register(self, tenant_id: str, destination_id: str):
        """
        Регистрирует канал уведомлений для гильдии.

        Raises:
            DestinationUnreachable: канал не виден боту
        """
        # проверка вне блокировки: это сетевой вызов
        if not await self._resolver(destination_id):
            logger.warning(f"⚠️ Канал {destination_id} недоступен для гильдии {tenant_id}")
            raise DestinationUnreachable(destination_id)

        async with self._lock:
            self._destinations[tenant_id] = destination_id

        logger.info(f"registered: guild {tenant_id} -> channel {destination_id}")

    async def unregister(self, tenant_id: str, destination_id: str):
        """
        Снимает регистрацию, только если передан именно зарегистрированный канал.

        Raises:
            NotRegistered: для гильдии нет канала
            DestinationMismatch: зарегистрирован другой канал
        """
        async with self._lock:
            current = self._destinations.get(tenant_id)
            if current is None:
                raise NotRegistered(tenant_id)
            if current != destination_id:
                raise DestinationMismatch(tenant_id, destination_id)
            del self._destinations[tenant_id]

        logger.info(f"unregistered: guild {tenant_id}: remove channel {destination_id}")

    async def lookup(self, tenant_id: str) -> Optional[str]:
        async with self._lock:
            return self._destinations.get(tenant_id)

    async def snapshot(self) -> Dict[str, str]:
        async with self._lock:
            return dict(self._destinations)

    def __len__(self) -> int:
        return len(self._destinations)

    # ============================================
    # Персистентность
    # ============================================

    async def load(self) -> bool:
        """
        Загружает карту из JSON-файла.

        Отсутствующий или поврежденный файл - не ошибка: директория
        остается пустой, в лог пишется предупреждение.

        Returns:
            True если карта загружена из файла
        """
        async with self._lock:
            self._destinations = {}

            if self.path is None:
                return False

            if not self.path.exists():
                logger.warning(f"⚠️ Файл каналов {self.path} не найден, начинаем с пустой карты")
                return False

            try:
                with open(self.path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"⚠️ failed on restore channel ids from {self.path}: {e}")
                return False

            if not isinstance(data, dict) or not all(
                isinstance(k, str) and isinstance(v, str) for k, v in data.items()
            ):
                logger.warning(f"⚠️ Файл каналов {self.path} имеет неверный формат, игнорируем")
                return False

            self._destinations = data

        logger.info(f"✅ Загружено каналов уведомлений: {len(data)}")
        return True

    async def save(self) -> bool:
        """
        Сохраняет карту в JSON-файл (через временный файл + rename).

        Ошибка записи не фатальна, но и не скрывается: пишется в лог,
        возвращается False.
        """
        if self.path is None:
            return False

        async with self._lock:
            data = dict(self._destinations)

        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=self.path.name, suffix='.tmp', dir=str(self.path.parent)
            )
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_name, self.path)
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"⚠️ failed on persist channel ids to {self.path}: {e}")
            self._monitoring.capture_exception(e, level="warning", tags={"component": "directory"})
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            return False

        logger.info(f"💾 Сохранено каналов уведомлений: {len(data)} -> {self.path}")
        return True
