"""
Мониторинг и error tracking с использованием Sentry.

Monitoring передается явно в конструкторы компонентов вместо глобального
состояния. Жизненный цикл задается контекстным менеджером:

    with Monitoring(dsn=os.getenv('SENTRY_DSN')) as monitoring:
        ...  # init при входе, flush при выходе

Без DSN работает как no-op: только пишет в лог.
"""

import logging
from typing import Optional, Dict, Any

import sentry_sdk
from sentry_sdk.integrations.aiohttp import AioHttpIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

logger = logging.getLogger(__name__)

# Некритичные сетевые ошибки Discord (происходят периодически)
NON_CRITICAL_PATTERNS = (
    'timeout',
    'timed out',
    'connection reset',
    'connection refused',
    'network is unreachable',
    'temporary failure',
    'too many requests',
    'bad gateway',
    'service unavailable',
)

NON_CRITICAL_TYPES = (
    'TimeoutError',
    'ConnectionError',
    'ConnectionClosed',
    'RateLimited',
)

SENSITIVE_KEYS = ('token', 'password', 'secret', 'key')


def _before_send_filter(event: Dict[str, Any], hint: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Фильтр событий перед отправкой в Sentry.

    Отбрасывает некритичные сетевые ошибки и скрывает чувствительные
    данные в breadcrumbs.
    """
    if 'exc_info' in hint:
        exc_type, exc_value, tb = hint['exc_info']
        error_str = str(exc_value).lower()
        error_type = exc_type.__name__ if exc_type else ''

        if isinstance(exc_value, KeyboardInterrupt):
            return None

        if any(pattern in error_str for pattern in NON_CRITICAL_PATTERNS):
            logger.debug(f"Sentry: игнорируем некритичную ошибку: {error_str[:100]}")
            return None

        if error_type in NON_CRITICAL_TYPES:
            logger.debug(f"Sentry: игнорируем {error_type}")
            return None

    breadcrumbs = event.get('breadcrumbs')
    if isinstance(breadcrumbs, dict):
        breadcrumbs = breadcrumbs.get('values', [])
    for breadcrumb in breadcrumbs or []:
        data = breadcrumb.get('data')
        if not data:
            continue
        for key in list(data.keys()):
            if any(sensitive in key.lower() for sensitive in SENSITIVE_KEYS):
                data[key] = '[FILTERED]'

    return event


class Monitoring:
    """
    Observability sink: Sentry + логирование.

    Создается один раз в main и передается в AssetRegistry,
    AggregationWorker, DestinationDirectory и DiscordNotifier.
    """

    def __init__(
        self,
        dsn: Optional[str] = None,
        environment: str = "production",
        traces_sample_rate: float = 0.0,
        flush_timeout: int = 2
    ):
        """
        Args:
            dsn: Sentry DSN (None - мониторинг отключен)
            environment: Окружение (production/staging/development)
            traces_sample_rate: Доля трассировки (0.0-1.0)
            flush_timeout: Таймаут отправки событий при завершении
        """
        self.dsn = dsn
        self.environment = environment
        self.traces_sample_rate = traces_sample_rate
        self.flush_timeout = flush_timeout
        self._initialized = False

    @property
    def enabled(self) -> bool:
        return self._initialized

    def start(self) -> bool:
        """Инициализация Sentry. Возвращает True если мониторинг активен."""
        if self._initialized:
            logger.warning("Sentry уже инициализирован")
            return True

        if not self.dsn:
            logger.info("ℹ️  Sentry DSN не указан - мониторинг отключен")
            return False

        try:
            sentry_sdk.init(
                dsn=self.dsn,
                environment=self.environment,
                traces_sample_rate=self.traces_sample_rate,
                integrations=[
                    LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
                    AioHttpIntegration(),
                ],
                attach_stacktrace=True,
                send_default_pii=False,
                max_breadcrumbs=50,
                before_send=_before_send_filter,
            )
        except Exception as e:
            logger.error(f"❌ Ошибка инициализации Sentry: {e}")
            return False

        self._initialized = True
        logger.info(f"✅ Sentry инициализирован (environment={self.environment})")
        return True

    def capture_exception(
        self,
        error: Exception,
        level: str = "error",
        tags: Optional[Dict[str, str]] = None
    ) -> Optional[str]:
        """
        Отправка исключения в Sentry с тегами.

        Returns:
            Event ID от Sentry или None
        """
        if not self._initialized:
            logger.debug(f"Sentry отключен, исключение только в логе: {error}")
            return None

        try:
            event_id = sentry_sdk.capture_exception(error, level=level, tags=tags or {})
            logger.info(f"📤 Отправлено в Sentry: {event_id}")
            return event_id
        except Exception as e:
            logger.error(f"❌ Ошибка отправки в Sentry: {e}")
            return None

    def add_breadcrumb(
        self,
        message: str,
        category: str = "default",
        level: str = "info",
        data: Optional[Dict[str, Any]] = None
    ):
        """Breadcrumb для отслеживания последовательности событий."""
        logger.debug(f"[{category}] {message} {data or {}}")

        if not self._initialized:
            return

        try:
            sentry_sdk.add_breadcrumb(
                message=message,
                category=category,
                level=level,
                data=data or {}
            )
        except Exception as e:
            logger.error(f"❌ Ошибка добавления breadcrumb: {e}")

    def flush(self):
        """Принудительная отправка накопленных событий (перед завершением)."""
        if not self._initialized:
            return

        try:
            logger.info("📤 Отправка накопленных событий в Sentry...")
            sentry_sdk.flush(timeout=self.flush_timeout)
            logger.info("✅ События отправлены")
        except Exception as e:
            logger.error(f"❌ Ошибка отправки событий: {e}")

    def __enter__(self) -> 'Monitoring':
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.flush()
        return False
