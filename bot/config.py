"""
Конфигурация Discord бота.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Загружаем переменные окружения из .env (только для локального запуска)
env_path = Path(__file__).parent.parent / '.env'
if env_path.exists():
    load_dotenv(env_path)


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name, '').strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return -1.0  # отклоняется в validate()


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, '').strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return -1  # отклоняется в validate()


class BotConfig:
    """Конфигурация бота."""

    # Discord Bot Token
    BOT_TOKEN = os.getenv('BOT_TOKEN', '')

    # Окно агрегации уведомлений (секунды)
    NOTIFY_WINDOW = _float_env('NOTIFY_WINDOW_SECONDS', 300.0)

    # Файл с картой guild_id -> channel_id
    CHANNELS_FILE = Path(os.getenv('CHANNELS_FILE', './channels.json'))

    # Sentry (опционально)
    SENTRY_DSN = os.getenv('SENTRY_DSN', '')
    ENVIRONMENT = os.getenv('ENVIRONMENT', 'production')

    # Health check (0 - отключен)
    HEALTH_CHECK_PORT = _int_env('HEALTH_CHECK_PORT', 8080)

    @classmethod
    def validate(cls):
        """Проверяет, что все необходимые настройки заданы."""
        errors = []

        if not cls.BOT_TOKEN:
            errors.append("BOT_TOKEN не задан")

        if cls.NOTIFY_WINDOW <= 0:
            errors.append("NOTIFY_WINDOW_SECONDS должен быть положительным числом")

        if not 0 <= cls.HEALTH_CHECK_PORT <= 65535:
            errors.append("HEALTH_CHECK_PORT должен быть портом 0-65535")

        if errors:
            raise ValueError("Ошибки конфигурации:\n" + "\n".join(f"  - {e}" for e in errors))

        return True
