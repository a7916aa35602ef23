"""
Environment Variables Validator.

Проверяет наличие и валидность переменных окружения перед запуском.
"""

import os
import sys
import logging
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlparse

logger = logging.getLogger(__name__)


class EnvValidator:
    """Валидатор переменных окружения."""

    # Обязательные переменные
    REQUIRED_VARS = {
        'BOT_TOKEN': 'Discord Bot Token from the Developer Portal',
    }

    # Рекомендуемые переменные (warning если отсутствуют)
    RECOMMENDED_VARS = {
        'SENTRY_DSN': 'Sentry DSN для error tracking',
    }

    # Опциональные переменные
    OPTIONAL_VARS = {
        'NOTIFY_WINDOW_SECONDS': 'Aggregation window in seconds (default: 300)',
        'CHANNELS_FILE': 'Path to guild -> channel JSON file (default: ./channels.json)',
        'LOG_LEVEL': 'Logging level (DEBUG, INFO, WARNING, ERROR)',
        'LOG_FORMAT': 'json или human',
        'HEALTH_CHECK_PORT': 'Port for health check endpoint (default: 8080, 0 - disabled)',
    }

    @staticmethod
    def validate_bot_token(token: str) -> Tuple[bool, Optional[str]]:
        """
        Валидация Discord Bot Token.

        Токен состоит из трех частей, разделенных точками.

        Returns:
            (is_valid, error_message)
        """
        if not token:
            return False, "BOT_TOKEN is empty"

        if token.startswith('Bot '):
            return False, "BOT_TOKEN should not include the 'Bot ' prefix"

        parts = token.split('.')
        if len(parts) != 3:
            return False, "BOT_TOKEN has invalid format (should contain 3 dot-separated parts)"

        if not all(parts):
            return False, "BOT_TOKEN has an empty part"

        return True, None

    @staticmethod
    def validate_notify_window(value: str) -> Tuple[bool, Optional[str]]:
        """Окно агрегации - положительное число секунд."""
        if not value:
            return True, None  # default 300

        try:
            window = float(value)
        except ValueError:
            return False, f"NOTIFY_WINDOW_SECONDS is not a number: {value!r}"

        if window <= 0:
            return False, "NOTIFY_WINDOW_SECONDS should be positive"

        return True, None

    @staticmethod
    def validate_port(value: str) -> Tuple[bool, Optional[str]]:
        if not value:
            return True, None

        if not value.isdigit() or int(value) > 65535:
            return False, f"HEALTH_CHECK_PORT is not a valid port: {value!r}"

        return True, None

    @staticmethod
    def validate_sentry_dsn(dsn: str) -> Tuple[bool, Optional[str]]:
        """
        Валидация Sentry DSN.

        Returns:
            (is_valid, error_message)
        """
        if not dsn:
            return True, None  # Optional

        try:
            parsed = urlparse(dsn)

            if parsed.scheme not in ['http', 'https']:
                return False, "Sentry DSN should use http or https"

            if not parsed.hostname:
                return False, "Sentry DSN missing hostname"

            # Sentry DSN format: https://public_key@host/project_id
            if '@' not in dsn:
                return False, "Sentry DSN should contain @ separator"

            return True, None

        except ValueError as e:
            return False, f"Invalid SENTRY_DSN format: {e}"

    @classmethod
    def validate_all(cls, strict: bool = False) -> Dict[str, Any]:
        """
        Валидация всех переменных окружения.

        Args:
            strict: Если True, warnings тоже считаются ошибками

        Returns:
            {'valid': bool, 'errors': List[str], 'warnings': List[str], 'info': Dict[str, str]}
        """
        errors = []
        warnings = []
        info = {}

        for var_name, description in cls.REQUIRED_VARS.items():
            value = os.getenv(var_name)

            if not value:
                errors.append(f"❌ Missing required: {var_name} - {description}")
                continue

            is_valid, error_msg = cls.validate_bot_token(value)
            if not is_valid:
                errors.append(f"❌ Invalid {var_name}: {error_msg}")
            else:
                info[var_name] = "✅ Valid"

        for var_name, description in cls.RECOMMENDED_VARS.items():
            value = os.getenv(var_name)

            if not value:
                message = f"⚠️  Missing recommended: {var_name} - {description}"
                if strict:
                    errors.append(message)
                else:
                    warnings.append(message)
                continue

            is_valid, error_msg = cls.validate_sentry_dsn(value)
            if not is_valid:
                warnings.append(f"⚠️  Invalid {var_name}: {error_msg}")
            else:
                info[var_name] = "✅ Valid"

        optional_checks = {
            'NOTIFY_WINDOW_SECONDS': cls.validate_notify_window,
            'HEALTH_CHECK_PORT': cls.validate_port,
        }
        for var_name in cls.OPTIONAL_VARS:
            value = os.getenv(var_name)
            if not value:
                continue

            check = optional_checks.get(var_name)
            if check:
                is_valid, error_msg = check(value)
                if not is_valid:
                    errors.append(f"❌ Invalid {var_name}: {error_msg}")
                    continue

            info[var_name] = "✅ Present"

        return {
            'valid': len(errors) == 0,
            'errors': errors,
            'warnings': warnings,
            'info': info
        }

    @classmethod
    def validate_and_exit_if_invalid(cls, strict: bool = False):
        """
        Валидация с автоматическим выходом при ошибках.

        Args:
            strict: Если True, warnings тоже приводят к выходу
        """
        result = cls.validate_all(strict=strict)

        logger.info("=" * 60)
        logger.info("Environment Variables Validation")
        logger.info("=" * 60)

        for key, value in result['info'].items():
            logger.info(f"  {key}: {value}")

        for warning in result['warnings']:
            logger.warning(f"  {warning}")

        for error in result['errors']:
            logger.error(f"  {error}")

        logger.info("=" * 60)

        if not result['valid']:
            logger.error("❌ Environment validation failed! Fix errors above.")
            sys.exit(1)

        logger.info("✅ Environment validation passed!")


__all__ = ['EnvValidator']
