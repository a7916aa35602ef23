"""
Unit тесты для EnvValidator и BotConfig.validate.
"""

import pytest

from bot.config import BotConfig
from bot.env_validator import EnvValidator

VALID_TOKEN = "MTIzNDU2Nzg5MDEyMzQ1Njc4.GAbCdE.abcdefghijklmnopqrstuvwxyz0123456789AB"


@pytest.mark.unit
class TestValidateBotToken:

    def test_valid(self):
        assert EnvValidator.validate_bot_token(VALID_TOKEN) == (True, None)

    def test_empty(self):
        is_valid, error = EnvValidator.validate_bot_token("")
        assert not is_valid
        assert "empty" in error

    def test_bot_prefix(self):
        is_valid, _ = EnvValidator.validate_bot_token("Bot " + VALID_TOKEN)
        assert not is_valid

    def test_wrong_parts(self):
        assert not EnvValidator.validate_bot_token("abc.def")[0]
        assert not EnvValidator.validate_bot_token("abc..def")[0]


@pytest.mark.unit
class TestValidateOptional:

    def test_notify_window(self):
        assert EnvValidator.validate_notify_window("300")[0]
        assert EnvValidator.validate_notify_window("")[0]
        assert not EnvValidator.validate_notify_window("0")[0]
        assert not EnvValidator.validate_notify_window("five")[0]

    def test_port(self):
        assert EnvValidator.validate_port("8080")[0]
        assert not EnvValidator.validate_port("http")[0]
        assert not EnvValidator.validate_port("70000")[0]

    def test_sentry_dsn(self):
        assert EnvValidator.validate_sentry_dsn("https://key@sentry.example.com/1")[0]
        assert not EnvValidator.validate_sentry_dsn("ftp://key@host/1")[0]


@pytest.mark.unit
class TestValidateAll:

    def test_missing_token_is_error(self, monkeypatch):
        monkeypatch.delenv("BOT_TOKEN", raising=False)
        monkeypatch.delenv("SENTRY_DSN", raising=False)

        result = EnvValidator.validate_all()

        assert not result['valid']
        assert any("BOT_TOKEN" in e for e in result['errors'])

    def test_valid_environment(self, monkeypatch):
        monkeypatch.setenv("BOT_TOKEN", VALID_TOKEN)
        monkeypatch.delenv("SENTRY_DSN", raising=False)
        monkeypatch.setenv("NOTIFY_WINDOW_SECONDS", "60")

        result = EnvValidator.validate_all()

        assert result['valid']
        assert result['warnings']  # SENTRY_DSN рекомендован
        assert result['info']['NOTIFY_WINDOW_SECONDS'] == "✅ Present"

    def test_strict_mode(self, monkeypatch):
        monkeypatch.setenv("BOT_TOKEN", VALID_TOKEN)
        monkeypatch.delenv("SENTRY_DSN", raising=False)

        assert not EnvValidator.validate_all(strict=True)['valid']

    def test_exit_on_missing_token(self, monkeypatch):
        monkeypatch.delenv("BOT_TOKEN", raising=False)

        with pytest.raises(SystemExit) as exc_info:
            EnvValidator.validate_and_exit_if_invalid()

        assert exc_info.value.code == 1


@pytest.mark.unit
class TestBotConfig:

    def test_missing_token(self, monkeypatch):
        monkeypatch.setattr(BotConfig, "BOT_TOKEN", "")

        with pytest.raises(ValueError):
            BotConfig.validate()

    def test_invalid_window(self, monkeypatch):
        monkeypatch.setattr(BotConfig, "BOT_TOKEN", VALID_TOKEN)
        monkeypatch.setattr(BotConfig, "NOTIFY_WINDOW", 0)

        with pytest.raises(ValueError):
            BotConfig.validate()

    def test_valid(self, monkeypatch):
        monkeypatch.setattr(BotConfig, "BOT_TOKEN", VALID_TOKEN)
        monkeypatch.setattr(BotConfig, "NOTIFY_WINDOW", 300.0)

        assert BotConfig.validate() is True
