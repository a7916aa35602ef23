"""
Unit тесты для EmojiNotifierBot: события gateway -> ядро (без подключения).
"""

import json
from types import SimpleNamespace

import pytest

from bot.client import EmojiNotifierBot, asset_from_emoji


def emoji(emoji_id: int, name: str, animated: bool = False):
    return SimpleNamespace(id=emoji_id, name=name, animated=animated)


def guild(guild_id: int, emojis):
    return SimpleNamespace(id=guild_id, name="My Guild", emojis=list(emojis))


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    async def send_summary(self, tenant_id, destination_id, assets):
        self.sent.append((tenant_id, destination_id, [asset.id for asset in assets]))
        return True


async def move_inbox_to_pending(worker):
    """То, что делает цикл воркера между тиками."""
    while not worker._inbox.empty():
        await worker.pending.enqueue(worker._inbox.get_nowait())


@pytest.mark.unit
class TestAssetFromEmoji:

    def test_conversion(self):
        asset = asset_from_emoji(1, emoji(111, "party", animated=True))

        assert asset.id == "111"
        assert asset.tenant_id == "1"
        assert asset.name == "party"
        assert asset.animated is True


@pytest.mark.unit
class TestGatewayEvents:

    @pytest.mark.asyncio
    async def test_backfill_then_update(self, tmp_path):
        bot = EmojiNotifierBot(notify_window=60, channels_file=tmp_path / "channels.json")
        existing = [emoji(111, "party"), emoji(222, "dance")]
        g = guild(1, existing)

        assert bot.backfill_guild(g) is True
        await bot.on_guild_emojis_update(g, existing, existing + [emoji(333, "new")])

        assert bot.registry.known_count("1") == 2
        assert bot.worker.get_stats()['inbox_size'] == 1

    @pytest.mark.asyncio
    async def test_shutdown_persists_directory(self, tmp_path):
        path = tmp_path / "channels.json"
        path.write_text(json.dumps({"1": "10"}), encoding='utf-8')
        bot = EmojiNotifierBot(notify_window=60, channels_file=path)
        await bot.load_state()
        await bot.directory.unregister("1", "10")

        await bot.shutdown()

        assert json.loads(path.read_text(encoding='utf-8')) == {}
        assert bot.get_stats()['channels_registered'] == 0
        assert bot.is_closed()

    @pytest.mark.asyncio
    async def test_shutdown_without_load_keeps_file(self, tmp_path):
        """Клиент не успел загрузить карту (например, неверный токен) - файл не затирается."""
        path = tmp_path / "channels.json"
        path.write_text(json.dumps({"1": "10"}), encoding='utf-8')
        bot = EmojiNotifierBot(notify_window=60, channels_file=path)

        await bot.shutdown()

        assert json.loads(path.read_text(encoding='utf-8')) == {"1": "10"}


@pytest.mark.unit
class TestInitialSync:

    @pytest.mark.asyncio
    async def test_repeated_ready_keeps_pending_emoji(self, tmp_path):
        """Повторный on_ready не помечает ожидающие эмодзи как известные."""
        path = tmp_path / "channels.json"
        path.write_text(json.dumps({"1": "10"}), encoding='utf-8')
        bot = EmojiNotifierBot(notify_window=60, channels_file=path)
        await bot.load_state()
        notifier = RecordingNotifier()
        bot.worker.notifier = notifier

        party, new = emoji(111, "party"), emoji(333, "new")
        g = guild(1, [party])
        assert bot.backfill_guild(g) is True
        await bot.on_guild_emojis_update(g, [party], [party, new])
        await move_inbox_to_pending(bot.worker)

        g.emojis = [party, new]
        assert bot.backfill_guild(g) is False

        result = await bot.worker.flush()

        assert result['delivered'] == 1
        assert notifier.sent == [("1", "10", ["333"])]

    @pytest.mark.asyncio
    async def test_guild_join_after_ready_is_not_resynced(self, tmp_path):
        bot = EmojiNotifierBot(notify_window=60, channels_file=tmp_path / "channels.json")
        g = guild(1, [emoji(111, "party")])
        bot.backfill_guild(g)

        g.emojis.append(emoji(333, "new"))
        await bot.on_guild_join(g)

        assert bot.registry.known_count("1") == 1

    def test_empty_guild_is_synced_once(self, tmp_path):
        bot = EmojiNotifierBot(notify_window=60, channels_file=tmp_path / "channels.json")
        g = guild(2, [])

        assert bot.backfill_guild(g) is True
        assert bot.backfill_guild(g) is False
        assert bot.registry.is_tracked("2")

    @pytest.mark.asyncio
    async def test_update_before_sync_only_queues_new(self, tmp_path):
        """Обновление для еще не синхронизированной гильдии: существующие эмодзи берутся из before."""
        bot = EmojiNotifierBot(notify_window=60, channels_file=tmp_path / "channels.json")
        existing = [emoji(1000 + i, f"old_{i}") for i in range(50)]
        g = guild(1, existing)

        await bot.on_guild_emojis_update(g, existing, existing + [emoji(333, "new")])

        assert bot.worker.get_stats()['inbox_size'] == 1
        assert bot.registry.known_count("1") == 50


@pytest.mark.unit
class TestSetupHook:

    @pytest.mark.asyncio
    async def test_worker_not_started_after_shutdown(self, tmp_path):
        """Сигнал пришел, пока шла синхронизация команд."""
        bot = EmojiNotifierBot(notify_window=60, channels_file=tmp_path / "channels.json")

        async def sync_interrupted_by_shutdown(*args, **kwargs):
            await bot.shutdown()
            return []

        bot.tree.sync = sync_interrupted_by_shutdown

        await bot.setup_hook()

        assert bot.is_closed()
        assert bot._worker_task is None
        assert not bot.worker.is_running
