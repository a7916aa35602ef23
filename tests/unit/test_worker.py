"""
Unit тесты для AggregationWorker.

Тестируем:
- Flush: дедупликация, отправка, запись в реестр
- Подавление уже известных эмодзи
- Отбрасывание пачки при ошибках доставки (без повторов)
- Изоляцию ошибок между гильдиями
- Главный цикл: hand-off, тики по таймеру, кооперативную остановку
"""

import asyncio

import pytest

from emoji_notifier.directory import DestinationDirectory
from emoji_notifier.models import Asset, NotificationEvent
from emoji_notifier.registry import AssetRegistry
from emoji_notifier.worker import AggregationWorker


class FakeNotifier:
    """Транспорт доставки, запоминающий отправленные сводки."""

    def __init__(self, succeed: bool = True):
        self.succeed = succeed
        self.sent = []
        self.fail_for = set()
        self.raise_for = set()

    async def send_summary(self, tenant_id, destination_id, assets):
        if tenant_id in self.raise_for:
            raise RuntimeError(f"transport exploded for {tenant_id}")
        if not self.succeed or tenant_id in self.fail_for:
            return False
        self.sent.append((tenant_id, destination_id, list(assets)))
        return True


async def always_reachable(destination_id: str) -> bool:
    return True


def make_event(tenant_id: str, asset_id: str, name: str) -> NotificationEvent:
    return NotificationEvent(
        tenant_id=tenant_id,
        asset=Asset(id=asset_id, name=name, tenant_id=tenant_id)
    )


@pytest.fixture
def registry():
    return AssetRegistry()


@pytest.fixture
def directory():
    return DestinationDirectory(resolver=always_reachable)


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def worker(registry, directory, notifier):
    return AggregationWorker(registry, directory, notifier, notify_window=60)


@pytest.mark.unit
class TestFlush:

    @pytest.mark.asyncio
    async def test_batch_is_deduplicated_and_recorded(self, worker, registry, directory, notifier):
        """A, B, затем обновленный A в одном окне -> 2 эмодзи, A с новым именем."""
        await directory.register("G1", "C1")
        await worker.pending.enqueue(make_event("G1", "A", "foo"))
        await worker.pending.enqueue(make_event("G1", "B", "bar"))
        await worker.pending.enqueue(make_event("G1", "A", "foo2"))

        result = await worker.flush()

        assert result == {'tenants': 1, 'delivered': 1, 'dropped': 0}
        assert len(notifier.sent) == 1
        tenant_id, destination_id, assets = notifier.sent[0]
        assert (tenant_id, destination_id) == ("G1", "C1")
        assert {a.id: a.name for a in assets} == {"A": "foo2", "B": "bar"}
        assert registry.contains("G1", "A")
        assert registry.contains("G1", "B")

    @pytest.mark.asyncio
    async def test_known_assets_are_not_notified(self, worker, registry, directory, notifier):
        await directory.register("G1", "C1")
        registry.record("G1", Asset(id="A", name="foo", tenant_id="G1"))
        await worker.pending.enqueue(make_event("G1", "A", "foo"))
        await worker.pending.enqueue(make_event("G1", "B", "bar"))

        await worker.flush()

        assets = notifier.sent[0][2]
        assert [a.id for a in assets] == ["B"]

    @pytest.mark.asyncio
    async def test_only_known_assets_sends_nothing(self, worker, registry, directory, notifier):
        await directory.register("G1", "C1")
        registry.record("G1", Asset(id="A", name="foo", tenant_id="G1"))
        await worker.pending.enqueue(make_event("G1", "A", "foo"))

        result = await worker.flush()

        assert notifier.sent == []
        assert result['dropped'] == 0
        assert result['delivered'] == 0

    @pytest.mark.asyncio
    async def test_no_destination_drops_batch(self, worker, registry, notifier):
        await worker.pending.enqueue(make_event("G1", "A", "foo"))

        result = await worker.flush()

        assert result['dropped'] == 1
        assert notifier.sent == []
        assert not registry.contains("G1", "A")
        assert await worker.pending.size("G1") == 0

    @pytest.mark.asyncio
    async def test_delivery_failure_is_not_retried(self, worker, registry, directory, notifier):
        await directory.register("G1", "C1")
        notifier.succeed = False
        await worker.pending.enqueue(make_event("G1", "A", "foo"))

        first = await worker.flush()
        notifier.succeed = True
        second = await worker.flush()

        assert first['dropped'] == 1
        assert second['tenants'] == 0
        assert notifier.sent == []
        assert not registry.contains("G1", "A")
        assert worker.get_stats()['batches_dropped'] == 1

    @pytest.mark.asyncio
    async def test_tenant_failures_are_isolated(self, worker, registry, directory, notifier):
        await directory.register("G1", "C1")
        await directory.register("G2", "C2")
        await directory.register("G3", "C3")
        notifier.raise_for.add("G1")
        notifier.fail_for.add("G2")
        for tenant_id in ("G1", "G2", "G3"):
            await worker.pending.enqueue(make_event(tenant_id, "A", "foo"))

        result = await worker.flush()

        assert result == {'tenants': 3, 'delivered': 1, 'dropped': 2}
        assert [sent[0] for sent in notifier.sent] == ["G3"]
        assert registry.contains("G3", "A")
        assert not registry.contains("G1", "A")
        assert worker.state == 'idle'

    @pytest.mark.asyncio
    async def test_empty_flush(self, worker, notifier):
        result = await worker.flush()

        assert result == {'tenants': 0, 'delivered': 0, 'dropped': 0}
        assert worker.get_stats()['ticks'] == 1

    @pytest.mark.asyncio
    async def test_stats(self, worker, directory):
        await directory.register("G1", "C1")
        await worker.pending.enqueue(make_event("G1", "A", "foo"))
        await worker.pending.enqueue(make_event("G1", "B", "bar"))

        await worker.flush()
        stats = worker.get_stats()

        assert stats['summaries_sent'] == 1
        assert stats['assets_notified'] == 2


@pytest.mark.unit
class TestWorkerLoop:

    def test_invalid_window(self, registry, directory, notifier):
        with pytest.raises(ValueError):
            AggregationWorker(registry, directory, notifier, notify_window=0)

    @pytest.mark.asyncio
    async def test_submitted_events_flushed_on_tick(self, registry, directory, notifier):
        await directory.register("G1", "C1")
        worker = AggregationWorker(registry, directory, notifier, notify_window=0.05)
        task = asyncio.create_task(worker.run())

        worker.submit(make_event("G1", "A", "foo"))
        worker.submit(make_event("G1", "B", "bar"))

        for _ in range(100):
            if notifier.sent:
                break
            await asyncio.sleep(0.01)

        await worker.stop()
        await asyncio.wait_for(task, timeout=1)

        assert len(notifier.sent) == 1
        assert {a.id for a in notifier.sent[0][2]} == {"A", "B"}
        assert worker.get_stats()['events_received'] == 2
        assert not worker.is_running

    @pytest.mark.asyncio
    async def test_stop_drops_pending(self, registry, directory, notifier):
        await directory.register("G1", "C1")
        worker = AggregationWorker(registry, directory, notifier, notify_window=60)
        task = asyncio.create_task(worker.run())

        worker.submit(make_event("G1", "A", "foo"))
        await worker.stop()
        await asyncio.wait_for(task, timeout=1)

        assert notifier.sent == []
        assert not registry.contains("G1", "A")
        assert worker.get_stats()['events_received'] == 1

    @pytest.mark.asyncio
    async def test_events_from_one_window_are_one_summary(self, registry, directory, notifier):
        await directory.register("G1", "C1")
        await directory.register("G2", "C2")
        worker = AggregationWorker(registry, directory, notifier, notify_window=0.1)
        task = asyncio.create_task(worker.run())

        for i in range(10):
            worker.submit(make_event("G1", str(i), f"e{i}"))
        worker.submit(make_event("G2", "X", "x"))

        for _ in range(100):
            if len(notifier.sent) >= 2:
                break
            await asyncio.sleep(0.01)

        await worker.stop()
        await asyncio.wait_for(task, timeout=1)

        by_tenant = {sent[0]: sent[2] for sent in notifier.sent}
        assert len(by_tenant["G1"]) == 10
        assert [a.id for a in by_tenant["G2"]] == ["X"]
