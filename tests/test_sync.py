import asyncio

import pytest

from vhc_offline.core.clients import Client, ClientRegistry
from vhc_offline.core.sync import SyncCoordinator, SyncManager
from vhc_offline.models.sync import SyncMessage, SyncResult

START = {"type": "SYNC_START"}
COMPLETE = {"type": "SYNC_COMPLETE"}


@pytest.fixture
def registry():
    reg = ClientRegistry()
    reg.claim()
    return reg


class TestClientRegistry:
    """Open tabs and their message channel"""

    def test_claim_marks_existing_clients(self):
        reg = ClientRegistry()
        a = reg.add(Client("/a"))
        assert reg.match_all() == []
        assert reg.claim() == 1
        assert a.controlled
        assert reg.match_all() == [a]

    def test_open_window_is_always_new(self, registry):
        first = registry.open_window("/")
        second = registry.open_window("/")
        assert first.id != second.id
        assert len(registry) == 2

    @pytest.mark.asyncio
    async def test_broadcast_reaches_controlled_only(self):
        reg = ClientRegistry()
        stranger = reg.add(Client("/"))
        tab = Client("/jobs")
        tab.controlled = True
        reg.add(tab)

        sent = await reg.broadcast(START)

        assert sent == 1
        assert tab.messages == [START]
        assert stranger.messages == []
        assert reg.match_all(include_uncontrolled=True) == [stranger, tab]

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_block_others(self, registry):
        tab = registry.add(Client("/"))
        seen = []

        def broken(_):
            raise RuntimeError("listener bug")

        tab.add_listener(broken)
        tab.add_listener(seen.append)
        await tab.post_message(START)

        assert seen == [START]


class TestSyncCoordinator:
    """Broadcast bracket around the replay"""

    @pytest.mark.asyncio
    async def test_start_and_complete_bracket_replay(self, registry):
        order = []
        tabs = [registry.add(Client("/a")), registry.add(Client("/b"))]
        tabs[0].add_listener(lambda m: order.append(m["type"]))

        async def replay():
            order.append("replay")
            return SyncResult(replayed=2)

        result = await SyncCoordinator(registry, replay).handle_sync("sync-pending-data")

        assert result.ok and result.replayed == 2
        assert order == ["SYNC_START", "replay", "SYNC_COMPLETE"]
        for tab in tabs:
            assert tab.messages == [START, COMPLETE]

    @pytest.mark.asyncio
    async def test_complete_is_sent_even_when_replay_throws(self, registry):
        tabs = [registry.add(Client("/a")), registry.add(Client("/b"))]

        async def replay():
            raise RuntimeError("replay exploded")

        coordinator = SyncCoordinator(registry, replay)
        result = await coordinator.handle_sync("sync-pending-data")

        assert result.ok is False
        assert isinstance(result.cause, RuntimeError)
        assert "replay exploded" in result.errors
        assert coordinator.last_result is result
        for tab in tabs:
            assert tab.messages == [START, COMPLETE]

    @pytest.mark.asyncio
    async def test_other_tags_are_ignored(self, registry):
        tab = registry.add(Client("/"))
        called = []

        async def replay():
            called.append(1)
            return SyncResult()

        assert await SyncCoordinator(registry, replay).handle_sync("something-else") is None
        assert tab.messages == []
        assert called == []

    @pytest.mark.asyncio
    async def test_without_replay_still_broadcasts(self, registry):
        tab = registry.add(Client("/"))
        result = await SyncCoordinator(registry).handle_sync("sync-pending-data")
        assert result.ok
        assert [SyncMessage.from_message(m) for m in tab.messages] == [
            SyncMessage.SYNC_START, SyncMessage.SYNC_COMPLETE,
        ]


class TestSyncManager:
    """Registrations dispatch immediately"""

    @pytest.mark.asyncio
    async def test_register_runs_coordinator(self, registry):
        tab = registry.add(Client("/"))
        manager = SyncManager(SyncCoordinator(registry))

        result = await manager.register("sync-pending-data")

        assert result.ok
        assert tab.messages == [START, COMPLETE]
        assert manager.registrations == 1
        assert manager.get_tags() == []

    @pytest.mark.asyncio
    async def test_registration_during_run_is_coalesced(self, registry):
        gate = asyncio.Event()
        runs = []

        async def replay():
            runs.append(1)
            await gate.wait()
            return SyncResult()

        manager = SyncManager(SyncCoordinator(registry, replay))
        first = asyncio.ensure_future(manager.register("sync-pending-data"))
        await asyncio.sleep(0)
        assert manager.get_tags() == ["sync-pending-data"]

        assert await manager.register("sync-pending-data") is None
        gate.set()
        result = await first

        assert result.ok
        assert runs == [1]
        assert manager.registrations == 2
