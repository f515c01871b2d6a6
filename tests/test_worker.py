import pytest

from vhc_offline.core.lifecycle import LifecycleState
from vhc_offline.models.exceptions import NetworkException
from vhc_offline.models.http import SWRequest


class TestWorkerLifecycle:
    """install + activate through the facade"""

    @pytest.mark.asyncio
    async def test_start_installs_and_activates(self, worker, config):
        await worker.caches.open("wrenchd-ivhc-images-v0")

        deleted = await worker.start()

        assert deleted == ["wrenchd-ivhc-images-v0"]
        assert worker.lifecycle.state is LifecycleState.ACTIVE
        assert set(await worker.caches.keys()) == set(config.cache_names)

    @pytest.mark.asyncio
    async def test_uncontrolled_requests_pass_through(self, worker, network, origin):
        network.route("/api/jobs", body="[]")

        resp = await worker.handle_fetch(SWRequest(f"{origin}/api/jobs"))

        assert resp.status == 200
        assert await worker.caches.keys() == []


class TestWorkerFetch:
    """Routing requests to the right strategy and namespace"""

    @pytest.mark.asyncio
    async def test_api_response_lands_in_api_namespace(self, worker, network, config, origin):
        network.route("/api/jobs", body=[{"id": 1}])
        await worker.start()

        await worker.handle_fetch(SWRequest(f"{origin}/api/jobs"))

        api = await worker.caches.open(config.api_cache)
        assert (await api.match(SWRequest(f"{origin}/api/jobs"))).json() == [{"id": 1}]

    @pytest.mark.asyncio
    async def test_offline_api_served_from_cache(self, worker, network, origin):
        network.route("/api/jobs", body=[{"id": 1}])
        await worker.start()
        await worker.handle_fetch(SWRequest(f"{origin}/api/jobs"))

        network.down = True
        await worker.network.go_offline()
        resp = await worker.handle_fetch(SWRequest(f"{origin}/api/jobs"))

        assert resp.from_cache
        assert resp.json() == [{"id": 1}]

    @pytest.mark.asyncio
    async def test_online_api_failure_propagates(self, worker, network, origin):
        network.route("/api/jobs", body="[]")
        await worker.start()
        await worker.handle_fetch(SWRequest(f"{origin}/api/jobs"))

        network.down = True
        with pytest.raises(NetworkException):
            await worker.handle_fetch(SWRequest(f"{origin}/api/jobs"))

    @pytest.mark.asyncio
    async def test_images_use_image_namespace(self, worker, network, config, origin):
        network.route("/uploads/brake.jpg", body=b"jpg")
        await worker.start()
        req = SWRequest(f"{origin}/uploads/brake.jpg", destination="image")

        await worker.handle_fetch(req)
        network.down = True
        resp = await worker.handle_fetch(req)

        assert resp.body == b"jpg"
        images = await worker.caches.open(config.image_cache)
        assert await images.count() == 1

    @pytest.mark.asyncio
    async def test_app_shell_available_offline(self, worker, network, origin):
        await worker.start()
        network.down = True

        shell = await worker.handle_fetch(SWRequest(f"{origin}/", destination="document"))
        unknown = await worker.handle_fetch(SWRequest(f"{origin}/reports", destination="document"))

        assert shell.text == "asset /"
        assert unknown.status == 503


class TestWorkerSync:
    """Sync registrations replay the pending queue"""

    @pytest.mark.asyncio
    async def test_register_sync_replays_queue(self, worker, session, origin):
        await worker.start()
        tab = worker.connect_client("/")
        await worker.storage.add_pending_operation("CREATE_JOB", "/api/jobs", "POST", {"vrm": "AB12CDE"})

        result = await worker.register_sync()

        assert result.ok and result.replayed == 1
        assert session.sent == [("POST", f"{origin}/api/jobs", {"vrm": "AB12CDE"})]
        assert tab.messages == [{"type": "SYNC_START"}, {"type": "SYNC_COMPLETE"}]

    @pytest.mark.asyncio
    async def test_unknown_tag_is_ignored(self, worker, session):
        await worker.storage.add_pending_operation("CREATE_JOB", "/api/jobs")
        assert await worker.handle_sync("periodic-refresh") is None
        assert session.sent == []
