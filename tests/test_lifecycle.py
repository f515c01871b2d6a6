import pytest

from config.constants import STATIC_MANIFEST
from vhc_offline.core.cache_store import CacheStorage
from vhc_offline.core.clients import Client, ClientRegistry
from vhc_offline.core.lifecycle import LifecycleManager, LifecycleState
from vhc_offline.models.exceptions import InstallationException, LifecycleException
from vhc_offline.models.http import SWRequest


@pytest.fixture
def clients():
    return ClientRegistry()


@pytest.fixture
def lifecycle(caches, config, fetcher, clients):
    return LifecycleManager(caches, config, fetcher, clients)


class TestInstall:
    """Install precaches the shell and opens every namespace"""

    @pytest.mark.asyncio
    async def test_install_creates_three_namespaces(self, lifecycle, caches, config):
        count = await lifecycle.install()

        assert count == len(STATIC_MANIFEST)
        assert set(await caches.keys()) == set(config.cache_names)
        assert lifecycle.state is LifecycleState.INSTALLED
        assert lifecycle.skip_waiting is True

    @pytest.mark.asyncio
    async def test_static_namespace_holds_manifest(self, lifecycle, caches, config, origin):
        await lifecycle.install()

        static = await caches.open(config.static_cache)
        for path in STATIC_MANIFEST:
            hit = await static.match(SWRequest(f"{origin}{path}"))
            assert hit is not None, path
            assert hit.text == f"asset {path}"

    @pytest.mark.asyncio
    async def test_failed_precache_marks_redundant(self, lifecycle, caches, config, network):
        network.route("/manifest.json", status=500)

        with pytest.raises(InstallationException):
            await lifecycle.install()

        assert lifecycle.state is LifecycleState.REDUNDANT
        assert lifecycle.skip_waiting is False
        assert await (await caches.open(config.static_cache)).count() == 0

    @pytest.mark.asyncio
    async def test_install_can_be_retried(self, lifecycle, network):
        network.down = True
        with pytest.raises(InstallationException):
            await lifecycle.install()

        network.down = False
        await lifecycle.install()
        assert lifecycle.state is LifecycleState.INSTALLED


class TestActivate:
    """Activate evicts old generations and claims clients"""

    @pytest.mark.asyncio
    async def test_activate_evicts_stale_and_claims(self, lifecycle, caches, config, clients):
        await caches.open("wrenchd-ivhc-static-v0")
        tabs = [clients.add(Client("/jobs")), clients.add(Client("/vhc/3"))]
        await lifecycle.install()

        deleted = await lifecycle.activate()

        assert deleted == ["wrenchd-ivhc-static-v0"]
        assert set(await caches.keys()) == set(config.cache_names)
        assert all(t.controlled for t in tabs)
        assert lifecycle.is_active

    @pytest.mark.asyncio
    async def test_second_activate_deletes_nothing(self, lifecycle, caches):
        await caches.open("wrenchd-ivhc-api-v0")
        await lifecycle.install()

        assert await lifecycle.activate() == ["wrenchd-ivhc-api-v0"]
        assert await lifecycle.activate() == []

    @pytest.mark.asyncio
    async def test_activate_before_install_is_rejected(self, lifecycle):
        with pytest.raises(LifecycleException):
            await lifecycle.activate()
        assert lifecycle.state is LifecycleState.PARSED

    @pytest.mark.asyncio
    async def test_clients_opened_after_activation_are_controlled(self, lifecycle, clients):
        await lifecycle.install()
        await lifecycle.activate()

        assert clients.add(Client("/")).controlled is True


class TestRestore:
    """A new process resumes an installed generation"""

    @pytest.mark.asyncio
    async def test_restore_after_install(self, lifecycle, caches, config, fetcher):
        await lifecycle.install()
        await lifecycle.activate()
        await caches.close()

        async with CacheStorage(config.cache_db_path) as reopened:
            fresh = LifecycleManager(reopened, config, fetcher, ClientRegistry())
            assert await fresh.restore() is True
            assert fresh.is_active

    @pytest.mark.asyncio
    async def test_restore_without_install(self, lifecycle):
        assert await lifecycle.restore() is False
        assert lifecycle.state is LifecycleState.PARSED
