# =============================================================================
# tests/conftest.py
# Shared fixtures: simulated network, temporary databases, worker wiring
# =============================================================================

import json
from typing import Any, Dict, List, Optional, Tuple, Union

import httpx
import pytest
import pytest_asyncio
import requests

from config.constants import STATIC_MANIFEST
from vhc_offline.core.cache_store import CacheStorage
from vhc_offline.core.fetcher import NetworkFetcher
from vhc_offline.core.offline_storage import OfflineStorage
from vhc_offline.core.replayer import PendingReplayer
from vhc_offline.core.worker import OfflineWorker
from vhc_offline.models.config import WorkerConfig

ORIGIN = "http://vhc.test"


class MockNetwork:
    """Route table served through ``httpx.MockTransport``.

    Unknown paths answer 404. Setting ``down`` makes every request fail at
    the transport level, the way an unreachable host does.
    """

    def __init__(self):
        self.routes: Dict[Tuple[str, str], Tuple[int, bytes, Dict[str, str]]] = {}
        self.calls: List[str] = []
        self.down = False

    def route(self, path: str, status: int = 200, body: Union[bytes, str, dict, list] = b"",
              headers: Optional[Dict[str, str]] = None, method: str = "GET"):
        hdrs = dict(headers or {})
        if isinstance(body, (dict, list)):
            body = json.dumps(body).encode("utf-8")
            hdrs.setdefault("Content-Type", "application/json")
        elif isinstance(body, str):
            body = body.encode("utf-8")
        self.routes[(method.upper(), path)] = (status, body, hdrs)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(f"{request.method} {request.url.path}")
        if self.down:
            raise httpx.ConnectError("network unreachable", request=request)
        status, body, headers = self.routes.get(
            (request.method, request.url.path), (404, b"Not Found", {})
        )
        return httpx.Response(status, content=body, headers=headers)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


class StubSession:
    """Stand-in for ``requests.Session`` used by the replayer.

    ``outcomes`` maps a full URL to a status code or an exception to raise.
    """

    def __init__(self, outcomes: Optional[Dict[str, Any]] = None):
        self.outcomes = outcomes or {}
        self.sent: List[Tuple[str, str, Any]] = []
        self.closed = False

    def request(self, method, url, json=None, timeout=None, allow_redirects=True):
        self.sent.append((method, url, json))
        outcome = self.outcomes.get(url, 200)
        if isinstance(outcome, Exception):
            raise outcome
        resp = requests.Response()
        resp.status_code = outcome
        resp.url = url
        return resp

    def close(self):
        self.closed = True


@pytest.fixture
def network():
    """Network with every static manifest entry available"""
    net = MockNetwork()
    for path in STATIC_MANIFEST:
        net.route(path, body=f"asset {path}")
    return net


@pytest_asyncio.fixture
async def fetcher(network):
    f = NetworkFetcher(timeout=5.0, transport=network.transport())
    yield f
    await f.close()


@pytest_asyncio.fixture
async def caches(tmp_path):
    storage = CacheStorage(str(tmp_path / "caches.db"))
    yield storage
    await storage.close()


@pytest_asyncio.fixture
async def storage(tmp_path):
    s = OfflineStorage(str(tmp_path / "offline.db"))
    await s.init()
    yield s
    await s.close()


@pytest.fixture
def session():
    return StubSession()


@pytest.fixture
def config(tmp_path):
    return WorkerConfig(
        origin=ORIGIN,
        cache_db_path=str(tmp_path / "caches.db"),
        storage_db_path=str(tmp_path / "offline.db"),
    )


@pytest_asyncio.fixture
async def worker(config, network, storage, session):
    w = OfflineWorker(
        config,
        storage=storage,
        fetch=NetworkFetcher(timeout=5.0, transport=network.transport()),
        replayer=PendingReplayer(storage, ORIGIN, session=session),
    )
    yield w
    await w.close()


@pytest.fixture
def origin():
    return ORIGIN
