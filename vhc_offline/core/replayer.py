import asyncio
import logging
from typing import Optional, Dict
from urllib.parse import urljoin

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..models.exceptions import NetworkException, SyncException
from ..models.sync import PendingSyncItem, SyncResult
from .offline_storage import OfflineStorage

logger = logging.getLogger(__name__)

# kept in the queue and retried on the next run
RETRYABLE_STATUSES = frozenset({401, 403, 408, 429})


class PendingReplayer:
    """Drains the pending queue in FIFO order against the live API.

    Only a 2xx counts as delivered. Redirects, 5xx, transport errors and the
    statuses in ``RETRYABLE_STATUSES`` keep the item and stop the run, so
    later writes never overtake an earlier one. Any other 4xx is dropped and
    the run is reported as not ok.
    """

    def __init__(
        self,
        storage: OfflineStorage,
        origin: str,
        timeout: int = 30,
        max_retries: int = 2,
        backoff_factor: float = 0.5,
        user_agent: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        session: Optional[requests.Session] = None,
    ):
        self.storage = storage
        self.origin = origin.rstrip("/") + "/"
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_factor = backoff_factor
        self.user_agent = user_agent
        self.headers = dict(headers or {})
        self.session = session or self._create_session()

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.trust_env = True

        session.headers.update({
            "Accept": "application/json",
            "Content-Type": "application/json",
        })
        if self.user_agent:
            session.headers["User-Agent"] = self.user_agent
        session.headers.update(self.headers)

        # only connection failures are retried; a write that reached the
        # server is never resent here
        retry = Retry(
            total=self.max_retries,
            connect=self.max_retries,
            read=0,
            status=0,
            other=0,
            backoff_factor=self.backoff_factor,
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        return session

    def _send(self, item: PendingSyncItem) -> requests.Response:
        url = urljoin(self.origin, item.endpoint)
        logger.debug(f"Replaying #{item.id} {item.method} {url}")
        return self.session.request(
            item.method,
            url,
            json=item.data if item.data else None,
            timeout=self.timeout,
            allow_redirects=False,
        )

    async def drain(self) -> SyncResult:
        items = await self.storage.get_pending_operations()
        result = SyncResult(remaining=len(items))

        for item in items:
            try:
                resp = await asyncio.to_thread(self._send, item)
            except requests.exceptions.RequestException as e:
                await self.storage.record_pending_failure(item.id, str(e))
                err = NetworkException(f"Replay of #{item.id} failed: {e}", url=item.endpoint)
                logger.warning(str(err))
                result.ok = False
                result.cause = err
                result.add_error(str(err))
                break

            status = int(resp.status_code)
            if 200 <= status < 300:
                await self.storage.clear_pending_operation(item.id)
                result.replayed += 1
                result.remaining -= 1
            elif 400 <= status < 500 and status not in RETRYABLE_STATUSES:
                await self.storage.clear_pending_operation(item.id)
                result.dropped += 1
                result.remaining -= 1
                msg = f"Dropped #{item.id} {item.op_type.value}: server rejected it with {status}"
                logger.warning(msg)
                result.ok = False
                result.add_error(msg)
            else:
                await self.storage.record_pending_failure(item.id, f"HTTP {status}")
                err = SyncException(f"Replay of #{item.id} got {status}", item_id=item.id)
                logger.warning(str(err))
                result.ok = False
                result.cause = err
                result.add_error(str(err))
                break

        logger.info(f"Replay finished: {result.replayed} replayed, {result.dropped} dropped, {result.remaining} remaining")
        return result

    def close(self):
        if self.session:
            try:
                self.session.close()
            except Exception as e:
                logger.debug(f"Error closing replay session: {e}")
