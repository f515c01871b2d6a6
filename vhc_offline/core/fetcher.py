import logging
from typing import Optional, Dict

import httpx

from ..models.exceptions import NetworkException
from ..models.http import SWRequest, SWResponse

logger = logging.getLogger(__name__)


class NetworkFetcher:
    def __init__(
        self,
        timeout: Optional[float] = 15.0,
        user_agent: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        proxy: Optional[str] = None,
    ):
        self.timeout = timeout
        self.user_agent = user_agent
        self.headers = dict(headers or {})
        self.transport = transport
        self.proxy = proxy
        self.requests_made = 0
        self._client: Optional[httpx.AsyncClient] = None

    def _create_client(self) -> httpx.AsyncClient:
        hdrs = dict(self.headers)
        if self.user_agent:
            hdrs.setdefault("User-Agent", self.user_agent)
        kwargs = dict(
            headers=hdrs,
            timeout=httpx.Timeout(self.timeout),
            follow_redirects=True,
        )
        if self.transport is not None:
            kwargs["transport"] = self.transport
        elif self.proxy:
            kwargs["proxy"] = self.proxy
        return httpx.AsyncClient(**kwargs)

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = self._create_client()
        return self._client

    async def fetch(self, request: SWRequest) -> SWResponse:
        self.requests_made += 1
        logger.debug(f"Fetching {request.method} {request.url}")
        try:
            r = await self.client.request(
                request.method,
                request.url,
                headers=request.headers or None,
                content=request.body,
            )
        except httpx.TimeoutException as e:
            logger.warning(f"Timeout fetching {request.url}")
            raise NetworkException(f"Timeout: {e}", url=request.url) from e
        except httpx.TransportError as e:
            logger.warning(f"Network error fetching {request.url}: {e}")
            raise NetworkException(f"Network request failed: {e}", url=request.url) from e

        resp = SWResponse.from_httpx(r)
        logger.debug(f"Fetched {request.url} - {resp.status}")
        return resp

    async def __call__(self, request: SWRequest) -> SWResponse:
        return await self.fetch(request)

    async def close(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None
