"""Fetch-vs-cache policies, one per request class.

Every strategy is a plain coroutine over a fetch callable and a namespace
``Cache``, so it can be driven without a worker. Any cache write completes
before the strategy returns.
"""

import logging

from ..models.exceptions import CacheException
from ..models.http import SWRequest, SWResponse
from .cache_store import Cache, Fetch

logger = logging.getLogger(__name__)

CACHEABLE_METHODS = ("GET", "HEAD")


async def _store(cache: Cache, request: SWRequest, response: SWResponse) -> None:
    try:
        await cache.put(request, response)
    except CacheException as e:
        logger.error(f"Failed to cache {request.url}: {e}")


async def network_first_api(request: SWRequest, fetch: Fetch, cache: Cache, connectivity) -> SWResponse:
    """Live response first; cached copy only when the platform reports offline.

    ``connectivity`` is anything with an ``online`` attribute. A failed fetch
    while still online is re-raised so a server fault never turns into stale
    authenticated data. Only GET and HEAD responses are stored or served; a
    write that fails always re-raises.
    """
    cacheable = request.method in CACHEABLE_METHODS
    try:
        response = await fetch(request)
    except Exception as e:
        if not cacheable:
            logger.info(f"API {request.method} failed, writes are never served from cache: {request.url}")
            raise
        if connectivity.online:
            logger.warning(f"API request failed while online, not serving cache: {request.url} ({e})")
            raise
        cached = await cache.match(request)
        if cached is None:
            logger.info(f"API request failed offline with no cached copy: {request.url}")
            raise
        logger.info(f"Serving cached API response for {request.url}")
        return cached

    if response.ok and cacheable:
        await _store(cache, request, response)
    return response


async def cache_first_image(request: SWRequest, fetch: Fetch, cache: Cache) -> SWResponse:
    cached = await cache.match(request)
    if cached is not None:
        return cached

    try:
        response = await fetch(request)
    except Exception as e:
        logger.debug(f"Image fetch failed, returning 404: {request.url} ({e})")
        return SWResponse.not_found()

    if response.ok:
        await _store(cache, request, response)
    return response


async def network_first_static(request: SWRequest, fetch: Fetch, cache: Cache) -> SWResponse:
    try:
        response = await fetch(request)
    except Exception as e:
        cached = await cache.match(request)
        if cached is not None:
            logger.debug(f"Static fetch failed, serving cache: {request.url} ({e})")
            return cached
        logger.info(f"Static fetch failed with no cached copy: {request.url}")
        return SWResponse.offline()

    if response.ok:
        await _store(cache, request, response)
    return response
