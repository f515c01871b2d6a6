"""SQLite-backed named response caches.

Each namespace mirrors one browser ``CacheStorage`` entry: an independently
addressable map from request identity (method + normalized URL) to the last
captured response. Namespaces are created on first ``open`` and removed
wholesale with ``delete``.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from pathlib import Path
from typing import Awaitable, Callable, Iterable, List, Optional

import aiosqlite

from ..models.exceptions import CacheException
from ..models.http import SWRequest, SWResponse
from .normalizer import url_normalizer

logger = logging.getLogger(__name__)

Fetch = Callable[[SWRequest], Awaitable[SWResponse]]

_CREATE_NAMESPACE_TABLE = """
CREATE TABLE IF NOT EXISTS cache_namespaces (
    name        TEXT PRIMARY KEY,
    created_at  REAL NOT NULL
)
"""

_CREATE_ENTRY_TABLE = """
CREATE TABLE IF NOT EXISTS cache_entries (
    namespace    TEXT NOT NULL,
    cache_key    TEXT NOT NULL,
    method       TEXT NOT NULL,
    url          TEXT NOT NULL,
    status       INTEGER NOT NULL,
    status_text  TEXT NOT NULL DEFAULT '',
    headers      TEXT NOT NULL DEFAULT '{}',
    body         BLOB,
    captured_at  REAL NOT NULL,
    PRIMARY KEY (namespace, cache_key)
)
"""


class Cache:
    def __init__(self, storage: "CacheStorage", name: str):
        self.storage = storage
        self.name = name

    @staticmethod
    def key_for(request: SWRequest) -> str:
        return url_normalizer.request_key(request.method, request.url)

    async def match(self, request: SWRequest) -> Optional[SWResponse]:
        db = await self.storage._conn()
        try:
            cursor = await db.execute(
                "SELECT status, status_text, headers, body, url, captured_at "
                "FROM cache_entries WHERE namespace = ? AND cache_key = ?",
                (self.name, self.key_for(request)),
            )
            row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise CacheException(f"Cache read failed: {e}", store=self.name)
        if row is None:
            return None
        status, status_text, headers, body, url, captured_at = row
        return SWResponse(
            status=int(status),
            status_text=status_text or "",
            headers=json.loads(headers or "{}"),
            body=bytes(body or b""),
            url=url,
            captured_at=float(captured_at),
            from_cache=True,
        )

    async def put(self, request: SWRequest, response: SWResponse) -> None:
        db = await self.storage._conn()
        try:
            await db.execute(
                "INSERT OR IGNORE INTO cache_namespaces (name, created_at) VALUES (?, ?)",
                (self.name, time.time()),
            )
            await db.execute(
                "INSERT OR REPLACE INTO cache_entries "
                "(namespace, cache_key, method, url, status, status_text, headers, body, captured_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    self.name,
                    self.key_for(request),
                    request.method,
                    request.url,
                    response.status,
                    response.status_text,
                    json.dumps(response.headers),
                    response.body,
                    time.time(),
                ),
            )
            await db.commit()
        except aiosqlite.Error as e:
            raise CacheException(f"Cache write failed: {e}", store=self.name)
        logger.debug(f"[{self.name}] stored {request.method} {request.url}")

    async def add_all(self, requests: Iterable[SWRequest], fetch: Fetch) -> int:
        pairs = []
        for req in requests:
            resp = await fetch(req)
            if not resp.ok:
                raise CacheException(
                    f"Precache request failed with status {resp.status}",
                    store=self.name,
                    context={"url": req.url},
                )
            pairs.append((req, resp))
        for req, resp in pairs:
            await self.put(req, resp)
        return len(pairs)

    async def delete(self, request: SWRequest) -> bool:
        db = await self.storage._conn()
        try:
            cursor = await db.execute(
                "DELETE FROM cache_entries WHERE namespace = ? AND cache_key = ?",
                (self.name, self.key_for(request)),
            )
            await db.commit()
        except aiosqlite.Error as e:
            raise CacheException(f"Cache delete failed: {e}", store=self.name)
        return cursor.rowcount > 0

    async def keys(self) -> List[str]:
        db = await self.storage._conn()
        try:
            cursor = await db.execute(
                "SELECT cache_key FROM cache_entries WHERE namespace = ? ORDER BY cache_key",
                (self.name,),
            )
            rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise CacheException(f"Cache read failed: {e}", store=self.name)
        return [r[0] for r in rows]

    async def count(self) -> int:
        db = await self.storage._conn()
        try:
            cursor = await db.execute(
                "SELECT COUNT(*) FROM cache_entries WHERE namespace = ?", (self.name,)
            )
            row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise CacheException(f"Cache read failed: {e}", store=self.name)
        return int(row[0]) if row else 0

    async def clear(self) -> None:
        db = await self.storage._conn()
        try:
            await db.execute("DELETE FROM cache_entries WHERE namespace = ?", (self.name,))
            await db.commit()
        except aiosqlite.Error as e:
            raise CacheException(f"Cache clear failed: {e}", store=self.name)

    def __repr__(self) -> str:
        return f"Cache(name={self.name!r})"


class CacheStorage:
    def __init__(self, db_path: str = ":memory:"):
        self.db_path = str(db_path)
        self._db: Optional[aiosqlite.Connection] = None
        self._lock = asyncio.Lock()

    async def _conn(self) -> aiosqlite.Connection:
        if self._db is not None:
            return self._db
        async with self._lock:
            if self._db is None:
                try:
                    if self.db_path != ":memory:":
                        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
                    db = await aiosqlite.connect(self.db_path)
                    await db.execute(_CREATE_NAMESPACE_TABLE)
                    await db.execute(_CREATE_ENTRY_TABLE)
                    await db.commit()
                except (aiosqlite.Error, OSError) as e:
                    raise CacheException(f"Failed to open cache storage: {e}",
                                         context={"db_path": self.db_path})
                self._db = db
                logger.debug(f"Cache storage opened at {self.db_path}")
        return self._db

    async def open(self, name: str) -> Cache:
        db = await self._conn()
        try:
            await db.execute(
                "INSERT OR IGNORE INTO cache_namespaces (name, created_at) VALUES (?, ?)",
                (name, time.time()),
            )
            await db.commit()
        except aiosqlite.Error as e:
            raise CacheException(f"Failed to open cache: {e}", store=name)
        return Cache(self, name)

    async def has(self, name: str) -> bool:
        db = await self._conn()
        try:
            cursor = await db.execute("SELECT 1 FROM cache_namespaces WHERE name = ?", (name,))
            row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise CacheException(f"Failed to look up cache: {e}", store=name)
        return row is not None

    async def keys(self) -> List[str]:
        db = await self._conn()
        try:
            cursor = await db.execute("SELECT name FROM cache_namespaces ORDER BY created_at, name")
            rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise CacheException(f"Failed to list caches: {e}")
        return [r[0] for r in rows]

    async def delete(self, name: str) -> bool:
        db = await self._conn()
        try:
            await db.execute("DELETE FROM cache_entries WHERE namespace = ?", (name,))
            cursor = await db.execute("DELETE FROM cache_namespaces WHERE name = ?", (name,))
            await db.commit()
        except aiosqlite.Error as e:
            raise CacheException(f"Failed to delete cache: {e}", store=name)
        return cursor.rowcount > 0

    async def match(self, request: SWRequest) -> Optional[SWResponse]:
        for name in await self.keys():
            hit = await Cache(self, name).match(request)
            if hit is not None:
                return hit
        return None

    async def close(self):
        if self._db is not None:
            await self._db.close()
            self._db = None

    async def __aenter__(self) -> "CacheStorage":
        await self._conn()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()
