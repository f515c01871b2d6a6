"""Local persistent storage for offline work.

Holds the records the app needs while disconnected (jobs, VHC and fit &
finish sheets, vehicles, customers, user data) plus the FIFO queue of writes
waiting to be replayed against the API.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import aiosqlite

from config.constants import OFFLINE_STORES
from ..models.exceptions import StorageException
from ..models.sync import PendingOpType, PendingSyncItem

logger = logging.getLogger(__name__)

_CREATE_RECORDS_TABLE = """
CREATE TABLE IF NOT EXISTS records (
    store       TEXT NOT NULL,
    record_key  TEXT NOT NULL,
    user_id     TEXT,
    data        TEXT NOT NULL,
    timestamp   INTEGER NOT NULL,
    PRIMARY KEY (store, record_key)
)
"""

_CREATE_PENDING_TABLE = """
CREATE TABLE IF NOT EXISTS pending_ops (
    seq         INTEGER PRIMARY KEY AUTOINCREMENT,
    type        TEXT NOT NULL,
    endpoint    TEXT NOT NULL,
    method      TEXT NOT NULL,
    data        TEXT NOT NULL,
    timestamp   INTEGER NOT NULL,
    attempts    INTEGER NOT NULL DEFAULT 0,
    last_error  TEXT
)
"""

_CREATE_USER_INDEX = "CREATE INDEX IF NOT EXISTS idx_records_user ON records(store, user_id)"


def _now_ms() -> int:
    return int(time.time() * 1000)


class OfflineStorage:
    def __init__(self, db_path: str = ":memory:"):
        self.db_path = str(db_path)
        self._db: Optional[aiosqlite.Connection] = None
        self._lock = asyncio.Lock()

    @property
    def initialized(self) -> bool:
        return self._db is not None

    async def init(self) -> None:
        async with self._lock:
            if self._db is not None:
                return
            try:
                if self.db_path != ":memory:":
                    Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
                db = await aiosqlite.connect(self.db_path)
                await db.execute(_CREATE_RECORDS_TABLE)
                await db.execute(_CREATE_PENDING_TABLE)
                await db.execute(_CREATE_USER_INDEX)
                await db.commit()
            except (aiosqlite.Error, OSError) as e:
                raise StorageException(f"Failed to open offline storage: {e}",
                                       context={"db_path": self.db_path})
            self._db = db
            logger.debug(f"Offline storage opened at {self.db_path}")

    async def _conn(self) -> aiosqlite.Connection:
        if self._db is None:
            await self.init()
        return self._db

    def _key_path(self, store: str) -> str:
        try:
            return OFFLINE_STORES[store]
        except KeyError:
            raise StorageException(f"Unknown store: {store}", store=store)

    # generic record access

    async def get(self, store: str, key: Union[str, int]) -> Optional[Dict[str, Any]]:
        self._key_path(store)
        db = await self._conn()
        try:
            cursor = await db.execute(
                "SELECT data FROM records WHERE store = ? AND record_key = ?", (store, str(key))
            )
            row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StorageException(f"Read failed: {e}", store=store)
        return json.loads(row[0]) if row else None

    async def get_all(self, store: str) -> List[Dict[str, Any]]:
        self._key_path(store)
        db = await self._conn()
        try:
            cursor = await db.execute(
                "SELECT data FROM records WHERE store = ? ORDER BY timestamp, record_key", (store,)
            )
            rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise StorageException(f"Read failed: {e}", store=store)
        return [json.loads(r[0]) for r in rows]

    async def put(self, store: str, data: Dict[str, Any]) -> Dict[str, Any]:
        key_path = self._key_path(store)
        if data.get(key_path) in (None, ""):
            raise StorageException(f"Record is missing key '{key_path}'", store=store)
        record = dict(data)
        record["timestamp"] = _now_ms()
        db = await self._conn()
        try:
            await db.execute(
                "INSERT OR REPLACE INTO records (store, record_key, user_id, data, timestamp) "
                "VALUES (?, ?, ?, ?, ?)",
                (
                    store,
                    str(record[key_path]),
                    str(record["userId"]) if record.get("userId") is not None else None,
                    json.dumps(record, default=str),
                    record["timestamp"],
                ),
            )
            await db.commit()
        except aiosqlite.Error as e:
            raise StorageException(f"Write failed: {e}", store=store)
        return record

    async def delete(self, store: str, key: Union[str, int]) -> bool:
        self._key_path(store)
        db = await self._conn()
        try:
            cursor = await db.execute(
                "DELETE FROM records WHERE store = ? AND record_key = ?", (store, str(key))
            )
            await db.commit()
        except aiosqlite.Error as e:
            raise StorageException(f"Delete failed: {e}", store=store)
        return cursor.rowcount > 0

    # jobs

    async def save_job(self, job: Dict[str, Any]) -> Dict[str, Any]:
        return await self.put("jobs", job)

    async def get_jobs(self, user_id: Union[str, int]) -> List[Dict[str, Any]]:
        db = await self._conn()
        try:
            cursor = await db.execute(
                "SELECT data FROM records WHERE store = 'jobs' AND user_id = ? ORDER BY timestamp",
                (str(user_id),),
            )
            rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise StorageException(f"Read failed: {e}", store="jobs")
        return [json.loads(r[0]) for r in rows]

    # inspection sheets

    async def save_vhc_data(self, job_id: Union[str, int], data: Dict[str, Any]) -> Dict[str, Any]:
        return await self.put("vhc_data", {"jobId": job_id, **data})

    async def get_vhc_data(self, job_id: Union[str, int]) -> Optional[Dict[str, Any]]:
        return await self.get("vhc_data", job_id)

    async def save_fit_finish_data(self, job_id: Union[str, int], data: Dict[str, Any]) -> Dict[str, Any]:
        return await self.put("fit_finish_data", {"jobId": job_id, **data})

    async def get_fit_finish_data(self, job_id: Union[str, int]) -> Optional[Dict[str, Any]]:
        return await self.get("fit_finish_data", job_id)

    # reference data

    async def save_vehicle(self, vehicle: Dict[str, Any]) -> Dict[str, Any]:
        return await self.put("vehicles", vehicle)

    async def get_vehicle(self, vrm: str) -> Optional[Dict[str, Any]]:
        return await self.get("vehicles", vrm)

    async def save_customer(self, customer: Dict[str, Any]) -> Dict[str, Any]:
        return await self.put("customers", customer)

    async def get_customer(self, customer_id: Union[str, int]) -> Optional[Dict[str, Any]]:
        return await self.get("customers", customer_id)

    async def save_user_data(self, user_data: Dict[str, Any]) -> Dict[str, Any]:
        return await self.put("user_data", user_data)

    async def get_user_data(self, user_id: Union[str, int]) -> Optional[Dict[str, Any]]:
        return await self.get("user_data", user_id)

    # pending sync queue

    async def add_pending_operation(
        self,
        op_type: Union[PendingOpType, str],
        endpoint: str,
        method: str = "POST",
        data: Optional[Dict[str, Any]] = None,
    ) -> PendingSyncItem:
        item = PendingSyncItem(op_type=op_type, endpoint=endpoint, method=method, data=data or {})
        db = await self._conn()
        try:
            cursor = await db.execute(
                "INSERT INTO pending_ops (type, endpoint, method, data, timestamp) VALUES (?, ?, ?, ?, ?)",
                (item.op_type.value, item.endpoint, item.method, json.dumps(item.data, default=str), item.timestamp),
            )
            await db.commit()
        except aiosqlite.Error as e:
            raise StorageException(f"Failed to queue operation: {e}", store="pending_ops")
        item.id = cursor.lastrowid
        logger.debug(f"Queued {item.op_type.value} {item.method} {item.endpoint} as #{item.id}")
        return item

    async def get_pending_operations(self) -> List[PendingSyncItem]:
        db = await self._conn()
        try:
            cursor = await db.execute(
                "SELECT seq, type, endpoint, method, data, timestamp, attempts, last_error "
                "FROM pending_ops ORDER BY seq"
            )
            rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise StorageException(f"Read failed: {e}", store="pending_ops")
        return [PendingSyncItem.from_row(r) for r in rows]

    async def count_pending_operations(self) -> int:
        db = await self._conn()
        cursor = await db.execute("SELECT COUNT(*) FROM pending_ops")
        row = await cursor.fetchone()
        return int(row[0]) if row else 0

    async def clear_pending_operation(self, item_id: int) -> bool:
        db = await self._conn()
        try:
            cursor = await db.execute("DELETE FROM pending_ops WHERE seq = ?", (item_id,))
            await db.commit()
        except aiosqlite.Error as e:
            raise StorageException(f"Delete failed: {e}", store="pending_ops")
        return cursor.rowcount > 0

    async def record_pending_failure(self, item_id: int, error: str) -> None:
        db = await self._conn()
        try:
            await db.execute(
                "UPDATE pending_ops SET attempts = attempts + 1, last_error = ? WHERE seq = ?",
                (error[:500], item_id),
            )
            await db.commit()
        except aiosqlite.Error as e:
            raise StorageException(f"Update failed: {e}", store="pending_ops")

    async def clear_all(self) -> None:
        db = await self._conn()
        try:
            await db.execute("DELETE FROM records")
            await db.execute("DELETE FROM pending_ops")
            await db.commit()
        except aiosqlite.Error as e:
            raise StorageException(f"Clear failed: {e}")
        logger.info("Offline storage cleared")

    async def close(self):
        if self._db is not None:
            await self._db.close()
            self._db = None
