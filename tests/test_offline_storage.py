import time

import pytest

from vhc_offline.core.offline_storage import OfflineStorage
from vhc_offline.models.exceptions import StorageException, ValidationException
from vhc_offline.models.sync import PendingOpType


class TestRecords:
    """Keyed stores and their domain helpers"""

    @pytest.mark.asyncio
    async def test_put_stamps_timestamp(self, storage):
        before = int(time.time() * 1000)
        saved = await storage.save_job({"id": 7, "userId": 1, "vrm": "AB12CDE"})

        assert saved["timestamp"] >= before
        assert await storage.get("jobs", 7) == saved

    @pytest.mark.asyncio
    async def test_put_replaces_existing_record(self, storage):
        await storage.save_vehicle({"vrm": "AB12CDE", "make": "Ford"})
        await storage.save_vehicle({"vrm": "AB12CDE", "make": "Vauxhall"})

        assert (await storage.get_vehicle("AB12CDE"))["make"] == "Vauxhall"
        assert len(await storage.get_all("vehicles")) == 1

    @pytest.mark.asyncio
    async def test_jobs_are_indexed_by_user(self, storage):
        await storage.save_job({"id": 1, "userId": 5})
        await storage.save_job({"id": 2, "userId": 6})
        await storage.save_job({"id": 3, "userId": 5})

        assert sorted(j["id"] for j in await storage.get_jobs(5)) == [1, 3]
        assert await storage.get_jobs(99) == []

    @pytest.mark.asyncio
    async def test_inspection_sheets_keyed_by_job(self, storage):
        await storage.save_vhc_data(7, {"tyres": "amber"})
        await storage.save_fit_finish_data(7, {"signed": True})

        vhc = await storage.get_vhc_data(7)
        assert vhc["jobId"] == 7 and vhc["tyres"] == "amber"
        assert (await storage.get_fit_finish_data(7))["signed"] is True
        assert await storage.get_vhc_data(8) is None

    @pytest.mark.asyncio
    async def test_customer_and_user_data(self, storage):
        await storage.save_customer({"id": "c1", "name": "J Smith"})
        await storage.save_user_data({"id": 5, "role": "technician"})

        assert (await storage.get_customer("c1"))["name"] == "J Smith"
        assert (await storage.get_user_data(5))["role"] == "technician"

    @pytest.mark.asyncio
    async def test_delete(self, storage):
        await storage.save_customer({"id": 1})
        assert await storage.delete("customers", 1) is True
        assert await storage.delete("customers", 1) is False
        assert await storage.get_customer(1) is None

    @pytest.mark.asyncio
    async def test_unknown_store_is_rejected(self, storage):
        with pytest.raises(StorageException):
            await storage.put("invoices", {"id": 1})
        with pytest.raises(StorageException):
            await storage.get("invoices", 1)

    @pytest.mark.asyncio
    async def test_record_without_key_is_rejected(self, storage):
        with pytest.raises(StorageException):
            await storage.save_vehicle({"make": "Ford"})

    @pytest.mark.asyncio
    async def test_data_survives_reopen(self, tmp_path):
        path = str(tmp_path / "o.db")
        first = OfflineStorage(path)
        await first.save_job({"id": 1, "userId": 2})
        await first.close()

        second = OfflineStorage(path)
        try:
            assert (await second.get("jobs", 1))["userId"] == 2
        finally:
            await second.close()

    @pytest.mark.asyncio
    async def test_init_failure_raises_storage_error(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        storage = OfflineStorage(str(blocker / "offline.db"))

        with pytest.raises(StorageException):
            await storage.init()
        assert not storage.initialized


class TestPendingQueue:
    """Queued writes waiting for connectivity"""

    @pytest.mark.asyncio
    async def test_items_come_back_in_insertion_order(self, storage):
        a = await storage.add_pending_operation("CREATE_JOB", "/api/jobs", "POST", {"vrm": "A"})
        b = await storage.add_pending_operation(PendingOpType.UPDATE_VHC, "/api/vhc/1", "put", {"x": 1})

        items = await storage.get_pending_operations()

        assert [i.id for i in items] == [a.id, b.id]
        assert a.id < b.id
        assert items[1].op_type is PendingOpType.UPDATE_VHC
        assert items[1].method == "PUT"
        assert items[0].data == {"vrm": "A"}
        assert await storage.count_pending_operations() == 2

    @pytest.mark.asyncio
    async def test_unknown_operation_type(self, storage):
        with pytest.raises(ValidationException):
            await storage.add_pending_operation("ARCHIVE_JOB", "/api/jobs/1")

    @pytest.mark.asyncio
    async def test_clear_and_record_failure(self, storage):
        a = await storage.add_pending_operation("DELETE_JOB", "/api/jobs/1", "DELETE")
        b = await storage.add_pending_operation("UPDATE_JOB", "/api/jobs/2", "PUT")

        await storage.record_pending_failure(b.id, "HTTP 502")
        assert await storage.clear_pending_operation(a.id) is True
        assert await storage.clear_pending_operation(a.id) is False

        [left] = await storage.get_pending_operations()
        assert left.id == b.id
        assert left.attempts == 1
        assert left.last_error == "HTTP 502"

    @pytest.mark.asyncio
    async def test_clear_all(self, storage):
        await storage.save_job({"id": 1, "userId": 1})
        await storage.add_pending_operation("CREATE_JOB", "/api/jobs")

        await storage.clear_all()

        assert await storage.get_all("jobs") == []
        assert await storage.count_pending_operations() == 0
