"""看板路由测试 -- 分组、统计、缓存与调试响应头"""

from httpx import AsyncClient

from capicar.core.config import TASKS_TABLE
from capicar.core.store import InMemoryRecordStore


class TestDashboard:
    async def test_grouping_and_stats(self, client: AsyncClient):
        resp = await client.get("/api/dashboard")
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        data = body["data"]

        orders = {
            bucket: [t["orderName"] for t in tasks] for bucket, tasks in data["tasks"].items()
        }
        assert orders == {
            "pending": ["#1001"],
            "picking": ["#1002"],
            "packed": [],
            "inspecting": ["#1003", "#1004"],
            "completed": ["#1006"],
            "paused": ["#1005"],
            "cancelled": ["#1007"],
        }
        assert data["stats"] == {
            "pending": 1,
            "picking": 1,
            "packed": 0,
            "inspecting": 2,
            "completed": 1,
            "paused": 1,
            "cancelled": 1,
            "total": 7,
        }
        assert data["lastUpdated"] == resp.headers["X-Dashboard-Generated"]

    async def test_inspecting_merges_correction_states(
        self, client: AsyncClient, memory_store: InMemoryRecordStore
    ):
        await memory_store.update_record(
            TASKS_TABLE, "recTaskPending", {"status": "Correction_Needed"}
        )
        resp = await client.get("/api/dashboard")
        inspecting = resp.json()["data"]["tasks"]["inspecting"]
        assert [t["status"] for t in inspecting] == ["Inspecting", "Correction_Needed", "Correcting"]

    async def test_paused_completed_task_stays_completed(
        self, client: AsyncClient, memory_store: InMemoryRecordStore
    ):
        await memory_store.update_record(TASKS_TABLE, "recTaskCompleted", {"is_paused": True})
        resp = await client.get("/api/dashboard")
        tasks = resp.json()["data"]["tasks"]
        assert "#1006" in [t["orderName"] for t in tasks["completed"]]
        assert "#1006" in [t["orderName"] for t in tasks["paused"]]

    async def test_no_cache_headers(self, client: AsyncClient):
        resp = await client.get("/api/dashboard")
        assert resp.headers["Cache-Control"] == "no-cache, no-store, must-revalidate"
        assert resp.headers["Pragma"] == "no-cache"
        assert resp.headers["Expires"] == "0"
        assert "X-Server-Timestamp" in resp.headers

    async def test_empty_store(self, client: AsyncClient, test_app):
        test_app.state.record_store = InMemoryRecordStore()
        resp = await client.get("/api/dashboard")
        stats = resp.json()["data"]["stats"]
        assert stats["total"] == 0
