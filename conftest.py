"""全局 pytest 配置 -- 内存 RecordStore 种子数据 + Gateway app/client fixture"""

import os
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from capicar.core.config import STAFF_TABLE, TASKS_TABLE
from capicar.core.store import InMemoryRecordStore, StoreRecord


def _task(record_id: str, order_name: str, status: str, day: int, **fields) -> StoreRecord:
    return StoreRecord(
        id=record_id,
        fields={
            "order_name": order_name,
            "status": status,
            "shipping_name": "Taro Yamada",
            "shipping_city": "Osaka",
            "created_at": f"2024-05-{day:02d}T09:00:00.000Z",
            "checklist_json": '[{"sku": "CAPY-01", "qty": 2}]',
            **fields,
        },
    )


def seed_records() -> dict[str, list[StoreRecord]]:
    """测试种子数据：2 名员工 + 覆盖各分组的 7 个任务"""
    return {
        STAFF_TABLE: [
            StoreRecord(id="recStaffAlice", fields={"staff_id": "CAT001", "name": "Alice"}),
            StoreRecord(id="recStaffBob", fields={"staff_id": "CAT002", "name": "Bob"}),
        ],
        TASKS_TABLE: [
            _task("recTaskPending", "#1001", "Pending", 1),
            _task("recTaskPicking", "#1002", "Picking", 2, current_operator="CAT001"),
            _task("recTaskInspecting", "#1003", "Inspecting", 3, current_operator=["CAT002"]),
            _task("recTaskCorrecting", "#1004", "Correcting", 4, current_operator="CAT002"),
            _task("recTaskPaused", "#1005", "Packed", 5, is_paused=True),
            _task(
                "recTaskCompleted",
                "#1006",
                "Completed",
                6,
                updated_at="2024-05-06T12:00:00.000Z",
            ),
            _task("recTaskCancelled", "#1007", "Cancelled", 7),
        ],
    }


@pytest.fixture
def memory_store() -> InMemoryRecordStore:
    """预置种子数据的内存 Store"""
    return InMemoryRecordStore(seed_records())


@pytest_asyncio.fixture
async def test_app(memory_store: InMemoryRecordStore):
    """创建测试用 FastAPI app（绕过 lifespan，手动注入 Store）"""
    os.environ["LOGFIRE_SEND_TO_LOGFIRE"] = "false"

    from capicar.gateway.main import create_app

    app = create_app()
    app.state.record_store = memory_store
    app.state.airtable_client = None

    yield app

    os.environ.pop("LOGFIRE_SEND_TO_LOGFIRE", None)


@pytest_asyncio.fixture
async def client(test_app) -> AsyncGenerator[AsyncClient, None]:
    """提供 httpx AsyncClient 用于测试"""
    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://test",
    ) as ac:
        yield ac
