"""StaffService -- 员工查询与维护

员工对外 id 是 staff_id 字段（如 "CAT001"），Airtable record id 只在服务内部使用，
按 staff_id 查找 record 是一次过滤查询。同一个 StaffService 实例（即同一个请求）内，
对同一 staff_id / record id 的并发查找共享一次 Store 调用。
"""

import asyncio
import re
import time
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from capicar.core.config import STAFF_TABLE
from capicar.core.mapper import RecordMapper
from capicar.core.models import StaffMember
from capicar.core.store import RecordStore, StoreRecord

log = structlog.get_logger()

UNKNOWN_OPERATOR_NAME = "Unknown"


def generate_staff_id(name: str, now_ms: int | None = None) -> str:
    """生成 staff_id：STAFF_<大写名称，空白替换为下划线>_<毫秒时间戳末 4 位>"""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    normalized = re.sub(r"\s+", "_", name.strip().upper())
    return f"STAFF_{normalized}_{str(now_ms)[-4:]}"


class StaffService:
    """员工业务服务"""

    def __init__(self, store: RecordStore) -> None:
        self._store = store
        self._lookups: dict[str, asyncio.Future[Any]] = {}

    async def _memoized(
        self,
        key: str,
        factory: Callable[[], Awaitable[Any]],
    ) -> Any:
        """同 key 的并发查找共享一个 future；失败结果不缓存"""
        future = self._lookups.get(key)
        if future is None:
            future = asyncio.ensure_future(factory())
            self._lookups[key] = future
        try:
            return await future
        except Exception:
            if self._lookups.get(key) is future:
                del self._lookups[key]
            raise

    def _forget(self, staff_id: str) -> None:
        self._lookups.pop(f"staff_id:{staff_id}", None)

    async def find_staff_record(self, staff_id: str) -> StoreRecord | None:
        """按 staff_id 查找 Staff 表记录"""

        async def query() -> StoreRecord | None:
            records = await self._store.list_records(
                STAFF_TABLE,
                filters={"staff_id": staff_id},
                max_records=1,
            )
            return records[0] if records else None

        return await self._memoized(f"staff_id:{staff_id}", query)

    async def get_staff(self, staff_id: str) -> StaffMember | None:
        record = await self.find_staff_record(staff_id)
        return RecordMapper.to_staff(record) if record else None

    async def list_staff(self) -> list[StaffMember]:
        records = await self._store.list_records(STAFF_TABLE)
        return [RecordMapper.to_staff(r) for r in records]

    async def create_staff(self, name: str, staff_id: str | None = None) -> StaffMember:
        """创建员工，未提供 staff_id 时自动生成"""
        fields = {
            "name": name,
            "staff_id": staff_id or generate_staff_id(name),
            "is_active": True,
        }
        record = await self._store.create_record(STAFF_TABLE, fields)
        self._forget(fields["staff_id"])
        log.info("staff_created", staff_id=fields["staff_id"])
        return RecordMapper.to_staff(record)

    async def update_staff(self, staff_id: str, name: str) -> StaffMember | None:
        """更新员工名称，员工不存在返回 None"""
        record = await self.find_staff_record(staff_id)
        if record is None:
            return None
        updated = await self._store.update_record(STAFF_TABLE, record.id, {"name": name})
        self._forget(staff_id)
        log.info("staff_updated", staff_id=staff_id)
        return RecordMapper.to_staff(updated)

    async def delete_staff(self, staff_id: str) -> bool:
        """删除员工，员工不存在返回 False"""
        record = await self.find_staff_record(staff_id)
        if record is None:
            return False
        deleted = await self._store.delete_record(STAFF_TABLE, record.id)
        self._forget(staff_id)
        if deleted:
            log.info("staff_deleted", staff_id=staff_id)
        return deleted

    async def get_name_by_record_id(self, record_id: str) -> str:
        """按 record id（审计记录的 staff 链接）查员工名称，失败返回 "Unknown" """

        async def query() -> StoreRecord | None:
            return await self._store.get_record(STAFF_TABLE, record_id)

        try:
            record = await self._memoized(f"record:{record_id}", query)
        except Exception as e:
            log.warning("staff_name_lookup_failed", record_id=record_id, error=str(e))
            return UNKNOWN_OPERATOR_NAME
        if record is None:
            return UNKNOWN_OPERATOR_NAME
        return str(record.fields.get("name") or UNKNOWN_OPERATOR_NAME)
