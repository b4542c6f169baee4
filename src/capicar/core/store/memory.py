"""InMemoryRecordStore -- 进程内 RecordStore 实现

CAPICAR_STORE_MODE=memory 时使用（离线演示/测试），行为对齐 Airtable：
record id 以 "rec" 开头，更新为字段级合并，空字符串视为清空字段。
"""

import secrets
from datetime import UTC, datetime
from typing import Any

from .protocols import RecordNotFoundError, SortSpec, StoreRecord


def _new_record_id() -> str:
    return f"rec{secrets.token_hex(7)}"


def _matches(fields: dict[str, Any], filters: dict[str, Any]) -> bool:
    for name, expected in filters.items():
        value = fields.get(name)
        if isinstance(value, list):
            if expected not in value:
                return False
        elif value != expected:
            return False
    return True


class InMemoryRecordStore:
    """RecordStore 的内存实现"""

    def __init__(self, seed: dict[str, list[StoreRecord]] | None = None) -> None:
        self._tables: dict[str, dict[str, StoreRecord]] = {}
        for table, records in (seed or {}).items():
            for record in records:
                self._table(table)[record.id] = record.model_copy(deep=True)

    def _table(self, table: str) -> dict[str, StoreRecord]:
        return self._tables.setdefault(table, {})

    async def list_records(
        self,
        table: str,
        *,
        filters: dict[str, Any] | None = None,
        sort: list[SortSpec] | None = None,
        view: str | None = None,
        max_records: int | None = None,
    ) -> list[StoreRecord]:
        records = [
            r.model_copy(deep=True)
            for r in self._table(table).values()
            if not filters or _matches(r.fields, filters)
        ]
        # 多级排序：从最后一个规则开始稳定排序
        for spec in reversed(sort or []):
            present = [r for r in records if r.fields.get(spec.field) is not None]
            missing = [r for r in records if r.fields.get(spec.field) is None]
            present.sort(
                key=lambda r: r.fields[spec.field],
                reverse=spec.direction == "desc",
            )
            records = present + missing
        if max_records is not None:
            records = records[:max_records]
        return records

    async def get_record(self, table: str, record_id: str) -> StoreRecord | None:
        record = self._table(table).get(record_id)
        return record.model_copy(deep=True) if record else None

    async def create_record(self, table: str, fields: dict[str, Any]) -> StoreRecord:
        record = StoreRecord(
            id=_new_record_id(),
            fields={k: v for k, v in fields.items() if v not in ("", None)},
            created_time=datetime.now(UTC).isoformat(),
        )
        self._table(table)[record.id] = record
        return record.model_copy(deep=True)

    async def update_record(
        self,
        table: str,
        record_id: str,
        fields: dict[str, Any],
    ) -> StoreRecord:
        record = self._table(table).get(record_id)
        if record is None:
            raise RecordNotFoundError(table, record_id)
        for name, value in fields.items():
            if value in ("", None):
                record.fields.pop(name, None)
            else:
                record.fields[name] = value
        return record.model_copy(deep=True)

    async def delete_record(self, table: str, record_id: str) -> bool:
        return self._table(table).pop(record_id, None) is not None

    async def health_check(self) -> bool:
        return True
