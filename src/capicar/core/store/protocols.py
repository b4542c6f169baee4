"""RecordStore Protocol 接口定义

远程表格数据库（Airtable）的记录级接口，使用 Python Protocol 实现结构化子类型。
Core 只依赖此接口；Airtable REST 客户端与内存实现均满足它。
"""

from typing import Any, Literal, Protocol

from pydantic import BaseModel, Field


class StoreError(Exception):
    """Store 基础异常"""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RecordNotFoundError(StoreError):
    """记录不存在"""

    def __init__(self, table: str, record_id: str) -> None:
        super().__init__(f"Record {record_id} not found in {table}", status_code=404)
        self.table = table
        self.record_id = record_id


class StoreRecord(BaseModel):
    """一行表记录"""

    id: str = Field(description="Store 内部 record id")
    fields: dict[str, Any] = Field(default_factory=dict)
    created_time: str | None = Field(default=None)


class SortSpec(BaseModel):
    """排序规则"""

    field: str
    direction: Literal["asc", "desc"] = "asc"


class RecordStore(Protocol):
    """记录存储接口

    filters 为字段等值过滤（AND 组合），用于按 staff_id / task_id 等二级字段查找。
    """

    async def list_records(
        self,
        table: str,
        *,
        filters: dict[str, Any] | None = None,
        sort: list[SortSpec] | None = None,
        view: str | None = None,
        max_records: int | None = None,
    ) -> list[StoreRecord]:
        """查询记录列表"""
        ...

    async def get_record(self, table: str, record_id: str) -> StoreRecord | None:
        """按 record id 查询，不存在返回 None"""
        ...

    async def create_record(self, table: str, fields: dict[str, Any]) -> StoreRecord:
        """创建记录"""
        ...

    async def update_record(
        self,
        table: str,
        record_id: str,
        fields: dict[str, Any],
    ) -> StoreRecord:
        """部分更新记录，不存在时抛出 RecordNotFoundError"""
        ...

    async def delete_record(self, table: str, record_id: str) -> bool:
        """删除记录，返回是否删除成功"""
        ...

    async def health_check(self) -> bool:
        """检查 Store 可达性，不抛异常"""
        ...
