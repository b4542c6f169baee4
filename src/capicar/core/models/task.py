"""Task / Staff Domain Model

Tasks 表记录由外部系统创建，本服务只读取和原地更新，不删除。
对外 JSON 使用 camelCase（移动端模型字段名）。
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr
from pydantic.alias_generators import to_camel

from .enums import TaskStatus


class CamelModel(BaseModel):
    """对外序列化为 camelCase 的基类"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StaffMember(CamelModel):
    """员工 -- id 为人工分配的 staff_id，不是 Airtable record id"""

    id: str = Field(description="员工编号（staff_id 字段）")
    name: str = Field(default="", description="显示名称")


class FulfillmentTask(CamelModel):
    """履约任务"""

    id: str = Field(description="Airtable record id")
    order_name: str = Field(default="")
    status: TaskStatus = Field(default=TaskStatus.PENDING)
    shipping_name: str = Field(default="")
    created_at: str = Field(description="ISO-8601 创建时间")
    checklist_json: str = Field(default="[]", description="序列化的拣货清单")
    current_operator: StaffMember | None = Field(default=None)

    # 收货地址
    shipping_address1: str | None = None
    shipping_address2: str | None = None
    shipping_city: str | None = None
    shipping_province: str | None = None
    shipping_zip: str | None = None
    shipping_phone: str | None = None

    # 暂停标记
    is_paused: bool = False

    # 异常池
    in_exception_pool: bool = False
    exception_reason: str | None = None
    exception_logged_at: str | None = None
    exception_notes: str | None = None

    # 仅用于展示/调试，不做冲突检测
    last_modified_at: str | None = None

    # 来源记录的原始字段与映射时的派生值（RecordMapper 写回时还原未改动字段）
    _source_fields: dict[str, Any] = PrivateAttr(default_factory=dict)
    _mapped_fields: dict[str, Any] = PrivateAttr(default_factory=dict)


class DashboardData(CamelModel):
    """看板数据 -- 按简化状态分组的任务列表与计数"""

    tasks: dict[str, list[FulfillmentTask]]
    stats: dict[str, int]
    last_updated: str
