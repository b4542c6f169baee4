"""Audit Log Domain Model

Audit_Log 表 append-only，本服务只追加，不修改或删除。
"""

from pydantic import BaseModel, Field

from .enums import AuditActionType, WriteOutcome
from .task import CamelModel, FulfillmentTask


class AuditLogEntry(BaseModel):
    """一条待写入的审计记录"""

    timestamp: str = Field(description="ISO-8601 时间戳")
    task_id: str = Field(description="关联任务的 record id")
    action_type: AuditActionType = Field(description="映射后的审计动作类型")
    staff_record_id: str | None = Field(
        default=None,
        description="Staff 表 record id，无法解析员工时为空",
    )
    old_value: str | None = None
    new_value: str | None = None
    details: str = Field(default="", description="可读描述，含操作员名称")


class WorkHistoryItem(CamelModel):
    """任务作业历史（审计记录的展示形态）"""

    id: str
    timestamp: str | None = None
    action: str
    operator_name: str = "Unknown"
    icon: str = "circle"
    details: str = ""


class ActionResult(BaseModel):
    """任务动作执行结果 -- 任务已更新，审计结果单独标记"""

    task: FulfillmentTask
    outcome: WriteOutcome

    @property
    def audit_recorded(self) -> bool:
        return self.outcome == WriteOutcome.COMMITTED
