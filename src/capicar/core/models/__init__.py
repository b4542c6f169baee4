"""CapiCar Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .audit import ActionResult, AuditLogEntry, WorkHistoryItem
from .enums import (
    ACTION_SOURCES,
    ACTIVE_STATES,
    TERMINAL_STATES,
    AuditActionType,
    CheckinAction,
    TaskAction,
    TaskStatus,
    WriteOutcome,
    validate_action,
)
from .payloads import ActionPayload
from .task import CamelModel, DashboardData, FulfillmentTask, StaffMember

__all__ = [
    # 枚举
    "TaskStatus",
    "TaskAction",
    "AuditActionType",
    "CheckinAction",
    "WriteOutcome",
    # 状态机
    "ACTION_SOURCES",
    "ACTIVE_STATES",
    "TERMINAL_STATES",
    "validate_action",
    # Task / Staff
    "CamelModel",
    "FulfillmentTask",
    "StaffMember",
    "DashboardData",
    # Audit
    "AuditLogEntry",
    "WorkHistoryItem",
    "ActionResult",
    # Payloads
    "ActionPayload",
]
